"""Self-service Active Directory password change."""

__version__ = "0.1.0"
