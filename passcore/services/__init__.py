"""Service layer.

Routers import from here; the implementation lives in submodules.
"""

from .password import PasswordChangeProvider  # noqa: F401
from .policy import validate_groups  # noqa: F401
