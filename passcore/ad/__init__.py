"""Active Directory (LDAP) access used by the password change provider.

Public API:
    - IdentityType, resolve_identity_type
    - ApiErrorCode, ApiErrorItem
    - PrincipalContext, UserPrincipal, DirectoryEntry, acquire_principal_context
    - DirectoryError
"""

from .errors import DirectoryError
from .models import ApiErrorCode, ApiErrorItem, IdentityType
from .identity import resolve_identity_type
from .context import DirectoryEntry, PrincipalContext, UserPrincipal, acquire_principal_context

__all__ = [
    "ApiErrorCode",
    "ApiErrorItem",
    "DirectoryEntry",
    "DirectoryError",
    "IdentityType",
    "PrincipalContext",
    "UserPrincipal",
    "acquire_principal_context",
    "resolve_identity_type",
]
