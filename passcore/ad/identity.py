"""Fault-tolerant mapping of the configured `ID_TYPE_FOR_USER` value."""

from __future__ import annotations

from typing import Optional

from .models import IdentityType

DEFAULT_IDENTITY_TYPE = IdentityType.USER_PRINCIPAL_NAME

IDENTITY_TYPE_SYNONYMS: dict[str, IdentityType] = {
    "distinguishedname": IdentityType.DISTINGUISHED_NAME,
    "distinguished name": IdentityType.DISTINGUISHED_NAME,
    "dn": IdentityType.DISTINGUISHED_NAME,
    "globally unique identifier": IdentityType.GUID,
    "globallyuniqueidentifier": IdentityType.GUID,
    "guid": IdentityType.GUID,
    "name": IdentityType.NAME,
    "nm": IdentityType.NAME,
    "samaccountname": IdentityType.SAM_ACCOUNT_NAME,
    "accountname": IdentityType.SAM_ACCOUNT_NAME,
    "sam account": IdentityType.SAM_ACCOUNT_NAME,
    "sam account name": IdentityType.SAM_ACCOUNT_NAME,
    "sam": IdentityType.SAM_ACCOUNT_NAME,
    "securityidentifier": IdentityType.SID,
    "securityid": IdentityType.SID,
    "secid": IdentityType.SID,
    "security identifier": IdentityType.SID,
    "sid": IdentityType.SID,
}


def resolve_identity_type(value: Optional[str]) -> IdentityType:
    """Return the identity type for a free-form setting.

    Anything not in `IDENTITY_TYPE_SYNONYMS` (including an empty value)
    resolves to the user principal name.
    """
    key = (value or "").strip().lower()
    return IDENTITY_TYPE_SYNONYMS.get(key, DEFAULT_IDENTITY_TYPE)
