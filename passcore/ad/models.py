from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional


class IdentityType(str, Enum):
    USER_PRINCIPAL_NAME = "UserPrincipalName"
    DISTINGUISHED_NAME = "DistinguishedName"
    GUID = "Guid"
    NAME = "Name"
    SAM_ACCOUNT_NAME = "SamAccountName"
    SID = "Sid"


class ApiErrorCode(IntEnum):
    GENERIC = 0
    FIELD_REQUIRED = 1
    FIELD_MISMATCH = 2
    USER_NOT_FOUND = 3
    INVALID_CREDENTIALS = 4
    CHANGE_NOT_PERMITTED = 6


@dataclass(frozen=True)
class ApiErrorItem:
    error_code: ApiErrorCode
    message: Optional[str] = None
    field_name: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "errorCode": int(self.error_code),
            "fieldName": self.field_name,
            "message": self.message,
        }
