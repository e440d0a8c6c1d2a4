from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from ldap3.protocol.formatters.formatters import format_sid
from ldap3.utils.conv import escape_bytes


def escape_ldap_filter_value(value: str) -> str:
    """RFC 4515 escaping for LDAP filter values."""
    out: list[str] = []
    for ch in value:
        if ch == "\\":
            out.append("\\5c")
        elif ch == "*":
            out.append("\\2a")
        elif ch == "(":
            out.append("\\28")
        elif ch == ")":
            out.append("\\29")
        elif ch == "\x00":
            out.append("\\00")
        else:
            out.append(ch)
    return "".join(out)


def escape_guid(value: str) -> Optional[str]:
    """objectGUID filter value (little-endian byte escapes); None if not a GUID."""
    try:
        g = uuid.UUID((value or "").strip().strip("{}"))
    except ValueError:
        return None
    return escape_bytes(g.bytes_le)


def filetime_to_dt(v: Any) -> Optional[datetime]:
    """Convert Windows FILETIME (100ns since 1601-01-01) to an aware UTC datetime.

    0, negative and unparsable values mean "never set" and return None.
    """
    if v is None:
        return None
    if isinstance(v, datetime):
        # ldap3 formats FILETIME attributes itself when the schema is loaded;
        # 0 comes back as 1601-01-01.
        if v.year <= 1601:
            return None
        return v if v.tzinfo else v.replace(tzinfo=timezone.utc)
    try:
        n = int(v)
    except (TypeError, ValueError):
        return None
    if n <= 0:
        return None
    seconds = (n / 10_000_000) - 11_644_473_600
    if seconds <= 0:
        return None
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def sid_to_str(v: Any) -> str:
    if isinstance(v, (bytes, bytearray)):
        return str(format_sid(bytes(v)))
    return str(v or "").strip()
