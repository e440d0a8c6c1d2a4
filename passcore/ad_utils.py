from __future__ import annotations


def domain_to_base_dn(domain: str) -> str:
    domain = (domain or "").strip().strip(".")
    if not domain or "." not in domain:
        return ""
    parts = [p for p in domain.split(".") if p]
    return ",".join([f"DC={p}" for p in parts])


def split_names(text: str) -> list[str]:
    """Split a ';' separated settings value (hosts, group names)."""
    if not text:
        return []
    return [x.strip() for x in text.split(";") if x.strip()]


def upn_parts(upn: str) -> tuple[str, str]:
    """Return (local part, authority) of a user principal name.

    The authority is the text after the last '@'; without '@' it is empty.
    """
    u = (upn or "").strip()
    if "@" not in u:
        return u, ""
    local, authority = u.rsplit("@", 1)
    return local, authority


def qualify_principal(username: str, domain: str) -> str:
    u = (username or "").strip()
    d = (domain or "").strip().strip(".")
    if not u:
        return ""
    if "@" in u or "\\" in u:
        return u
    return f"{u}@{d}" if d else u
