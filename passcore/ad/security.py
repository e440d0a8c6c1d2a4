"""Reading the "user cannot change password" state of an account.

AD does not store this in `userAccountControl`: it is expressed as deny ACEs
for the User-Change-Password extended right on the account's DACL.
"""

from __future__ import annotations

import uuid

from impacket.ldap import ldaptypes

CHANGE_PASSWORD_RIGHT = uuid.UUID("ab721a53-1e2f-11d0-9819-00aa0040529b")
EVERYONE_SID = "S-1-1-0"
SELF_SID = "S-1-5-10"

# Legacy flag; still honoured when an admin tool sets it explicitly.
UF_PASSWD_CANT_CHANGE = 0x0040


def dacl_denies_change_password(raw_sd: bytes | None) -> bool:
    if not raw_sd:
        return False

    sd = ldaptypes.SR_SECURITY_DESCRIPTOR(data=bytes(raw_sd))
    dacl = sd["Dacl"]
    if not dacl:
        return False

    target = CHANGE_PASSWORD_RIGHT.bytes_le
    for ace in dacl.aces:
        if ace["AceType"] != ldaptypes.ACCESS_DENIED_OBJECT_ACE.ACE_TYPE:
            continue
        body = ace["Ace"]
        if not body.hasFlag(ldaptypes.ACCESS_DENIED_OBJECT_ACE.ACE_OBJECT_TYPE_PRESENT):
            continue
        if body["ObjectType"] != target:
            continue
        if body["Sid"].formatCanonical() in (EVERYONE_SID, SELF_SID):
            return True
    return False


def user_cannot_change_password(uac: int, raw_sd: bytes | None) -> bool:
    if int(uac or 0) & UF_PASSWD_CANT_CHANGE:
        return True
    return dacl_denies_change_password(raw_sd)
