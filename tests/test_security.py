from impacket.ldap import ldaptypes

from passcore.ad.security import (
    CHANGE_PASSWORD_RIGHT,
    EVERYONE_SID,
    SELF_SID,
    dacl_denies_change_password,
    user_cannot_change_password,
)

ADS_RIGHT_DS_CONTROL_ACCESS = 0x00000100


def _object_ace(ace_cls, sid: str, object_type: bytes):
    ace = ldaptypes.ACE()
    ace["AceType"] = ace_cls.ACE_TYPE
    ace["AceFlags"] = 0
    body = ace_cls()
    body["Mask"] = ldaptypes.ACCESS_MASK()
    body["Mask"]["Mask"] = ADS_RIGHT_DS_CONTROL_ACCESS
    body["Flags"] = ace_cls.ACE_OBJECT_TYPE_PRESENT
    body["ObjectType"] = object_type
    body["InheritedObjectType"] = b""
    body["Sid"] = ldaptypes.LDAP_SID()
    body["Sid"].fromCanonical(sid)
    ace["Ace"] = body
    return ace


def _security_descriptor(*aces) -> bytes:
    sd = ldaptypes.SR_SECURITY_DESCRIPTOR()
    sd["Revision"] = b"\x01"
    sd["Sbz1"] = b"\x00"
    sd["Control"] = 32772
    sd["OwnerSid"] = ldaptypes.LDAP_SID()
    sd["OwnerSid"].fromCanonical("S-1-5-32-544")
    sd["GroupSid"] = b""
    sd["Sacl"] = b""
    acl = ldaptypes.ACL()
    acl["AclRevision"] = 4
    acl["Sbz1"] = 0
    acl["Sbz2"] = 0
    acl.aces = list(aces)
    sd["Dacl"] = acl
    return sd.getData()


def test_deny_everyone():
    raw = _security_descriptor(
        _object_ace(ldaptypes.ACCESS_DENIED_OBJECT_ACE, EVERYONE_SID, CHANGE_PASSWORD_RIGHT.bytes_le)
    )
    assert dacl_denies_change_password(raw) is True


def test_deny_self():
    raw = _security_descriptor(
        _object_ace(ldaptypes.ACCESS_DENIED_OBJECT_ACE, SELF_SID, CHANGE_PASSWORD_RIGHT.bytes_le)
    )
    assert dacl_denies_change_password(raw) is True


def test_allow_ace_is_not_a_restriction():
    raw = _security_descriptor(
        _object_ace(ldaptypes.ACCESS_ALLOWED_OBJECT_ACE, EVERYONE_SID, CHANGE_PASSWORD_RIGHT.bytes_le)
    )
    assert dacl_denies_change_password(raw) is False


def test_deny_for_other_principal_ignored():
    raw = _security_descriptor(
        _object_ace(
            ldaptypes.ACCESS_DENIED_OBJECT_ACE,
            "S-1-5-21-1-2-3-1105",
            CHANGE_PASSWORD_RIGHT.bytes_le,
        )
    )
    assert dacl_denies_change_password(raw) is False


def test_missing_descriptor():
    assert dacl_denies_change_password(None) is False
    assert dacl_denies_change_password(b"") is False


def test_legacy_uac_flag():
    assert user_cannot_change_password(512 | 0x40, None) is True
    assert user_cannot_change_password(512, None) is False
