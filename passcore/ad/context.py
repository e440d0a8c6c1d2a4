from __future__ import annotations

import logging
import ssl
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator, Optional

from ldap3 import (
    Server,
    Connection,
    ALL,
    BASE,
    SUBTREE,
    SIMPLE,
    SASL,
    KERBEROS,
    Tls,
    MODIFY_REPLACE,
)
from ldap3.core.exceptions import LDAPException, LDAPInvalidDnError
from ldap3.protocol.microsoft import security_descriptor_control

from ..ad_utils import domain_to_base_dn, qualify_principal, upn_parts
from ..env_settings import PasswordChangeOptions
from .discovery import discover_domain_controller, host_domain
from .errors import DirectoryError
from .models import IdentityType
from .security import user_cannot_change_password
from .utils import escape_guid, escape_ldap_filter_value, filetime_to_dt, sid_to_str

log = logging.getLogger(__name__)

USER_FILTER = "(&(objectCategory=person)(objectClass=user))"

IDENTITY_ATTRIBUTES = {
    IdentityType.USER_PRINCIPAL_NAME: "userPrincipalName",
    IdentityType.SAM_ACCOUNT_NAME: "sAMAccountName",
    IdentityType.NAME: "name",
    IdentityType.SID: "objectSid",
}

PRINCIPAL_ATTRIBUTES = [
    "distinguishedName",
    "userPrincipalName",
    "sAMAccountName",
    "userAccountControl",
    "pwdLastSet",
    "nTSecurityDescriptor",
]

# LDAP result codes that mean "nothing there" rather than a failure.
_RESULT_SUCCESS = 0
_RESULT_SIZE_LIMIT_EXCEEDED = 4
_RESULT_NO_SUCH_OBJECT = 32

# Owner + group flags off: a regular account may read its own DACL only.
_SD_FLAGS_DACL = 0x04


def _first(entry: Any, attr: str) -> Any:
    v = getattr(entry, attr, None)
    if v is None:
        return None
    value = getattr(v, "value", v)
    if isinstance(value, list):
        return value[0] if value else None
    return value


def _raw_first(entry: Any, attr: str) -> Optional[bytes]:
    raw = (getattr(entry, "entry_raw_attributes", None) or {}).get(attr) or []
    return bytes(raw[0]) if raw else None


class DirectoryEntry:
    """Raw attribute store of a directory object.

    Assignments are buffered and written with a single modify on
    `commit_changes()`.
    """

    def __init__(self, conn: Connection, dn: str) -> None:
        self._conn = conn
        self.dn = dn
        self._changes: dict[str, list[tuple[str, list[str]]]] = {}

    def __setitem__(self, attr: str, value: Any) -> None:
        self._changes[attr] = [(MODIFY_REPLACE, [str(value)])]

    def commit_changes(self) -> None:
        if not self._changes:
            return
        try:
            ok = self._conn.modify(self.dn, self._changes)
        except LDAPException as e:
            raise DirectoryError(f"Failed to commit changes for {self.dn}: {e}") from e
        if not ok:
            raise DirectoryError.from_result(f"Failed to commit changes for {self.dn}", self._conn.result)
        self._changes = {}


class UserPrincipal:
    def __init__(
        self,
        context: "PrincipalContext",
        dn: str,
        user_principal_name: str,
        sam_account_name: str = "",
        user_account_control: int = 0,
        last_password_set: Optional[datetime] = None,
        security_descriptor: Optional[bytes] = None,
    ) -> None:
        self.context = context
        self.dn = dn
        self.user_principal_name = user_principal_name
        self.sam_account_name = sam_account_name
        self.user_account_control = user_account_control
        self.last_password_set = last_password_set
        self._security_descriptor = security_descriptor
        self._entry: Optional[DirectoryEntry] = None

    def __repr__(self) -> str:
        return f"UserPrincipal(dn={self.dn!r}, upn={self.user_principal_name!r})"

    @property
    def user_cannot_change_password(self) -> bool:
        return user_cannot_change_password(self.user_account_control, self._security_descriptor)

    def get_authorization_groups(self) -> list[str]:
        return self.context.authorization_groups(self.dn)

    def get_underlying_object(self) -> DirectoryEntry:
        if self._entry is None:
            self._entry = DirectoryEntry(self.context.conn, self.dn)
        return self._entry

    def change_password(self, old_password: str, new_password: str) -> None:
        self.context.change_password(self.dn, old_password, new_password)

    def set_password(self, new_password: str) -> None:
        self.context.set_password(self.dn, new_password)

    def save(self) -> None:
        if self._entry is not None:
            self._entry.commit_changes()


class PrincipalContext:
    """One bound directory session, owned by a single password change request."""

    def __init__(
        self,
        server: Server,
        conn: Connection,
        base_dn: str,
        automatic: bool = False,
        starttls: bool = False,
    ) -> None:
        self.server = server
        self.conn = conn
        self.base_dn = base_dn
        self.automatic = automatic
        self.starttls = starttls

    @property
    def host(self) -> str:
        return str(self.server.host)

    @property
    def secure(self) -> bool:
        return bool(self.server.ssl or self.starttls)

    def _search_principal(self, search_base: str, flt: str, scope: str) -> Optional[UserPrincipal]:
        try:
            ok = self.conn.search(
                search_base=search_base,
                search_filter=flt,
                search_scope=scope,
                attributes=PRINCIPAL_ATTRIBUTES,
                controls=security_descriptor_control(sdflags=_SD_FLAGS_DACL),
                size_limit=2,
            )
        except LDAPInvalidDnError:
            return None

        if not ok:
            res = dict(self.conn.result or {})
            if res.get("result") in (_RESULT_SUCCESS, _RESULT_NO_SUCH_OBJECT):
                return None
            if res.get("result") == _RESULT_SIZE_LIMIT_EXCEEDED:
                raise DirectoryError(f"Multiple principals match the filter {flt}")
            raise DirectoryError.from_result("Principal lookup failed", res)

        # Continuation references make the search succeed without entries.
        if not self.conn.entries:
            return None
        if len(self.conn.entries) > 1:
            raise DirectoryError(f"Multiple principals match the filter {flt}")

        e = self.conn.entries[0]
        dn = str(_first(e, "distinguishedName") or getattr(e, "entry_dn", "") or "")
        return UserPrincipal(
            context=self,
            dn=dn,
            user_principal_name=str(_first(e, "userPrincipalName") or ""),
            sam_account_name=str(_first(e, "sAMAccountName") or ""),
            user_account_control=int(_first(e, "userAccountControl") or 0),
            last_password_set=filetime_to_dt(_first(e, "pwdLastSet")),
            security_descriptor=_raw_first(e, "nTSecurityDescriptor"),
        )

    def find_by_identity(self, id_type: IdentityType, value: str) -> Optional[UserPrincipal]:
        value = (value or "").strip()
        if not value:
            return None

        if id_type == IdentityType.DISTINGUISHED_NAME:
            return self._search_principal(value, USER_FILTER, BASE)

        if id_type == IdentityType.GUID:
            guid = escape_guid(value)
            if guid is None:
                return None
            flt = f"(&{USER_FILTER}(objectGUID={guid}))"
        else:
            attr = IDENTITY_ATTRIBUTES[id_type]
            flt = f"(&{USER_FILTER}({attr}={escape_ldap_filter_value(value)}))"

        if not self.base_dn:
            raise DirectoryError("BaseDN is empty (set DEFAULT_DOMAIN)")
        return self._search_principal(self.base_dn, flt, SUBTREE)

    def authorization_groups(self, dn: str) -> list[str]:
        """Names of all security groups of the account, nested ones included."""
        ok = self.conn.search(
            search_base=dn,
            search_filter="(objectClass=*)",
            search_scope=BASE,
            attributes=["tokenGroups"],
        )
        if not ok or not self.conn.entries:
            raise DirectoryError.from_result("Failed to read tokenGroups", self.conn.result)

        raw = (self.conn.entries[0].entry_raw_attributes or {}).get("tokenGroups") or []
        sids = [s for s in (sid_to_str(x) for x in raw) if s]
        if not sids:
            return []

        names: list[str] = []
        # Keep filters reasonably short for accounts in many groups.
        for i in range(0, len(sids), 50):
            chunk = "".join(f"(objectSid={escape_ldap_filter_value(s)})" for s in sids[i:i + 50])
            ok = self.conn.search(
                search_base=self.base_dn,
                search_filter=f"(&(objectClass=group)(|{chunk}))",
                search_scope=SUBTREE,
                attributes=["name", "cn"],
            )
            if not ok:
                res = dict(self.conn.result or {})
                if res.get("result") == _RESULT_SUCCESS:
                    continue
                raise DirectoryError.from_result("Failed to resolve group SIDs", res)
            for e in self.conn.entries:
                name = str(_first(e, "name") or _first(e, "cn") or "")
                if name:
                    names.append(name)
        return names

    def validate_credentials(self, user: str, password: str) -> bool:
        """Simple bind as `user` on a separate connection to the same server."""
        if not user or not password:
            # An empty password is an unauthenticated bind, which AD accepts.
            return False

        conn: Connection | None = None
        try:
            conn = Connection(self.server, user=user, password=password, authentication=SIMPLE, auto_bind=False)
            conn.open()
            if self.starttls:
                conn.start_tls()
            return bool(conn.bind())
        except LDAPException:
            log.debug("Credential bind for %s failed", user, exc_info=True)
            return False
        finally:
            if conn is not None:
                _safe_unbind(conn)

    def _require_secure(self) -> None:
        if not self.secure:
            raise DirectoryError("Password changes require a protected connection (LDAPS or StartTLS)")

    def change_password(self, dn: str, old_password: str, new_password: str) -> None:
        self._require_secure()
        try:
            ok = bool(self.conn.extend.microsoft.modify_password(dn, new_password, old_password=old_password))
        except LDAPException as e:
            raise DirectoryError(f"Password change failed: {e}") from e
        if not ok:
            raise DirectoryError.from_result("Password change failed", self.conn.result)

    def set_password(self, dn: str, new_password: str) -> None:
        self._require_secure()
        try:
            ok = bool(self.conn.extend.microsoft.modify_password(dn, new_password))
        except LDAPException as e:
            raise DirectoryError(f"Password set failed: {e}") from e
        if not ok:
            raise DirectoryError.from_result("Password set failed", self.conn.result)

    def close(self) -> None:
        _safe_unbind(self.conn)


def _safe_unbind(conn: Connection) -> None:
    try:
        conn.unbind()
    except LDAPException:
        log.debug("LDAP unbind failed", exc_info=True)


def _build_server(host: str, options: PasswordChangeOptions) -> Server:
    tls = Tls(validate=ssl.CERT_REQUIRED if options.ldap_tls_validate else ssl.CERT_NONE)
    return Server(
        host=host,
        port=options.ldap_port,
        use_ssl=options.ldap_use_ssl,
        get_info=ALL,
        tls=tls,
    )


def _base_dn(server: Server, domain: str) -> str:
    info = getattr(server, "info", None)
    other = getattr(info, "other", None) or {}
    ctx = other.get("defaultNamingContext") or []
    if ctx:
        return str(ctx[0])
    return domain_to_base_dn(domain)


def open_principal_context(options: PasswordChangeOptions) -> PrincipalContext:
    """Bind a new directory session.

    Automatic context: Kerberos (SASL/GSSAPI) with the process credential
    cache against a DC of the default domain. Otherwise: simple bind with the
    service account against the first configured host.
    """
    if options.use_automatic_context:
        domain = options.default_domain or host_domain()
        server = _build_server(discover_domain_controller(domain), options)
        conn = Connection(server, authentication=SASL, sasl_mechanism=KERBEROS, auto_bind=False)
    else:
        hosts = options.hostnames
        if not hosts:
            raise DirectoryError("No LDAP hostnames configured (LDAP_HOSTNAMES)")
        _, bind_domain = upn_parts(options.ldap_username)
        domain = options.default_domain or bind_domain
        server = _build_server(hosts[0], options)
        conn = Connection(
            server,
            user=qualify_principal(options.ldap_username, domain),
            password=options.ldap_password,
            authentication=SIMPLE,
            auto_bind=False,
        )

    try:
        conn.open()
        if options.ldap_starttls:
            conn.start_tls()
        if not conn.bind():
            raise DirectoryError.from_result(f"Bind to {server.host} failed", conn.result)
    except LDAPException as e:
        _safe_unbind(conn)
        raise DirectoryError(f"Bind to {server.host} failed: {e}") from e
    except DirectoryError:
        _safe_unbind(conn)
        raise

    return PrincipalContext(
        server=server,
        conn=conn,
        base_dn=_base_dn(server, domain),
        automatic=options.use_automatic_context,
        starttls=options.ldap_starttls,
    )


@contextmanager
def acquire_principal_context(options: PasswordChangeOptions) -> Iterator[PrincipalContext]:
    ctx = open_principal_context(options)
    try:
        yield ctx
    finally:
        ctx.close()
