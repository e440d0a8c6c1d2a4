from __future__ import annotations

import logging
from typing import Callable, ContextManager, Optional

from ..ad import (
    ApiErrorCode,
    ApiErrorItem,
    DirectoryError,
    PrincipalContext,
    UserPrincipal,
    acquire_principal_context,
    resolve_identity_type,
)
from ..ad_utils import upn_parts
from ..env_settings import PasswordChangeOptions
from ..host_logon import LogonResult, network_logon
from .policy import validate_groups

log = logging.getLogger(__name__)

# Written to pwdLastSet for accounts that never had a password set; the DC
# replaces it with the current time.
PWD_LAST_SET_SENTINEL = -1

ContextFactory = Callable[[PasswordChangeOptions], ContextManager[PrincipalContext]]
NetworkLogon = Callable[..., LogonResult]


class PasswordChangeProvider:
    def __init__(
        self,
        options: PasswordChangeOptions,
        context_factory: ContextFactory = acquire_principal_context,
        logon: NetworkLogon = network_logon,
    ) -> None:
        self.options = options
        self.id_type = resolve_identity_type(options.id_type_for_user)
        self._context_factory = context_factory
        self._logon = logon

    def perform_password_change(
        self,
        username: str,
        current_password: str,
        new_password: str,
    ) -> Optional[ApiErrorItem]:
        """Change the password of `username`.

        Returns None on success, otherwise the error to report to the caller.
        Unexpected failures are reported as invalid credentials.
        """
        try:
            with self._context_factory(self.options) as ctx:
                return self._change_password(ctx, username, current_password, new_password)
        except Exception as e:
            item = ApiErrorItem(ApiErrorCode.INVALID_CREDENTIALS, f"Failed to update password: {e}")
            log.warning(item.message, exc_info=True)
            return item

    def _change_password(
        self,
        ctx: PrincipalContext,
        username: str,
        current_password: str,
        new_password: str,
    ) -> Optional[ApiErrorItem]:
        principal = ctx.find_by_identity(self.id_type, username)
        if principal is None:
            log.warning("The User principal doesn't exist: %s", username)
            return ApiErrorItem(ApiErrorCode.USER_NOT_FOUND)

        error = self._validate_groups(principal)
        if error is not None:
            log.warning("%s: %s", error.message, principal.user_principal_name)
            return error

        if principal.user_cannot_change_password:
            log.warning("The User principal cannot change the password: %s", principal.user_principal_name)
            return ApiErrorItem(ApiErrorCode.CHANGE_NOT_PERMITTED)

        if principal.last_password_set is None:
            error = self._normalize_password_state(principal)
            if error is not None:
                return error

        # The UPN is used for the check whatever the lookup identity type is.
        if not self.validate_user_credentials(ctx, principal.user_principal_name, current_password):
            log.warning("The User principal password is not valid: %s", principal.user_principal_name)
            return ApiErrorItem(ApiErrorCode.INVALID_CREDENTIALS)

        self._update_password(ctx, principal, current_password, new_password)
        return None

    def _validate_groups(self, principal: UserPrincipal) -> Optional[ApiErrorItem]:
        restricted = self.options.restricted_groups
        allowed = self.options.allowed_groups
        if not restricted and not allowed:
            return None
        return validate_groups(restricted, allowed, principal.get_authorization_groups())

    def _normalize_password_state(self, principal: UserPrincipal) -> Optional[ApiErrorItem]:
        log.warning("The User principal has no last password set: %s", principal.user_principal_name)

        entry = principal.get_underlying_object()
        entry["pwdLastSet"] = PWD_LAST_SET_SENTINEL
        try:
            entry.commit_changes()
        except DirectoryError as e:
            return ApiErrorItem(ApiErrorCode.GENERIC, str(e))
        return None

    def validate_user_credentials(self, ctx: PrincipalContext, upn: str, password: str) -> bool:
        if ctx.validate_credentials(upn, password):
            return True

        username, authority = upn_parts(upn)
        if not username or not password:
            return False
        result = self._logon(ctx.host, authority, username, password, timeout_s=self.options.logon_timeout_s)
        if result.success:
            return True

        if result.password_correct:
            log.debug("Network logon for %s reported 0x%08x, password accepted", upn, result.error_code)
            return True
        return False

    def _update_password(
        self,
        ctx: PrincipalContext,
        principal: UserPrincipal,
        current_password: str,
        new_password: str,
    ) -> None:
        try:
            principal.change_password(current_password, new_password)
        except DirectoryError:
            if ctx.automatic:
                log.warning("The User principal password cannot be changed and setPassword won't be called")
                raise

            principal.set_password(new_password)
            log.debug("The User principal password updated with setPassword")

        principal.save()
        log.debug("The User principal password updated: %s", principal.user_principal_name)
