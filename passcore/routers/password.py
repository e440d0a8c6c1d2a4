from __future__ import annotations

import logging
from functools import lru_cache

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from ..ad import IdentityType
from ..env_settings import PasswordChangeOptions, get_options
from ..schema import ApiResult, ChangePasswordModel
from ..services import PasswordChangeProvider

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/password")


@lru_cache(maxsize=1)
def get_provider() -> PasswordChangeProvider:
    return PasswordChangeProvider(get_options())


def _bad_request(result: ApiResult) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=result.model_dump())


@router.get("")
def client_settings(options: PasswordChangeOptions = Depends(get_options)):
    return {"idTypeForUser": options.id_type_for_user, "defaultDomain": options.default_domain}


@router.post("")
def change_password(
    model: ChangePasswordModel,
    provider: PasswordChangeProvider = Depends(get_provider),
):
    errors = model.validation_errors()
    if errors:
        return _bad_request(ApiResult(errors=[e.to_dict() for e in errors]))

    username = model.username.strip()
    domain = provider.options.default_domain.strip().strip(".")
    if domain and provider.id_type == IdentityType.USER_PRINCIPAL_NAME and "@" not in username:
        username = f"{username}@{domain}"

    item = provider.perform_password_change(username, model.current_password, model.new_password)
    if item is not None:
        log.info("Password change for %s rejected: %s", username, item.error_code.name)
        return _bad_request(ApiResult(errors=[item.to_dict()]))

    log.info("Password changed for %s", username)
    return ApiResult(payload="ok").model_dump()
