from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from .ad.models import ApiErrorCode, ApiErrorItem


class ChangePasswordModel(BaseModel):
    """Body of `POST /api/password`.

    Fields default to empty so that missing values are reported as
    FieldRequired items rather than a validation error response.
    """

    model_config = ConfigDict(populate_by_name=True)

    username: str = Field(default="")
    current_password: str = Field(default="", alias="currentPassword")
    new_password: str = Field(default="", alias="newPassword")
    new_password_verify: str = Field(default="", alias="newPasswordVerify")

    def validation_errors(self) -> list[ApiErrorItem]:
        errors: list[ApiErrorItem] = []
        required = (
            ("username", self.username.strip()),
            ("currentPassword", self.current_password),
            ("newPassword", self.new_password),
            ("newPasswordVerify", self.new_password_verify),
        )
        for name, value in required:
            if not value:
                errors.append(ApiErrorItem(ApiErrorCode.FIELD_REQUIRED, f"{name} is required", field_name=name))
        if errors:
            return errors

        if self.new_password != self.new_password_verify:
            errors.append(
                ApiErrorItem(
                    ApiErrorCode.FIELD_MISMATCH,
                    "The new password and its confirmation do not match",
                    field_name="newPasswordVerify",
                )
            )
        return errors


class ApiResult(BaseModel):
    errors: list[dict] = Field(default_factory=list)
    payload: str | None = None
