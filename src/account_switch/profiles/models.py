"""Credential profile models."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from account_switch.logging_utils import mask_secret


class CredentialProfile(BaseModel):
    """One saved account. ``api_key`` and ``refresh_token`` are live only in memory."""

    id: str
    email: str
    name: str
    api_key: str = Field(default="")
    api_server_url: str = Field(default="")
    refresh_token: str = Field(default="")
    plan_name: str = Field(default="")
    created_at: str
    updated_at: str

    @field_validator("email")
    @classmethod
    def _validate_email(cls, value: str) -> str:
        value = value.strip()
        if "@" not in value:
            raise ValueError("email must contain '@'")
        return value

    def without_secrets(self) -> "CredentialProfile":
        return self.model_copy(update={"api_key": "", "refresh_token": ""})

    def __repr__(self) -> str:
        return (
            f"CredentialProfile(id={self.id!r}, email={self.email!r}, "
            f"api_key={mask_secret(self.api_key)!r})"
        )

    __str__ = __repr__


class ProfileInput(BaseModel):
    """Fields accepted when creating or importing a profile."""

    email: str
    name: str | None = None
    api_key: str = Field(default="", alias="apiKey")
    api_server_url: str | None = Field(default=None, alias="apiServerUrl")
    refresh_token: str = Field(default="", alias="refreshToken")
    plan_name: str | None = Field(default=None, alias="planName")

    model_config = {"populate_by_name": True}
