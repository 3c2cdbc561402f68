"""Typed request structs and public views for account operations."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _strip(value: object) -> object:
    # Blank values stay as empty strings; the service rejects them uniformly.
    if isinstance(value, str):
        return value.strip()
    return value


class RegisterRequest(CamelModel):
    username: str = ""
    email: str = ""
    full_name: str = ""
    password: str = ""

    strip_identity = field_validator("username", "email", "full_name", mode="before")(_strip)


class LoginRequest(CamelModel):
    username: str | None = None
    email: str | None = None
    password: str = ""

    strip_identity = field_validator("username", "email", mode="before")(_strip)


class RefreshRequest(CamelModel):
    refresh_token: str | None = None


class ChangePasswordRequest(CamelModel):
    # Passwords are compared as entered; no trimming.
    old_password: str = ""
    new_password: str = ""
    confirm_password: str = ""


class UpdateProfileRequest(CamelModel):
    full_name: str = ""
    email: str = ""

    strip_fields = field_validator("full_name", "email", mode="before")(_strip)


class AccountView(CamelModel):
    """Account as returned to callers: no password hash, no session token."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    id: str
    username: str
    email: EmailStr
    full_name: str
    avatar_url: str
    cover_image_url: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TokenPair(CamelModel):
    access_token: str
    refresh_token: str


class LoginResult(TokenPair):
    user: AccountView
