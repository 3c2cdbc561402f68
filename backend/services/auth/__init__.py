"""Authentication domain services."""

from .cookies import (
    ACCESS_COOKIE,
    REFRESH_COOKIE,
    clear_token_cookies,
    set_token_cookies,
)
from .credential_store import CredentialStore, normalize_identifier
from .schemas import (
    AccountView,
    ChangePasswordRequest,
    LoginRequest,
    LoginResult,
    RefreshRequest,
    RegisterRequest,
    TokenPair,
    UpdateProfileRequest,
)
from .service import AuthService

__all__ = [
    "ACCESS_COOKIE",
    "REFRESH_COOKIE",
    "clear_token_cookies",
    "set_token_cookies",
    "CredentialStore",
    "normalize_identifier",
    "AuthService",
    "AccountView",
    "ChangePasswordRequest",
    "LoginRequest",
    "LoginResult",
    "RefreshRequest",
    "RegisterRequest",
    "TokenPair",
    "UpdateProfileRequest",
]
