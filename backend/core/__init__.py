"""Core configuration, security primitives and errors."""

from .config import Settings, settings
from .errors import (
    AccountError,
    DuplicateIdentifier,
    InternalError,
    InvalidCredentials,
    NotFound,
    SessionExpiredOrReused,
    Unauthorized,
    UploadFailed,
    ValidationError,
)
from .logging import configure_logging
from .security import (
    InvalidToken,
    PasswordHasher,
    TokenClass,
    TokenConfig,
    TokenIssuer,
    get_password_hasher,
    get_token_issuer,
)

__all__ = [
    "Settings",
    "settings",
    "configure_logging",
    "AccountError",
    "ValidationError",
    "DuplicateIdentifier",
    "InvalidCredentials",
    "Unauthorized",
    "SessionExpiredOrReused",
    "UploadFailed",
    "NotFound",
    "InternalError",
    "InvalidToken",
    "PasswordHasher",
    "TokenClass",
    "TokenConfig",
    "TokenIssuer",
    "get_password_hasher",
    "get_token_issuer",
]
