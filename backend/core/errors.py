"""Account service error taxonomy."""

from __future__ import annotations

from fastapi import status


class AccountError(Exception):
    """Base class for failures surfaced to API callers."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Something went wrong"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AccountError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "All fields are required"


class DuplicateIdentifier(AccountError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "User with that username or email already exists"


class InvalidCredentials(AccountError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid credentials"


class Unauthorized(AccountError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized request"


class SessionExpiredOrReused(AccountError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Refresh token is expired or used"


class UploadFailed(AccountError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Error while uploading file"


class NotFound(AccountError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class InternalError(AccountError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Something went wrong while processing the request"


__all__ = [
    "AccountError",
    "ValidationError",
    "DuplicateIdentifier",
    "InvalidCredentials",
    "Unauthorized",
    "SessionExpiredOrReused",
    "UploadFailed",
    "NotFound",
    "InternalError",
]
