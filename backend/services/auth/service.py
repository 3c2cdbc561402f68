"""Registration, login and session-token lifecycle."""

from __future__ import annotations

import logging
from pathlib import Path

from email_validator import EmailNotValidError, validate_email

from core import (
    DuplicateIdentifier,
    InternalError,
    InvalidCredentials,
    InvalidToken,
    SessionExpiredOrReused,
    TokenClass,
    TokenIssuer,
    Unauthorized,
    UploadFailed,
    ValidationError,
)
from core.security import BCRYPT_MAX_PASSWORD_BYTES
from models import User
from services.storage import BlobStore

from .credential_store import CredentialStore
from .schemas import (
    AccountView,
    ChangePasswordRequest,
    LoginRequest,
    LoginResult,
    RegisterRequest,
    TokenPair,
    UpdateProfileRequest,
)

logger = logging.getLogger(__name__)

AVATAR_PREFIX = "avatars"
COVER_IMAGE_PREFIX = "covers"


def _require_fields(*values: str | None) -> None:
    if any(not (value or "").strip() for value in values):
        raise ValidationError("All fields are required")


def _check_email(email: str) -> None:
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError as exc:
        raise ValidationError("Invalid email address") from exc


def _check_password_length(password: str) -> None:
    if len(password.encode("utf-8")) > BCRYPT_MAX_PASSWORD_BYTES:
        raise ValidationError(
            f"Password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes"
        )


class AuthService:
    def __init__(
        self,
        store: CredentialStore,
        issuer: TokenIssuer,
        *,
        blob_store: BlobStore | None = None,
    ) -> None:
        self.store = store
        self.issuer = issuer
        self.blob_store = blob_store

    async def register(
        self,
        request: RegisterRequest,
        *,
        avatar_path: Path | None,
        cover_image_path: Path | None = None,
    ) -> AccountView:
        _require_fields(request.username, request.email, request.full_name, request.password)
        _check_email(request.email)
        _check_password_length(request.password)

        # Checked ahead of the avatar upload; the store repeats the check and
        # the unique indexes catch whatever races past both.
        if await self.store.identifier_taken(username=request.username, email=request.email):
            raise DuplicateIdentifier(
                f'A user with the username "{request.username}" or email '
                f'"{request.email}" already exists'
            )

        if avatar_path is None:
            raise ValidationError("Avatar is required")
        avatar_url = await self._upload(avatar_path, prefix=AVATAR_PREFIX)

        cover_image_url = ""
        if cover_image_path is not None:
            try:
                cover_image_url = await self._upload(cover_image_path, prefix=COVER_IMAGE_PREFIX)
            except UploadFailed:
                logger.warning(
                    "Cover image upload failed during registration; continuing without it",
                    extra={"username": request.username},
                )

        created = await self.store.create(
            username=request.username,
            email=request.email,
            full_name=request.full_name,
            password=request.password,
            avatar_url=avatar_url,
            cover_image_url=cover_image_url,
        )

        account = await self.store.get_by_id(created.id)
        if account is None:
            raise InternalError("Something went wrong while registering the user")

        logger.info("Registered account", extra={"account_id": account.id})
        return self.store.project_public(account)

    async def login(self, request: LoginRequest) -> LoginResult:
        if not request.username and not request.email:
            raise ValidationError("Username or email is required")

        account = await self.store.find_by_identifier(
            username=request.username,
            email=request.email,
        )
        # Same error for unknown account and wrong password.
        if account is None or not self.store.hasher.verify(request.password, account.password_hash):
            logger.info(
                "Rejected login",
                extra={"identifier": request.username or request.email},
            )
            raise InvalidCredentials()

        tokens = self._issue_pair(account)
        await self.store.set_refresh_token(account.id, tokens.refresh_token)

        logger.info("Account logged in", extra={"account_id": account.id})
        return LoginResult(
            user=self.store.project_public(account),
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
        )

    async def logout(self, account_id: str) -> None:
        await self.store.set_refresh_token(account_id, None)
        logger.info("Account logged out", extra={"account_id": account_id})

    async def refresh_session(self, presented: str | None) -> TokenPair:
        if not presented:
            raise Unauthorized()

        try:
            claims = self.issuer.verify(presented, TokenClass.REFRESH)
        except InvalidToken as exc:
            raise Unauthorized("Invalid refresh token") from exc

        account = await self.store.get_by_id(claims["sub"])
        if account is None:
            raise Unauthorized("Invalid refresh token")

        if account.refresh_token != presented:
            logger.warning(
                "Refresh token mismatch; rejecting stale or reused token",
                extra={"account_id": account.id},
            )
            raise SessionExpiredOrReused()

        tokens = self._issue_pair(account)
        rotated = await self.store.rotate_refresh_token(
            account.id,
            presented=presented,
            replacement=tokens.refresh_token,
        )
        if not rotated:
            logger.warning(
                "Lost refresh rotation race",
                extra={"account_id": account.id},
            )
            raise SessionExpiredOrReused()

        logger.info("Rotated refresh token", extra={"account_id": account.id})
        return tokens

    async def change_password(self, account_id: str, request: ChangePasswordRequest) -> None:
        if request.new_password != request.confirm_password:
            raise ValidationError("New password and confirm password do not match")
        _require_fields(request.new_password)
        _check_password_length(request.new_password)

        account = await self.store.get_by_id(account_id)
        if account is None:
            raise Unauthorized()
        if not self.store.hasher.verify(request.old_password, account.password_hash):
            raise InvalidCredentials("Invalid old password")

        await self.store.set_password(account_id, request.new_password, revoke_session=True)
        logger.info("Password changed; session revoked", extra={"account_id": account_id})

    async def update_profile(self, account_id: str, request: UpdateProfileRequest) -> AccountView:
        _require_fields(request.full_name, request.email)
        _check_email(request.email)

        account = await self.store.update_profile(
            account_id,
            full_name=request.full_name,
            email=request.email,
        )
        return self._require_view(account)

    async def update_avatar(self, account_id: str, avatar_path: Path | None) -> AccountView:
        if avatar_path is None:
            raise ValidationError("Avatar is required")
        url = await self._upload(avatar_path, prefix=AVATAR_PREFIX)
        account = await self.store.set_image_url(account_id, field="avatar_url", url=url)
        return self._require_view(account)

    async def update_cover_image(self, account_id: str, cover_image_path: Path | None) -> AccountView:
        if cover_image_path is None:
            raise ValidationError("Cover image is required")
        url = await self._upload(cover_image_path, prefix=COVER_IMAGE_PREFIX)
        account = await self.store.set_image_url(account_id, field="cover_image_url", url=url)
        return self._require_view(account)

    def _issue_pair(self, account: User) -> TokenPair:
        return TokenPair(
            access_token=self.issuer.issue_access_token(
                account.id,
                email=account.email,
                username=account.username,
                full_name=account.full_name,
            ),
            refresh_token=self.issuer.issue_refresh_token(account.id),
        )

    async def _upload(self, local_path: Path, *, prefix: str) -> str:
        if self.blob_store is None:
            raise UploadFailed("File storage is not configured")
        url = await self.blob_store.upload(local_path, prefix=prefix)
        if not url:
            raise UploadFailed()
        return url

    def _require_view(self, account: User | None) -> AccountView:
        if account is None:
            raise Unauthorized()
        return self.store.project_public(account)
