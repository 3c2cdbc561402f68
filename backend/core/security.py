"""Password hashing and session token signing."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from functools import lru_cache
from typing import Any
from uuid import uuid4

import bcrypt
import jwt

from .config import Settings, settings

BCRYPT_MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """Salted bcrypt digests with a configurable cost factor."""

    def __init__(self, rounds: int = 10) -> None:
        self.rounds = rounds

    def hash(self, plaintext: str) -> str:
        encoded = plaintext.encode("utf-8")
        if len(encoded) > BCRYPT_MAX_PASSWORD_BYTES:
            raise ValueError(
                f"Password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes"
            )
        return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plaintext: str, digest: str) -> bool:
        try:
            return bcrypt.checkpw(plaintext.encode("utf-8"), digest.encode("utf-8"))
        except ValueError:
            # Malformed digest or an over-long candidate never matches.
            return False


class TokenClass(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


class InvalidToken(Exception):
    """Raised when a token fails signature, expiry or class checks."""


@dataclass(frozen=True)
class TokenConfig:
    access_secret: str
    access_ttl: timedelta
    refresh_secret: str
    refresh_ttl: timedelta
    algorithm: str = "HS256"

    @classmethod
    def from_settings(cls, source: Settings) -> "TokenConfig":
        return cls(
            access_secret=source.access_token_secret,
            access_ttl=timedelta(minutes=source.access_token_expire_minutes),
            refresh_secret=source.refresh_token_secret,
            refresh_ttl=timedelta(minutes=source.refresh_token_expire_minutes),
            algorithm=source.jwt_algorithm,
        )

    def secret_for(self, token_class: TokenClass) -> str:
        if token_class is TokenClass.ACCESS:
            return self.access_secret
        return self.refresh_secret

    def ttl_for(self, token_class: TokenClass) -> timedelta:
        if token_class is TokenClass.ACCESS:
            return self.access_ttl
        return self.refresh_ttl


class TokenIssuer:
    """Signs and verifies the two bearer token classes.

    Access tokens carry the account's identity claims; refresh tokens carry
    only the account id. Each class has its own secret and lifetime, so a
    token of one class never verifies as the other.
    """

    def __init__(self, config: TokenConfig) -> None:
        self.config = config

    def issue(
        self,
        account_id: str,
        token_class: TokenClass,
        claims: dict[str, Any] | None = None,
    ) -> str:
        now = datetime.now(timezone.utc)
        payload: dict[str, Any] = dict(claims or {})
        payload.update(
            {
                "sub": account_id,
                "type": token_class.value,
                "iat": now,
                "exp": now + self.config.ttl_for(token_class),
                # Keeps two tokens minted within the same second distinct.
                "jti": uuid4().hex,
            }
        )
        return jwt.encode(
            payload,
            self.config.secret_for(token_class),
            algorithm=self.config.algorithm,
        )

    def issue_access_token(
        self,
        account_id: str,
        *,
        email: str,
        username: str,
        full_name: str,
    ) -> str:
        return self.issue(
            account_id,
            TokenClass.ACCESS,
            {"email": email, "username": username, "fullName": full_name},
        )

    def issue_refresh_token(self, account_id: str) -> str:
        return self.issue(account_id, TokenClass.REFRESH)

    def verify(self, token: str, token_class: TokenClass) -> dict[str, Any]:
        try:
            payload = jwt.decode(
                token,
                self.config.secret_for(token_class),
                algorithms=[self.config.algorithm],
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise InvalidToken("Token expired") from exc
        except jwt.PyJWTError as exc:
            raise InvalidToken("Invalid token") from exc

        if payload.get("type") != token_class.value:
            raise InvalidToken("Unexpected token type")
        if not isinstance(payload.get("sub"), str) or not payload["sub"]:
            raise InvalidToken("Token subject missing")
        return payload


@lru_cache
def get_password_hasher() -> PasswordHasher:
    return PasswordHasher(rounds=settings.bcrypt_rounds)


@lru_cache
def get_token_issuer() -> TokenIssuer:
    return TokenIssuer(TokenConfig.from_settings(settings))
