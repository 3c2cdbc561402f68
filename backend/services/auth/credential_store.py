"""Persistence of account identity, password digest and session token."""

from __future__ import annotations

import logging
from typing import Any, cast

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from core import DuplicateIdentifier, PasswordHasher, ValidationError
from db.errors import is_unique_violation
from models import User
from models.user import utcnow

from .schemas import AccountView

logger = logging.getLogger(__name__)


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


def _ne(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column != value)


def normalize_identifier(value: str) -> str:
    return value.strip().lower()


class CredentialStore:
    """Single-row reads and writes against the ``users`` table.

    Every mutating call commits on its own; no operation spans more than one
    account row, so row-level atomicity is the only guarantee relied on.
    """

    def __init__(self, session: AsyncSession, hasher: PasswordHasher) -> None:
        self.session = session
        self.hasher = hasher

    async def get_by_id(self, account_id: str) -> User | None:
        result = await self.session.execute(
            select(User)
            .where(_eq(User.id, account_id))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def find_by_identifier(
        self,
        *,
        username: str | None = None,
        email: str | None = None,
    ) -> User | None:
        clauses: list[ColumnElement[bool]] = []
        if username:
            clauses.append(_eq(User.username, normalize_identifier(username)))
        if email:
            clauses.append(_eq(User.email, normalize_identifier(email)))
        if not clauses:
            raise ValidationError("Username or email is required")

        result = await self.session.execute(select(User).where(or_(*clauses)).limit(1))
        return result.scalar_one_or_none()

    async def identifier_taken(
        self,
        *,
        username: str | None = None,
        email: str | None = None,
        exclude_id: str | None = None,
    ) -> bool:
        clauses: list[ColumnElement[bool]] = []
        if username:
            clauses.append(_eq(User.username, normalize_identifier(username)))
        if email:
            clauses.append(_eq(User.email, normalize_identifier(email)))
        if not clauses:
            return False

        stmt = select(User.id).where(or_(*clauses))
        if exclude_id is not None:
            stmt = stmt.where(_ne(User.id, exclude_id))
        result = await self.session.execute(stmt.limit(1))
        return result.scalar_one_or_none() is not None

    async def create(
        self,
        *,
        username: str,
        email: str,
        full_name: str,
        password: str,
        avatar_url: str,
        cover_image_url: str = "",
    ) -> User:
        if await self.identifier_taken(username=username, email=email):
            raise DuplicateIdentifier()

        user = User(
            username=normalize_identifier(username),
            email=normalize_identifier(email),
            full_name=full_name,
            password_hash=self.hasher.hash(password),
            avatar_url=avatar_url,
            cover_image_url=cover_image_url,
        )
        self.session.add(user)
        await self._commit_unique()
        return user

    async def set_refresh_token(self, account_id: str, token: str | None) -> None:
        await self.session.execute(
            update(User)
            .where(_eq(User.id, account_id))
            .values(refresh_token=token, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()

    async def rotate_refresh_token(
        self,
        account_id: str,
        *,
        presented: str,
        replacement: str,
    ) -> bool:
        """Swap the stored token only if it still equals ``presented``.

        Returns False when another writer replaced or cleared it first.
        """
        result = await self.session.execute(
            update(User)
            .where(_eq(User.id, account_id), _eq(User.refresh_token, presented))
            .values(refresh_token=replacement, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        return cast(Any, result).rowcount == 1

    async def set_password(
        self,
        account_id: str,
        new_password: str,
        *,
        revoke_session: bool = True,
    ) -> None:
        values: dict[str, Any] = {
            "password_hash": self.hasher.hash(new_password),
            "updated_at": utcnow(),
        }
        if revoke_session:
            values["refresh_token"] = None
        await self.session.execute(
            update(User)
            .where(_eq(User.id, account_id))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()

    async def update_profile(self, account_id: str, *, full_name: str, email: str) -> User | None:
        if await self.identifier_taken(email=email, exclude_id=account_id):
            raise DuplicateIdentifier("Email is already in use")

        await self.session.execute(
            update(User)
            .where(_eq(User.id, account_id))
            .values(
                full_name=full_name,
                email=normalize_identifier(email),
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        await self._commit_unique()
        return await self.get_by_id(account_id)

    async def set_image_url(self, account_id: str, *, field: str, url: str) -> User | None:
        if field not in {"avatar_url", "cover_image_url"}:
            raise ValueError(f"Unsupported image field: {field}")

        await self.session.execute(
            update(User)
            .where(_eq(User.id, account_id))
            .values({field: url, "updated_at": utcnow()})
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        return await self.get_by_id(account_id)

    @staticmethod
    def project_public(account: User) -> AccountView:
        return AccountView.model_validate(account)

    async def _commit_unique(self) -> None:
        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            if is_unique_violation(exc):
                logger.info("Unique constraint rejected account write")
                raise DuplicateIdentifier() from exc
            raise
