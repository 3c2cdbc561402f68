"""FastAPI dependencies shared by the API routers."""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from core import InvalidToken, TokenClass, Unauthorized, get_password_hasher, get_token_issuer
from db import get_session
from models import User
from services.auth import ACCESS_COOKIE, AuthService, CredentialStore
from services.storage import BlobStore, MinioBlobStore

BEARER_PREFIX = "bearer "


async def get_db() -> AsyncIterator[AsyncSession]:
    async for session in get_session():
        yield session


def get_blob_store() -> BlobStore:
    return MinioBlobStore()


def get_credential_store(session: AsyncSession = Depends(get_db)) -> CredentialStore:
    return CredentialStore(session, get_password_hasher())


def get_auth_service(
    store: CredentialStore = Depends(get_credential_store),
    blob_store: BlobStore = Depends(get_blob_store),
) -> AuthService:
    return AuthService(store, get_token_issuer(), blob_store=blob_store)


def _extract_access_token(request: Request) -> str | None:
    token = request.cookies.get(ACCESS_COOKIE)
    if token:
        return token
    header = request.headers.get("authorization", "")
    if header.lower().startswith(BEARER_PREFIX):
        return header[len(BEARER_PREFIX):].strip() or None
    return None


async def get_current_user(
    request: Request,
    store: CredentialStore = Depends(get_credential_store),
) -> User:
    token = _extract_access_token(request)
    if not token:
        raise Unauthorized()

    try:
        claims = get_token_issuer().verify(token, TokenClass.ACCESS)
    except InvalidToken as exc:
        raise Unauthorized("Invalid access token") from exc

    user = await store.get_by_id(claims["sub"])
    if user is None:
        raise Unauthorized("Invalid access token")
    return user


async def get_optional_user(
    request: Request,
    store: CredentialStore = Depends(get_credential_store),
) -> User | None:
    if _extract_access_token(request) is None:
        return None
    try:
        return await get_current_user(request, store)
    except Unauthorized:
        return None
