"""End-to-end tests for registration and session endpoints."""

import asyncio
from typing import Any, cast
from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.sql import ColumnElement

from models import User

AVATAR_FILE = ("avatar.png", b"\x89PNG avatar-bytes", "image/png")


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


def build_payload() -> dict[str, str]:
    suffix = uuid4().hex[:8]
    return {
        "username": f"alice_{suffix}",
        "email": f"alice_{suffix}@example.com",
        "fullName": "Alice A",
        "password": "pw1234",
    }


async def register(async_client: AsyncClient, payload: dict[str, str], **files: Any):
    upload = files or {"avatar": AVATAR_FILE}
    return await async_client.post("/api/v1/users/register", data=payload, files=upload)


async def login(async_client: AsyncClient, payload: dict[str, str]):
    return await async_client.post(
        "/api/v1/users/login",
        json={"username": payload["username"], "password": payload["password"]},
    )


async def _stored_user(session_maker, username: str) -> User:
    async with session_maker() as session:
        result = await session.execute(select(User).where(_eq(User.username, username)))
        return result.scalar_one()


@pytest.mark.asyncio
async def test_register_creates_user(async_client: AsyncClient, session_maker):
    payload = build_payload()
    response = await register(async_client, payload)

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["statusCode"] == 201
    data = body["data"]
    assert data["username"] == payload["username"]
    assert data["email"] == payload["email"]
    assert data["fullName"] == payload["fullName"]
    assert data["avatarUrl"].startswith("https://cdn.test/avatars/")
    assert data["coverImageUrl"] == ""
    assert "passwordHash" not in data
    assert "refreshToken" not in data

    user = await _stored_user(session_maker, payload["username"])
    assert user.password_hash != payload["password"]


@pytest.mark.asyncio
async def test_register_normalizes_identifiers_to_lowercase(async_client: AsyncClient):
    payload = build_payload()
    payload["username"] = payload["username"].upper()
    payload["email"] = "Mixed.Case+alias@Example.COM"

    response = await register(async_client, payload)

    assert response.status_code == 201
    assert response.json()["data"]["username"] == payload["username"].lower()
    assert response.json()["data"]["email"] == "mixed.case+alias@example.com"


@pytest.mark.asyncio
async def test_register_with_cover_image(async_client: AsyncClient):
    response = await register(
        async_client,
        build_payload(),
        avatar=AVATAR_FILE,
        coverImage=("cover.jpg", b"cover-bytes", "image/jpeg"),
    )

    assert response.status_code == 201
    assert response.json()["data"]["coverImageUrl"].startswith("https://cdn.test/covers/")


@pytest.mark.asyncio
async def test_register_requires_avatar(async_client: AsyncClient):
    response = await async_client.post("/api/v1/users/register", data=build_payload())

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Avatar is required"


@pytest.mark.asyncio
async def test_register_rejects_blank_fields(async_client: AsyncClient):
    payload = build_payload()
    payload["fullName"] = "   "

    response = await register(async_client, payload)

    assert response.status_code == 400
    assert response.json()["message"] == "All fields are required"


@pytest.mark.asyncio
async def test_register_reports_upload_failure(async_client: AsyncClient, blob_store):
    blob_store.fail_prefixes.add("avatars")

    response = await register(async_client, build_payload())

    assert response.status_code == 400
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_register_conflict(async_client: AsyncClient):
    payload = build_payload()
    await register(async_client, payload)

    response = await register(async_client, payload)

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_register_conflict_under_concurrency(async_client: AsyncClient):
    payload = build_payload()

    first, second = await asyncio.gather(
        register(async_client, payload),
        register(async_client, payload),
    )
    statuses = sorted([first.status_code, second.status_code])
    assert statuses == [201, 409]


@pytest.mark.asyncio
async def test_login_sets_tokens(async_client: AsyncClient, session_maker):
    payload = build_payload()
    await register(async_client, payload)

    response = await login(async_client, payload)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["accessToken"]
    assert data["refreshToken"]
    assert data["user"]["username"] == payload["username"]
    assert response.cookies.get("accessToken") == data["accessToken"]
    assert response.cookies.get("refreshToken") == data["refreshToken"]

    set_cookie_header = "; ".join(response.headers.get_list("set-cookie")).lower()
    assert "httponly" in set_cookie_header

    user = await _stored_user(session_maker, payload["username"])
    assert user.refresh_token == data["refreshToken"]


@pytest.mark.asyncio
async def test_login_accepts_email_identifier(async_client: AsyncClient):
    payload = build_payload()
    await register(async_client, payload)

    response = await async_client.post(
        "/api/v1/users/login",
        json={"email": payload["email"], "password": payload["password"]},
    )

    assert response.status_code == 200
    assert response.json()["data"]["accessToken"]


@pytest.mark.asyncio
async def test_login_rejects_bad_credentials_uniformly(async_client: AsyncClient):
    payload = build_payload()
    await register(async_client, payload)

    wrong_password = await async_client.post(
        "/api/v1/users/login",
        json={"username": payload["username"], "password": "wrong-password"},
    )
    unknown_user = await async_client.post(
        "/api/v1/users/login",
        json={"username": "nobody_here", "password": payload["password"]},
    )

    assert wrong_password.status_code == 401
    assert unknown_user.status_code == 401
    assert wrong_password.json()["message"] == unknown_user.json()["message"]
    assert "set-cookie" not in wrong_password.headers


@pytest.mark.asyncio
async def test_login_requires_username_or_email(async_client: AsyncClient):
    response = await async_client.post("/api/v1/users/login", json={"password": "pw1234"})

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_refresh_rotates_cookie_token(async_client: AsyncClient, session_maker):
    payload = build_payload()
    await register(async_client, payload)
    login_response = await login(async_client, payload)
    old_refresh = login_response.json()["data"]["refreshToken"]

    refresh_response = await async_client.post("/api/v1/users/refresh-token")

    assert refresh_response.status_code == 200
    new_refresh = refresh_response.json()["data"]["refreshToken"]
    assert new_refresh != old_refresh
    assert refresh_response.cookies.get("refreshToken") == new_refresh

    user = await _stored_user(session_maker, payload["username"])
    assert user.refresh_token == new_refresh


@pytest.mark.asyncio
async def test_refresh_accepts_token_in_body_and_rejects_reuse(async_client: AsyncClient):
    payload = build_payload()
    await register(async_client, payload)
    old_refresh = (await login(async_client, payload)).json()["data"]["refreshToken"]
    async_client.cookies.clear()

    first = await async_client.post(
        "/api/v1/users/refresh-token", json={"refreshToken": old_refresh}
    )
    async_client.cookies.clear()
    reused = await async_client.post(
        "/api/v1/users/refresh-token", json={"refreshToken": old_refresh}
    )

    assert first.status_code == 200
    assert reused.status_code == 401
    assert reused.json()["message"] == "Refresh token is expired or used"


@pytest.mark.asyncio
async def test_refresh_without_token_is_unauthorized(async_client: AsyncClient):
    response = await async_client.post("/api/v1/users/refresh-token")

    assert response.status_code == 401
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_refresh_with_malformed_token_is_unauthorized(async_client: AsyncClient):
    response = await async_client.post(
        "/api/v1/users/refresh-token", json={"refreshToken": "not-a-jwt"}
    )

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid refresh token"


@pytest.mark.asyncio
async def test_logout_clears_cookies_and_session(async_client: AsyncClient, session_maker):
    payload = build_payload()
    await register(async_client, payload)
    refresh_token = (await login(async_client, payload)).json()["data"]["refreshToken"]

    logout_response = await async_client.post("/api/v1/users/logout")

    assert logout_response.status_code == 200
    set_cookie_header = "; ".join(logout_response.headers.get_list("set-cookie"))
    assert 'refreshToken=""' in set_cookie_header
    assert 'accessToken=""' in set_cookie_header

    user = await _stored_user(session_maker, payload["username"])
    assert user.refresh_token is None

    async_client.cookies.clear()
    response = await async_client.post(
        "/api/v1/users/refresh-token", json={"refreshToken": refresh_token}
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_logout_requires_authentication(async_client: AsyncClient):
    response = await async_client.post("/api/v1/users/logout")

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_full_session_lifecycle(async_client: AsyncClient, session_maker):
    payload = {
        "username": "alice",
        "email": "a@x.com",
        "fullName": "Alice A",
        "password": "pw1234",
    }
    registered = await register(async_client, payload)
    assert registered.status_code == 201

    logged_in = await login(async_client, payload)
    assert logged_in.status_code == 200
    first_refresh = logged_in.json()["data"]["refreshToken"]
    assert logged_in.json()["data"]["accessToken"]
    assert (await _stored_user(session_maker, "alice")).refresh_token == first_refresh

    refreshed = await async_client.post("/api/v1/users/refresh-token")
    assert refreshed.status_code == 200
    second_refresh = refreshed.json()["data"]["refreshToken"]
    assert second_refresh != first_refresh

    access_token = refreshed.json()["data"]["accessToken"]
    async_client.cookies.clear()

    stale = await async_client.post(
        "/api/v1/users/refresh-token", json={"refreshToken": first_refresh}
    )
    assert stale.status_code == 401

    logged_out = await async_client.post(
        "/api/v1/users/logout",
        headers={"Authorization": f"Bearer {access_token}"},
    )
    assert logged_out.status_code == 200

    async_client.cookies.clear()
    after_logout = await async_client.post(
        "/api/v1/users/refresh-token", json={"refreshToken": second_refresh}
    )
    assert after_logout.status_code == 401
