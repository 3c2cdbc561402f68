"""Registration and session endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile, status

from api.deps import get_auth_service, get_current_user
from api.responses import ApiResponse, EmptyData
from core import settings
from models import User
from services import staged_upload
from services.auth import (
    REFRESH_COOKIE,
    AccountView,
    AuthService,
    LoginRequest,
    LoginResult,
    RefreshRequest,
    RegisterRequest,
    TokenPair,
    clear_token_cookies,
    set_token_cookies,
)

router = APIRouter(prefix="/users", tags=["auth"])


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[AccountView],
)
async def register(
    username: str = Form(default=""),
    email: str = Form(default=""),
    full_name: str = Form(default="", alias="fullName"),
    password: str = Form(default=""),
    avatar: UploadFile | None = File(default=None),
    cover_image: UploadFile | None = File(default=None, alias="coverImage"),
    service: AuthService = Depends(get_auth_service),
) -> ApiResponse[AccountView]:
    request = RegisterRequest(
        username=username,
        email=email,
        full_name=full_name,
        password=password,
    )
    async with (
        staged_upload(avatar, max_bytes=settings.upload_max_bytes) as avatar_path,
        staged_upload(cover_image, max_bytes=settings.upload_max_bytes) as cover_image_path,
    ):
        account = await service.register(
            request,
            avatar_path=avatar_path,
            cover_image_path=cover_image_path,
        )
    return ApiResponse[AccountView](
        status_code=status.HTTP_201_CREATED,
        data=account,
        message="User registered successfully",
    )


@router.post("/login", response_model=ApiResponse[LoginResult])
async def login(
    payload: LoginRequest,
    response: Response,
    service: AuthService = Depends(get_auth_service),
) -> ApiResponse[LoginResult]:
    result = await service.login(payload)
    set_token_cookies(response, result.access_token, result.refresh_token)
    return ApiResponse[LoginResult](data=result, message="User logged in successfully")


@router.post("/logout", response_model=ApiResponse[EmptyData])
async def logout(
    response: Response,
    current_user: User = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
) -> ApiResponse[EmptyData]:
    await service.logout(current_user.id)
    clear_token_cookies(response)
    return ApiResponse[EmptyData](data=EmptyData(), message="User logged out successfully")


@router.post("/refresh-token", response_model=ApiResponse[TokenPair])
async def refresh_token(
    request: Request,
    response: Response,
    payload: RefreshRequest | None = None,
    service: AuthService = Depends(get_auth_service),
) -> ApiResponse[TokenPair]:
    presented = request.cookies.get(REFRESH_COOKIE) or (payload.refresh_token if payload else None)
    tokens = await service.refresh_session(presented)
    set_token_cookies(response, tokens.access_token, tokens.refresh_token)
    return ApiResponse[TokenPair](data=tokens, message="Access token refreshed successfully")
