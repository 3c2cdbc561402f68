"""Account profile endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_auth_service, get_current_user, get_db, get_optional_user
from api.responses import ApiResponse, EmptyData
from core import settings
from models import User
from services import (
    ChannelView,
    WatchHistoryItem,
    get_channel_profile,
    get_watch_history,
    staged_upload,
)
from services.auth import (
    AccountView,
    AuthService,
    ChangePasswordRequest,
    CredentialStore,
    UpdateProfileRequest,
    clear_token_cookies,
)

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=ApiResponse[AccountView])
async def read_me(current_user: User = Depends(get_current_user)) -> ApiResponse[AccountView]:
    return ApiResponse[AccountView](
        data=CredentialStore.project_public(current_user),
        message="Current user fetched successfully",
    )


@router.post("/change-password", response_model=ApiResponse[EmptyData])
async def change_password(
    payload: ChangePasswordRequest,
    response: Response,
    current_user: User = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
) -> ApiResponse[EmptyData]:
    await service.change_password(current_user.id, payload)
    # The stored refresh token was revoked with the password change.
    clear_token_cookies(response)
    return ApiResponse[EmptyData](data=EmptyData(), message="Password changed successfully")


@router.patch("/update-account", response_model=ApiResponse[AccountView])
async def update_account(
    payload: UpdateProfileRequest,
    current_user: User = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
) -> ApiResponse[AccountView]:
    account = await service.update_profile(current_user.id, payload)
    return ApiResponse[AccountView](data=account, message="Account details updated successfully")


@router.patch("/avatar", response_model=ApiResponse[AccountView])
async def update_avatar(
    avatar: UploadFile | None = File(default=None),
    current_user: User = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
) -> ApiResponse[AccountView]:
    async with staged_upload(avatar, max_bytes=settings.upload_max_bytes) as avatar_path:
        account = await service.update_avatar(current_user.id, avatar_path)
    return ApiResponse[AccountView](data=account, message="Avatar image updated successfully")


@router.patch("/cover-image", response_model=ApiResponse[AccountView])
async def update_cover_image(
    cover_image: UploadFile | None = File(default=None, alias="coverImage"),
    current_user: User = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
) -> ApiResponse[AccountView]:
    async with staged_upload(cover_image, max_bytes=settings.upload_max_bytes) as cover_image_path:
        account = await service.update_cover_image(current_user.id, cover_image_path)
    return ApiResponse[AccountView](data=account, message="Cover image updated successfully")


@router.get("/channel/{username}", response_model=ApiResponse[ChannelView])
async def read_channel_profile(
    username: str,
    viewer: User | None = Depends(get_optional_user),
    session: AsyncSession = Depends(get_db),
) -> ApiResponse[ChannelView]:
    channel = await get_channel_profile(
        session,
        username,
        viewer_id=viewer.id if viewer is not None else None,
    )
    return ApiResponse[ChannelView](data=channel, message="Channel profile fetched successfully")


@router.get("/history", response_model=ApiResponse[list[WatchHistoryItem]])
async def read_watch_history(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> ApiResponse[list[WatchHistoryItem]]:
    history = await get_watch_history(session, current_user.id)
    return ApiResponse[list[WatchHistoryItem]](
        data=history,
        message="User watch history fetched successfully",
    )
