"""Read-only channel profile and watch-history queries."""

from __future__ import annotations

from typing import Any, cast

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy import and_, exists, false, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased
from sqlalchemy.sql import ColumnElement

from core import NotFound, ValidationError
from models import Subscription, User, Video, WatchHistoryEntry


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


def _asc(column: Any) -> Any:
    return cast(Any, column).asc()


class _View(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChannelView(_View):
    id: str
    username: str
    email: str
    full_name: str
    avatar_url: str
    cover_image_url: str = ""
    subscribers_count: int = 0
    channels_subscribed_to_count: int = 0
    is_subscribed: bool = False


class VideoOwnerView(_View):
    id: str
    username: str
    full_name: str
    avatar_url: str


class WatchHistoryItem(_View):
    id: str
    title: str
    description: str | None = None
    video_url: str
    thumbnail_url: str
    duration: float = 0.0
    views: int = 0
    owner: VideoOwnerView


async def get_channel_profile(
    session: AsyncSession,
    username: str,
    *,
    viewer_id: str | None = None,
) -> ChannelView:
    normalized = username.strip().lower()
    if not normalized:
        raise ValidationError("Username is missing")

    subscribers_count = (
        select(func.count())
        .select_from(Subscription)
        .where(_eq(Subscription.channel_id, User.id))
        .scalar_subquery()
    )
    subscribed_to_count = (
        select(func.count())
        .select_from(Subscription)
        .where(_eq(Subscription.subscriber_id, User.id))
        .scalar_subquery()
    )
    if viewer_id is not None:
        is_subscribed: Any = exists().where(
            and_(
                _eq(Subscription.channel_id, User.id),
                _eq(Subscription.subscriber_id, viewer_id),
            )
        )
    else:
        is_subscribed = false()

    result = await session.execute(
        select(
            User,
            subscribers_count.label("subscribers_count"),
            subscribed_to_count.label("channels_subscribed_to_count"),
            is_subscribed.label("is_subscribed"),
        ).where(_eq(User.username, normalized))
    )
    row = result.one_or_none()
    if row is None:
        raise NotFound("Channel not found")

    channel, subscribers, subscribed_to, subscribed = row
    return ChannelView(
        id=channel.id,
        username=channel.username,
        email=channel.email,
        full_name=channel.full_name,
        avatar_url=channel.avatar_url,
        cover_image_url=channel.cover_image_url,
        subscribers_count=subscribers or 0,
        channels_subscribed_to_count=subscribed_to or 0,
        is_subscribed=bool(subscribed),
    )


async def get_watch_history(session: AsyncSession, account_id: str) -> list[WatchHistoryItem]:
    owner = aliased(User)
    result = await session.execute(
        select(Video, owner)
        .join(WatchHistoryEntry, _eq(WatchHistoryEntry.video_id, Video.id))
        .join(owner, _eq(owner.id, Video.owner_id))
        .where(_eq(WatchHistoryEntry.account_id, account_id))
        .order_by(_asc(WatchHistoryEntry.position), _asc(WatchHistoryEntry.id))
    )
    return [
        WatchHistoryItem(
            id=video.id,
            title=video.title,
            description=video.description,
            video_url=video.video_url,
            thumbnail_url=video.thumbnail_url,
            duration=video.duration,
            views=video.views,
            owner=VideoOwnerView(
                id=video_owner.id,
                username=video_owner.username,
                full_name=video_owner.full_name,
                avatar_url=video_owner.avatar_url,
            ),
        )
        for video, video_owner in result.all()
    ]
