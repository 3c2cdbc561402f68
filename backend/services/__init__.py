"""Business logic services."""

from .channels import (
    ChannelView,
    VideoOwnerView,
    WatchHistoryItem,
    get_channel_profile,
    get_watch_history,
)
from .storage import (
    BlobStore,
    MinioBlobStore,
    ensure_bucket,
    get_minio_client,
    public_object_url,
)
from .uploads import staged_upload

__all__ = [
    "BlobStore",
    "MinioBlobStore",
    "get_minio_client",
    "ensure_bucket",
    "public_object_url",
    "staged_upload",
    "ChannelView",
    "VideoOwnerView",
    "WatchHistoryItem",
    "get_channel_profile",
    "get_watch_history",
]
