"""Video model referenced by watch history."""

from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text, func, text
from sqlmodel import Field, SQLModel


class Video(SQLModel, table=True):
    """Published media item owned by an account."""

    __tablename__ = "videos"

    id: str = Field(default_factory=lambda: str(uuid4()), sa_column=Column(String(36), primary_key=True))
    owner_id: str = Field(
        sa_column=Column(
            String(36),
            ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )
    )
    title: str = Field(sa_column=Column(String(200), nullable=False))
    description: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    video_url: str = Field(sa_column=Column(String(512), nullable=False))
    thumbnail_url: str = Field(sa_column=Column(String(512), nullable=False))
    duration: float = Field(default=0.0, sa_column=Column(Float, nullable=False, server_default=text("0")))
    views: int = Field(default=0, sa_column=Column(Integer, nullable=False, server_default=text("0")))
    is_published: bool = Field(
        default=True,
        sa_column=Column(Boolean, nullable=False, server_default=text("true")),
    )
    created_at: datetime = Field(
        sa_column=Column(
            DateTime(timezone=True), server_default=func.now(), nullable=False
        )
    )
