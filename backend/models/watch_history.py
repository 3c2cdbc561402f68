"""Ordered watch history entries."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, func
from sqlmodel import Field, SQLModel


class WatchHistoryEntry(SQLModel, table=True):
    """One video reference in an account's watch history."""

    __tablename__ = "watch_history"
    __table_args__ = (
        Index("ix_watch_history_account_position", "account_id", "position"),
    )

    id: int | None = Field(
        default=None,
        sa_column=Column(Integer, primary_key=True, autoincrement=True),
    )
    account_id: str = Field(
        sa_column=Column(
            String(36),
            ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        )
    )
    video_id: str = Field(
        sa_column=Column(
            String(36),
            ForeignKey("videos.id", ondelete="CASCADE"),
            nullable=False,
        )
    )
    position: int = Field(sa_column=Column(Integer, nullable=False))
    watched_at: datetime = Field(
        sa_column=Column(
            DateTime(timezone=True),
            server_default=func.now(),
            nullable=False,
        )
    )
