"""Internal user records resolved from the identity provider."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from rewards_core.models.base import Base, TimestampMixin
from rewards_core.models.types import GUID, UTCDateTime


class User(TimestampMixin, Base):
    """Community member keyed by Discord id with an optional linked Steam id."""

    __tablename__ = "users"
    __table_args__ = (Index("ix_users_steam_id", "steam_id"),)

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    discord_id: Mapped[str] = mapped_column(String(length=64), unique=True, nullable=False)
    steam_id: Mapped[Optional[str]] = mapped_column(String(length=32), nullable=True)
    username: Mapped[Optional[str]] = mapped_column(String(length=255), nullable=True)
    role: Mapped[str] = mapped_column(String(length=32), nullable=False, default="user")


class Subscription(TimestampMixin, Base):
    """VIP subscription row written by the payment integration; read-only here."""

    __tablename__ = "subscriptions"
    __table_args__ = (Index("ix_subscriptions_user_status", "user_id", "status"),)

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(GUID(), nullable=False)
    plan_id: Mapped[str] = mapped_column(String(length=64), nullable=False)
    status: Mapped[str] = mapped_column(String(length=32), nullable=False, default="active")
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
