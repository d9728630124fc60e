"""Pending reward model driven by the delivery engine."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Enum as SqlEnum
from sqlalchemy import Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from rewards_core.models.base import Base, TimestampMixin
from rewards_core.models.types import GUID, UTCDateTime, utcnow


class RewardStatus(str, Enum):
    """Delivery lifecycle of a claimed reward."""

    PENDING = "pending"
    PROCESSING = "processing"
    PROCESSED = "processed"
    FAILED = "failed"


class PendingReward(TimestampMixin, Base):
    """One claimed-but-not-yet-delivered in-game item grant. Never deleted."""

    __tablename__ = "pending_rewards"
    __table_args__ = (
        Index("ix_pending_rewards_steam_status", "steam_id", "status"),
        Index("ix_pending_rewards_status_updated", "status", "updated_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(GUID(), nullable=False)
    steam_id: Mapped[str] = mapped_column(String(length=32), nullable=False)
    day: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[RewardStatus] = mapped_column(
        SqlEnum(
            RewardStatus,
            name="reward_status",
            native_enum=False,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
        default=RewardStatus.PENDING,
    )
    claim_type: Mapped[str] = mapped_column(String(length=32), nullable=False, default="website")
    server_id: Mapped[str] = mapped_column(String(length=64), nullable=False, default="main")
    requested_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utcnow)
    processed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
