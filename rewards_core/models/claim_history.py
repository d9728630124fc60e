"""Claim history used as the source of truth for cooldowns."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from rewards_core.models.base import Base
from rewards_core.models.types import GUID, JSONType, UTCDateTime, utcnow


class ClaimHistoryRecord(Base):
    """Immutable record of one accepted claim."""

    __tablename__ = "claim_history"
    __table_args__ = (Index("ix_claim_history_user_claimed_at", "user_id", "claimed_at"),)

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(GUID(), nullable=False)
    steam_id: Mapped[str] = mapped_column(String(length=32), nullable=False)
    day: Mapped[int] = mapped_column(Integer, nullable=False)
    vip_tier: Mapped[str] = mapped_column(String(length=32), nullable=False, default="none")
    items: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    claimed_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utcnow)
