"""Append-only system events and the singleton status snapshots."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from rewards_core.models.base import Base
from rewards_core.models.types import GUID, JSONType, UTCDateTime, utcnow


class SystemEvent(Base):
    """Immutable record of a system occurrence; feeds audit and alerting."""

    __tablename__ = "system_events"
    __table_args__ = (
        Index("ix_system_events_event_type", "event_type"),
        Index("ix_system_events_created_at", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    event_type: Mapped[str] = mapped_column(String(length=128), nullable=False)
    data: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    environment: Mapped[str] = mapped_column(String(length=32), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utcnow)


class SystemStatus(Base):
    """Most recent computed status for a key such as ``latest``; upserted, never historical."""

    __tablename__ = "system_status"

    id: Mapped[str] = mapped_column(String(length=64), primary_key=True)
    status: Mapped[str] = mapped_column(String(length=32), nullable=False)
    details: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    last_check: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utcnow)
