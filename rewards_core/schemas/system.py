"""Scheduled-job and admin API schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict
from uuid import UUID

from rewards_core.schemas.base import CamelModel
from rewards_core.schemas.rewards import PendingRewardResponse


class ReconcileResponse(CamelModel):
    success: bool = True
    fixed: int
    failed: int
    skipped: int
    execution_time_ms: int
    timestamp: datetime


class SystemEventResponse(CamelModel):
    id: UUID
    event_type: str
    data: Dict[str, Any]
    environment: str
    created_at: datetime


class RetryRewardResponse(CamelModel):
    success: bool = True
    reward: PendingRewardResponse
    queued: bool
