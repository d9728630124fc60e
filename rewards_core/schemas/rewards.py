"""Reward claim API schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, StrictInt

from rewards_core.models.pending_reward import RewardStatus
from rewards_core.schemas.base import CamelModel


class ClaimRequest(BaseModel):
    """Inbound claim payload; the range check happens in the claim service."""

    day: StrictInt


class RewardItemResponse(CamelModel):
    name: str
    amount: int
    is_vip: bool = False


class ClaimResponse(CamelModel):
    success: bool = True
    message: str
    reward_id: UUID
    day: int
    claim_time: datetime
    next_claim_time: datetime
    vip_status: str
    rewards: List[RewardItemResponse] = Field(default_factory=list)
    delivery_queued: bool


class EligibilityResponse(CamelModel):
    success: bool = True
    can_claim: bool
    hours_to_wait: int
    next_claim_time: Optional[datetime] = None
    last_claim_time: Optional[datetime] = None


class PendingRewardResponse(CamelModel):
    id: UUID
    steam_id: str
    day: int
    status: RewardStatus
    claim_type: str
    server_id: str
    requested_at: datetime
    processed_at: Optional[datetime] = None
    updated_at: datetime


class PendingRewardsResponse(CamelModel):
    success: bool = True
    count: int
    rewards: List[PendingRewardResponse]


class DayRewardResponse(CamelModel):
    day: int
    items: List[RewardItemResponse]
    claimed: bool
    available: bool


class ClaimHistoryResponse(CamelModel):
    id: UUID
    day: int
    vip_tier: str
    items: List[Dict[str, Any]]
    claimed_at: datetime


class DailyStatusResponse(CamelModel):
    success: bool = True
    consecutive_days: int
    claimed_days: List[int]
    next_day: int
    has_missed_day: bool
    vip_status: str
    can_claim: bool
    hours_to_wait: int
    next_claim_time: Optional[datetime] = None
    last_claim_time: Optional[datetime] = None
    rewards: List[DayRewardResponse]
    history: List[ClaimHistoryResponse]
