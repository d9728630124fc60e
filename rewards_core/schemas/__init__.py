"""Pydantic schemas for API payloads."""

from rewards_core.schemas.rewards import (
    ClaimHistoryResponse,
    ClaimRequest,
    ClaimResponse,
    DailyStatusResponse,
    DayRewardResponse,
    EligibilityResponse,
    PendingRewardResponse,
    PendingRewardsResponse,
    RewardItemResponse,
)
from rewards_core.schemas.system import ReconcileResponse, RetryRewardResponse, SystemEventResponse

__all__ = [
    "ClaimHistoryResponse",
    "ClaimRequest",
    "ClaimResponse",
    "DailyStatusResponse",
    "DayRewardResponse",
    "EligibilityResponse",
    "PendingRewardResponse",
    "PendingRewardsResponse",
    "ReconcileResponse",
    "RetryRewardResponse",
    "RewardItemResponse",
    "SystemEventResponse",
]
