"""Daily reward HTTP endpoints for authenticated players."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from rewards_core.api.dependencies import get_claim_service, get_current_user
from rewards_core.models.user import User
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
from rewards_core.services.claims import ClaimService

router = APIRouter()


@router.post("/claim", response_model=ClaimResponse)
def claim_reward(
    payload: ClaimRequest,
    user: User = Depends(get_current_user),
    service: ClaimService = Depends(get_claim_service),
) -> ClaimResponse:
    result = service.claim(user, payload.day)
    return ClaimResponse(
        message=f"Recompensa do dia {result.day} reivindicada com sucesso!",
        reward_id=result.reward_id,
        day=result.day,
        claim_time=result.claim_time,
        next_claim_time=result.next_claim_time,
        vip_status=result.vip_tier,
        rewards=[RewardItemResponse.model_validate(item) for item in result.items],
        delivery_queued=result.delivery_queued,
    )


@router.get("/eligibility", response_model=EligibilityResponse)
def check_eligibility(
    user: User = Depends(get_current_user),
    service: ClaimService = Depends(get_claim_service),
) -> EligibilityResponse:
    eligibility = service.check_eligibility(user)
    return EligibilityResponse(
        can_claim=eligibility.can_claim,
        hours_to_wait=eligibility.hours_to_wait,
        next_claim_time=eligibility.next_claim_time,
        last_claim_time=eligibility.last_claim_time,
    )


@router.get("/pending", response_model=PendingRewardsResponse)
def list_pending_rewards(
    user: User = Depends(get_current_user),
    service: ClaimService = Depends(get_claim_service),
) -> PendingRewardsResponse:
    rewards = service.list_pending(user)
    return PendingRewardsResponse(
        count=len(rewards),
        rewards=[PendingRewardResponse.model_validate(reward) for reward in rewards],
    )


@router.get("/daily", response_model=DailyStatusResponse)
def daily_status(
    user: User = Depends(get_current_user),
    service: ClaimService = Depends(get_claim_service),
) -> DailyStatusResponse:
    status = service.daily_status(user)
    return DailyStatusResponse(
        consecutive_days=status.consecutive_days,
        claimed_days=status.claimed_days,
        next_day=status.next_day,
        has_missed_day=status.has_missed_day,
        vip_status=status.vip_tier,
        can_claim=status.eligibility.can_claim,
        hours_to_wait=status.eligibility.hours_to_wait,
        next_claim_time=status.eligibility.next_claim_time,
        last_claim_time=status.eligibility.last_claim_time,
        rewards=[
            DayRewardResponse(
                day=entry.day,
                items=[RewardItemResponse.model_validate(item) for item in entry.items],
                claimed=entry.claimed,
                available=entry.available,
            )
            for entry in status.rewards
        ],
        history=[ClaimHistoryResponse.model_validate(record) for record in status.history],
    )
