"""Operator endpoints: health snapshot, event log and manual retries."""

from __future__ import annotations

from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from rewards_core.api.dependencies import (
    get_admin_user,
    get_delivery_queue,
    get_health_probe,
    get_monitoring,
    get_rewards_service,
)
from rewards_core.monitoring.health import SystemHealthProbe
from rewards_core.monitoring.service import MonitoringService
from rewards_core.schemas.rewards import PendingRewardResponse
from rewards_core.schemas.system import RetryRewardResponse, SystemEventResponse
from rewards_core.services.delivery_queue import DeliveryQueue
from rewards_core.services.rewards import RewardsService

router = APIRouter(dependencies=[Depends(get_admin_user)])


@router.get("/system/health")
def system_health(probe: SystemHealthProbe = Depends(get_health_probe)) -> Dict[str, Any]:
    return probe.check_system_health()


@router.get("/system/events", response_model=List[SystemEventResponse])
def list_system_events(
    event_type: Optional[str] = Query(default=None, alias="type"),
    limit: int = Query(default=50, ge=1, le=200),
    monitoring: MonitoringService = Depends(get_monitoring),
) -> List[SystemEventResponse]:
    events = monitoring.list_events(event_type=event_type, limit=limit)
    return [SystemEventResponse.model_validate(event) for event in events]


@router.post("/rewards/{reward_id}/retry", response_model=RetryRewardResponse)
def retry_reward(
    reward_id: UUID,
    rewards: RewardsService = Depends(get_rewards_service),
    delivery_queue: DeliveryQueue = Depends(get_delivery_queue),
) -> RetryRewardResponse:
    reward = rewards.retry_failed_reward(reward_id)
    queued = delivery_queue.submit(reward.id)
    return RetryRewardResponse(reward=PendingRewardResponse.model_validate(reward), queued=queued)
