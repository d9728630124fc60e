"""Endpoints invoked by the external scheduler."""

from __future__ import annotations

import logging
import time

from fastapi import APIRouter, Depends, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from rewards_core.api.dependencies import (
    get_health_probe,
    get_monitoring,
    get_rewards_service,
    get_settings_state,
    require_cron_api_key,
)
from rewards_core.core.config import AppSettings
from rewards_core.models.types import utcnow
from rewards_core.monitoring.health import CRITICAL, SystemHealthProbe
from rewards_core.monitoring.service import MonitoringService
from rewards_core.schemas.system import ReconcileResponse
from rewards_core.services.rewards import RewardsService

LOGGER = logging.getLogger("rewards_core.api.scheduled")

router = APIRouter()


@router.post(
    "/reconcile-rewards",
    response_model=ReconcileResponse,
    dependencies=[Depends(require_cron_api_key)],
)
def reconcile_rewards(
    rewards: RewardsService = Depends(get_rewards_service),
    probe: SystemHealthProbe = Depends(get_health_probe),
    monitoring: MonitoringService = Depends(get_monitoring),
    settings: AppSettings = Depends(get_settings_state),
):
    """Run the stuck-reward sweeper unless the system is in a critical state."""

    started = time.perf_counter()
    health = probe.check_system_health()
    if health["status"] == CRITICAL:
        monitoring.log_event("reconcile_skipped", {"reason": "system_critical", "health": health})
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=jsonable_encoder(
                {
                    "success": False,
                    "message": "Sistema em estado crítico, reconciliação adiada",
                    "health": health,
                }
            ),
        )

    try:
        result = rewards.reconcile_stuck_rewards()
    except Exception as exc:  # noqa: BLE001 - reported to the scheduler as a failed run
        LOGGER.exception("reconciliation_error")
        monitoring.log_event("reconciliation_error", {"error": str(exc)})
        content = {"success": False, "message": "Erro na reconciliação"}
        if settings.environment == "local":
            content["error"] = str(exc)
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)

    execution_time_ms = int((time.perf_counter() - started) * 1000)
    monitoring.log_event(
        "reconciliation_completed",
        {**result.to_dict(), "executionTimeMs": execution_time_ms},
    )
    LOGGER.info("reconciliation_completed", extra={**result.to_dict(), "execution_time_ms": execution_time_ms})
    return ReconcileResponse(
        fixed=result.fixed,
        failed=result.failed,
        skipped=result.skipped,
        execution_time_ms=execution_time_ms,
        timestamp=utcnow(),
    )
