"""System health probe summarizing store connectivity and stuck rewards."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from rewards_core.core.config import AppSettings
from rewards_core.core.database import SessionFactory, session_scope
from rewards_core.models.pending_reward import PendingReward, RewardStatus
from rewards_core.models.system_event import SystemStatus
from rewards_core.models.types import utcnow
from rewards_core.monitoring.service import MonitoringService

LOGGER = logging.getLogger("rewards_core.monitoring.health")

HEALTHY = "healthy"
DEGRADED = "degraded"
CRITICAL = "critical"

STATUS_KEY = "latest"
STUCK_COUNT_CAP = 100


@dataclass(frozen=True)
class HealthThresholds:
    window_hours: float = 24.0
    degraded_stuck_count: int = 10
    critical_stuck_count: int = 50
    rewards_degraded_count: int = 5
    rewards_critical_count: int = 20

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "HealthThresholds":
        return cls(
            window_hours=settings.health_window_hours,
            degraded_stuck_count=settings.health_degraded_stuck_count,
            critical_stuck_count=settings.health_critical_stuck_count,
        )


class SystemHealthProbe:
    """Computes, persists and returns the current system status snapshot."""

    def __init__(
        self,
        monitoring: MonitoringService,
        *,
        thresholds: Optional[HealthThresholds] = None,
        session_factory: SessionFactory = session_scope,
    ) -> None:
        self._monitoring = monitoring
        self._thresholds = thresholds or HealthThresholds()
        self._session_factory = session_factory

    def check_system_health(self) -> Dict[str, Any]:
        try:
            return self._check()
        except Exception as exc:  # noqa: BLE001 - the probe reports failures instead of raising
            LOGGER.exception("system_health_check_failed")
            snapshot = {
                "status": CRITICAL,
                "error": str(exc),
                "timestamp": utcnow().isoformat(),
            }
            self._monitoring.log_event("system_error", {"source": "health_check", "error": str(exc)})
            self._persist_best_effort(snapshot)
            return snapshot

    def _check(self) -> Dict[str, Any]:
        db_status, response_ms, db_error = self._probe_store()
        stuck_count = self._count_recent((RewardStatus.PROCESSING, RewardStatus.FAILED))
        processing_count = self._count_recent((RewardStatus.PROCESSING,))

        snapshot = {
            "status": self._overall_status(db_status, stuck_count, processing_count),
            "components": {
                "database": {
                    "status": db_status,
                    "responseTime": response_ms,
                    "error": db_error,
                },
                "rewards": {
                    "status": self._rewards_status(stuck_count),
                    "stuckCount": stuck_count,
                    "processingCount": processing_count,
                },
            },
            "timestamp": utcnow().isoformat(),
        }

        self._persist(snapshot)

        if db_error is not None:
            self._monitoring.log_event(
                "database_connection_error",
                {"source": "health_check", "error": db_error, "responseTime": response_ms},
            )
        if stuck_count > self._thresholds.degraded_stuck_count:
            self._monitoring.log_event(
                "stuck_rewards_detected",
                {"stuckCount": stuck_count, "windowHours": self._thresholds.window_hours},
            )

        LOGGER.info(
            "system_health_checked",
            extra={"status": snapshot["status"], "stuck_count": stuck_count, "db_status": db_status},
        )
        return snapshot

    def _probe_store(self) -> Tuple[str, int, Optional[str]]:
        started = time.perf_counter()
        try:
            with self._session_factory() as session:
                session.execute(select(SystemStatus.last_check).limit(1)).first()
        except SQLAlchemyError as exc:
            elapsed = int((time.perf_counter() - started) * 1000)
            return "error", elapsed, str(exc)
        return HEALTHY, int((time.perf_counter() - started) * 1000), None

    def _count_recent(self, statuses: Tuple[RewardStatus, ...]) -> int:
        since = utcnow() - timedelta(hours=self._thresholds.window_hours)
        stmt = (
            select(PendingReward.id)
            .where(PendingReward.status.in_(statuses))
            .where(PendingReward.updated_at > since)
            .limit(STUCK_COUNT_CAP)
        )
        with self._session_factory() as session:
            return len(session.scalars(stmt).all())

    def _overall_status(self, db_status: str, stuck_count: int, processing_count: int) -> str:
        # Only in-flight rows escalate to critical.
        if processing_count > self._thresholds.critical_stuck_count:
            return CRITICAL
        if db_status == "error" or stuck_count > self._thresholds.degraded_stuck_count:
            return DEGRADED
        return HEALTHY

    def _rewards_status(self, stuck_count: int) -> str:
        if stuck_count > self._thresholds.rewards_critical_count:
            return CRITICAL
        if stuck_count > self._thresholds.rewards_degraded_count:
            return DEGRADED
        return HEALTHY

    def _persist(self, snapshot: Dict[str, Any]) -> None:
        with self._session_factory() as session:
            session.merge(
                SystemStatus(
                    id=STATUS_KEY,
                    status=snapshot["status"],
                    details=snapshot,
                    last_check=utcnow(),
                )
            )

    def _persist_best_effort(self, snapshot: Dict[str, Any]) -> None:
        try:
            self._persist(snapshot)
        except Exception:  # noqa: BLE001
            LOGGER.warning("system_status_persist_skipped", extra={"status": snapshot["status"]})
