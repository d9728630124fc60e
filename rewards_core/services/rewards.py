"""Reward delivery engine: retries, compare-and-swap claiming and reconciliation."""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, List, Optional
from uuid import UUID

from sqlalchemy import and_, or_, select, update
from sqlalchemy.exc import SQLAlchemyError

from rewards_core.core.database import SessionFactory, session_scope
from rewards_core.models.pending_reward import PendingReward, RewardStatus
from rewards_core.models.types import utcnow
from rewards_core.monitoring.service import MonitoringService
from rewards_core.services.delivery_channel import DeliveryChannel


class RewardServiceError(Exception):
    """Base class for delivery engine errors."""


class RewardNotFoundError(RewardServiceError):
    """Raised when a reward id does not exist."""


class RewardStateError(RewardServiceError):
    """Raised when the store fails while transitioning a reward's status."""


class RewardClaimConflictError(RewardServiceError):
    """Raised when another worker already claimed the reward for processing."""


class RewardStateConflictError(RewardServiceError):
    """Raised when a manual operation does not apply to the reward's current status."""


class DeliveryOutcome(str, Enum):
    DELIVERED = "delivered"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class ReconciliationResult:
    fixed: int = 0
    failed: int = 0
    skipped: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


class RewardsService:
    """Drives pending rewards to a terminal state with bounded retries."""

    def __init__(
        self,
        *,
        monitoring: MonitoringService,
        channel: DeliveryChannel,
        session_factory: SessionFactory = session_scope,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = utcnow,
        max_attempts: int = 3,
        reconcile_max_attempts: int = 2,
        base_delay_seconds: float = 1.0,
        stuck_threshold_hours: float = 3.0,
    ) -> None:
        self._monitoring = monitoring
        self._channel = channel
        self._session_factory = session_factory
        self._sleep = sleep
        self._clock = clock
        self._max_attempts = max_attempts
        self._reconcile_max_attempts = reconcile_max_attempts
        self._base_delay = base_delay_seconds
        self._stuck_threshold = timedelta(hours=stuck_threshold_hours)
        self._logger = logging.getLogger("rewards_core.services.rewards")

    def backoff_delay(self, attempt: int) -> float:
        """Seconds to wait after a failed ``attempt``: base * 2**attempt."""

        return self._base_delay * (2 ** attempt)

    def deliver_by_id(self, reward_id: UUID, max_attempts: Optional[int] = None) -> DeliveryOutcome:
        with self._session_factory() as session:
            reward = session.get(PendingReward, reward_id)
        if reward is None:
            self._logger.warning("reward_delivery_missing", extra={"reward_id": str(reward_id)})
            return DeliveryOutcome.SKIPPED
        return self.deliver_with_retry(reward, max_attempts)

    def deliver_with_retry(
        self,
        reward: PendingReward,
        max_attempts: Optional[int] = None,
        *,
        reclaim_before: Optional[datetime] = None,
    ) -> DeliveryOutcome:
        """Attempt delivery up to ``max_attempts`` times with exponential backoff."""

        attempts = max_attempts if max_attempts is not None else self._max_attempts
        if attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {attempts}")
        reward_id = str(reward.id)

        for attempt in range(1, attempts + 1):
            self._logger.info("reward_delivery_attempt", extra={"reward_id": reward_id, "attempt": attempt})
            try:
                delivered = self.process_reward(reward, reclaim_before=reclaim_before)
            except (RewardClaimConflictError, RewardNotFoundError) as exc:
                self._logger.info("reward_delivery_skipped", extra={"reward_id": reward_id, "reason": str(exc)})
                self._monitoring.log_event(
                    "reward_delivery_skipped",
                    {"reward_id": reward_id, "attempt": attempt, "reason": str(exc)},
                )
                return DeliveryOutcome.SKIPPED
            except RewardStateError as exc:
                # Retrying could repeat a half-applied transition; leave the row to the sweeper.
                self._logger.error("reward_state_update_failed", extra={"reward_id": reward_id, "error": str(exc)})
                self._monitoring.log_event(
                    "database_connection_error",
                    {"reward_id": reward_id, "attempt": attempt, "error": str(exc)},
                )
                return DeliveryOutcome.FAILED
            except Exception as exc:  # noqa: BLE001 - channel failures are retried
                self._logger.warning(
                    "reward_delivery_attempt_failed",
                    extra={"reward_id": reward_id, "attempt": attempt, "error": str(exc)},
                )
                self._monitoring.log_event(
                    "reward_delivery_attempt_failed",
                    {"reward_id": reward_id, "attempt": attempt, "error": str(exc)},
                )
                if attempt < attempts:
                    self._sleep(self.backoff_delay(attempt))
                continue

            if delivered:
                self._monitoring.log_event(
                    "reward_delivered",
                    {"reward_id": reward_id, "steam_id": reward.steam_id, "attempts": attempt},
                )
            return DeliveryOutcome.DELIVERED

        self.mark_for_reconciliation(reward.id)
        return DeliveryOutcome.FAILED

    def process_reward(self, reward: PendingReward, *, reclaim_before: Optional[datetime] = None) -> bool:
        """Run a single delivery attempt.

        Returns False without side effects when the reward is already processed.
        ``reclaim_before`` lets the sweeper take over ``processing`` rows whose
        last update is older than the given instant.
        """

        reward_id = reward.id
        try:
            with self._session_factory() as session:
                current = session.scalar(select(PendingReward.status).where(PendingReward.id == reward_id))
                if current is None:
                    raise RewardNotFoundError(f"Reward {reward_id} not found")
                if current == RewardStatus.PROCESSED:
                    self._logger.info("reward_already_processed", extra={"reward_id": str(reward_id)})
                    return False

                claimable = PendingReward.status == RewardStatus.PENDING
                if reclaim_before is not None:
                    claimable = or_(
                        claimable,
                        and_(
                            PendingReward.status == RewardStatus.PROCESSING,
                            PendingReward.updated_at < reclaim_before,
                        ),
                    )
                result = session.execute(
                    update(PendingReward)
                    .where(PendingReward.id == reward_id)
                    .where(claimable)
                    .values(status=RewardStatus.PROCESSING, updated_at=self._clock())
                    .execution_options(synchronize_session=False)
                )
                claimed = result.rowcount == 1
        except SQLAlchemyError as exc:
            raise RewardStateError(f"Failed to claim reward {reward_id} for processing") from exc

        if not claimed:
            raise RewardClaimConflictError(f"Reward {reward_id} is owned by another worker")

        try:
            self._channel.deliver(reward)
        except Exception:
            self._transition(
                reward_id,
                RewardStatus.PENDING,
                expected=RewardStatus.PROCESSING,
            )
            raise

        now = self._clock()
        self._transition(
            reward_id,
            RewardStatus.PROCESSED,
            expected=RewardStatus.PROCESSING,
            processed_at=now,
        )
        return True

    def mark_for_reconciliation(self, reward_id: UUID) -> None:
        """Flag a reward as failed after retries were exhausted."""

        try:
            with self._session_factory() as session:
                session.execute(
                    update(PendingReward)
                    .where(PendingReward.id == reward_id)
                    .where(PendingReward.status != RewardStatus.PROCESSED)
                    .values(status=RewardStatus.FAILED, updated_at=self._clock())
                    .execution_options(synchronize_session=False)
                )
        except SQLAlchemyError as exc:
            self._logger.exception("reward_mark_failed_error", extra={"reward_id": str(reward_id)})
            self._monitoring.log_event(
                "database_connection_error",
                {"reward_id": str(reward_id), "error": str(exc)},
            )

        self._monitoring.log_event(
            "reward_delivery_failed",
            {"reward_id": str(reward_id), "timestamp": self._clock().isoformat()},
        )

    def find_stuck_rewards(self, threshold: Optional[datetime] = None) -> List[PendingReward]:
        threshold = threshold or self._clock() - self._stuck_threshold
        stmt = (
            select(PendingReward)
            .where(PendingReward.status.in_([RewardStatus.PROCESSING, RewardStatus.PENDING]))
            .where(PendingReward.updated_at < threshold)
            .order_by(PendingReward.updated_at.asc())
        )
        with self._session_factory() as session:
            return list(session.scalars(stmt))

    def reconcile_stuck_rewards(self) -> ReconciliationResult:
        """Re-drive rewards left in a non-terminal state past the stuck threshold."""

        threshold = self._clock() - self._stuck_threshold
        stuck = self.find_stuck_rewards(threshold)
        result = ReconciliationResult()
        if not stuck:
            return result

        self._logger.info("reconciliation_started", extra={"stuck_count": len(stuck)})
        for reward in stuck:
            outcome = self.deliver_with_retry(
                reward,
                self._reconcile_max_attempts,
                reclaim_before=threshold,
            )
            if outcome is DeliveryOutcome.DELIVERED:
                result.fixed += 1
            elif outcome is DeliveryOutcome.FAILED:
                result.failed += 1
            else:
                result.skipped += 1
        return result

    def retry_failed_reward(self, reward_id: UUID) -> PendingReward:
        """Move a failed reward back to pending so it can be re-queued."""

        with self._session_factory() as session:
            result = session.execute(
                update(PendingReward)
                .where(PendingReward.id == reward_id)
                .where(PendingReward.status == RewardStatus.FAILED)
                .values(status=RewardStatus.PENDING, updated_at=self._clock())
                .execution_options(synchronize_session=False)
            )
            reward = session.get(PendingReward, reward_id)
            if reward is None:
                raise RewardNotFoundError(f"Reward {reward_id} not found")
            if result.rowcount != 1:
                raise RewardStateConflictError(
                    f"Reward {reward_id} is {reward.status.value}; only failed rewards can be retried"
                )

        self._monitoring.log_event("reward_manual_retry", {"reward_id": str(reward_id)})
        return reward

    def _transition(
        self,
        reward_id: UUID,
        status: RewardStatus,
        *,
        expected: RewardStatus,
        processed_at: Optional[datetime] = None,
    ) -> None:
        values: dict[str, object] = {"status": status, "updated_at": self._clock()}
        if processed_at is not None:
            values["processed_at"] = processed_at
        try:
            with self._session_factory() as session:
                session.execute(
                    update(PendingReward)
                    .where(PendingReward.id == reward_id)
                    .where(PendingReward.status == expected)
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
        except SQLAlchemyError as exc:
            raise RewardStateError(f"Failed to move reward {reward_id} to {status.value}") from exc
