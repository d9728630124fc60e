"""Hand-off between the claim path and the delivery engine."""

from __future__ import annotations

import logging
import queue
import threading
from typing import List, Optional, Protocol
from uuid import UUID

from sqlalchemy import select

from rewards_core.core.database import SessionFactory, session_scope
from rewards_core.models.pending_reward import PendingReward, RewardStatus
from rewards_core.services.rewards import RewardsService

LOGGER = logging.getLogger("rewards_core.services.delivery_queue")

_STOP = object()


class DeliveryQueue(Protocol):
    """Accepts reward ids for asynchronous delivery."""

    def submit(self, reward_id: UUID) -> bool:
        ...


class InlineDeliveryQueue(DeliveryQueue):
    """Delivers in the caller's thread. Used by scripts and tests."""

    def __init__(self, rewards: RewardsService) -> None:
        self._rewards = rewards

    def submit(self, reward_id: UUID) -> bool:
        try:
            self._rewards.deliver_by_id(reward_id)
        except Exception:  # noqa: BLE001 - the reward stays pending for the sweeper
            LOGGER.exception("inline_delivery_failed", extra={"reward_id": str(reward_id)})
        return True


class BackgroundDeliveryQueue(DeliveryQueue):
    """Bounded in-memory queue drained by worker threads.

    The ``pending_rewards`` table is the durable outbox: a reward that cannot be
    queued, or is still queued when the process exits, remains ``pending`` and
    is picked up by ``recover_backlog`` on the next start or by the sweeper.
    """

    def __init__(
        self,
        rewards: RewardsService,
        *,
        maxsize: int = 1000,
        workers: int = 1,
        poll_interval: float = 1.0,
        session_factory: SessionFactory = session_scope,
    ) -> None:
        self._rewards = rewards
        self._queue: "queue.Queue[object]" = queue.Queue(maxsize=maxsize)
        self._worker_count = workers
        self._poll_interval = poll_interval
        self._session_factory = session_factory
        self._threads: List[threading.Thread] = []
        self._stopping = threading.Event()

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def running(self) -> bool:
        return any(thread.is_alive() for thread in self._threads)

    def submit(self, reward_id: UUID) -> bool:
        if self._stopping.is_set():
            LOGGER.warning("delivery_queue_stopping", extra={"reward_id": str(reward_id)})
            return False
        try:
            self._queue.put_nowait(reward_id)
        except queue.Full:
            LOGGER.warning(
                "delivery_queue_full",
                extra={"reward_id": str(reward_id), "maxsize": self._queue.maxsize},
            )
            return False
        return True

    def recover_backlog(self) -> int:
        """Enqueue rewards left ``pending`` by a previous process."""

        with self._session_factory() as session:
            reward_ids = list(
                session.scalars(
                    select(PendingReward.id)
                    .where(PendingReward.status == RewardStatus.PENDING)
                    .order_by(PendingReward.requested_at.asc())
                )
            )
        queued = sum(1 for reward_id in reward_ids if self.submit(reward_id))
        LOGGER.info("delivery_backlog_recovered", extra={"found": len(reward_ids), "queued": queued})
        return queued

    def start(self) -> None:
        if self.running:
            return
        self._stopping.clear()
        self._threads = [
            threading.Thread(target=self._run, name=f"reward-delivery-{index}", daemon=True)
            for index in range(self._worker_count)
        ]
        for thread in self._threads:
            thread.start()
        LOGGER.info("delivery_workers_started", extra={"workers": self._worker_count})

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stopping.set()
        for _ in self._threads:
            try:
                self._queue.put_nowait(_STOP)
            except queue.Full:
                break
        for thread in self._threads:
            thread.join(timeout=timeout)
        self._threads = []
        LOGGER.info("delivery_workers_stopped", extra={"undelivered": self._queue.qsize()})

    def join(self) -> None:
        """Block until every submitted reward has been handled."""

        self._queue.join()

    def _run(self) -> None:
        while True:
            try:
                item = self._queue.get(timeout=self._poll_interval)
            except queue.Empty:
                if self._stopping.is_set():
                    return
                continue

            try:
                if item is _STOP:
                    return
                self._rewards.deliver_by_id(item)  # type: ignore[arg-type]
            except Exception:  # noqa: BLE001
                LOGGER.exception("delivery_worker_failed", extra={"reward_id": str(item)})
            finally:
                self._queue.task_done()
