"""Claim eligibility, claim orchestration and daily status composition."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, List, Mapping, Optional, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from rewards_core.models.claim_history import ClaimHistoryRecord
from rewards_core.models.pending_reward import PendingReward, RewardStatus
from rewards_core.models.types import utcnow
from rewards_core.models.user import User
from rewards_core.monitoring.service import MonitoringService
from rewards_core.services.delivery_queue import DeliveryQueue
from rewards_core.services.manifest import (
    CYCLE_LENGTH,
    FIRST_DAY,
    LAST_DAY,
    RewardItem,
    is_valid_day,
    rewards_for_day,
)
from rewards_core.services.users import UserService, VipTierResolver

STREAK_GAP = timedelta(hours=48)
HISTORY_SCAN_LIMIT = 100
RECENT_HISTORY_LIMIT = 10


class ClaimServiceError(Exception):
    """Base class for claim errors."""


class InvalidClaimDayError(ClaimServiceError):
    """Raised when the requested day is outside the 7-day cycle."""


class ClaimSequenceError(ClaimServiceError):
    """Raised when the requested day is not the next one in the user's cycle."""

    def __init__(self, message: str, *, next_day: int) -> None:
        super().__init__(message)
        self.next_day = next_day


class ClaimCooldownError(ClaimServiceError):
    """Raised when the user claimed too recently."""

    def __init__(self, eligibility: "Eligibility") -> None:
        super().__init__(
            f"Você precisa aguardar {eligibility.hours_to_wait} horas para reivindicar novamente."
        )
        self.eligibility = eligibility


@dataclass(frozen=True)
class Eligibility:
    can_claim: bool
    hours_to_wait: int
    next_claim_time: Optional[datetime]
    last_claim_time: Optional[datetime]


@dataclass(frozen=True)
class CycleProgress:
    consecutive_days: int
    claimed_days: List[int]
    next_day: int
    has_missed_day: bool


@dataclass(frozen=True)
class ClaimResult:
    reward_id: UUID
    day: int
    claim_time: datetime
    next_claim_time: datetime
    vip_tier: str
    items: List[RewardItem]
    delivery_queued: bool


@dataclass(frozen=True)
class DayManifest:
    day: int
    items: List[RewardItem]
    claimed: bool
    available: bool


@dataclass
class DailyStatus:
    consecutive_days: int
    claimed_days: List[int]
    next_day: int
    has_missed_day: bool
    vip_tier: str
    eligibility: Eligibility
    rewards: List[DayManifest] = field(default_factory=list)
    history: List[ClaimHistoryRecord] = field(default_factory=list)


def evaluate_cooldown(
    last_claim_at: Optional[datetime],
    now: datetime,
    cooldown_hours: float,
) -> Eligibility:
    """Cooldown verdict for a user whose latest claim happened at ``last_claim_at``."""

    if last_claim_at is None:
        return Eligibility(can_claim=True, hours_to_wait=0, next_claim_time=None, last_claim_time=None)

    next_claim_time = last_claim_at + timedelta(hours=cooldown_hours)
    hours_elapsed = (now - last_claim_at).total_seconds() / 3600
    if hours_elapsed < cooldown_hours:
        return Eligibility(
            can_claim=False,
            hours_to_wait=math.ceil(cooldown_hours - hours_elapsed),
            next_claim_time=next_claim_time,
            last_claim_time=last_claim_at,
        )
    return Eligibility(
        can_claim=True,
        hours_to_wait=0,
        next_claim_time=next_claim_time,
        last_claim_time=last_claim_at,
    )


def current_streak(history: Sequence[ClaimHistoryRecord], now: datetime) -> List[ClaimHistoryRecord]:
    """Newest-first claims forming the unbroken streak ending now."""

    streak: List[ClaimHistoryRecord] = []
    previous = now
    for record in history:
        if previous - record.claimed_at > STREAK_GAP:
            break
        streak.append(record)
        previous = record.claimed_at
    return streak


def cycle_progress(history: Sequence[ClaimHistoryRecord], now: datetime) -> CycleProgress:
    """Position inside the 7-day cycle given newest-first claim history."""

    streak = current_streak(history, now)
    consecutive_days = len(streak)
    position = consecutive_days % CYCLE_LENGTH
    return CycleProgress(
        consecutive_days=consecutive_days,
        claimed_days=sorted({record.day for record in streak[:position]}),
        next_day=position + 1,
        has_missed_day=bool(history) and not streak,
    )


class ClaimService:
    """Validates eligibility, records claims and hands rewards to delivery."""

    def __init__(
        self,
        session: Session,
        *,
        monitoring: MonitoringService,
        delivery_queue: DeliveryQueue,
        plan_tiers: Mapping[str, str],
        cooldown_hours: float = 20.0,
        server_id: str = "main",
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._session = session
        self._monitoring = monitoring
        self._queue = delivery_queue
        self._vip = VipTierResolver(session, plan_tiers)
        self._cooldown_hours = cooldown_hours
        self._server_id = server_id
        self._clock = clock
        self._logger = logging.getLogger("rewards_core.services.claims")

    def check_eligibility(self, user: User, now: Optional[datetime] = None) -> Eligibility:
        last_claim_at = self._session.scalar(
            select(ClaimHistoryRecord.claimed_at)
            .where(ClaimHistoryRecord.user_id == user.id)
            .order_by(ClaimHistoryRecord.claimed_at.desc())
            .limit(1)
        )
        return evaluate_cooldown(last_claim_at, now or self._clock(), self._cooldown_hours)

    def claim(self, user: User, day: int) -> ClaimResult:
        steam_id = UserService.require_steam_id(user)
        if not is_valid_day(day):
            raise InvalidClaimDayError(f"Dia inválido. Deve ser um número entre {FIRST_DAY} e {LAST_DAY}.")

        now = self._clock()
        recent = self._recent_history(user)
        eligibility = evaluate_cooldown(recent[0].claimed_at if recent else None, now, self._cooldown_hours)
        if not eligibility.can_claim:
            self._logger.info(
                "claim_rejected_cooldown",
                extra={"user_id": str(user.id), "hours_to_wait": eligibility.hours_to_wait},
            )
            raise ClaimCooldownError(eligibility)

        self._check_sequence(user, day, recent, cycle_progress(recent, now))

        vip_tier = self._vip.resolve(user)
        items = rewards_for_day(day, vip_tier)

        reward = PendingReward(
            user_id=user.id,
            steam_id=steam_id,
            day=day,
            status=RewardStatus.PENDING,
            claim_type="website",
            server_id=self._server_id,
            requested_at=now,
            created_at=now,
            updated_at=now,
        )
        record = ClaimHistoryRecord(
            user_id=user.id,
            steam_id=steam_id,
            day=day,
            vip_tier=vip_tier,
            items=[item.to_dict() for item in items],
            claimed_at=now,
        )
        self._session.add_all([reward, record])
        # Both records must be durable before the delivery worker can see the id.
        self._session.commit()

        self._monitoring.log_event(
            "reward_claimed",
            {"reward_id": str(reward.id), "user_id": str(user.id), "steam_id": steam_id, "day": day},
        )
        queued = self._queue.submit(reward.id)
        if not queued:
            self._logger.warning("claim_delivery_deferred", extra={"reward_id": str(reward.id)})

        return ClaimResult(
            reward_id=reward.id,
            day=day,
            claim_time=now,
            next_claim_time=now + timedelta(hours=self._cooldown_hours),
            vip_tier=vip_tier,
            items=items,
            delivery_queued=queued,
        )

    def list_pending(self, user: User) -> List[PendingReward]:
        steam_id = UserService.require_steam_id(user)
        stmt = (
            select(PendingReward)
            .where(PendingReward.steam_id == steam_id)
            .where(PendingReward.status == RewardStatus.PENDING)
            .order_by(PendingReward.requested_at.desc())
        )
        return list(self._session.scalars(stmt))

    def daily_status(self, user: User) -> DailyStatus:
        UserService.require_steam_id(user)
        now = self._clock()
        history = self._recent_history(user)
        last_claim_at = history[0].claimed_at if history else None
        eligibility = evaluate_cooldown(last_claim_at, now, self._cooldown_hours)
        progress = cycle_progress(history, now)

        vip_tier = self._vip.resolve(user)
        rewards = [
            DayManifest(
                day=day,
                items=rewards_for_day(day, vip_tier),
                claimed=day in progress.claimed_days,
                available=(
                    day == progress.next_day and eligibility.can_claim and day not in progress.claimed_days
                ),
            )
            for day in range(FIRST_DAY, LAST_DAY + 1)
        ]

        return DailyStatus(
            consecutive_days=progress.consecutive_days,
            claimed_days=progress.claimed_days,
            next_day=progress.next_day,
            has_missed_day=progress.has_missed_day,
            vip_tier=vip_tier,
            eligibility=eligibility,
            rewards=rewards,
            history=history[:RECENT_HISTORY_LIMIT],
        )

    def _recent_history(self, user: User) -> List[ClaimHistoryRecord]:
        return list(
            self._session.scalars(
                select(ClaimHistoryRecord)
                .where(ClaimHistoryRecord.user_id == user.id)
                .order_by(ClaimHistoryRecord.claimed_at.desc())
                .limit(HISTORY_SCAN_LIMIT)
            )
        )

    def _check_sequence(
        self,
        user: User,
        day: int,
        history: Sequence[ClaimHistoryRecord],
        progress: CycleProgress,
    ) -> None:
        if day == progress.next_day and day not in progress.claimed_days:
            return

        if not history:
            message = f"Somente o dia {FIRST_DAY} pode ser reivindicado para novos jogadores."
        elif day in progress.claimed_days:
            message = f"O dia {day} já foi reivindicado."
        else:
            message = f"Somente o dia {progress.next_day} pode ser reivindicado agora."
        self._logger.info(
            "claim_rejected_sequence",
            extra={"user_id": str(user.id), "day": day, "next_day": progress.next_day},
        )
        raise ClaimSequenceError(message, next_day=progress.next_day)
