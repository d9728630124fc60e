"""SQLAlchemy ORM models for the rewards service."""

from rewards_core.models.base import Base  # noqa: F401
from rewards_core.models.claim_history import ClaimHistoryRecord  # noqa: F401
from rewards_core.models.pending_reward import PendingReward, RewardStatus  # noqa: F401
from rewards_core.models.system_event import SystemEvent, SystemStatus  # noqa: F401
from rewards_core.models.user import Subscription, User  # noqa: F401
