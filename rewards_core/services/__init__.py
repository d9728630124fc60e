"""Business logic service layer."""

from rewards_core.services.claims import ClaimService  # noqa: F401
from rewards_core.services.rewards import RewardsService  # noqa: F401
from rewards_core.services.users import UserService, VipTierResolver  # noqa: F401
