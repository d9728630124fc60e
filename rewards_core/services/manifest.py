"""Seven-day reward manifest with VIP bonuses."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, List

FIRST_DAY = 1
LAST_DAY = 7
CYCLE_LENGTH = LAST_DAY

VIP_TIERS = ("none", "vip-basic", "vip-plus", "vip-premium")


@dataclass(frozen=True)
class RewardItem:
    name: str
    amount: int
    is_vip: bool = False

    def to_dict(self) -> Dict[str, object]:
        data = asdict(self)
        data["isVip"] = data.pop("is_vip")
        return data


BASE_REWARDS: Dict[int, RewardItem] = {
    1: RewardItem("Scrap", 20),
    2: RewardItem("Wood", 1000),
    3: RewardItem("Stone", 500),
    4: RewardItem("Metal Fragments", 250),
    5: RewardItem("Low Grade Fuel", 100),
    6: RewardItem("Scrap", 50),
    7: RewardItem("Scrap", 100),
}

_DAILY_VIP_SCRAP = {"vip-basic": 20, "vip-plus": 50, "vip-premium": 100}

_FINAL_DAY_VIP_ITEMS = {
    "vip-basic": (RewardItem("Small Stash", 1, True),),
    "vip-plus": (RewardItem("Small Stash", 1, True), RewardItem("Supply Signal", 1, True)),
    "vip-premium": (
        RewardItem("Small Stash", 2, True),
        RewardItem("Supply Signal", 2, True),
        RewardItem("Timed Explosive", 1, True),
    ),
}


def is_valid_day(day: object) -> bool:
    return isinstance(day, int) and not isinstance(day, bool) and FIRST_DAY <= day <= LAST_DAY


def rewards_for_day(day: int, vip_tier: str = "none") -> List[RewardItem]:
    """Items granted for ``day`` at the given VIP tier."""

    if not is_valid_day(day):
        raise ValueError(f"day must be between {FIRST_DAY} and {LAST_DAY}, got {day!r}")

    items = [BASE_REWARDS[day]]
    bonus_scrap = _DAILY_VIP_SCRAP.get(vip_tier)
    if bonus_scrap:
        items.append(RewardItem("Scrap", bonus_scrap, True))
    if day == LAST_DAY:
        items.extend(_FINAL_DAY_VIP_ITEMS.get(vip_tier, ()))
    return items
