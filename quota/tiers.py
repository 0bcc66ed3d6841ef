"""Service tiers and their usage caps."""

from dataclasses import dataclass
from enum import Enum

FREE_TIER_CAP_SECONDS = 300
PREMIUM_TIER_CAP_SECONDS = 3600


class Tier(str, Enum):
    FREE = "free"
    PREMIUM = "premium"


@dataclass(frozen=True)
class TierLimits:
    """Cumulative seconds of audio each tier may process per period."""

    free_cap: int = FREE_TIER_CAP_SECONDS
    premium_cap: int = PREMIUM_TIER_CAP_SECONDS

    def __post_init__(self):
        if self.free_cap < 0 or self.premium_cap < 0:
            raise ValueError("Tier caps must be non-negative")

    def cap_for(self, tier: Tier) -> int:
        return self.premium_cap if tier == Tier.PREMIUM else self.free_cap
