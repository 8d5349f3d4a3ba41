"""
Live-feature entitlement gate.

Free users get ``FREE_DAILY_LIVE_MATCHES`` live matches per day plus one
extra per watched rewarded ad. Premium (or ``UNLIMITED_LIVE_MATCHES``)
lifts the limit. Counters live in process memory and reset when the date
changes; purchase and ad delivery are handled elsewhere.
"""
import logging
from datetime import date
from enum import Enum
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

FREE_COMPETITIONS = ["PL", "BL1", "SA", "PD", "EL"]
PREMIUM_COMPETITIONS = FREE_COMPETITIONS + ["CL", "FL1", "DED", "PPL", "ELC", "WC", "EC"]


class Tier(str, Enum):
    FREE = "free"
    PREMIUM = "premium"


class EntitlementGate:
    """
    Args:
        free_daily_matches: Live matches a free user gets per day
        unlimited: Bypass all limits (testing / promotional builds)
        today: Date provider, injectable for tests
    """

    def __init__(
        self,
        free_daily_matches: int = 1,
        unlimited: bool = False,
        tier: Tier = Tier.FREE,
        today: Callable[[], date] = date.today,
    ):
        self.free_daily_matches = free_daily_matches
        self.unlimited = unlimited
        self.tier = tier
        self._today = today
        self._day: Optional[date] = None
        self._used_today = 0
        self._ad_rewards_today = 0

    def _roll_day(self) -> None:
        today = self._today()
        if self._day != today:
            if self._day is not None:
                logger.info("New day, resetting live match allowance")
            self._day = today
            self._used_today = 0
            self._ad_rewards_today = 0

    @property
    def is_premium(self) -> bool:
        return self.tier == Tier.PREMIUM

    @property
    def used_today(self) -> int:
        self._roll_day()
        return self._used_today

    def remaining_free_matches(self) -> int:
        self._roll_day()
        allowance = self.free_daily_matches + self._ad_rewards_today
        return max(0, allowance - self._used_today)

    def can_use_live_features(self) -> bool:
        return self.unlimited or self.is_premium or self.remaining_free_matches() > 0

    def record_live_match_usage(self) -> None:
        """Count one live match against today's free allowance."""
        if self.unlimited or self.is_premium:
            return
        self._roll_day()
        self._used_today += 1
        logger.info(f"Live match used ({self._used_today} today, {self.remaining_free_matches()} left)")

    def grant_ad_reward(self) -> int:
        """One extra live match for today. Returns the new remaining count."""
        self._roll_day()
        self._ad_rewards_today += 1
        return self.remaining_free_matches()

    def upgrade(self) -> None:
        self.tier = Tier.PREMIUM
        logger.info("Upgraded to premium")

    def available_competitions(self) -> List[str]:
        if self.unlimited or self.is_premium:
            return list(PREMIUM_COMPETITIONS)
        return list(FREE_COMPETITIONS)

    def can_access_competition(self, code: str) -> bool:
        return code.upper() in self.available_competitions()

    def status(self) -> dict:
        return {
            "tier": self.tier.value,
            "unlimited": self.unlimited,
            "can_use_live_features": self.can_use_live_features(),
            "remaining_free_matches": self.remaining_free_matches(),
            "used_today": self.used_today,
            "available_competitions": self.available_competitions(),
        }
