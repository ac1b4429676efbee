"""
GamificationEngine - pure point, level and achievement logic

Stateless, deterministic functions over a snapshot. No I/O, no clock:
callers pass "today"/"now" in the owner's timezone.

Point Award Rules (defaults):
- Activity joined: 10 points
- Third activity joined in one day: +50 combo bonus (exactly the 3rd, once per day)
- Daily login bonus: 5 points
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple
import logging

from pingbadge.exceptions import ConfigurationError
from pingbadge.gamification import achievement_system, streak_system
from pingbadge.gamification.achievement_system import AchievementTrigger
from pingbadge.gamification.level_system import (
    DEFAULT_LEVEL_THRESHOLDS,
    LevelTable,
    get_level_benefits,
)
from pingbadge.models.gamification import (
    Achievement,
    AchievementCategory,
    GamificationSnapshot,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GamificationRules:
    """Point values and level table the engine applies"""
    points_per_activity: int = 10
    daily_login_bonus: int = 5
    three_activities_bonus: int = 50
    combo_activity_count: int = achievement_system.TRIPLE_ACTIVITY_COUNT
    level_thresholds: Tuple[int, ...] = DEFAULT_LEVEL_THRESHOLDS


class GamificationEngine:
    """
    Pure gamification logic configured by GamificationRules.

    The level table is validated when the engine is built; a bad table
    raises ConfigurationError here and never at call time.
    """

    def __init__(self, rules: Optional[GamificationRules] = None):
        self.rules = rules or GamificationRules()

        for name in ("points_per_activity", "daily_login_bonus", "three_activities_bonus"):
            if getattr(self.rules, name) < 0:
                raise ConfigurationError(f"{name} must not be negative", config_key=name.upper())
        if self.rules.combo_activity_count < 1:
            raise ConfigurationError(
                "combo_activity_count must be at least 1",
                config_key="COMBO_ACTIVITY_COUNT"
            )

        self.level_table = LevelTable(self.rules.level_thresholds)
        logger.debug(f"GamificationEngine initialized with {self.level_table!r}")

    # ---- levels -------------------------------------------------------

    def level_for_points(self, points: int) -> int:
        return self.level_table.level_for_points(points)

    def progress_to_next_level(self, points: int, level: int) -> float:
        return self.level_table.progress_to_next_level(points, level)

    def next_level_threshold(self, level: int) -> int:
        return self.level_table.next_level_threshold(level)

    def level_info(self, points: int) -> Dict[str, any]:
        return self.level_table.level_info(points)

    def level_benefits(self, level: int) -> Optional[Dict[str, any]]:
        return get_level_benefits(level)

    # ---- points -------------------------------------------------------

    def points_for_activity_join(self, activities_joined_today: int) -> int:
        """
        Points for a join, given the same-day count after incrementing

        The combo bonus applies only when the count equals the combo count
        exactly, so it fires once per day.
        """
        points = self.rules.points_per_activity
        if activities_joined_today == self.rules.combo_activity_count:
            points += self.rules.three_activities_bonus
        return points

    def activity_join_reason(self, activities_joined_today: int) -> str:
        """Human-readable description of a join's points award"""
        reason = f"Joined activity (+{self.rules.points_per_activity} points)"
        if activities_joined_today == self.rules.combo_activity_count:
            reason += f" + Triple Activity Bonus (+{self.rules.three_activities_bonus} points)"
        return reason

    # ---- daily bonus & streaks ----------------------------------------

    def is_daily_bonus_available(self, last_login_date: Optional[date], today: date) -> bool:
        return streak_system.is_daily_bonus_available(last_login_date, today)

    def next_streak(self, last_login_date: Optional[date], today: date, streak_days: int) -> int:
        return streak_system.next_streak(last_login_date, today, streak_days)

    # ---- achievements -------------------------------------------------

    def derive_achievements(
        self,
        snapshot: GamificationSnapshot,
        trigger: AchievementTrigger,
        now: datetime
    ) -> List[Achievement]:
        return achievement_system.derive_achievements(
            snapshot,
            trigger,
            now,
            daily_login_bonus=self.rules.daily_login_bonus,
            triple_activity_count=self.rules.combo_activity_count,
        )

    def points_achievement(
        self,
        snapshot: GamificationSnapshot,
        points: int,
        reason: str,
        now: datetime,
        category: AchievementCategory = AchievementCategory.POINTS
    ) -> Achievement:
        return achievement_system.points_achievement(
            points, reason, now, sequence=len(snapshot.achievements), category=category
        )

    def level_achievement(self, level: int, now: datetime) -> Achievement:
        return achievement_system.level_achievement(level, now)
