"""
Achievement System

Builds achievement records and derives the ones a state transition earns:
- Daily Visitor: first bonus claim of a calendar day (carries the daily bonus)
- Triple Threat: third activity joined in one calendar day (recognition only;
  the combo bonus is carried by the join's points award)
- Points / level records for the generic award path

Derivation is idempotent per calendar day: an achievement is never derived
twice for the same (category, date) pair.
"""

from typing import List
from datetime import date, datetime
from enum import Enum
import logging

from pingbadge.models.gamification import (
    Achievement,
    AchievementCategory,
    GamificationSnapshot,
)

logger = logging.getLogger(__name__)

TRIPLE_ACTIVITY_COUNT = 3


class AchievementTrigger(str, Enum):
    """What kind of transition was just applied to the snapshot"""
    DAILY_BONUS = "daily_bonus"
    ACTIVITY_JOIN = "activity_join"


def _epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def has_achievement_for_day(
    snapshot: GamificationSnapshot,
    category: AchievementCategory,
    day: date
) -> bool:
    """Check whether the log already holds an achievement of `category` earned on `day`"""
    return any(
        achievement.category == category and achievement.earned_at.date() == day
        for achievement in snapshot.achievements
    )


def points_achievement(
    points: int,
    reason: str,
    earned_at: datetime,
    sequence: int,
    category: AchievementCategory = AchievementCategory.POINTS
) -> Achievement:
    """
    Build a generic points record

    Args:
        points: Points awarded
        reason: Human-readable description
        earned_at: Award time (timezone-aware)
        sequence: Position the record will take in the log, keeps ids unique
        category: Ledger category (points by default)
    """
    return Achievement(
        id=f"{category.value}_{_epoch_ms(earned_at)}_{sequence}",
        name="Points Earned",
        description=reason,
        icon="⭐",
        points=points,
        earned_at=earned_at,
        category=category,
    )


def level_achievement(level: int, earned_at: datetime) -> Achievement:
    """Build a level-up record. Carries no points."""
    return Achievement(
        id=f"level_{level}_{_epoch_ms(earned_at)}",
        name=f"Level {level} Unlocked!",
        description=f"You've reached level {level}",
        icon="🏆",
        points=0,
        earned_at=earned_at,
        category=AchievementCategory.LEVEL,
    )


def daily_visitor_achievement(points: int, earned_at: datetime) -> Achievement:
    day = earned_at.date()
    return Achievement(
        id=f"daily_login_{day.isoformat()}",
        name="Daily Visitor",
        description=f"Daily login bonus (+{points} points)",
        icon="🎯",
        points=points,
        earned_at=earned_at,
        category=AchievementCategory.DAILY,
    )


def triple_activity_achievement(earned_at: datetime, count: int = TRIPLE_ACTIVITY_COUNT) -> Achievement:
    day = earned_at.date()
    return Achievement(
        id=f"triple_activity_{day.isoformat()}",
        name="Triple Threat",
        description=f"Joined {count} activities in one day",
        icon="⚡",
        points=0,
        earned_at=earned_at,
        category=AchievementCategory.MILESTONE,
    )


def derive_achievements(
    snapshot: GamificationSnapshot,
    trigger: AchievementTrigger,
    now: datetime,
    daily_login_bonus: int = 0,
    triple_activity_count: int = TRIPLE_ACTIVITY_COUNT
) -> List[Achievement]:
    """
    Derive achievements earned by the transition just applied to `snapshot`

    Args:
        snapshot: Snapshot after the transition
        trigger: What transition was applied
        now: Current time in the owner's timezone
        daily_login_bonus: Points the Daily Visitor record carries
        triple_activity_count: Same-day join count that earns Triple Threat

    Returns:
        Newly earned achievements (possibly empty), never duplicating an
        existing (category, date) pair
    """
    today = now.date()
    candidates: List[Achievement] = []

    if trigger == AchievementTrigger.DAILY_BONUS and snapshot.last_login_date == today:
        candidates.append(daily_visitor_achievement(daily_login_bonus, now))

    elif (
        trigger == AchievementTrigger.ACTIVITY_JOIN
        and snapshot.activities_joined_today == triple_activity_count
    ):
        candidates.append(triple_activity_achievement(now, triple_activity_count))

    derived = []
    for achievement in candidates:
        if has_achievement_for_day(snapshot, achievement.category, today):
            logger.debug(
                f"Skipping {achievement.id} for user {snapshot.user_id}: "
                f"{achievement.category.value} already earned on {today}"
            )
            continue
        derived.append(achievement)

    return derived

