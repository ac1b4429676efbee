"""Gamification models: achievements, per-user snapshots and broadcast events"""
from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class AchievementCategory(str, Enum):
    """Achievement categories"""
    DAILY = "daily"
    ACTIVITY = "activity"
    MILESTONE = "milestone"
    SPECIAL = "special"
    POINTS = "points"
    LEVEL = "level"


class Achievement(BaseModel):
    """A single awarded point or recognition event. Immutable once created."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        use_enum_values=False,
    )

    id: str
    name: str
    description: str
    icon: str
    points: int = Field(ge=0)
    earned_at: datetime
    category: AchievementCategory


class GamificationSnapshot(BaseModel):
    """
    Complete per-user gamification state, the only persisted entity.

    Serialized with camelCase field names (userId, totalPoints, ...).
    `level` is always derived from `total_points` by the controller.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
        extra="ignore",
    )

    user_id: str
    total_points: int = Field(default=0, ge=0)
    level: int = Field(default=1, ge=1)
    activities_joined_today: int = Field(default=0, ge=0)
    last_login_date: Optional[date] = None
    streak_days: int = Field(default=0, ge=0)
    total_activities_joined: int = Field(default=0, ge=0)
    achievements: list[Achievement] = Field(default_factory=list)

    @classmethod
    def fresh(cls, user_id: str) -> "GamificationSnapshot":
        """Zeroed snapshot at level 1 for a user with no stored state"""
        return cls(user_id=user_id)

    def ledger_total(self) -> int:
        """Sum of points carried by the achievement log"""
        return sum(achievement.points for achievement in self.achievements)


class GamificationEventKind(str, Enum):
    """What kind of mutation produced a broadcast"""
    ACTIVITY_JOINED = "activity_joined"
    DAILY_BONUS = "daily_bonus"
    POINTS_ADDED = "points_added"


class GamificationEvent(BaseModel):
    """Payload delivered to display subscribers after each persisted mutation"""
    model_config = ConfigDict(frozen=True)

    kind: GamificationEventKind
    snapshot: GamificationSnapshot
    new_achievements: list[Achievement] = Field(default_factory=list)
    leveled_up: bool = False
