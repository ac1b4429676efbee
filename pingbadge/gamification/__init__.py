"""
Gamification core for PingBadge

Client-side engagement layer:
- Points and leveling (threshold table)
- Daily login bonus and streaks
- Same-day activity combo bonus
- Achievement log

Engine (pure logic) -> Store (per-device persistence) -> Controller (session state + events)
"""

from pingbadge.gamification.level_system import LevelTable, get_level_benefits
from pingbadge.gamification.streak_system import is_daily_bonus_available, next_streak
from pingbadge.gamification.achievement_system import AchievementTrigger, derive_achievements
from pingbadge.gamification.engine import GamificationEngine, GamificationRules
from pingbadge.gamification.store import (
    FileBackend,
    GamificationStore,
    InMemoryBackend,
    KeyValueBackend,
    RedisBackend,
    create_store,
)
from pingbadge.gamification.controller import GamificationController

__all__ = [
    "LevelTable",
    "get_level_benefits",
    "is_daily_bonus_available",
    "next_streak",
    "AchievementTrigger",
    "derive_achievements",
    "GamificationEngine",
    "GamificationRules",
    "KeyValueBackend",
    "InMemoryBackend",
    "FileBackend",
    "RedisBackend",
    "GamificationStore",
    "create_store",
    "GamificationController",
]
