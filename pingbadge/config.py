"""Configuration management"""
import os
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from dotenv import load_dotenv

from pingbadge.exceptions import ConfigurationError

load_dotenv()


def _parse_thresholds(raw: str) -> list[int]:
    """Parse a comma separated threshold list, e.g. "0,100,250" """
    try:
        return [int(part) for part in raw.split(",") if part.strip()]
    except ValueError as e:
        raise ConfigurationError(
            f"LEVEL_THRESHOLDS must be a comma separated list of integers, got {raw!r}",
            config_key="LEVEL_THRESHOLDS",
            cause=e
        ) from e


# Logging
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

# Storage
# - 'file' (default): one JSON document per user under DATA_PATH
# - 'memory': process-local dict, nothing survives a restart
# - 'redis': key-value records in REDIS_URL
GAMIFICATION_STORAGE_BACKEND: str = os.getenv("GAMIFICATION_STORAGE_BACKEND", "file").lower()
GAMIFICATION_STORAGE_PREFIX: str = os.getenv("GAMIFICATION_STORAGE_PREFIX", "gamification_")
DATA_PATH: Path = Path(os.getenv("DATA_PATH", "./data"))
REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")

# Calendar day boundaries (daily bonus, streaks, combo bonus) are evaluated in this timezone
GAMIFICATION_TIMEZONE: str = os.getenv("GAMIFICATION_TIMEZONE", "UTC")

# Point rules
POINTS_PER_ACTIVITY: int = int(os.getenv("POINTS_PER_ACTIVITY", "10"))
DAILY_LOGIN_BONUS: int = int(os.getenv("DAILY_LOGIN_BONUS", "5"))
THREE_ACTIVITIES_BONUS: int = int(os.getenv("THREE_ACTIVITIES_BONUS", "50"))
LEVEL_THRESHOLDS: list[int] = _parse_thresholds(
    os.getenv("LEVEL_THRESHOLDS", "0,100,250,500,1000,2000,5000")
)

# Monitoring
ENABLE_PROMETHEUS: bool = os.getenv("ENABLE_PROMETHEUS", "false").lower() == "true"

STORAGE_BACKENDS = ("file", "memory", "redis")


def get_rules():
    """Build the point and level rules from the current settings"""
    from pingbadge.gamification.engine import GamificationRules

    return GamificationRules(
        points_per_activity=POINTS_PER_ACTIVITY,
        daily_login_bonus=DAILY_LOGIN_BONUS,
        three_activities_bonus=THREE_ACTIVITIES_BONUS,
        level_thresholds=tuple(LEVEL_THRESHOLDS),
    )


# Validation
def validate_config() -> None:
    """Validate configuration, raising ConfigurationError on the first problem"""
    from pingbadge.gamification.level_system import LevelTable

    if GAMIFICATION_STORAGE_BACKEND not in STORAGE_BACKENDS:
        raise ConfigurationError(
            f"Unknown storage backend {GAMIFICATION_STORAGE_BACKEND!r}, "
            f"expected one of {', '.join(STORAGE_BACKENDS)}",
            config_key="GAMIFICATION_STORAGE_BACKEND"
        )
    if not GAMIFICATION_STORAGE_PREFIX:
        raise ConfigurationError(
            "GAMIFICATION_STORAGE_PREFIX must not be empty",
            config_key="GAMIFICATION_STORAGE_PREFIX"
        )
    try:
        ZoneInfo(GAMIFICATION_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigurationError(
            f"Unknown timezone {GAMIFICATION_TIMEZONE!r}",
            config_key="GAMIFICATION_TIMEZONE",
            cause=e
        ) from e

    for key, value in (
        ("POINTS_PER_ACTIVITY", POINTS_PER_ACTIVITY),
        ("DAILY_LOGIN_BONUS", DAILY_LOGIN_BONUS),
        ("THREE_ACTIVITIES_BONUS", THREE_ACTIVITIES_BONUS),
    ):
        if value < 0:
            raise ConfigurationError(f"{key} must not be negative", config_key=key)

    # Raises ConfigurationError for an empty or non-ascending table
    LevelTable(LEVEL_THRESHOLDS)
