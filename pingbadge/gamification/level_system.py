"""
Level System

Maps cumulative points to levels through an ascending threshold table.

Leveling Curve (default table [0, 100, 250, 500, 1000, 2000, 5000]):
- Level 1: 0-99 points
- Level 2: 100-249 points
- Level 3: 250-499 points
- Level 4: 500-999 points
- Level 5: 1000-1999 points
- Level 6: 2000-4999 points
- Level 7: 5000+ points (cap)
"""

from typing import Dict, Optional, Sequence
import logging

from pingbadge.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_LEVEL_THRESHOLDS = (0, 100, 250, 500, 1000, 2000, 5000)

LEVEL_BENEFITS = {
    1: {
        "benefits": ["Basic activity access", "Profile customization"],
        "description": "Welcome to PingBadge!",
        "color": "blue",
    },
    2: {
        "benefits": ["Priority notifications", "Enhanced leaderboard visibility"],
        "description": "You're getting the hang of it!",
        "color": "green",
    },
    3: {
        "benefits": ["Access to premium activities", "Early activity registration"],
        "description": "Expert level unlocked!",
        "color": "purple",
    },
    4: {
        "benefits": ["VIP status", "Exclusive badges", "Activity creation priority"],
        "description": "Champion status achieved!",
        "color": "gold",
    },
}


class LevelTable:
    """
    Validated, immutable level threshold table.

    The table is checked once here; the lookup methods trust it and do not
    re-validate per call.
    """

    def __init__(self, thresholds: Sequence[int] = DEFAULT_LEVEL_THRESHOLDS):
        thresholds = tuple(thresholds)

        if not thresholds:
            raise ConfigurationError(
                "Level threshold table must not be empty",
                config_key="LEVEL_THRESHOLDS"
            )
        if any(isinstance(t, bool) or not isinstance(t, int) for t in thresholds):
            raise ConfigurationError(
                f"Level thresholds must be integers: {thresholds}",
                config_key="LEVEL_THRESHOLDS"
            )
        if thresholds[0] < 0:
            raise ConfigurationError(
                f"Level thresholds must not be negative: {thresholds}",
                config_key="LEVEL_THRESHOLDS"
            )
        for lower, upper in zip(thresholds, thresholds[1:]):
            if upper <= lower:
                raise ConfigurationError(
                    f"Level thresholds must be strictly ascending: {thresholds}",
                    config_key="LEVEL_THRESHOLDS"
                )

        self._thresholds = thresholds

    @property
    def thresholds(self) -> tuple:
        return self._thresholds

    @property
    def max_level(self) -> int:
        return len(self._thresholds)

    def __repr__(self) -> str:
        return f"LevelTable({list(self._thresholds)})"

    def level_for_points(self, points: int) -> int:
        """Largest level whose threshold is reached. Floors at 1, caps at max_level."""
        for index in range(len(self._thresholds) - 1, -1, -1):
            if points >= self._thresholds[index]:
                return index + 1
        return 1

    def threshold_for_level(self, level: int) -> int:
        """Points needed to enter `level`"""
        return self._thresholds[min(max(level, 1), self.max_level) - 1]

    def next_level_threshold(self, level: int) -> int:
        """Threshold of the level after `level`, or the last threshold at the cap"""
        if level >= self.max_level:
            return self._thresholds[-1]
        return self._thresholds[max(level, 1)]

    def progress_to_next_level(self, points: int, level: int) -> float:
        """
        Percentage [0, 100] of the way from `level` to `level + 1`

        Returns 100 when `level` is the max level.
        """
        if level >= self.max_level:
            return 100.0

        current_threshold = self.threshold_for_level(level)
        next_threshold = self.next_level_threshold(level)

        progress = (points - current_threshold) / (next_threshold - current_threshold) * 100
        return min(max(progress, 0.0), 100.0)

    def level_info(self, points: int) -> Dict[str, any]:
        """
        Calculate level and progress from total points

        Returns:
            {
                'current_level': int,
                'points_in_current_level': int,
                'points_to_next_level': int,
                'next_level_threshold': int,
                'progress_percent': float,
                'is_max_level': bool
            }
        """
        level = self.level_for_points(points)
        next_threshold = self.next_level_threshold(level)

        return {
            "current_level": level,
            "points_in_current_level": max(points - self.threshold_for_level(level), 0),
            "points_to_next_level": max(next_threshold - points, 0),
            "next_level_threshold": next_threshold,
            "progress_percent": self.progress_to_next_level(points, level),
            "is_max_level": level >= self.max_level,
        }


def get_level_benefits(level: int) -> Optional[Dict[str, any]]:
    """
    Get the benefits unlocked at a level

    Returns:
        {'level': int, 'benefits': list, 'description': str, 'color': str},
        or None for levels without a benefit entry
    """
    entry = LEVEL_BENEFITS.get(level)
    if entry is None:
        return None
    return {"level": level, **entry}
