"""
Daily Login Streak Tracking

Calendar-day logic behind the daily bonus:
- A daily bonus is available once per calendar day
- Claiming the bonus the day after the previous claim continues the streak
- Any other gap (or no previous claim) starts a new streak at day 1

All dates are calendar dates in the snapshot owner's timezone; the caller
is responsible for computing "today" in that timezone.
"""

from typing import Optional
from datetime import date, timedelta
import logging

logger = logging.getLogger(__name__)


def is_daily_bonus_available(last_login_date: Optional[date], today: date) -> bool:
    """
    Check whether the daily bonus can be claimed

    Args:
        last_login_date: Date the bonus was last evaluated (None if never)
        today: Today's calendar date in the owner's timezone

    Returns:
        True iff the dates differ
    """
    return last_login_date != today


def next_streak(last_login_date: Optional[date], today: date, streak_days: int) -> int:
    """
    Compute the streak after claiming today's bonus

    Logic:
    - Last claim was exactly yesterday: continue streak (+1)
    - Otherwise (gap, first claim, or clock moved backwards): reset to 1

    Args:
        last_login_date: Date of the previous claim (None if never)
        today: Today's calendar date in the owner's timezone
        streak_days: Current streak length

    Returns:
        New streak length
    """
    if last_login_date is not None and last_login_date == today - timedelta(days=1):
        return streak_days + 1

    if last_login_date is not None and streak_days > 1:
        gap_days = (today - last_login_date).days
        logger.info(f"Streak of {streak_days} days broken, gap was {gap_days} days")

    return 1


def format_streak_display(streak_days: int) -> str:
    """Short streak label for display widgets"""
    if streak_days <= 0:
        return "No streak yet. Come back tomorrow to start one! 💪"
    if streak_days == 1:
        return "Day 1 🎉"
    return f"{streak_days} day streak 🔥"
