"""
Standardized Date/Time Handling Utilities

Gamification day boundaries (daily bonus, streaks, same-day join counts)
are calendar dates in the owner's timezone, so every "now" used by the
gamification core is timezone-aware.

RULES:
- Never mix naive and aware datetimes
- Derive "today" from an aware "now", never from date.today()
"""

import logging
from datetime import datetime
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

# Default timezone if none is configured
DEFAULT_TIMEZONE = "UTC"


def get_timezone(tz_name: Optional[str]) -> ZoneInfo:
    """
    Resolve a timezone name, falling back to the default

    Args:
        tz_name: IANA timezone name (e.g. "Europe/Stockholm")

    Returns:
        ZoneInfo object
    """
    if not tz_name:
        return ZoneInfo(DEFAULT_TIMEZONE)

    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        logger.error(f"Invalid timezone '{tz_name}': {e}")
        return ZoneInfo(DEFAULT_TIMEZONE)


def now_in_timezone(tz: Union[str, ZoneInfo, None] = None) -> datetime:
    """
    Get current datetime in a timezone (timezone-aware)

    Args:
        tz: ZoneInfo, timezone name, or None for the default

    Returns:
        Current datetime with timezone info
    """
    if not isinstance(tz, ZoneInfo):
        tz = get_timezone(tz)
    return datetime.now(tz)
