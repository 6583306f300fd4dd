"""
Timezone helpers — tz database parsing and the active window test.
"""

from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from timebot.errors import InvalidTimezone

TZ_DATABASE_URL = "https://en.wikipedia.org/wiki/List_of_tz_database_time_zones"


def parse_timezone(tz_name: str) -> ZoneInfo:
    """Parse a tz database name, raising InvalidTimezone."""
    if not tz_name or not tz_name.strip():
        raise InvalidTimezone(tz_name, "empty timezone name")
    try:
        return ZoneInfo(tz_name)
    except ZoneInfoNotFoundError:
        raise InvalidTimezone(tz_name, "no such zone in the tz database") from None
    except (ValueError, OSError) as e:
        # malformed keys like "../etc" or absolute paths
        raise InvalidTimezone(tz_name, str(e)) from e


def local_hour(tz: ZoneInfo, now: Optional[datetime] = None) -> int:
    """Hour of day in ``tz`` at the instant ``now`` (default: current UTC)."""
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(tz).hour


def in_window(hour: int, start_hour: int, end_hour: int) -> bool:
    """Whether ``hour`` falls in the daily window ``[start_hour, end_hour)``.

    A window with ``start_hour > end_hour`` wraps past midnight, e.g. 22 to 6
    covers 22:00 through 05:59. ``start_hour == end_hour`` is an empty window.
    """
    if start_hour <= end_hour:
        return start_hour <= hour < end_hour
    return hour >= start_hour or hour < end_hour
