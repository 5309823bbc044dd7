"""Calendar helpers shared by the aggregator, the lifecycle engine and the routes."""

import logging
import os
import re
from datetime import date, datetime, timezone
from typing import Optional

logger = logging.getLogger("grouptrip.dates")

# Trip dates are calendar days in this zone; "today" for the scheduler is taken here too
APP_TIMEZONE = os.getenv("APP_TIMEZONE", "Asia/Bangkok")

YMD = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _get_tz(tz_name: Optional[str] = None):
    """Return a ZoneInfo instance, falling back to UTC on unknown names."""
    try:
        from zoneinfo import ZoneInfo
        return ZoneInfo(tz_name or APP_TIMEZONE)
    except Exception:
        logger.warning("Unknown timezone %r, falling back to UTC", tz_name or APP_TIMEZONE)
        return timezone.utc


def today_local(tz_name: Optional[str] = None) -> date:
    return datetime.now(_get_tz(tz_name)).date()


def parse_ymd(value) -> Optional[date]:
    """
    Coerce a stored or submitted date into a `date`.

    Accepts `date`, `datetime` and ISO strings (`YYYY-MM-DD`, optionally with a
    time part). Anything unparseable yields None.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    try:
        if YMD.match(text):
            return date.fromisoformat(text)
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def parse_target_date(value: Optional[str], tz_name: Optional[str] = None) -> date:
    """Scheduler date override: strict `YYYY-MM-DD`, or today when omitted."""
    if value is None or not str(value).strip():
        return today_local(tz_name)
    text = str(value).strip()
    if not YMD.match(text):
        raise ValueError(f"date must be YYYY-MM-DD, got {value!r}")
    return date.fromisoformat(text)


def get_today() -> date:
    """FastAPI dependency for the current local date; overridden in tests."""
    return today_local()
