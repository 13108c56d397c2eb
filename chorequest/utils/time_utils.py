import logging
from datetime import datetime, timezone, date
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    """Current time as a naive UTC datetime (the storage convention for every table)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def get_zone(tz_name: str) -> ZoneInfo:
    """
    Resolve an IANA timezone name, falling back to UTC for unknown names.

    Args:
        tz_name: IANA timezone string (e.g. 'America/Chicago')

    Returns:
        ZoneInfo for the name, or UTC if it is missing/invalid
    """
    try:
        return ZoneInfo(tz_name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone '{tz_name}', using UTC")
        return ZoneInfo("UTC")


def local_date(moment: datetime, tz_name: str) -> date:
    """
    Calendar date of a moment as seen in a timezone.

    Naive datetimes are treated as UTC.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(get_zone(tz_name)).date()


def days_between_in_timezone(first: datetime, second: datetime, tz_name: str) -> int:
    """
    Whole calendar days between two moments in a timezone, ignoring order.

    Handles DST transitions because only local dates are compared.

    Example:
        >>> days_between_in_timezone(
        ...     datetime(2025, 1, 15, 5, 0), datetime(2025, 1, 15, 7, 0), "America/Chicago"
        ... )
        1
    """
    return abs((local_date(second, tz_name) - local_date(first, tz_name)).days)
