from .time_utils import utcnow, local_date, days_between_in_timezone

__all__ = [
    "utcnow",
    "local_date",
    "days_between_in_timezone",
]
