from datetime import datetime, timezone

SECONDS_PER_HOUR = 60 * 60
SECONDS_PER_DAY = 24 * SECONDS_PER_HOUR


def humanize_timestamp(value: int | float | datetime | None) -> str:
    """Return a human-readable UTC timestamp (YYYY-MM-DD HH:MM UTC).

    Accepts unix seconds as stored in the database or a datetime. Naive
    datetimes are assumed to be UTC.

    Args:
        value: Unix seconds, datetime, or None.

    Returns:
        Human-readable UTC timestamp string, or ``"not set"`` for None.
    """
    if value is None:
        return "not set"

    if isinstance(value, datetime):
        moment = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
        moment = moment.astimezone(timezone.utc)
    else:
        moment = datetime.fromtimestamp(value, tz=timezone.utc)

    return moment.strftime("%Y-%m-%d %H:%M UTC")


def whole_days_between(start: int, end: int) -> int:
    """Number of whole days elapsed from ``start`` to ``end`` (unix seconds), never negative."""
    return max(0, (end - start) // SECONDS_PER_DAY)


def hours_between(start: int, end: int) -> float:
    return (end - start) / SECONDS_PER_HOUR


def percentage(part: int, whole: int) -> int:
    """Rounded integer percentage; 0 when ``whole`` is 0."""
    if whole <= 0:
        return 0
    return round(part * 100 / whole)
