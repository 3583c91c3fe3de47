from datetime import UTC, datetime


def utcnow_naive():
    """Return current UTC timestamp as naive datetime for DB timestamp columns."""
    return datetime.now(UTC).replace(tzinfo=None)


def to_utc_naive(value):
    """Convert an aware datetime to naive UTC; naive values are assumed UTC already."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def parse_iso_datetime(raw_value):
    raw = str(raw_value or '').strip()
    if not raw:
        return None
    try:
        return to_utc_naive(datetime.fromisoformat(raw.replace('Z', '+00:00')))
    except ValueError:
        return None
