"""
UTC time helpers for BeaconSOV.

Responses, facts and log lines are stamped in UTC as 'Z'-suffixed ISO 8601
strings, and trend buckets are cut on UTC calendar dates. Naive datetimes
are rejected everywhere (ruff DTZ rules guard the rest of the package).

Example:
    >>> run_id_from_timestamp(datetime(2025, 11, 2, 8, 30, 45, tzinfo=UTC))
    '2025-11-02T08-30-45Z'
    >>> start_of_week(date(2025, 11, 5))
    datetime.date(2025, 11, 2)
"""

from datetime import UTC, date, datetime, timedelta

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
RUN_ID_FORMAT = "%Y-%m-%dT%H-%M-%SZ"


def _require_aware(dt: datetime) -> None:
    if dt.tzinfo is None:
        raise ValueError(
            f"Datetime must be timezone-aware, got naive {dt.isoformat()}. "
            "Use utc_now() or attach tzinfo=UTC."
        )


def utc_now() -> datetime:
    """
    Current time as an aware datetime.

    Returns:
        datetime with tzinfo=UTC. Tests freeze it with freezegun.
    """
    return datetime.now(UTC)


def utc_timestamp() -> str:
    """
    Current time as a storage timestamp.

    Returns:
        str: YYYY-MM-DDTHH:MM:SSZ, e.g. '2025-11-02T08:30:45Z'
    """
    return utc_now().strftime(TIMESTAMP_FORMAT)


def format_timestamp(dt: datetime) -> str:
    """
    Render an aware datetime as a storage timestamp.

    Args:
        dt: Aware datetime in any timezone; it is converted to UTC first.

    Returns:
        str: YYYY-MM-DDTHH:MM:SSZ

    Raises:
        ValueError: If dt is naive
    """
    _require_aware(dt)
    return dt.astimezone(UTC).strftime(TIMESTAMP_FORMAT)


def run_id_from_timestamp(dt: datetime | None = None) -> str:
    """
    Build the run id for a run started at dt.

    Colons are replaced by hyphens so the id can appear in file names, and
    ids sort chronologically as plain strings. The runner appends a -N
    suffix when a project already used the id within the same second.

    Args:
        dt: Run start time. Defaults to utc_now().

    Returns:
        str: YYYY-MM-DDTHH-MM-SSZ, e.g. '2025-11-02T08-30-45Z'

    Raises:
        ValueError: If dt is naive
    """
    if dt is None:
        dt = utc_now()
    _require_aware(dt)
    return dt.astimezone(UTC).strftime(RUN_ID_FORMAT)


def parse_timestamp(timestamp_str: str) -> datetime:
    """
    Parse a stored 'Z' timestamp.

    Args:
        timestamp_str: Value such as '2025-11-02T08:30:45Z'

    Returns:
        Aware datetime in UTC

    Raises:
        ValueError: If the 'Z' suffix is missing or the value is not ISO 8601

    Example:
        >>> parse_timestamp("2025-11-02T08:30:45").year
        Traceback (most recent call last):
        ...
        ValueError: Timestamp must end with 'Z' (UTC): 2025-11-02T08:30:45
    """
    if not timestamp_str.endswith("Z"):
        raise ValueError(f"Timestamp must end with 'Z' (UTC): {timestamp_str}")

    try:
        return datetime.fromisoformat(timestamp_str[:-1] + "+00:00")
    except ValueError as e:
        raise ValueError(f"Invalid ISO 8601 timestamp format: {timestamp_str}") from e


def start_of_week(day: date) -> date:
    """
    Sunday on or before day.

    Args:
        day: Any calendar date

    Returns:
        date: The Sunday that opens day's week (day itself on a Sunday)
    """
    # weekday(): Monday=0 .. Sunday=6
    return day - timedelta(days=(day.weekday() + 1) % 7)
