"""Timestamp utilities for diagcollect.

Three formats are in use: ISO8601 UTC for the run summary, local wall-clock
for activity log lines, and the minute-granularity stamp that keys the
output directory name.
"""

from datetime import UTC, datetime

__all__ = ["get_iso_timestamp", "format_log_timestamp", "format_dir_stamp"]

LOG_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
DIR_STAMP_FORMAT = "%d-%m-%Y-%H-%M"


def get_iso_timestamp(moment: datetime | None = None) -> str:
    """Get a UTC timestamp in ISO8601 format with microseconds.

    Parameters
    ----------
    moment : datetime | None, optional
        Moment to format, now if None. Naive values are taken as local time.

    Returns
    -------
    str
        ISO8601 timestamp (e.g., "2026-02-03T12:34:56.123456Z").
    """
    utc = datetime.now(UTC) if moment is None else moment.astimezone(UTC)
    return utc.isoformat().replace("+00:00", "Z")


def format_log_timestamp(moment: datetime | None = None) -> str:
    """Format a moment for an activity log line.

    Parameters
    ----------
    moment : datetime | None, optional
        Moment to format, local now if None.

    Returns
    -------
    str
        Timestamp such as "2026-10-16 14:05:09".
    """
    return (moment or datetime.now()).strftime(LOG_TIMESTAMP_FORMAT)


def format_dir_stamp(moment: datetime) -> str:
    """Format a moment as the DD-MM-YYYY-HH-MM output directory stamp."""
    return moment.strftime(DIR_STAMP_FORMAT)
