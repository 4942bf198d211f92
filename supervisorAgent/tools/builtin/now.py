"""Current date and time for the model (it has no clock of its own)."""

from datetime import datetime, timedelta, timezone

from langchain_core.tools import tool


@tool
def now(utc_offset_hours: float = 0.0) -> str:
    """Return the current datetime in ISO 8601 format.

    Args:
        utc_offset_hours: Offset from UTC for the user's timezone, e.g. -5 or 5.5
    """
    if not -14 <= utc_offset_hours <= 14:
        raise ValueError(f"utc_offset_hours out of range: {utc_offset_hours}")
    tz = timezone(timedelta(hours=utc_offset_hours))
    return datetime.now(tz).isoformat(timespec="seconds")


__all__ = ["now"]
