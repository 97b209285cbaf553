"""Time parsing and formatting utilities."""

from __future__ import annotations

from datetime import datetime, timezone

from zoneinfo import ZoneInfo


def tzinfo_from_name(tz_name: str) -> timezone:
    """Create tzinfo from an IANA timezone name.

    Args:
        tz_name: Timezone name like "Europe/Berlin".

    Returns:
        tzinfo instance.

    Raises:
        ValueError: If timezone name is invalid on this system.
    """

    try:
        return ZoneInfo(tz_name)
    except Exception as exc:  # ZoneInfo raises KeyError / ZoneInfoNotFoundError (platform dependent)
        raise ValueError(f"无效时区：{tz_name!r}。例如可用：UTC、Asia/Shanghai") from exc


def dt_from_epoch_ms(epoch_ms: int, tz_name: str) -> datetime:
    """Convert epoch milliseconds to timezone-aware datetime.

    Args:
        epoch_ms: Unix epoch milliseconds.
        tz_name: IANA timezone name.

    Returns:
        Timezone-aware datetime.
    """

    tz = tzinfo_from_name(tz_name)
    return datetime.fromtimestamp(epoch_ms / 1000.0, tz=tz)


def parse_dt(text: str, tz_name: str) -> datetime:
    """Parse user-provided datetime text to a timezone-aware datetime.

    Supported formats:
      - "YYYY-MM-DD HH:MM:SS"
      - "YYYY-MM-DDTHH:MM:SS"
      - with optional timezone offset, e.g. "+08:00"

    If timezone is missing, it will be assumed to be tz_name.

    Raises:
        ValueError: If cannot parse.
    """

    s = text.strip().replace("T", " ")
    tz = tzinfo_from_name(tz_name)
    try:
        dt = datetime.fromisoformat(s)
    except ValueError as exc:
        raise ValueError(f"无法解析时间：{text!r}。建议格式：2025-12-18 09:30:00") from exc

    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz)
    return dt.astimezone(tz)


def format_duration(seconds: float, style: str = "short") -> str:
    """Format a duration for display.

    Args:
        seconds: Duration in seconds.
        style: "short" ("1h 5m", "42s") or "long" ("1 hr 5 min", "42 sec").
            Seconds are only shown when the duration is under a minute.
    """

    total = int(max(0.0, seconds))
    h = total // 3600
    m = (total % 3600) // 60
    s = total % 60

    if style == "long":
        units = ("hr", "min", "sec")
        sep = " "
    else:
        units = ("h", "m", "s")
        sep = ""

    parts: list[str] = []
    if h > 0:
        parts.append(f"{h}{sep}{units[0]}")
    if m > 0:
        parts.append(f"{m}{sep}{units[1]}")
    if h == 0 and m == 0:
        parts.append(f"{s}{sep}{units[2]}")
    return " ".join(parts)


def format_hhmmss(seconds: float) -> str:
    s = int(round(max(0.0, seconds)))
    h = s // 3600
    m = (s % 3600) // 60
    sec = s % 60
    return f"{h:02d}:{m:02d}:{sec:02d}"


def time_since(epoch_ms: int, now_ms: int) -> tuple[int, str]:
    """Express the time elapsed since epoch_ms in the largest whole unit.

    Returns:
        (value, unit) where unit is one of seconds/minute(s)/hour(s)/day(s).
    """

    seconds = max(0, (now_ms - epoch_ms) // 1000)
    if seconds < 60:
        return seconds, "seconds"
    minutes = seconds // 60
    if minutes < 60:
        return minutes, "minute" if minutes == 1 else "minutes"
    hours = minutes // 60
    if hours < 24:
        return hours, "hour" if hours == 1 else "hours"
    days = hours // 24
    return days, "day" if days == 1 else "days"
