"""Clock time <-> minute offset helpers for the booking grid"""

import re

_CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::\d{2}(?:\.\d+)?)?$")


def to_minutes(hhmm: str) -> int:
    """'13:45' -> 825"""
    hours, minutes = hhmm.split(":")[:2]
    return int(hours) * 60 + int(minutes)


def to_clock(minutes: int) -> str:
    """825 -> '13:45'"""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def snap_down(minutes: int, step: int) -> int:
    """Round toward the earlier grid line (floor division, so negatives snap earlier too)"""
    return (minutes // step) * step


def parse_clock(value: str) -> str:
    """
    Normalize 'H:MM', 'HH:MM' or 'HH:MM:SS' to 'HH:MM'.

    Raises:
        ValueError: If the value is not a wall-clock time within one day
    """
    match = _CLOCK_RE.match((value or "").strip())
    if not match:
        raise ValueError(f"Invalid time format: {value!r}. Expected HH:MM")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ValueError(f"Invalid time of day: {value!r}")
    return to_clock(hours * 60 + minutes)
