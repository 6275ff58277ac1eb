"""Relative time formatting for commit history."""

import time
from typing import Optional


def now_ms() -> int:
    """Current time in milliseconds since the epoch."""
    return int(time.time() * 1000)


def format_distance_to_now(
    timestamp: int, add_suffix: bool = False, now: Optional[int] = None
) -> str:
    """Render a millisecond timestamp as e.g. ``"3 hours"`` or ``"3 hours ago"``.

    Only the largest unit is shown. Months are 30 days and years 365.
    Every amount other than 1 takes the plural, so zero reads ``"0 seconds"``.
    """
    if now is None:
        now = now_ms()
    seconds = max(0, (now - timestamp) // 1000)
    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24

    units = [
        ("year", days // 365),
        ("month", days // 30),
        ("week", days // 7),
        ("day", days),
        ("hour", hours),
        ("minute", minutes),
    ]
    amount, unit = seconds, "second"
    for name, value in units:
        if value > 0:
            amount, unit = value, name
            break

    result = f"{amount} {unit}{'s' if amount != 1 else ''}"
    return f"{result} ago" if add_suffix else result
