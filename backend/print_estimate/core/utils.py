# core/utils.py

import logging
from typing import Optional

logger = logging.getLogger(__name__)

def non_negative(value: Optional[float]) -> float:
    """Clamps a numeric input at zero. ``None`` is treated as zero."""
    if value is None:
        return 0.0
    return max(float(value), 0.0)

def warn_if_outside_percent(name: str, value: float) -> None:
    """Logs a warning for a percentage outside [0, 100]; the value is still used."""
    if value < 0 or value > 100:
        logger.warning(f"{name}={value} is outside [0, 100]; using it as given.")

def format_hours(hours: float) -> str:
    """
    Formats a duration in hours into a human-readable string (e.g., "2h 30m").

    Args:
        hours: The duration in hours.

    Returns:
        A formatted string. Returns "N/A" for negative or invalid input.
    """
    if hours is None or not isinstance(hours, (int, float)) or hours < 0:
        return "N/A"

    total_minutes = int(round(hours * 60))
    h, m = divmod(total_minutes, 60)

    parts = []
    if h > 0:
        parts.append(f"{h}h")
    if m > 0:
        parts.append(f"{m}m")

    if not parts:
        return "0m"

    return " ".join(parts)
