"""Unit conversions shared by the vendor normalizers."""

import math
from typing import Optional

SECONDS_PER_HOUR = 3600
SECONDS_PER_MINUTE = 60


def seconds_to_hours(seconds: Optional[float]) -> Optional[float]:
    """Sleep durations: exact division, no rounding."""
    if seconds is None:
        return None
    return seconds / SECONDS_PER_HOUR


def seconds_to_minutes(seconds: Optional[float]) -> Optional[int]:
    """Active/workout durations: rounded to the nearest whole minute."""
    if seconds is None:
        return None
    # half-up, not banker's rounding
    return int(math.floor(seconds / SECONDS_PER_MINUTE + 0.5))


def estimate_calories_from_steps(steps: float) -> float:
    """
    Linear daily-energy estimate used for demo data: 1800 kcal baseline plus
    5 kcal per 100 steps.
    """
    return 1800 + (steps / 100) * 5
