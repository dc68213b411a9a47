"""
Field normalizers.

Map vendor-shaped webhook payloads (already validated into the typed models
in ``schemas``) onto the unified metric/workout records:

- Absent source fields are skipped, never stored as zero
- User id prefers our own reference id over the vendor's opaque id
- Timestamp is the event's reporting date, not the delivery time
"""

from .records import (
    PLAUSIBLE_RANGES,
    MetricCollector,
    MetricRecord,
    WorkoutRecord,
    WorkoutSet,
    is_plausible,
)
from .units import estimate_calories_from_steps, seconds_to_hours, seconds_to_minutes

__all__ = [
    'PLAUSIBLE_RANGES',
    'MetricCollector',
    'MetricRecord',
    'WorkoutRecord',
    'WorkoutSet',
    'is_plausible',
    'estimate_calories_from_steps',
    'seconds_to_hours',
    'seconds_to_minutes',
]
