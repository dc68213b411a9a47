"""
Vital field normalizers.

Each function maps one validated Vital event onto unified records. They are
pure: no database access, no logging of payload contents.
"""

from typing import List, Optional

from models import MetricType
from schemas import VitalActivityEvent, VitalBodyEvent, VitalSleepEvent, VitalWorkoutEvent
from services.normalizers.records import MetricCollector, MetricRecord, WorkoutRecord
from services.normalizers.units import seconds_to_hours, seconds_to_minutes

SOURCE = "vital"


def normalize_sleep(event: VitalSleepEvent) -> List[MetricRecord]:
    """HRV (ms), resting HR (bpm) and sleep duration (hours) from a daily sleep summary."""
    collector = MetricCollector(event.resolved_user_id, event.data.date, SOURCE)
    sleep = event.data.sleep
    if sleep is None:
        return []

    if sleep.hrv is not None:
        collector.add(MetricType.HRV, sleep.hrv.avg_hrv_rmssd, "ms")
    if sleep.heart_rate is not None:
        collector.add(MetricType.RHR, sleep.heart_rate.avg_hr_bpm, "bpm")
    collector.add(
        MetricType.SLEEP,
        seconds_to_hours(sleep.duration),
        "hours",
        efficiency=sleep.efficiency,
    )
    return collector.records


def normalize_activity(event: VitalActivityEvent) -> List[MetricRecord]:
    collector = MetricCollector(event.resolved_user_id, event.data.date, SOURCE)
    activity = event.data.activity
    if activity is not None:
        collector.add(MetricType.STEPS, activity.steps, "steps")
    return collector.records


def normalize_body(event: VitalBodyEvent) -> List[MetricRecord]:
    collector = MetricCollector(event.resolved_user_id, event.data.date, SOURCE)
    body = event.data.body
    if body is not None:
        collector.add(MetricType.WEIGHT, body.weight_kg, "kg")
        collector.add(MetricType.BODY_FAT, body.body_fat_percentage, "%")
    return collector.records


def normalize_workout(event: VitalWorkoutEvent) -> Optional[WorkoutRecord]:
    """A single workout keyed on its start time, or None when the event carries none."""
    workout = event.data.workout
    if workout is None:
        return None

    meta = {
        "source": SOURCE,
        "provider_workout_id": str(workout.id) if workout.id is not None else None,
        "calories": workout.calories,
        "heart_rate": workout.heart_rate,
    }
    return WorkoutRecord(
        user_id=event.resolved_user_id,
        timestamp=workout.start,
        activity_type=workout.sport_name or "other",
        duration_min=seconds_to_minutes(workout.duration),
        meta={k: v for k, v in meta.items() if v is not None},
    )
