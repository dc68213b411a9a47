"""
Terra field normalizers.

Terra batches one or more summaries under ``data``; every item is mapped on
its own, keyed on the item's ``metadata.start_time``.
"""

from typing import List

from models import MetricType
from schemas import (
    TerraActivityEvent,
    TerraActivityItem,
    TerraBodyEvent,
    TerraBodyItem,
    TerraSleepEvent,
    TerraSleepItem,
    TerraWorkoutEvent,
    TerraWorkoutItem,
)
from services.normalizers.records import MetricCollector, MetricRecord, WorkoutRecord
from services.normalizers.units import seconds_to_hours, seconds_to_minutes

SOURCE = "terra"


def _activity_item(user_id: str, item: TerraActivityItem) -> List[MetricRecord]:
    collector = MetricCollector(user_id, item.metadata.start_time, SOURCE)
    if item.distance_data is not None:
        collector.add(MetricType.STEPS, item.distance_data.steps, "steps")
    if item.calories_data is not None:
        collector.add(MetricType.CALORIES, item.calories_data.total_burned_calories, "kcal")
    if item.active_durations_data is not None:
        collector.add(
            MetricType.ACTIVE_MINUTES,
            seconds_to_minutes(item.active_durations_data.activity_seconds),
            "minutes",
        )
    return collector.records


def _body_item(user_id: str, item: TerraBodyItem) -> List[MetricRecord]:
    collector = MetricCollector(user_id, item.metadata.start_time, SOURCE)
    measurements = item.measurements
    if measurements is not None:
        collector.add(MetricType.WEIGHT, measurements.weight_kg, "kg")
        collector.add(MetricType.HEART_RATE, measurements.heart_rate_bpm, "bpm")
        collector.add(MetricType.BODY_FAT, measurements.body_fat_percentage, "%")
    return collector.records


def _sleep_item(user_id: str, item: TerraSleepItem) -> List[MetricRecord]:
    collector = MetricCollector(user_id, item.metadata.start_time, SOURCE)
    if item.sleep_durations_data is not None:
        collector.add(
            MetricType.SLEEP,
            seconds_to_hours(item.sleep_durations_data.asleep_duration_seconds),
            "hours",
        )
    return collector.records


def _workout_item(user_id: str, item: TerraWorkoutItem) -> WorkoutRecord:
    start = item.metadata.start_time
    end = item.metadata.end_time
    duration_min = seconds_to_minutes((end - start).total_seconds()) if end is not None and end >= start else None

    meta = {
        "source": SOURCE,
        "provider_workout_id": item.metadata.summary_id,
        "calories": item.calories_data.total_burned_calories if item.calories_data else None,
        "distance": item.distance_data.distance_meters if item.distance_data else None,
    }
    return WorkoutRecord(
        user_id=user_id,
        timestamp=start,
        activity_type=item.name or "Unknown",
        duration_min=duration_min,
        meta={k: v for k, v in meta.items() if v is not None},
    )


def normalize_activity(event: TerraActivityEvent) -> List[MetricRecord]:
    user_id = event.user.resolved_user_id
    return [r for item in event.data for r in _activity_item(user_id, item)]


def normalize_body(event: TerraBodyEvent) -> List[MetricRecord]:
    user_id = event.user.resolved_user_id
    return [r for item in event.data for r in _body_item(user_id, item)]


def normalize_sleep(event: TerraSleepEvent) -> List[MetricRecord]:
    user_id = event.user.resolved_user_id
    return [r for item in event.data for r in _sleep_item(user_id, item)]


def normalize_workouts(event: TerraWorkoutEvent) -> List[WorkoutRecord]:
    user_id = event.user.resolved_user_id
    return [_workout_item(user_id, item) for item in event.data]
