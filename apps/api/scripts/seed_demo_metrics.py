#!/usr/bin/env python3
"""
Seed a demo user with realistic daily metrics and workouts.

Writes through the idempotent ingestion writer, so re-running for the same
user and date range is a no-op.

Run: python scripts/seed_demo_metrics.py demo-user --days 90
"""
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple
import random

from models import MetricType
from services.normalizers import MetricCollector, MetricRecord, WorkoutRecord, WorkoutSet, estimate_calories_from_steps

SOURCE = "seed"

STRENGTH_SESSION = [
    ("Squat", 5, 100.0),
    ("Bench Press", 5, 80.0),
    ("Deadlift", 5, 120.0),
]


def _vary(rng: random.Random, base: float, variance: float) -> float:
    return base + (rng.random() - 0.5) * variance * 2


def build_demo_records(
    user_id: str,
    days: int,
    end: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> Tuple[List[MetricRecord], List[WorkoutRecord]]:
    """Daily metrics for ``days`` days ending at ``end`` (midnight UTC), weight trending down."""
    rng = rng or random.Random(42)
    end = (end or datetime.now(timezone.utc)).replace(hour=0, minute=0, second=0, microsecond=0)

    start_weight, target_weight = 85.0, 82.5
    metrics: List[MetricRecord] = []
    workouts: List[WorkoutRecord] = []

    for i in range(days, -1, -1):
        day = end - timedelta(days=i)
        progress = (days - i) / days if days else 1.0
        weekend = day.weekday() >= 5

        steps = round(_vary(rng, 7000 if weekend else 9500, 2500))
        collector = MetricCollector(user_id, day, SOURCE)
        collector.add(MetricType.WEIGHT, round(_vary(rng, start_weight - (start_weight - target_weight) * progress, 0.4), 1), "kg")
        collector.add(MetricType.SLEEP, round(_vary(rng, 7.5 if weekend else 7.0, 0.8), 2), "hours")
        collector.add(MetricType.STEPS, steps, "steps")
        collector.add(MetricType.CALORIES, round(estimate_calories_from_steps(steps)), "kcal", estimated=True)
        collector.add(MetricType.RHR, round(_vary(rng, 62 - 4 * progress, 3)), "bpm")
        collector.add(MetricType.HRV, round(_vary(rng, 45 + 10 * progress, 8)), "ms")
        collector.add(MetricType.HYDRATION, round(_vary(rng, 2.5, 0.7), 1), "liters")
        collector.add(MetricType.MOOD, rng.randint(3, 5), "score")
        collector.add(MetricType.STRESS, rng.randint(1, 4), "score")
        metrics.extend(collector.records)

        if day.weekday() in (0, 2, 4):
            workouts.append(
                WorkoutRecord(
                    user_id=user_id,
                    timestamp=day + timedelta(hours=18),
                    activity_type="Strength Training",
                    duration_min=rng.randint(50, 75),
                    sets=[WorkoutSet(exercise=name, reps=reps, weight=weight + 10 * progress) for name, reps, weight in STRENGTH_SESSION],
                    rpe=float(rng.randint(6, 9)),
                    meta={"source": SOURCE},
                )
            )
        elif day.weekday() in (1, 3):
            workouts.append(
                WorkoutRecord(
                    user_id=user_id,
                    timestamp=day + timedelta(hours=7),
                    activity_type="Running",
                    duration_min=rng.randint(25, 45),
                    rpe=float(rng.randint(5, 8)),
                    meta={"source": SOURCE},
                )
            )

    return metrics, workouts


def main():
    import argparse

    parser = argparse.ArgumentParser()
    parser.add_argument("user_id", type=str, help="user id to seed")
    parser.add_argument("--days", type=int, default=90, help="number of days of history")
    args = parser.parse_args()

    from core.database import get_db_sync
    from services.ingestion_writer import write_metrics, write_workouts

    metrics, workouts = build_demo_records(args.user_id, args.days)
    db = get_db_sync()
    try:
        m = write_metrics(db, metrics)
        w = write_workouts(db, workouts)
    finally:
        db.close()

    print(f"Metrics: created={m.created} duplicates={m.duplicates} failed={m.failed}")
    print(f"Workouts: created={w.created} duplicates={w.duplicates} failed={w.failed}")


if __name__ == "__main__":
    main()
