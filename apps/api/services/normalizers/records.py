"""
Unified record types produced by the field normalizers.

These are plain dataclasses; the ingestion writer turns them into ORM rows.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
import logging
import math

from models import MetricType

logger = logging.getLogger(__name__)


# Inclusive bounds for values we are willing to store. Anything outside is a
# vendor glitch (0 bpm, 400 kg, negative steps) and is dropped.
PLAUSIBLE_RANGES: Dict[MetricType, Tuple[float, float]] = {
    MetricType.SLEEP: (0.0, 24.0),  # hours
    MetricType.SLEEP_QUALITY: (1.0, 5.0),  # score
    MetricType.HRV: (1.0, 300.0),  # ms
    MetricType.RHR: (20.0, 220.0),  # bpm
    MetricType.WEIGHT: (20.0, 350.0),  # kg
    MetricType.STEPS: (0.0, 200_000.0),
    MetricType.CALORIES: (0.0, 20_000.0),  # kcal
    MetricType.HYDRATION: (0.0, 15.0),  # liters
    MetricType.MOOD: (1.0, 5.0),
    MetricType.STRESS: (1.0, 5.0),
    MetricType.SORENESS: (1.0, 5.0),
    MetricType.HEART_RATE: (20.0, 250.0),  # bpm
    MetricType.BODY_FAT: (1.0, 75.0),  # %
    MetricType.ACTIVE_MINUTES: (0.0, 1440.0),
    MetricType.TEMP: (-60.0, 60.0),  # °C
    MetricType.PRESSURE: (850.0, 1100.0),  # hPa
}


def is_plausible(metric_type: MetricType, value: float) -> bool:
    if value is None or not math.isfinite(value):
        return False
    low, high = PLAUSIBLE_RANGES[metric_type]
    return low <= value <= high


@dataclass
class MetricRecord:
    user_id: str
    timestamp: datetime
    type: MetricType
    value: float
    unit: str
    meta: Dict[str, Any] = field(default_factory=dict)

    @property
    def natural_key(self) -> Tuple[str, str, datetime]:
        return (self.user_id, self.type.value, self.timestamp)


@dataclass
class WorkoutSet:
    exercise: str
    reps: float
    weight: float

    def to_dict(self) -> Dict[str, Any]:
        return {"exercise": self.exercise, "reps": self.reps, "weight": self.weight}


@dataclass
class WorkoutRecord:
    user_id: str
    timestamp: datetime
    activity_type: str
    duration_min: Optional[int] = None
    sets: Optional[List[WorkoutSet]] = None
    volume_load: Optional[float] = None
    rpe: Optional[float] = None
    meta: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.rpe is not None and not 1 <= self.rpe <= 10:
            raise ValueError(f"rpe must be between 1 and 10, got {self.rpe}")
        # volume load is always derived, never trusted from input
        if self.sets:
            self.volume_load = sum(s.reps * s.weight for s in self.sets)
        else:
            self.volume_load = None

    @property
    def natural_key(self) -> Tuple[str, str, datetime]:
        return (self.user_id, self.activity_type, self.timestamp)


class MetricCollector:
    """
    Accumulates metrics for one (user, timestamp) pair.

    Absent values are skipped, never stored as zero; implausible values are
    logged and skipped.
    """

    def __init__(self, user_id: str, timestamp: datetime, source: str):
        self.user_id = user_id
        self.timestamp = timestamp
        self.source = source
        self.records: List[MetricRecord] = []

    def add(self, metric_type: MetricType, value: Optional[float], unit: str, **extra: Any) -> None:
        if value is None:
            return
        value = float(value)
        if not is_plausible(metric_type, value):
            logger.warning(
                f"Dropping implausible {metric_type.value} value {value} {unit} "
                f"for user {self.user_id} from {self.source}"
            )
            return
        meta = {"source": self.source}
        meta.update({k: v for k, v in extra.items() if v is not None})
        self.records.append(
            MetricRecord(
                user_id=self.user_id,
                timestamp=self.timestamp,
                type=metric_type,
                value=value,
                unit=unit,
                meta=meta,
            )
        )
