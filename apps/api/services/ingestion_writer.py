"""
Idempotent writer for normalized records.

Each record is an independent insert committed on its own: there is no batch
transaction, so a failure partway through leaves earlier records committed.
A record whose natural key already exists is skipped, not an error. Concurrent
redeliveries of the same event race on the unique constraints; the loser gets
an IntegrityError, which is rolled back and counted as a duplicate.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, Optional
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from models import Integration, IntegrationProvider, IntegrationStatus, Metric, Workout
from services.normalizers.records import MetricRecord, WorkoutRecord

logger = logging.getLogger(__name__)


@dataclass
class WriteResult:
    created: int = 0
    duplicates: int = 0
    failed: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "created": self.created,
            "duplicates": self.duplicates,
            "failed": self.failed,
        }


def _metric_exists(db: Session, record: MetricRecord) -> bool:
    return (
        db.query(Metric.id)
        .filter(
            Metric.user_id == record.user_id,
            Metric.type == record.type.value,
            Metric.timestamp == record.timestamp,
        )
        .first()
        is not None
    )


def _workout_exists(db: Session, record: WorkoutRecord) -> bool:
    return (
        db.query(Workout.id)
        .filter(
            Workout.user_id == record.user_id,
            Workout.activity_type == record.activity_type,
            Workout.timestamp == record.timestamp,
        )
        .first()
        is not None
    )


def _insert_one(db: Session, row: Any, key: tuple, result: WriteResult) -> None:
    db.add(row)
    try:
        db.commit()
        result.created += 1
    except IntegrityError:
        # Lost the race against a concurrent delivery of the same event
        db.rollback()
        result.duplicates += 1
    except SQLAlchemyError as e:
        db.rollback()
        result.failed += 1
        logger.error(f"Failed to store record {key}: {e}")


def write_metrics(db: Session, records: Iterable[MetricRecord]) -> WriteResult:
    result = WriteResult()
    for record in records:
        if _metric_exists(db, record):
            result.duplicates += 1
            continue
        row = Metric(
            user_id=record.user_id,
            timestamp=record.timestamp,
            type=record.type.value,
            value=record.value,
            unit=record.unit,
            meta=record.meta,
        )
        _insert_one(db, row, record.natural_key, result)

    if result.created or result.duplicates or result.failed:
        logger.info(
            f"Stored metrics: created={result.created} duplicates={result.duplicates} failed={result.failed}"
        )
    return result


def write_workouts(db: Session, records: Iterable[WorkoutRecord]) -> WriteResult:
    result = WriteResult()
    for record in records:
        if _workout_exists(db, record):
            result.duplicates += 1
            continue
        row = Workout(
            user_id=record.user_id,
            timestamp=record.timestamp,
            activity_type=record.activity_type,
            duration_min=record.duration_min,
            sets=[s.to_dict() for s in record.sets] if record.sets else None,
            volume_load=record.volume_load,
            rpe=record.rpe,
            meta=record.meta,
        )
        _insert_one(db, row, record.natural_key, result)

    if result.created or result.duplicates or result.failed:
        logger.info(
            f"Stored workouts: created={result.created} duplicates={result.duplicates} failed={result.failed}"
        )
    return result


def find_integration(db: Session, *, user_id: str, provider: IntegrationProvider) -> Optional[Integration]:
    return (
        db.query(Integration)
        .filter(Integration.user_id == user_id, Integration.provider == provider.value)
        .first()
    )


def upsert_integration(
    db: Session,
    *,
    user_id: str,
    provider: IntegrationProvider,
    status: IntegrationStatus,
    provider_user_id: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
    connected_at: Optional[datetime] = None,
) -> Integration:
    """Create or update the single integration row for (user_id, provider)."""
    integration = find_integration(db, user_id=user_id, provider=provider)

    if integration is None:
        integration = Integration(
            user_id=user_id,
            provider=provider.value,
            provider_user_id=provider_user_id,
            status=status.value,
            meta=metadata or {},
        )
        if connected_at is not None:
            integration.connected_at = connected_at
        db.add(integration)
        try:
            db.commit()
            return integration
        except IntegrityError:
            # A concurrent delivery created it first; fall through to update
            db.rollback()
            integration = find_integration(db, user_id=user_id, provider=provider)
            if integration is None:
                raise

    integration.status = status.value
    if provider_user_id is not None:
        integration.provider_user_id = provider_user_id
    if metadata is not None:
        integration.meta = metadata
    if connected_at is not None:
        integration.connected_at = connected_at
    db.add(integration)
    db.commit()
    return integration


def mark_integration_disconnected(
    db: Session,
    *,
    user_id: str,
    provider: IntegrationProvider,
    provider_user_id: Optional[str] = None,
) -> int:
    """Flip matching integrations to DISCONNECTED. Returns the number of rows updated."""
    query = db.query(Integration).filter(
        Integration.user_id == user_id,
        Integration.provider == provider.value,
    )
    if provider_user_id is not None:
        query = query.filter(Integration.provider_user_id == provider_user_id)

    updated = query.update(
        {Integration.status: IntegrationStatus.DISCONNECTED.value},
        synchronize_session=False,
    )
    db.commit()
    return updated
