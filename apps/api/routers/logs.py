"""
Manual Logs Router

Self-reported check-ins. Each field becomes one metric at the given
timestamp, stored through the same idempotent writer as webhook data, so
re-submitting a check-in does not double count.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from core.auth import get_current_user_id
from core.database import get_db
from models import MetricType
from schemas import DayLogRequest, LogResponse, MorningLogRequest
from services.ingestion_writer import WriteResult, write_metrics
from services.normalizers import MetricCollector

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/logs", tags=["logs"])

SOURCE = "manual"


def _store(db: Session, collector: MetricCollector, kind: str) -> LogResponse:
    result: WriteResult = write_metrics(db, collector.records)
    if result.failed:
        logger.error(f"{kind} log for user {collector.user_id}: {result.failed} metric(s) failed to store")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to log {kind} report",
        )
    return LogResponse(success=True, count=result.created, duplicates=result.duplicates)


@router.post("/morning", response_model=LogResponse)
def log_morning(
    request: MorningLogRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    collector = MetricCollector(user_id, request.timestamp, SOURCE)
    collector.add(MetricType.MOOD, request.mood, "score")
    collector.add(MetricType.STRESS, request.stress, "score")
    collector.add(MetricType.SORENESS, request.soreness, "score")
    collector.add(MetricType.SLEEP_QUALITY, request.sleep_quality, "score")
    collector.add(MetricType.SLEEP, request.sleep_hours, "hours")
    return _store(db, collector, "morning")


@router.post("/day", response_model=LogResponse)
def log_day(
    request: DayLogRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    collector = MetricCollector(user_id, request.timestamp, SOURCE)
    collector.add(MetricType.HYDRATION, request.hydration, "liters")
    collector.add(MetricType.STEPS, request.steps, "steps")
    collector.add(MetricType.TEMP, request.temperature, "°C")
    collector.add(MetricType.PRESSURE, request.pressure, "hPa")
    return _store(db, collector, "day")
