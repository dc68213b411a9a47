"""
Vital Webhook Service

Dispatch table and handlers for Vital webhook events. Daily summaries become
metrics, workouts become workout rows, and connection lifecycle events
maintain the user's VITAL integration.
"""

from typing import Any, Dict
import logging

from sqlalchemy.orm import Session

from models import IntegrationProvider, IntegrationStatus
from schemas import (
    VitalActivityEvent,
    VitalBodyEvent,
    VitalConnectionEvent,
    VitalSleepEvent,
    VitalWorkoutEvent,
)
from services.ingestion_writer import (
    WriteResult,
    mark_integration_disconnected,
    upsert_integration,
    write_metrics,
    write_workouts,
)
from services.normalizers import vital as normalize
from services.webhook_dispatcher import WebhookDispatcher

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-vital-signature"

vital_dispatcher = WebhookDispatcher("vital", event_type_field="event_type")


@vital_dispatcher.on("daily.data.sleep.created", "daily.data.sleep.updated")
def handle_sleep(payload: Dict[str, Any], db: Session) -> WriteResult:
    event = VitalSleepEvent.model_validate(payload)
    return write_metrics(db, normalize.normalize_sleep(event))


@vital_dispatcher.on("daily.data.activity.created", "daily.data.activity.updated")
def handle_activity(payload: Dict[str, Any], db: Session) -> WriteResult:
    event = VitalActivityEvent.model_validate(payload)
    return write_metrics(db, normalize.normalize_activity(event))


@vital_dispatcher.on("daily.data.body.created", "daily.data.body.updated")
def handle_body(payload: Dict[str, Any], db: Session) -> WriteResult:
    event = VitalBodyEvent.model_validate(payload)
    return write_metrics(db, normalize.normalize_body(event))


@vital_dispatcher.on(
    "daily.workouts.created",
    "daily.workouts.updated",
    "daily.data.workout_distance.created",
    "daily.data.workout_duration.created",
    "daily.data.workout_stream.created",
)
def handle_workout(payload: Dict[str, Any], db: Session) -> WriteResult:
    event = VitalWorkoutEvent.model_validate(payload)
    record = normalize.normalize_workout(event)
    if record is None:
        logger.info(f"Vital {event.event_type} for user {event.resolved_user_id} carried no workout")
        return WriteResult()
    return write_workouts(db, [record])


@vital_dispatcher.on("user.connected")
def handle_user_connected(payload: Dict[str, Any], db: Session) -> None:
    event = VitalConnectionEvent.model_validate(payload)
    upsert_integration(
        db,
        user_id=event.resolved_user_id,
        provider=IntegrationProvider.VITAL,
        status=IntegrationStatus.CONNECTED,
        metadata={"vital_provider": event.provider},
    )
    logger.info(f"Vital user connected: user={event.resolved_user_id} provider={event.provider}")


@vital_dispatcher.on("user.disconnected")
def handle_user_disconnected(payload: Dict[str, Any], db: Session) -> None:
    event = VitalConnectionEvent.model_validate(payload)
    updated = mark_integration_disconnected(
        db,
        user_id=event.resolved_user_id,
        provider=IntegrationProvider.VITAL,
    )
    if not updated:
        logger.warning(f"Vital disconnect for user {event.resolved_user_id} matched no integration")
    else:
        logger.info(f"Vital user disconnected: user={event.resolved_user_id}")
