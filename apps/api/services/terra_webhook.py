"""
Terra Webhook Service

Dispatch table and handlers for Terra webhook events.

Events:
- auth: user successfully connected a device through the Terra widget
- deauth: user disconnected
- activity / body / sleep: daily summaries -> metrics
- workout: workout summaries -> workouts
- nutrition: acknowledged, not processed
"""

from datetime import datetime, timezone
from typing import Any, Dict
import logging

from sqlalchemy.orm import Session

from models import IntegrationProvider, IntegrationStatus
from schemas import (
    TerraActivityEvent,
    TerraAuthEvent,
    TerraBodyEvent,
    TerraDeauthEvent,
    TerraSleepEvent,
    TerraWorkoutEvent,
)
from services.ingestion_writer import (
    WriteResult,
    mark_integration_disconnected,
    upsert_integration,
    write_metrics,
    write_workouts,
)
from services.normalizers import terra as normalize
from services.webhook_dispatcher import WebhookDispatcher

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "terra-signature"

terra_dispatcher = WebhookDispatcher("terra", event_type_field="type")
terra_dispatcher.ignore("nutrition")


@terra_dispatcher.on("auth")
def handle_auth(payload: Dict[str, Any], db: Session) -> None:
    event = TerraAuthEvent.model_validate(payload)
    user = event.user

    if event.status != "success":
        logger.warning(
            f"Terra auth not successful: user={user.resolved_user_id} provider={user.provider} status={event.status}"
        )
        return

    upsert_integration(
        db,
        user_id=user.resolved_user_id,
        provider=IntegrationProvider.TERRA,
        status=IntegrationStatus.CONNECTED,
        provider_user_id=user.user_id,
        metadata={"terra_provider": user.provider},
        connected_at=datetime.now(timezone.utc),
    )
    logger.info(f"Terra user authenticated: user={user.resolved_user_id} terra_user={user.user_id} provider={user.provider}")


@terra_dispatcher.on("deauth")
def handle_deauth(payload: Dict[str, Any], db: Session) -> None:
    event = TerraDeauthEvent.model_validate(payload)
    user = event.user
    updated = mark_integration_disconnected(
        db,
        user_id=user.resolved_user_id,
        provider=IntegrationProvider.TERRA,
        provider_user_id=user.user_id,
    )
    if not updated:
        logger.warning(f"Terra deauth for user {user.resolved_user_id} matched no integration")
    else:
        logger.info(f"Terra user deauthenticated: user={user.resolved_user_id} terra_user={user.user_id}")


@terra_dispatcher.on("activity")
def handle_activity(payload: Dict[str, Any], db: Session) -> WriteResult:
    event = TerraActivityEvent.model_validate(payload)
    return write_metrics(db, normalize.normalize_activity(event))


@terra_dispatcher.on("body")
def handle_body(payload: Dict[str, Any], db: Session) -> WriteResult:
    event = TerraBodyEvent.model_validate(payload)
    return write_metrics(db, normalize.normalize_body(event))


@terra_dispatcher.on("sleep")
def handle_sleep(payload: Dict[str, Any], db: Session) -> WriteResult:
    event = TerraSleepEvent.model_validate(payload)
    return write_metrics(db, normalize.normalize_sleep(event))


@terra_dispatcher.on("workout")
def handle_workout(payload: Dict[str, Any], db: Session) -> WriteResult:
    event = TerraWorkoutEvent.model_validate(payload)
    return write_workouts(db, normalize.normalize_workouts(event))
