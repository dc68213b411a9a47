"""
Webhook Router

Inbound deliveries from Vital, Terra and Stripe.

Each endpoint verifies the signature over the raw body before anything is
parsed, then hands the payload to the provider's dispatch table. Status
codes tell the vendor whether to redeliver: 2xx means "stored or
deliberately ignored", 401/400 are terminal, 500 asks for a retry.
"""

from typing import Any, Dict, Optional
import json
import logging

import stripe
from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.config import settings
from core.database import get_db
from core.logging import log_context
from core.exceptions import (
    WebhookAuthenticationError,
    WebhookError,
    WebhookPayloadError,
    WebhookPersistenceError,
)
from services.stripe_service import StripeService, get_stripe_service, process_stripe_event
from services.terra_webhook import terra_dispatcher
from services.vital_webhook import vital_dispatcher
from services.webhook_dispatcher import DispatchResult, WebhookDispatcher
from services.webhook_signature import verify_signature

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/webhooks", tags=["webhooks"])


def _parse_json(body: bytes) -> Any:
    try:
        return json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise WebhookPayloadError("Invalid JSON")


def _verify(provider: str, body: bytes, signature: Optional[str], secret: Optional[str]) -> None:
    if not signature:
        logger.warning(f"{provider} webhook request missing signature header - rejecting")
        raise WebhookAuthenticationError("Missing signature")
    if not verify_signature(
        body,
        signature,
        secret,
        provider=provider,
        allow_unconfigured=settings.allow_unsigned_webhooks,
    ):
        logger.warning(f"Invalid {provider} webhook signature - rejecting")
        raise WebhookAuthenticationError("Invalid signature")


def _ingest(dispatcher: WebhookDispatcher, body: bytes, signature: Optional[str], secret: Optional[str], db: Session) -> DispatchResult:
    """Verify, parse and dispatch one delivery; raises a WebhookError on any failure."""
    with log_context(provider=dispatcher.provider):
        _verify(dispatcher.provider, body, signature, secret)
        payload = _parse_json(body)
        event_type = payload.get(dispatcher.event_type_field) if isinstance(payload, dict) else None
        with log_context(event_type=event_type):
            return _dispatch(dispatcher, payload, db)


def _dispatch(dispatcher: WebhookDispatcher, payload: Any, db: Session) -> DispatchResult:
    try:
        result = dispatcher.dispatch(payload, db)
    except WebhookError:
        raise
    except SQLAlchemyError as e:
        logger.error(f"Database error processing {dispatcher.provider} webhook: {e}")
        raise WebhookPersistenceError()
    except Exception as e:
        logger.exception(f"Error processing {dispatcher.provider} webhook: {e}")
        raise WebhookPersistenceError()

    logger.info(
        f"{dispatcher.provider} webhook processed: {result.event_type}",
        extra={"extra_fields": result.to_dict()},
    )

    if result.write.failed:
        raise WebhookPersistenceError(failed=result.write.failed)
    return result


@router.post("/vital")
async def vital_webhook(
    request: Request,
    x_vital_signature: Optional[str] = Header(None, alias="x-vital-signature"),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    body = await request.body()
    _ingest(vital_dispatcher, body, x_vital_signature, settings.VITAL_WEBHOOK_SECRET, db)
    return {"received": True}


@router.post("/terra")
async def terra_webhook(
    request: Request,
    terra_signature: Optional[str] = Header(None, alias="terra-signature"),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    body = await request.body()
    _ingest(terra_dispatcher, body, terra_signature, settings.TERRA_SIGNING_SECRET, db)
    return {"success": True}


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="stripe-signature"),
    service: StripeService = Depends(get_stripe_service),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """
    Stripe webhook endpoint.

    Verifies signature and processes events idempotently.
    """
    if not stripe_signature:
        raise WebhookAuthenticationError("Missing Stripe-Signature header")

    body = await request.body()
    try:
        service.construct_event(payload=body, sig_header=stripe_signature)
    except (ValueError, stripe.SignatureVerificationError):
        logger.warning("Invalid Stripe webhook signature - rejecting")
        raise WebhookAuthenticationError("Invalid webhook signature")

    # The verified bytes are the event; handlers read plain dicts.
    payload = _parse_json(body)
    if not isinstance(payload, dict):
        raise WebhookPayloadError("Payload must be a JSON object")

    with log_context(provider="stripe", event_type=payload.get("type")):
        try:
            result = process_stripe_event(db, payload=payload, service=service)
        except WebhookError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Database error processing stripe webhook: {e}")
            raise WebhookPersistenceError()
        except Exception as e:
            logger.exception(f"Error processing stripe webhook: {e}")
            raise WebhookPersistenceError()

        logger.info(f"stripe webhook processed: {payload.get('type')}", extra={"extra_fields": result})
    return {"received": True}
