from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import logging

import stripe
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.config import settings
from core.exceptions import WebhookNotConfiguredError
from models import StripeEvent, Subscription, SubscriptionPlan, SubscriptionStatus
from schemas import StripeCheckoutSession, StripeEventEnvelope, StripeInvoice, StripeSubscriptionObject
from services.webhook_dispatcher import DispatchResult, WebhookDispatcher

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "stripe-signature"


@dataclass(frozen=True)
class StripeConfig:
    secret_key: str
    webhook_secret: str


def _get_stripe_config() -> StripeConfig:
    """
    Load Stripe config from environment via Settings.

    Fail closed: if configuration is missing, the webhook endpoint must not proceed.
    """
    secret_key = settings.STRIPE_SECRET_KEY
    webhook_secret = settings.STRIPE_WEBHOOK_SECRET

    missing = [name for name, val in [("STRIPE_SECRET_KEY", secret_key), ("STRIPE_WEBHOOK_SECRET", webhook_secret)] if not val]
    if missing:
        raise RuntimeError(f"Stripe not configured (missing: {', '.join(missing)})")

    return StripeConfig(secret_key=str(secret_key), webhook_secret=str(webhook_secret))


def _status_for_stripe_status(status: Optional[str]) -> SubscriptionStatus:
    """
    Map Stripe subscription status -> mirrored status.

    Anything other than an active subscription (past_due, unpaid, trialing,
    incomplete) is mirrored as canceled.
    """
    if (status or "").lower() == "active":
        return SubscriptionStatus.ACTIVE
    return SubscriptionStatus.CANCELED


def _plan_from_metadata(metadata: Dict[str, Any]) -> SubscriptionPlan:
    if str(metadata.get("plan") or "").upper() == SubscriptionPlan.FREE_FINDER.value:
        return SubscriptionPlan.FREE_FINDER
    return SubscriptionPlan.MONTHLY


class StripeService:
    """
    Thin wrapper over the stripe library.

    The API key is passed per call; nothing is written to module-level stripe state.
    """

    def __init__(self, config: StripeConfig) -> None:
        self.cfg = config

    def construct_event(self, *, payload: bytes, sig_header: str):
        return stripe.Webhook.construct_event(
            payload=payload,
            sig_header=sig_header,
            secret=self.cfg.webhook_secret,
        )

    def retrieve_subscription(self, subscription_id: str) -> Dict[str, Any]:
        sub = stripe.Subscription.retrieve(subscription_id, api_key=self.cfg.secret_key)
        return {
            "id": getattr(sub, "id", subscription_id),
            "current_period_end": _extract_current_period_end_ts(sub),
        }


def get_stripe_service() -> StripeService:
    """FastAPI dependency; 503 when billing is not configured on this deployment."""
    try:
        return StripeService(_get_stripe_config())
    except RuntimeError as e:
        raise WebhookNotConfiguredError(str(e))


def _maybe_parse_period_end(ts: Any) -> Optional[datetime]:
    try:
        if ts is None:
            return None
        return datetime.fromtimestamp(int(ts), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def _extract_current_period_end_ts(obj: Any) -> Optional[int]:
    """
    Stripe API compatibility:
    - Older API versions: `subscription.current_period_end` (top-level)
    - Newer API versions: billing period fields live on `subscription.items.data[*].current_period_end`
    """
    def _get(o: Any, key: str) -> Any:
        # StripeObject subclasses dict; prefer item access (obj.items is dict.items)
        if isinstance(o, dict):
            return o.get(key)
        return getattr(o, key, None)

    ts = _get(obj, "current_period_end")
    if ts is not None:
        return int(ts)

    items = _get(obj, "items")
    data = _get(items, "data") if items else None

    ends = [int(_get(it, "current_period_end")) for it in (data or []) if _get(it, "current_period_end") is not None]
    return max(ends) if ends else None


def _ensure_subscription_row(db: Session, *, user_id: str) -> Subscription:
    sub = db.query(Subscription).filter(Subscription.user_id == user_id).first()
    if sub:
        return sub
    sub = Subscription(user_id=user_id)
    db.add(sub)
    db.flush()
    return sub


def _find_subscription(db: Session, *, customer_id: Optional[str], subscription_id: Optional[str]) -> Optional[Subscription]:
    sub = None
    if customer_id:
        sub = db.query(Subscription).filter(Subscription.stripe_customer_id == customer_id).first()
    if sub is None and subscription_id:
        sub = db.query(Subscription).filter(Subscription.stripe_subscription_id == subscription_id).first()
    return sub


def build_stripe_dispatcher(service: StripeService) -> WebhookDispatcher:
    """Dispatch table for Stripe events; handlers close over the request's StripeService."""

    def handle_checkout_completed(payload: Dict[str, Any], db: Session) -> None:
        event = StripeEventEnvelope.model_validate(payload)
        session = StripeCheckoutSession.model_validate(event.data.object)
        user_id = session.client_reference_id or session.metadata.get("user_id")
        if not user_id:
            logger.warning(f"Stripe checkout {session.id} has no client_reference_id; cannot match user")
            return

        current_period_end = None
        if session.subscription:
            details = service.retrieve_subscription(session.subscription)
            current_period_end = _maybe_parse_period_end(details.get("current_period_end"))

        plan = _plan_from_metadata(session.metadata)
        sub = _ensure_subscription_row(db, user_id=str(user_id))
        sub.stripe_subscription_id = session.subscription
        sub.stripe_customer_id = session.customer
        sub.status = SubscriptionStatus.ACTIVE.value
        sub.plan = plan.value
        sub.current_period_end = current_period_end
        db.add(sub)
        logger.info(f"Subscription created: user={user_id} subscription={session.subscription} plan={plan.value}")

    def handle_subscription_updated(payload: Dict[str, Any], db: Session) -> None:
        event = StripeEventEnvelope.model_validate(payload)
        obj = StripeSubscriptionObject.model_validate(event.data.object)
        sub = _find_subscription(db, customer_id=obj.customer, subscription_id=obj.id)
        if sub is None:
            logger.warning(f"Subscription not found for update: customer={obj.customer}")
            return

        sub.status = _status_for_stripe_status(obj.status).value
        period_end = _maybe_parse_period_end(_extract_current_period_end_ts(event.data.object))
        if period_end is not None:
            sub.current_period_end = period_end
        db.add(sub)
        logger.info(f"Subscription updated: subscription={obj.id} status={obj.status}")

    def handle_subscription_deleted(payload: Dict[str, Any], db: Session) -> None:
        event = StripeEventEnvelope.model_validate(payload)
        obj = StripeSubscriptionObject.model_validate(event.data.object)
        sub = _find_subscription(db, customer_id=obj.customer, subscription_id=obj.id)
        if sub is None:
            logger.warning(f"Subscription not found for deletion: customer={obj.customer}")
            return

        sub.status = SubscriptionStatus.CANCELED.value
        db.add(sub)
        logger.info(f"Subscription canceled: subscription={obj.id}")

    def handle_invoice_paid(payload: Dict[str, Any], db: Session) -> None:
        invoice = StripeInvoice.model_validate(StripeEventEnvelope.model_validate(payload).data.object)
        logger.info(f"Invoice paid: {invoice.id}")

    def handle_invoice_payment_failed(payload: Dict[str, Any], db: Session) -> None:
        invoice = StripeInvoice.model_validate(StripeEventEnvelope.model_validate(payload).data.object)
        logger.warning(f"Invoice payment failed: {invoice.id} customer={invoice.customer}")

    dispatcher = WebhookDispatcher("stripe", event_type_field="type")
    dispatcher.on("checkout.session.completed")(handle_checkout_completed)
    dispatcher.on("customer.subscription.updated")(handle_subscription_updated)
    dispatcher.on("customer.subscription.deleted")(handle_subscription_deleted)
    dispatcher.on("invoice.paid")(handle_invoice_paid)
    dispatcher.on("invoice.payment_failed")(handle_invoice_payment_failed)
    return dispatcher


def process_stripe_event(db: Session, *, payload: Dict[str, Any], service: StripeService) -> Dict[str, Any]:
    """
    Idempotently process a verified Stripe webhook event.

    The event id is recorded in the same transaction as the subscription
    changes, so a failed attempt leaves no trace and the redelivery is processed.
    """
    event_id = str(payload.get("id") or "")
    event_type = str(payload.get("type") or "")
    if not event_id:
        return {"processed": False, "reason": "missing_event_id"}

    # Idempotency: if event already processed, do nothing.
    if db.query(StripeEvent).filter(StripeEvent.event_id == event_id).first() is not None:
        return {"processed": False, "idempotent": True, "event_id": event_id}

    created = payload.get("created")
    db.add(StripeEvent(event_id=event_id, event_type=event_type or "unknown", stripe_created=int(created) if isinstance(created, int) else None))
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        return {"processed": False, "idempotent": True, "event_id": event_id}

    result: DispatchResult = build_stripe_dispatcher(service).dispatch(payload, db)
    db.commit()
    return {"processed": True, "event_id": event_id, "event_type": event_type, "handled": result.handled}
