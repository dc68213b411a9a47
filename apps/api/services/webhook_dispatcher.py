"""
Webhook Event Dispatcher

Routes a parsed webhook payload to the handler registered for its event type.

Usage:
    vital_dispatcher = WebhookDispatcher("vital", event_type_field="event_type")

    @vital_dispatcher.on("daily.data.sleep.created", "daily.data.sleep.updated")
    def handle_sleep(payload, db):
        ...

    vital_dispatcher.dispatch(payload, db)

Unknown (or deliberately ignored) event types are acknowledged and logged,
never treated as errors.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional
import logging

from pydantic import ValidationError
from sqlalchemy.orm import Session

from core.exceptions import WebhookPayloadError
from services.ingestion_writer import WriteResult

logger = logging.getLogger(__name__)

Handler = Callable[[Dict[str, Any], Session], Optional[WriteResult]]


@dataclass
class DispatchResult:
    provider: str
    event_type: str
    handled: bool
    write: WriteResult = field(default_factory=WriteResult)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider,
            "event_type": self.event_type,
            "handled": self.handled,
            **self.write.to_dict(),
        }


class WebhookDispatcher:
    """Event-type → handler table for one provider."""

    def __init__(self, provider: str, event_type_field: str):
        self.provider = provider
        self.event_type_field = event_type_field
        self._handlers: Dict[str, Handler] = {}
        self._ignored: set = set()

    def on(self, *event_types: str) -> Callable[[Handler], Handler]:
        """Decorator registering ``handler`` for each of ``event_types``."""
        def decorator(handler: Handler) -> Handler:
            for event_type in event_types:
                if event_type in self._handlers:
                    logger.warning(f"Overwriting {self.provider} handler for event type: {event_type}")
                self._handlers[event_type] = handler
            return handler
        return decorator

    def ignore(self, *event_types: str) -> None:
        """Event types we receive on purpose but do not process (yet)."""
        self._ignored.update(event_types)

    @property
    def event_types(self) -> List[str]:
        return sorted(self._handlers)

    def event_type_of(self, payload: Any) -> str:
        if not isinstance(payload, dict):
            raise WebhookPayloadError("Payload must be a JSON object")
        event_type = payload.get(self.event_type_field)
        if not isinstance(event_type, str) or not event_type:
            raise WebhookPayloadError(f"Missing '{self.event_type_field}' field")
        return event_type

    def dispatch(self, payload: Any, db: Session) -> DispatchResult:
        event_type = self.event_type_of(payload)
        handler = self._handlers.get(event_type)

        if handler is None:
            if event_type in self._ignored:
                logger.info(f"{self.provider} webhook {event_type} received (not processed)")
            else:
                logger.info(f"Unhandled {self.provider} webhook event type: {event_type}")
            return DispatchResult(provider=self.provider, event_type=event_type, handled=False)

        try:
            write = handler(payload, db)
        except ValidationError as e:
            logger.warning(
                f"Invalid {self.provider} {event_type} payload: {e.error_count()} validation error(s)",
                extra={"extra_fields": {"errors": e.errors(include_url=False, include_context=False, include_input=False)}},
            )
            raise WebhookPayloadError(f"Invalid {event_type} payload")

        return DispatchResult(
            provider=self.provider,
            event_type=event_type,
            handled=True,
            write=write or WriteResult(),
        )
