"""
Tests for event-type dispatch.
"""
import pytest

from core.exceptions import WebhookPayloadError
from models import Metric
from schemas import VitalSleepEvent
from services.ingestion_writer import WriteResult
from services.terra_webhook import terra_dispatcher
from services.vital_webhook import vital_dispatcher
from services.webhook_dispatcher import WebhookDispatcher


def _dispatcher():
    dispatcher = WebhookDispatcher("test", event_type_field="kind")
    calls = []

    @dispatcher.on("a", "b")
    def handle(payload, db):
        calls.append(payload["kind"])
        return WriteResult(created=1)

    dispatcher.ignore("quiet")
    return dispatcher, calls


def test_routes_each_registered_type_to_handler():
    dispatcher, calls = _dispatcher()

    result = dispatcher.dispatch({"kind": "b"}, db=None)

    assert calls == ["b"]
    assert result.handled is True
    assert result.to_dict() == {"provider": "test", "event_type": "b", "handled": True, "created": 1, "duplicates": 0, "failed": 0}


@pytest.mark.parametrize("kind", ["unknown.event", "quiet"])
def test_unknown_and_ignored_types_are_acknowledged_without_handler(kind):
    dispatcher, calls = _dispatcher()
    result = dispatcher.dispatch({"kind": kind}, db=None)
    assert calls == []
    assert result.handled is False
    assert result.write.created == 0


@pytest.mark.parametrize("payload", [[], "text", {}, {"kind": None}, {"kind": ""}, {"kind": 5}])
def test_missing_or_bad_discriminator_is_payload_error(payload):
    dispatcher, _ = _dispatcher()
    with pytest.raises(WebhookPayloadError):
        dispatcher.dispatch(payload, db=None)


def test_handler_validation_error_becomes_payload_error():
    dispatcher = WebhookDispatcher("test", event_type_field="event_type")

    @dispatcher.on("sleep")
    def handle(payload, db):
        VitalSleepEvent.model_validate(payload)

    with pytest.raises(WebhookPayloadError) as exc:
        dispatcher.dispatch({"event_type": "sleep", "user_id": "u1"}, db=None)
    assert exc.value.status_code == 400
    assert exc.value.detail == "Invalid sleep payload"


def test_handler_returning_none_counts_nothing():
    dispatcher = WebhookDispatcher("test", event_type_field="t")
    dispatcher.on("x")(lambda payload, db: None)
    assert dispatcher.dispatch({"t": "x"}, db=None).write.to_dict() == {"created": 0, "duplicates": 0, "failed": 0}


def test_vital_dispatch_table():
    assert set(vital_dispatcher.event_types) == {
        "daily.data.sleep.created",
        "daily.data.sleep.updated",
        "daily.data.activity.created",
        "daily.data.activity.updated",
        "daily.data.body.created",
        "daily.data.body.updated",
        "daily.workouts.created",
        "daily.workouts.updated",
        "daily.data.workout_distance.created",
        "daily.data.workout_duration.created",
        "daily.data.workout_stream.created",
        "user.connected",
        "user.disconnected",
    }


def test_terra_dispatch_table():
    assert set(terra_dispatcher.event_types) == {"auth", "deauth", "activity", "body", "sleep", "workout"}


def test_terra_nutrition_is_acknowledged_and_not_stored(db_session):
    result = terra_dispatcher.dispatch(
        {"type": "nutrition", "user": {"user_id": "t1"}, "data": [{"metadata": {"start_time": "2024-01-15"}}]},
        db_session,
    )
    assert result.handled is False
    assert db_session.query(Metric).count() == 0
