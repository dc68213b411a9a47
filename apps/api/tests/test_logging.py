"""
Tests for structured logging and the webhook log context.
"""
import io
import json
import logging

import pytest

from api_test_helpers import signed
from core.logging import ContextFilter, JSONFormatter, log_context


@pytest.fixture
def json_lines():
    """Captures root log output as parsed JSON objects."""
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(JSONFormatter())
    handler.addFilter(ContextFilter())
    root = logging.getLogger()
    root.addHandler(handler)

    def read():
        return [json.loads(line) for line in stream.getvalue().splitlines() if line]

    yield read
    root.removeHandler(handler)


def test_record_carries_active_context(json_lines):
    logger = logging.getLogger("tests.logging")
    with log_context(provider="terra"):
        with log_context(event_type="sleep"):
            logger.warning("inside")
        logger.warning("outer")
    logger.warning("outside")

    inside, outer, outside = json_lines()[-3:]
    assert (inside["provider"], inside["event_type"]) == ("terra", "sleep")
    assert outer["provider"] == "terra"
    assert "event_type" not in outer
    assert "provider" not in outside
    assert outside["message"] == "outside"


def test_extra_fields_override_context(json_lines):
    logger = logging.getLogger("tests.logging")
    with log_context(provider="vital", event_type="daily.data.body.created"):
        logger.warning("processed", extra={"extra_fields": {"event_type": "override", "created": 1}})

    line = json_lines()[-1]
    assert line["provider"] == "vital"
    assert line["event_type"] == "override"
    assert line["created"] == 1


def test_webhook_warnings_are_tagged_with_provider_and_event(client, json_lines):
    payload = {
        "event_type": "daily.data.body.created",
        "user_id": "vital-user-1",
        "data": {"date": "2024-01-15", "body": {"weight_kg": 500}},
    }
    resp = client.post("/v1/webhooks/vital", **signed(payload, "vital-test-secret", "x-vital-signature"))

    assert resp.status_code == 200
    (dropped,) = [line for line in json_lines() if line["message"].startswith("Dropping implausible WEIGHT")]
    assert dropped["provider"] == "vital"
    assert dropped["event_type"] == "daily.data.body.created"
    assert dropped["level"] == "WARNING"
