"""Shared helpers for API tests: auth headers and signed webhook bodies."""
import hashlib
import hmac
import json
import time
from typing import Any, Dict

from core.security import create_access_token
from services.webhook_signature import compute_signature


def auth_headers(user_id: str) -> Dict[str, str]:
    token = create_access_token({"sub": user_id})
    return {"Authorization": f"Bearer {token}"}


def signed(payload: Dict[str, Any], secret: str, header: str) -> Dict[str, Any]:
    """Request kwargs for a webhook body signed over its exact bytes."""
    body = json.dumps(payload).encode("utf-8")
    return {
        "content": body,
        "headers": {header: compute_signature(body, secret), "Content-Type": "application/json"},
    }


def stripe_signed(payload: Dict[str, Any], secret: str) -> Dict[str, Any]:
    """Request kwargs carrying a Stripe-style `t=...,v1=...` signature header."""
    body = json.dumps(payload)
    timestamp = int(time.time())
    v1 = hmac.new(secret.encode("utf-8"), f"{timestamp}.{body}".encode("utf-8"), hashlib.sha256).hexdigest()
    return {
        "content": body.encode("utf-8"),
        "headers": {"stripe-signature": f"t={timestamp},v1={v1}", "Content-Type": "application/json"},
    }
