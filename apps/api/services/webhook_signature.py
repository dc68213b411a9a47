"""
Webhook Signature Verification

Vital and Terra sign each delivery with HMAC-SHA256 over the raw request
body using a per-provider shared secret, hex-encoded in a request header.
The signature must be checked against the exact bytes received, never a
re-serialized JSON document.
"""

import hmac
import hashlib
from typing import Optional, Union
import logging

logger = logging.getLogger(__name__)


def _as_bytes(payload: Union[bytes, str]) -> bytes:
    if isinstance(payload, bytes):
        return payload
    return payload.encode("utf-8")


def compute_signature(payload: Union[bytes, str], secret: str) -> str:
    """Hex-encoded HMAC-SHA256 of ``payload`` keyed with ``secret``."""
    return hmac.new(secret.encode("utf-8"), _as_bytes(payload), hashlib.sha256).hexdigest()


def verify_signature(
    payload: Union[bytes, str],
    signature: Optional[str],
    secret: Optional[str],
    *,
    provider: str = "webhook",
    allow_unconfigured: bool = False,
) -> bool:
    """
    Verify a webhook signature.

    Never raises: malformed input is simply "not valid".

    - Missing signature header is always rejected.
    - Missing secret is a configuration problem, not a bad signature: it is
      logged and the result is ``allow_unconfigured`` (development only).
    """
    if not signature:
        logger.warning(f"{provider} webhook request missing signature header")
        return False

    if not secret:
        logger.warning(f"{provider} webhook secret not configured - skipping verification")
        return allow_unconfigured

    try:
        expected = compute_signature(payload, secret)
        return hmac.compare_digest(signature.encode("utf-8"), expected.encode("ascii"))
    except (TypeError, ValueError, UnicodeError) as e:
        logger.warning(f"{provider} signature verification error: {type(e).__name__}")
        return False
