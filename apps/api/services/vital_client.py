"""
Vital REST client.

Covers the calls the integrations surface needs (link tokens, provider
listing, deregistration) plus the summary/timeseries reads used for
backfills. Webhook ingestion never calls out to Vital.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional
import logging

import requests

from core.config import settings
from core.exceptions import ServiceUnavailableError, VendorAPIError

logger = logging.getLogger(__name__)

VITAL_API_BASE = "https://api.tryvital.io/v2"
VITAL_LINK_BASE = "https://link.tryvital.io"


@dataclass(frozen=True)
class VitalConfig:
    api_key: str
    environment: str = "sandbox"
    base_url: str = VITAL_API_BASE
    timeout_s: int = 30


class VitalClient:
    def __init__(self, config: VitalConfig, session: Optional[requests.Session] = None):
        self.cfg = config
        self._owns_session = session is None
        self.session = session or requests.Session()

    def close(self) -> None:
        if self._owns_session:
            self.session.close()

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        url = f"{self.cfg.base_url}{path}"
        r = self.session.request(
            method,
            url,
            headers={"x-vital-api-key": self.cfg.api_key, "Content-Type": "application/json"},
            json=json,
            params=params,
            timeout=self.cfg.timeout_s,
        )
        if r.status_code >= 400:
            logger.warning(f"Vital {method} {path} failed: {r.status_code}")
            raise VendorAPIError("Vital", r.status_code, r.text)
        if not r.content:
            return None
        return r.json()

    def create_link_token(self, user_id: str) -> Dict[str, Any]:
        """Returns {link_token, link_web_url}."""
        return self._request("POST", "/link/token", json={"user_id": user_id})

    def link_url(self, link_token: str) -> str:
        return f"{VITAL_LINK_BASE}/?token={link_token}&env={self.cfg.environment}"

    def get_user_providers(self, user_id: str) -> List[Dict[str, Any]]:
        data = self._request("GET", f"/user/providers/{user_id}") or {}
        return data.get("providers", [])

    def disconnect_provider(self, user_id: str, provider: str) -> None:
        self._request("DELETE", f"/user/{user_id}/provider/{provider}")

    def get_sleep_data(self, user_id: str, start_date: str, end_date: str) -> Any:
        return self._request("GET", f"/summary/sleep/{user_id}", params={"start_date": start_date, "end_date": end_date})

    def get_activity_data(self, user_id: str, start_date: str, end_date: str) -> Any:
        return self._request("GET", f"/summary/activity/{user_id}", params={"start_date": start_date, "end_date": end_date})

    def get_workouts(self, user_id: str, start_date: str, end_date: str) -> Any:
        return self._request("GET", f"/timeseries/workouts/{user_id}", params={"start_date": start_date, "end_date": end_date})


def _configured_client() -> Optional[VitalClient]:
    if not settings.VITAL_API_KEY:
        return None
    return VitalClient(
        VitalConfig(
            api_key=settings.VITAL_API_KEY,
            environment=settings.VITAL_ENVIRONMENT,
            timeout_s=settings.EXTERNAL_API_TIMEOUT,
        )
    )


def get_vital_client() -> Iterator[VitalClient]:
    """FastAPI dependency; 503 when Vital is not configured."""
    client = _configured_client()
    if client is None:
        raise ServiceUnavailableError("Vital is not configured")
    try:
        yield client
    finally:
        client.close()


def get_optional_vital_client() -> Iterator[Optional[VitalClient]]:
    """FastAPI dependency for best-effort calls; yields None when Vital is not configured."""
    client = _configured_client()
    try:
        yield client
    finally:
        if client is not None:
            client.close()
