"""
Terra REST client.

Terra authenticates with a developer id plus API key on every request.
Users connect through the hosted widget; the session's reference_id is our
user id, which Terra echoes back on every webhook.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional
import logging

import requests

from core.config import settings
from core.exceptions import ServiceUnavailableError, VendorAPIError

logger = logging.getLogger(__name__)

TERRA_API_BASE = "https://api.tryterra.co/v2"

DEFAULT_PROVIDERS = ["FITBIT", "GARMIN", "OURA", "WHOOP", "STRAVA"]


@dataclass(frozen=True)
class TerraConfig:
    dev_id: str
    api_key: str
    web_app_base_url: str = "http://localhost:3000"
    base_url: str = TERRA_API_BASE
    timeout_s: int = 30


class TerraClient:
    def __init__(self, config: TerraConfig, session: Optional[requests.Session] = None):
        self.cfg = config
        self._owns_session = session is None
        self.session = session or requests.Session()

    def close(self) -> None:
        if self._owns_session:
            self.session.close()

    def _headers(self) -> Dict[str, str]:
        return {
            "dev-id": self.cfg.dev_id,
            "x-api-key": self.cfg.api_key,
            "Content-Type": "application/json",
        }

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
            headers=self._headers(),
            json=json,
            params=params,
            timeout=self.cfg.timeout_s,
        )
        if r.status_code >= 400:
            logger.warning(f"Terra {method} {path} failed: {r.status_code}")
            raise VendorAPIError("Terra", r.status_code, r.text)
        if not r.content:
            return None
        return r.json()

    def generate_widget_session(self, reference_id: str, providers: Optional[List[str]] = None) -> Dict[str, Any]:
        """Returns {url, session_id, ...} for the hosted connect widget."""
        redirect = f"{self.cfg.web_app_base_url}/dashboard/integrations"
        return self._request(
            "POST",
            "/auth/generateWidgetSession",
            json={
                "reference_id": reference_id,
                "providers": list(providers or DEFAULT_PROVIDERS),
                "language": "en",
                "auth_success_redirect_url": f"{redirect}?success=true",
                "auth_failure_redirect_url": f"{redirect}?error=auth_failed",
            },
        )

    def _range(self, path: str, terra_user_id: str, start_date: str, end_date: str) -> Any:
        return self._request(
            "GET",
            path,
            params={"user_id": terra_user_id, "start_date": start_date, "end_date": end_date},
        )

    def get_activity(self, terra_user_id: str, start_date: str, end_date: str) -> Any:
        return self._range("/activity", terra_user_id, start_date, end_date)

    def get_body(self, terra_user_id: str, start_date: str, end_date: str) -> Any:
        return self._range("/body", terra_user_id, start_date, end_date)

    def get_sleep(self, terra_user_id: str, start_date: str, end_date: str) -> Any:
        return self._range("/sleep", terra_user_id, start_date, end_date)

    def get_nutrition(self, terra_user_id: str, start_date: str, end_date: str) -> Any:
        return self._range("/nutrition", terra_user_id, start_date, end_date)

    def deauthenticate_user(self, terra_user_id: str) -> None:
        self._request("DELETE", "/auth/deauthenticateUser", json={"user_id": terra_user_id})


def _configured_client() -> Optional[TerraClient]:
    if not (settings.TERRA_DEV_ID and settings.TERRA_API_KEY):
        return None
    return TerraClient(
        TerraConfig(
            dev_id=settings.TERRA_DEV_ID,
            api_key=settings.TERRA_API_KEY,
            web_app_base_url=settings.WEB_APP_BASE_URL,
            timeout_s=settings.EXTERNAL_API_TIMEOUT,
        )
    )


def get_terra_client() -> Iterator[TerraClient]:
    """FastAPI dependency; 503 when Terra is not configured."""
    client = _configured_client()
    if client is None:
        raise ServiceUnavailableError("Terra is not configured")
    try:
        yield client
    finally:
        client.close()


def get_optional_terra_client() -> Iterator[Optional[TerraClient]]:
    """FastAPI dependency for best-effort calls; yields None when Terra is not configured."""
    client = _configured_client()
    try:
        yield client
    finally:
        if client is not None:
            client.close()
