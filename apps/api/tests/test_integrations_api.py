"""
Tests for the integrations endpoints.

Vendor clients are replaced through FastAPI dependency overrides; no
network calls are made.
"""
import uuid

import pytest
import requests

from api_test_helpers import auth_headers
from core.config import settings
from core.database import SessionLocal
from core.exceptions import VendorAPIError
from main import app
from models import Integration
from services.terra_client import TerraClient, TerraConfig, get_optional_terra_client, get_terra_client
from services.vital_client import VitalClient, VitalConfig, get_optional_vital_client, get_vital_client


class _FakeVitalClient(VitalClient):
    def __init__(self, fail=False):
        super().__init__(VitalConfig(api_key="vital-key", environment="sandbox"))
        self.fail = fail
        self.disconnected = []

    def create_link_token(self, user_id):
        if self.fail:
            raise VendorAPIError("Vital", 500, "boom")
        return {"link_token": f"tok-{user_id}", "link_web_url": "https://link.tryvital.io"}

    def disconnect_provider(self, user_id, provider):
        self.disconnected.append((user_id, provider))


class _FakeTerraClient(TerraClient):
    def __init__(self):
        super().__init__(TerraConfig(dev_id="dev", api_key="key"))
        self.sessions = []
        self.deauthenticated = []

    def generate_widget_session(self, reference_id, providers=None):
        self.sessions.append((reference_id, providers))
        return {"url": "https://widget.tryterra.co/session/abc", "session_id": "abc", "status": "success"}

    def deauthenticate_user(self, terra_user_id):
        self.deauthenticated.append(terra_user_id)


@pytest.fixture
def vital_client(client):
    fake = _FakeVitalClient()
    app.dependency_overrides[get_vital_client] = lambda: fake
    return fake


@pytest.fixture
def terra_client(client):
    fake = _FakeTerraClient()
    app.dependency_overrides[get_terra_client] = lambda: fake
    return fake


def _seed_integration(user_id="user-1", provider="TERRA", provider_user_id="terra-1", meta=None):
    db = SessionLocal()
    try:
        integration = Integration(user_id=user_id, provider=provider, provider_user_id=provider_user_id, status="CONNECTED", meta=meta or {})
        db.add(integration)
        db.commit()
        return integration.id
    finally:
        db.close()


def test_endpoints_require_auth(client):
    assert client.get("/v1/integrations").status_code == 401
    assert client.post("/v1/integrations/connect", json={"provider": "VITAL"}).status_code == 401
    bad = {"Authorization": "Bearer not-a-jwt"}
    assert client.get("/v1/integrations", headers=bad).status_code == 401


def test_list_returns_only_own_integrations(client):
    _seed_integration(user_id="user-1", meta={"terra_provider": "GARMIN"})
    _seed_integration(user_id="user-2")

    resp = client.get("/v1/integrations", headers=auth_headers("user-1"))

    assert resp.status_code == 200
    body = resp.json()
    assert len(body) == 1
    assert body[0]["provider"] == "TERRA"
    assert body[0]["metadata"] == {"terra_provider": "GARMIN"}


def test_connect_vital_returns_link_url(client, vital_client):
    resp = client.post("/v1/integrations/connect", json={"provider": "VITAL"}, headers=auth_headers("user-1"))

    assert resp.status_code == 200
    assert resp.json() == {
        "auth_url": "https://link.tryvital.io/?token=tok-user-1&env=sandbox",
        "link_token": "tok-user-1",
    }


def test_connect_other_provider_not_implemented(client, vital_client):
    resp = client.post("/v1/integrations/connect", json={"provider": "POLAR"}, headers=auth_headers("user-1"))
    assert resp.status_code == 501


def test_connect_unknown_provider_is_422(client, vital_client):
    resp = client.post("/v1/integrations/connect", json={"provider": "MYSPACE"}, headers=auth_headers("user-1"))
    assert resp.status_code == 422


def test_connect_vital_upstream_failure_is_502(client):
    app.dependency_overrides[get_vital_client] = lambda: _FakeVitalClient(fail=True)
    resp = client.post("/v1/integrations/connect", json={"provider": "VITAL"}, headers=auth_headers("user-1"))
    assert resp.status_code == 502


def test_connect_vital_not_configured_is_503(client):
    resp = client.post("/v1/integrations/connect", json={"provider": "VITAL"}, headers=auth_headers("user-1"))
    assert resp.status_code == 503


def test_terra_connect_returns_widget_session(client, terra_client):
    resp = client.post("/v1/integrations/terra/connect", json={"providers": ["OURA"]}, headers=auth_headers("user-1"))

    assert resp.status_code == 200
    assert resp.json() == {"url": "https://widget.tryterra.co/session/abc", "session_id": "abc"}
    assert terra_client.sessions == [("user-1", ["OURA"])]


def test_terra_connect_default_providers(client, terra_client):
    client.post("/v1/integrations/terra/connect", json={}, headers=auth_headers("user-1"))
    assert terra_client.sessions == [("user-1", None)]


def test_delete_missing_is_404(client):
    resp = client.delete(f"/v1/integrations/{uuid.uuid4()}", headers=auth_headers("user-1"))
    assert resp.status_code == 404


def test_delete_other_users_integration_is_403(client):
    integration_id = _seed_integration(user_id="user-2")
    resp = client.delete(f"/v1/integrations/{integration_id}", headers=auth_headers("user-1"))
    assert resp.status_code == 403

    db = SessionLocal()
    try:
        assert db.query(Integration).count() == 1
    finally:
        db.close()


def test_delete_terra_integration_deauthenticates_and_removes(client):
    fake = _FakeTerraClient()
    app.dependency_overrides[get_optional_terra_client] = lambda: fake
    integration_id = _seed_integration(provider_user_id="terra-9")

    resp = client.delete(f"/v1/integrations/{integration_id}", headers=auth_headers("user-1"))

    assert resp.status_code == 200
    assert fake.deauthenticated == ["terra-9"]
    db = SessionLocal()
    try:
        assert db.query(Integration).count() == 0
    finally:
        db.close()


def test_delete_vital_integration_disconnects_provider(client):
    fake = _FakeVitalClient()
    app.dependency_overrides[get_optional_vital_client] = lambda: fake
    integration_id = _seed_integration(provider="VITAL", provider_user_id=None, meta={"vital_provider": "oura"})

    assert client.delete(f"/v1/integrations/{integration_id}", headers=auth_headers("user-1")).status_code == 200
    assert fake.disconnected == [("user-1", "oura")]


def test_delete_succeeds_when_vendor_unreachable(client):
    class _Unreachable(_FakeTerraClient):
        def deauthenticate_user(self, terra_user_id):
            raise requests.ConnectionError("no route to host")

    app.dependency_overrides[get_optional_terra_client] = lambda: _Unreachable()
    integration_id = _seed_integration()

    assert client.delete(f"/v1/integrations/{integration_id}", headers=auth_headers("user-1")).status_code == 200


def test_delete_succeeds_when_vendor_not_configured(client):
    integration_id = _seed_integration()
    assert client.delete(f"/v1/integrations/{integration_id}", headers=auth_headers("user-1")).status_code == 200


def test_delete_uses_injected_client_not_a_fresh_one(client, monkeypatch):
    # Configured credentials would build a real client; the override must win
    monkeypatch.setattr(settings, "TERRA_DEV_ID", "dev")
    monkeypatch.setattr(settings, "TERRA_API_KEY", "key")
    fake = _FakeTerraClient()
    app.dependency_overrides[get_optional_terra_client] = lambda: fake
    integration_id = _seed_integration(provider_user_id="terra-5")

    assert client.delete(f"/v1/integrations/{integration_id}", headers=auth_headers("user-1")).status_code == 200
    assert fake.deauthenticated == ["terra-5"]


def test_delete_vital_without_provider_skips_vendor_call(client):
    fake = _FakeVitalClient()
    app.dependency_overrides[get_optional_vital_client] = lambda: fake
    integration_id = _seed_integration(provider="VITAL", provider_user_id=None, meta={})

    assert client.delete(f"/v1/integrations/{integration_id}", headers=auth_headers("user-1")).status_code == 200
    assert fake.disconnected == []
