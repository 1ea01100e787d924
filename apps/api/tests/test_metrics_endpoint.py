from __future__ import annotations

from collections.abc import Generator
from datetime import date

import pytest
from fastapi.testclient import TestClient

from nexus.api.dependencies import get_runtime
from nexus.core.auth import create_access_token
from nexus.core.config import get_settings
from nexus.main import app
from nexus.platform.tenancy.storage import InMemoryStorageBackend
from nexus.platform.tenancy.store import EntityStore, StoreSnapshot
from nexus.records import Company, EntityKind, User
from nexus.runtime import Runtime


@pytest.fixture(autouse=True)
def configure_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    monkeypatch.setenv("METRICS_ENABLED", "true")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def client() -> Generator[TestClient, None, None]:
    snapshot = StoreSnapshot(
        companies=(Company(id="comp-1", name="Acme", plan="Starter", subscription_due_date=date(2030, 1, 1)),),
        collections={
            EntityKind.USERS: (User(id="metrics-user", tenant_id="comp-1", name="Ana", email="ana@acme.io", role="Admin"),),
        },
    )
    runtime = Runtime(store=EntityStore(snapshot), storage=InMemoryStorageBackend(snapshot))
    app.dependency_overrides[get_runtime] = lambda: runtime
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_metrics_endpoint_exposes_http_and_tenancy_metrics(client: TestClient) -> None:
    headers = {"Authorization": f"Bearer {create_access_token('metrics-user')}"}
    health = client.get("/health")
    assert health.status_code == 200

    created = client.post("/api/records/clients", json={"name": "Metered"}, headers=headers)
    assert created.status_code == 201
    denied = client.get("/api/entitlements/advanced_reporting", headers=headers)
    assert denied.json()["allowed"] is False

    metrics = client.get("/metrics")
    assert metrics.status_code == 200
    body = metrics.text

    assert "http_requests_total" in body
    assert "http_request_duration_seconds" in body
    assert "tenancy_mutations_total" in body
    assert "tenancy_mutation_duration_seconds" in body
    assert "entitlement_denials_total" in body

    assert 'path="/health"' in body
    assert 'path="/api/records/{collection}"' in body
    assert 'collection="clients"' in body
    assert 'feature="advanced_reporting"' in body


def test_metrics_endpoint_hidden_when_disabled(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("METRICS_ENABLED", "false")
    get_settings.cache_clear()

    assert client.get("/metrics").status_code == 404
