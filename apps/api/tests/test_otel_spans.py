from __future__ import annotations

from collections.abc import Generator
from datetime import date

import pytest
from fastapi.testclient import TestClient
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from nexus.api.dependencies import get_runtime
from nexus.core.auth import create_access_token
from nexus.core.config import get_settings
from nexus.main import app
from nexus.otel import setup_inmemory_otel
from nexus.platform.tenancy.errors import PersistenceError
from nexus.platform.tenancy.storage import InMemoryStorageBackend
from nexus.platform.tenancy.store import EntityStore, StoreSnapshot
from nexus.records import Company, EntityKind, Record, User
from nexus.runtime import Runtime


class BrokenStorage(InMemoryStorageBackend):
    async def save(self, collection: str, record: Record) -> None:
        raise PersistenceError(collection, "save", "connection reset")


@pytest.fixture(autouse=True)
def setup_env() -> Generator[None, None, None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def span_exporter() -> InMemorySpanExporter:
    exporter = setup_inmemory_otel("nexus-api")
    exporter.clear()
    return exporter


def _snapshot() -> StoreSnapshot:
    return StoreSnapshot(
        companies=(Company(id="comp-1", name="Acme", plan="Business", subscription_due_date=date(2030, 1, 1)),),
        collections={
            EntityKind.USERS: (User(id="user-1", tenant_id="comp-1", name="Ana", email="ana@acme.io", role="Admin"),),
        },
    )


@pytest.fixture()
def client() -> Generator[TestClient, None, None]:
    snapshot = _snapshot()
    runtime = Runtime(store=EntityStore(snapshot), storage=InMemoryStorageBackend(snapshot))
    app.dependency_overrides[get_runtime] = lambda: runtime
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _auth() -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token('user-1')}"}


def test_mutation_span_carries_tenant_and_correlation(client: TestClient, span_exporter: InMemorySpanExporter) -> None:
    response = client.post(
        "/api/records/leads",
        json={"name": "Traced"},
        headers={**_auth(), "X-Correlation-Id": "otel-corr-1"},
    )
    assert response.status_code == 201

    spans = span_exporter.get_finished_spans()
    mutation_spans = [span for span in spans if span.name == "tenancy.leads.create"]
    assert mutation_spans
    span = mutation_spans[-1]
    assert span.attributes.get("tenancy.tenant_id") == "comp-1"
    assert span.attributes.get("tenancy.actor_id") == "user-1"
    assert span.attributes.get("tenancy.record_id") == response.json()["id"]
    assert span.attributes.get("correlation_id") == "otel-corr-1"


def test_persistence_failure_marks_span_as_error(span_exporter: InMemorySpanExporter) -> None:
    snapshot = _snapshot()
    runtime = Runtime(store=EntityStore(snapshot), storage=BrokenStorage(snapshot))
    app.dependency_overrides[get_runtime] = lambda: runtime
    try:
        with TestClient(app) as test_client:
            response = test_client.post("/api/records/clients", json={"name": "Lost"}, headers=_auth())
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 503
    assert response.json()["code"] == "persistence_failed"
    assert runtime.store.records(EntityKind.CLIENTS) == ()

    failed = [span for span in span_exporter.get_finished_spans() if span.name == "tenancy.clients.create"]
    assert failed
    assert not failed[-1].status.is_ok
