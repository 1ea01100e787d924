from __future__ import annotations

import contextvars
import json
import logging
from collections.abc import Generator
from datetime import date

import pytest
from fastapi.testclient import TestClient

from nexus import audit, events
from nexus.api.dependencies import get_runtime
from nexus.context import reset_correlation_id, set_active_tenant, set_correlation_id
from nexus.core.auth import create_access_token
from nexus.core.config import get_settings
from nexus.logging import CorrelationIdFilter, JsonLogFormatter
from nexus.main import app
from nexus.platform.tenancy.storage import InMemoryStorageBackend
from nexus.platform.tenancy.store import EntityStore, StoreSnapshot
from nexus.records import Company, EntityKind, User
from nexus.runtime import Runtime


@pytest.fixture(autouse=True)
def clear_stubs() -> Generator[None, None, None]:
    audit.audit_entries.clear()
    events.published_events.clear()
    get_settings.cache_clear()
    yield
    audit.audit_entries.clear()
    events.published_events.clear()
    get_settings.cache_clear()


@pytest.fixture()
def client() -> Generator[TestClient, None, None]:
    snapshot = StoreSnapshot(
        companies=(Company(id="comp-1", name="Acme", plan="Starter", subscription_due_date=date(2030, 1, 1)),),
        collections={
            EntityKind.USERS: (User(id="user-1", tenant_id="comp-1", name="Ana", email="ana@acme.io", role="Admin"),),
        },
    )
    runtime = Runtime(store=EntityStore(snapshot), storage=InMemoryStorageBackend(snapshot))
    app.dependency_overrides[get_runtime] = lambda: runtime
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _auth() -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token('user-1')}"}


def test_logs_include_correlation_id_for_http(client: TestClient, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO)

    response = client.get("/api/records/clients", headers={**_auth(), "X-Correlation-Id": "corr-log-1"})
    assert response.status_code == 200

    records = [record for record in caplog.records if record.name == "nexus.request" and record.getMessage() == "http.request"]
    assert records
    assert any(
        getattr(record, "correlation_id", None) == "corr-log-1"
        and getattr(record, "path", None) == "/api/records/{collection}"
        and getattr(record, "status_code", None) == 200
        for record in records
    )


def test_mutation_logs_carry_tenant_and_collection(client: TestClient, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO)

    response = client.post(
        "/api/records/clients",
        json={"name": "Logged"},
        headers={**_auth(), "X-Correlation-Id": "corr-log-2"},
    )
    assert response.status_code == 201

    created = [record for record in caplog.records if record.name == "nexus.tenancy" and record.getMessage() == "record_create"]
    assert created
    assert created[-1].tenant_id == "comp-1"
    assert created[-1].collection == "clients"
    assert created[-1].record_id == response.json()["id"]
    assert created[-1].correlation_id == "corr-log-2"


def test_entitlement_denial_is_logged(client: TestClient, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO)

    response = client.post("/api/records/users", json={"name": "Extra", "email": "extra@acme.io"}, headers=_auth())
    assert response.status_code == 402

    denied = [record for record in caplog.records if record.name == "nexus.entitlements"]
    assert denied
    assert denied[-1].feature == "members"
    assert denied[-1].plan == "Starter"


def test_json_formatter_keeps_known_fields_only() -> None:
    token = set_correlation_id("corr-fmt")
    try:
        record = logging.getLogger("nexus.tenancy").makeRecord(
            "nexus.tenancy",
            logging.INFO,
            __file__,
            1,
            "record_update",
            (),
            None,
            extra={"collection": "leads", "tenant_id": "comp-1", "password": "hidden", "error": "x" * 900},
        )
        record.correlation_id = "corr-fmt"
        payload = json.loads(JsonLogFormatter().format(record))
    finally:
        reset_correlation_id(token)

    assert payload["msg"] == "record_update"
    assert payload["correlation_id"] == "corr-fmt"
    assert payload["fields"]["collection"] == "leads"
    assert payload["fields"]["tenant_id"] == "comp-1"
    assert "password" not in payload["fields"]
    assert len(payload["fields"]["error"]) == 500


def test_active_tenant_stays_inside_its_request_context() -> None:
    log_filter = CorrelationIdFilter()

    def _tenant_of_log_line() -> str | None:
        record = logging.LogRecord("nexus.tenancy", logging.INFO, __file__, 1, "lookup", (), None)
        log_filter.filter(record)
        return record.tenant_id

    def _serve_request() -> str | None:
        set_active_tenant("comp-1")
        return _tenant_of_log_line()

    assert contextvars.copy_context().run(_serve_request) == "comp-1"
    assert _tenant_of_log_line() is None
