from __future__ import annotations

from collections.abc import Generator
from datetime import date, datetime, timezone

import pytest
from fastapi.testclient import TestClient

from nexus import audit, events
from nexus.api.dependencies import get_runtime
from nexus.core.auth import create_access_token
from nexus.core.config import get_settings
from nexus.main import app
from nexus.platform.tenancy.storage import InMemoryStorageBackend
from nexus.platform.tenancy.store import EntityStore, StoreSnapshot
from nexus.records import Client, Company, EntityKind, Lead, User
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
def runtime() -> Runtime:
    due = date(2030, 1, 1)
    snapshot = StoreSnapshot(
        companies=(
            Company(id="comp-1", name="Acme", plan="Starter", subscription_due_date=due),
            Company(id="comp-2", name="Globex", plan="Professional", subscription_due_date=due),
            Company(id="comp-platform", name="Nexus Platform", plan="Business", subscription_due_date=due),
        ),
        collections={
            EntityKind.USERS: (
                User(id="user-acme", tenant_id="comp-1", name="Ana", email="ana@acme.io", role="Admin"),
                User(id="user-globex", tenant_id="comp-2", name="Gil", email="gil@globex.io", role="Admin"),
                User(id="user-globex-member", tenant_id="comp-2", name="Mia", email="mia@globex.io"),
                User(id="user-root", tenant_id="comp-platform", name="Root", email="root@nexus.io", role="SuperAdmin"),
                User(id="user-orphan", tenant_id="", name="Otto", email="otto@nowhere.io"),
            ),
            EntityKind.CLIENTS: (
                Client(id="cli-1", tenant_id="comp-1", name="Alpha"),
                Client(id="cli-2", tenant_id="comp-2", name="Beta"),
                Client(id="cli-3", tenant_id="comp-1", name="Gamma"),
            ),
        },
    )
    return Runtime(store=EntityStore(snapshot), storage=InMemoryStorageBackend(snapshot))


@pytest.fixture()
def client(runtime: Runtime) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_runtime] = lambda: runtime
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _auth(user_id: str, impersonate: str | None = None) -> dict[str, str]:
    headers = {"Authorization": f"Bearer {create_access_token(user_id)}"}
    if impersonate:
        headers["X-Impersonate-Tenant"] = impersonate
    return headers


def test_list_is_scoped_to_active_tenant(client: TestClient) -> None:
    response = client.get("/api/records/clients", headers=_auth("user-acme"))

    assert response.status_code == 200
    assert [item["id"] for item in response.json()] == ["cli-1", "cli-3"]


def test_super_admin_sees_all_until_impersonating(client: TestClient) -> None:
    everything = client.get("/api/records/clients", headers=_auth("user-root"))
    impersonated = client.get("/api/records/clients", headers=_auth("user-root", impersonate="comp-2"))

    assert [item["id"] for item in everything.json()] == ["cli-1", "cli-2", "cli-3"]
    assert [item["id"] for item in impersonated.json()] == ["cli-2"]


def test_impersonation_header_rejected_for_non_super_admin(client: TestClient) -> None:
    response = client.get("/api/records/clients", headers=_auth("user-acme", impersonate="comp-2"))

    assert response.status_code == 403


def test_impersonating_unknown_tenant_is_not_found(client: TestClient) -> None:
    response = client.get("/api/records/clients", headers=_auth("user-root", impersonate="comp-gone"))

    assert response.status_code == 404


def test_requests_without_valid_token_are_unauthorized(client: TestClient) -> None:
    assert client.get("/api/records/clients").status_code == 401
    assert client.get("/api/records/clients", headers={"Authorization": "Bearer not-a-jwt"}).status_code == 401
    assert client.get("/api/records/clients", headers=_auth("user-deleted")).status_code == 401


def test_create_stamps_tenant_of_caller(client: TestClient, runtime: Runtime) -> None:
    response = client.post("/api/records/clients", json={"name": "Delta"}, headers=_auth("user-acme"))

    assert response.status_code == 201
    body = response.json()
    assert body["tenant_id"] == "comp-1"
    assert runtime.store.get(EntityKind.CLIENTS, body["id"]) is not None


def test_create_rejects_caller_supplied_tenant(client: TestClient, runtime: Runtime) -> None:
    response = client.post(
        "/api/records/clients",
        json={"name": "Sneaky", "tenant_id": "comp-2"},
        headers=_auth("user-acme"),
    )

    assert response.status_code == 422
    assert response.json()["code"] == "validation_failed"
    assert len(runtime.store.records(EntityKind.CLIENTS)) == 3


def test_create_without_active_tenant_conflicts(client: TestClient) -> None:
    response = client.post(
        "/api/records/clients",
        json={"name": "Nobody"},
        headers={**_auth("user-orphan"), "X-Correlation-Id": "corr-409"},
    )

    assert response.status_code == 409
    body = response.json()
    assert body["code"] == "no_active_tenant"
    assert body["correlation_id"] == "corr-409"


def test_lead_creation_blocked_at_plan_limit(client: TestClient, runtime: Runtime) -> None:
    created_at = datetime(2026, 1, 1, tzinfo=timezone.utc)
    for index in range(50):
        runtime.store.append(Lead(id=f"lead-{index}", tenant_id="comp-1", name=f"Lead {index}", created_at=created_at))

    response = client.post("/api/records/leads", json={"name": "One too many"}, headers=_auth("user-acme"))

    assert response.status_code == 402
    body = response.json()
    assert body["code"] == "entitlement_denied"
    assert "Starter" in body["message"]
    assert body["details"]["required_plan"] == "Professional"
    assert body["details"]["usage"] == 50
    assert len(runtime.store.records(EntityKind.LEADS)) == 50


def test_lead_creation_allowed_below_limit(client: TestClient) -> None:
    response = client.post("/api/records/leads", json={"name": "Prospect"}, headers=_auth("user-acme"))

    assert response.status_code == 201
    assert response.json()["status"] == "New"


def test_update_own_record(client: TestClient, runtime: Runtime) -> None:
    response = client.put(
        "/api/records/clients/cli-1",
        json={"tenant_id": "comp-1", "name": "Alpha Prime"},
        headers=_auth("user-acme"),
    )

    assert response.status_code == 200
    assert runtime.store.get(EntityKind.CLIENTS, "cli-1").name == "Alpha Prime"


def test_update_cannot_move_record_to_other_tenant(client: TestClient) -> None:
    response = client.put(
        "/api/records/clients/cli-1",
        json={"tenant_id": "comp-2", "name": "Alpha"},
        headers=_auth("user-acme"),
    )

    assert response.status_code == 403
    assert response.json()["code"] == "tenant_reassignment_forbidden"


def test_cross_tenant_update_and_delete_are_forbidden(client: TestClient, runtime: Runtime) -> None:
    update = client.put(
        "/api/records/clients/cli-2",
        json={"tenant_id": "comp-2", "name": "Hijacked"},
        headers=_auth("user-acme"),
    )
    delete = client.delete("/api/records/clients/cli-2", headers=_auth("user-acme"))

    assert update.status_code == 403
    assert update.json()["code"] == "cross_tenant_mutation_forbidden"
    assert delete.status_code == 403
    assert runtime.store.get(EntityKind.CLIENTS, "cli-2").name == "Beta"


def test_update_missing_record_is_not_found(client: TestClient) -> None:
    response = client.put(
        "/api/records/clients/cli-missing",
        json={"tenant_id": "comp-1", "name": "Ghost"},
        headers=_auth("user-acme"),
    )

    assert response.status_code == 404
    assert response.json()["code"] == "record_not_found"


def test_delete_own_and_absent_records(client: TestClient, runtime: Runtime) -> None:
    first = client.delete("/api/records/clients/cli-1", headers=_auth("user-acme"))
    again = client.delete("/api/records/clients/cli-1", headers=_auth("user-acme"))

    assert first.json() == {"status": "deleted"}
    assert again.status_code == 200
    assert runtime.store.get(EntityKind.CLIENTS, "cli-1") is None


def test_add_member_returns_temporary_password_once(client: TestClient) -> None:
    response = client.post(
        "/api/records/users",
        json={"name": "Rui", "email": "rui@globex.io"},
        headers=_auth("user-globex"),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["temporary_password"]
    assert body["role"] == "Member"
    assert "password_hash" not in body

    listing = client.get("/api/records/users", headers=_auth("user-globex"))
    assert sorted(item["email"] for item in listing.json()) == ["gil@globex.io", "mia@globex.io", "rui@globex.io"]
    assert all("password_hash" not in item for item in listing.json())


def test_add_member_blocked_by_starter_seat_limit(client: TestClient) -> None:
    response = client.post(
        "/api/records/users",
        json={"name": "Second", "email": "second@acme.io"},
        headers=_auth("user-acme"),
    )

    assert response.status_code == 402
    assert response.json()["details"]["feature"] == "members"


def test_add_member_with_taken_email_conflicts(client: TestClient) -> None:
    response = client.post(
        "/api/records/users",
        json={"name": "Copy", "email": "MIA@globex.io"},
        headers=_auth("user-globex"),
    )

    assert response.status_code == 409
    assert response.json()["code"] == "email_already_registered"


def test_member_cannot_be_escalated_to_super_admin_by_tenant_admin(client: TestClient) -> None:
    response = client.put(
        "/api/records/users/user-globex-member",
        json={"tenant_id": "comp-2", "name": "Mia", "email": "mia@globex.io", "role": "SuperAdmin"},
        headers=_auth("user-globex"),
    )

    assert response.status_code == 403
    assert response.json()["code"] == "super_admin_required"


def test_member_email_change_to_taken_address_conflicts(client: TestClient, runtime: Runtime) -> None:
    response = client.put(
        "/api/records/users/user-globex-member",
        json={"tenant_id": "comp-2", "name": "Mia", "email": "ANA@acme.io"},
        headers=_auth("user-globex"),
    )

    assert response.status_code == 409
    assert response.json()["code"] == "email_already_registered"
    assert runtime.store.get(EntityKind.USERS, "user-globex-member").email == "mia@globex.io"


def test_member_email_case_change_and_rename_are_allowed(client: TestClient, runtime: Runtime) -> None:
    recased = client.put(
        "/api/records/users/user-globex-member",
        json={"tenant_id": "comp-2", "name": "Mia", "email": "Mia@globex.io"},
        headers=_auth("user-globex"),
    )
    moved = client.put(
        "/api/records/users/user-globex-member",
        json={"tenant_id": "comp-2", "name": "Mia", "email": "mia.s@globex.io"},
        headers=_auth("user-globex"),
    )

    assert recased.status_code == 200
    assert moved.status_code == 200
    assert runtime.store.get(EntityKind.USERS, "user-globex-member").email == "mia.s@globex.io"


def test_member_update_rejects_malformed_email(client: TestClient) -> None:
    response = client.put(
        "/api/records/users/user-globex-member",
        json={"tenant_id": "comp-2", "name": "Mia", "email": "not-an-email"},
        headers=_auth("user-globex"),
    )

    assert response.status_code == 422
    assert response.json()["code"] == "validation_failed"


def test_entitlement_endpoint_reports_upsell(client: TestClient) -> None:
    starter = client.get("/api/entitlements/ai_lead_search", headers=_auth("user-acme"))
    professional = client.get("/api/entitlements/ai_lead_search", headers=_auth("user-globex"))

    assert starter.json()["allowed"] is False
    assert starter.json()["required_plan"] == "Professional"
    assert professional.json()["allowed"] is True


def test_project_payment_status_endpoint(client: TestClient, runtime: Runtime) -> None:
    created = client.post(
        "/api/records/projects",
        json={
            "name": "Landing page",
            "client_id": "cli-2",
            "value": 1000,
            "down_payment": 400,
            "installments": 2,
            "start_date": "2026-01-31",
            "end_date": "2026-03-31",
        },
        headers=_auth("user-globex"),
    )
    assert created.status_code == 201
    project = created.json()
    assert [payment["due_date"] for payment in project["payments"]] == ["2026-01-31", "2026-02-28", "2026-03-28"]

    payment_id = project["payments"][1]["id"]
    response = client.post(
        f"/api/projects/{project['id']}/payments/{payment_id}/status",
        json={"status": "Paid"},
        headers=_auth("user-globex"),
    )

    assert response.status_code == 200
    paid = next(payment for payment in response.json()["payments"] if payment["id"] == payment_id)
    assert paid["status"] == "Paid"
    assert paid["paid_date"] is not None

    foreign = client.post(
        f"/api/projects/{project['id']}/payments/{payment_id}/status",
        json={"status": "Pending"},
        headers=_auth("user-acme"),
    )
    assert foreign.status_code == 403
