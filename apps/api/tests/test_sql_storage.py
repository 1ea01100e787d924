from __future__ import annotations

import asyncio
from collections.abc import Generator
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from nexus.core.database import Base
from nexus.platform.tenancy.coordinator import MutationCoordinator
from nexus.platform.tenancy.errors import PersistenceError
from nexus.platform.tenancy.identity import Actor, resolve_identity
from nexus.platform.tenancy.models import EntityRecordRow
from nexus.platform.tenancy.storage import SqlStorageBackend, StorageBackend
from nexus.platform.tenancy.store import EntityStore
from nexus.records import Client, Company, EntityKind, Project


@pytest.fixture()
def session_factory() -> Generator[sessionmaker[Session], None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)
    try:
        yield SessionLocal
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def storage(session_factory: sessionmaker[Session]) -> SqlStorageBackend:
    return SqlStorageBackend(session_factory)


def test_sql_backend_satisfies_storage_protocol(storage: SqlStorageBackend) -> None:
    assert isinstance(storage, StorageBackend)


def test_saved_records_come_back_on_fetch(storage: SqlStorageBackend, session_factory) -> None:
    company = Company(id="comp-1", name="Acme", subscription_due_date=date(2026, 2, 1), subscription_value=Decimal("97"))
    client = Client(id="cli-1", tenant_id="comp-1", name="Alpha")

    async def scenario():
        await storage.save("companies", company)
        await storage.save("clients", client)
        return await storage.fetch_all()

    snapshot = asyncio.run(scenario())

    assert snapshot.companies == (company,)
    assert snapshot.get(EntityKind.CLIENTS) == (client,)
    assert snapshot.get(EntityKind.LEADS) == ()

    with session_factory() as session:
        row = session.scalar(select(EntityRecordRow).where(EntityRecordRow.id == "cli-1"))
        assert row.tenant_id == "comp-1"
        assert row.payload["name"] == "Alpha"
        company_row = session.get(EntityRecordRow, ("companies", "comp-1"))
        assert company_row.tenant_id is None


def test_update_and_delete_are_persisted(storage: SqlStorageBackend) -> None:
    client = Client(id="cli-1", tenant_id="comp-1", name="Alpha")

    async def scenario():
        await storage.save("clients", client)
        await storage.update("clients", client.model_copy(update={"name": "Alpha Prime"}))
        after_update = await storage.fetch_all()
        await storage.delete("clients", "cli-1")
        await storage.delete("clients", "cli-1")
        return after_update, await storage.fetch_all()

    after_update, after_delete = asyncio.run(scenario())

    assert after_update.get(EntityKind.CLIENTS)[0].name == "Alpha Prime"
    assert after_delete.get(EntityKind.CLIENTS) == ()


def test_duplicate_save_and_missing_update_raise_persistence_error(storage: SqlStorageBackend) -> None:
    client = Client(id="cli-1", tenant_id="comp-1", name="Alpha")
    asyncio.run(storage.save("clients", client))

    with pytest.raises(PersistenceError):
        asyncio.run(storage.save("clients", client))
    with pytest.raises(PersistenceError):
        asyncio.run(storage.update("clients", Client(id="cli-9", tenant_id="comp-1", name="Ghost")))


def test_coordinator_round_trips_through_sql(storage: SqlStorageBackend) -> None:
    ctx = resolve_identity(Actor(id="user-1", tenant_id="comp-1", role="Admin"))
    coordinator = MutationCoordinator(store=EntityStore(), storage=storage)

    project = asyncio.run(
        coordinator.create(
            ctx,
            EntityKind.PROJECTS,
            {
                "name": "ERP",
                "client_id": "cli-1",
                "value": "1200",
                "installments": 2,
                "start_date": "2026-01-15",
                "end_date": "2026-06-15",
            },
        )
    )

    reloaded = EntityStore(asyncio.run(storage.fetch_all()))
    stored = reloaded.get(EntityKind.PROJECTS, project.id)
    assert isinstance(stored, Project)
    assert stored == project
    assert [payment.amount for payment in stored.payments] == [Decimal("600.00"), Decimal("600.00")]
