from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from nexus.core.database import SessionLocal
from nexus.platform.tenancy.errors import PersistenceError
from nexus.platform.tenancy.models import EntityRecordRow
from nexus.platform.tenancy.store import StoreSnapshot
from nexus.records import COMPANIES, Company, EntityKind, Record, parse_document


logger = logging.getLogger("nexus.tenancy")


@runtime_checkable
class StorageBackend(Protocol):
    async def fetch_all(self) -> StoreSnapshot:
        ...

    async def save(self, collection: str, record: Record) -> None:
        ...

    async def update(self, collection: str, record: Record) -> None:
        ...

    async def delete(self, collection: str, record_id: str) -> None:
        ...


def _tenant_of(record: Record) -> str | None:
    return getattr(record, "tenant_id", None)


def _build_snapshot(documents: list[tuple[str, dict[str, Any]]]) -> StoreSnapshot:
    companies: list[Company] = []
    collections: dict[EntityKind, list] = {kind: [] for kind in EntityKind}
    for collection, document in documents:
        record = parse_document(collection, document)
        if collection == COMPANIES:
            companies.append(record)
        else:
            collections[EntityKind(collection)].append(record)
    return StoreSnapshot(
        companies=tuple(companies),
        collections={kind: tuple(items) for kind, items in collections.items()},
    )


class InMemoryStorageBackend:
    """Keeps JSON documents per collection; also records every call it receives."""

    def __init__(self, snapshot: StoreSnapshot | None = None) -> None:
        self._documents: dict[str, dict[str, dict[str, Any]]] = {}
        self.calls: list[tuple[str, str, str]] = []
        if snapshot is not None:
            for company in snapshot.companies:
                self._put(COMPANIES, company)
            for kind, records in snapshot.collections.items():
                for record in records:
                    self._put(kind.value, record)

    def _put(self, collection: str, record: Record) -> None:
        self._documents.setdefault(collection, {})[record.id] = record.to_document()

    async def fetch_all(self) -> StoreSnapshot:
        self.calls.append(("fetch_all", "*", "*"))
        documents = [
            (collection, document)
            for collection, by_id in self._documents.items()
            for document in by_id.values()
        ]
        return _build_snapshot(documents)

    async def save(self, collection: str, record: Record) -> None:
        self.calls.append(("save", collection, record.id))
        if record.id in self._documents.get(collection, {}):
            raise PersistenceError(collection, "save", f"duplicate id '{record.id}'")
        self._put(collection, record)

    async def update(self, collection: str, record: Record) -> None:
        self.calls.append(("update", collection, record.id))
        if record.id not in self._documents.get(collection, {}):
            raise PersistenceError(collection, "update", f"missing id '{record.id}'")
        self._put(collection, record)

    async def delete(self, collection: str, record_id: str) -> None:
        self.calls.append(("delete", collection, record_id))
        self._documents.get(collection, {}).pop(record_id, None)


class SqlStorageBackend:
    """Stores every record as a JSON payload in the ``entity_record`` table.

    SQLAlchemy sessions are blocking, so each call runs in Starlette's threadpool.
    """

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal) -> None:
        self._session_factory = session_factory

    async def fetch_all(self) -> StoreSnapshot:
        return await run_in_threadpool(self._fetch_all_sync)

    async def save(self, collection: str, record: Record) -> None:
        await run_in_threadpool(self._save_sync, collection, record)

    async def update(self, collection: str, record: Record) -> None:
        await run_in_threadpool(self._update_sync, collection, record)

    async def delete(self, collection: str, record_id: str) -> None:
        await run_in_threadpool(self._delete_sync, collection, record_id)

    def _fetch_all_sync(self) -> StoreSnapshot:
        try:
            with self._session_factory() as session:
                rows = session.scalars(
                    select(EntityRecordRow).order_by(EntityRecordRow.created_at, EntityRecordRow.id)
                ).all()
                documents = [(row.collection, dict(row.payload)) for row in rows]
        except SQLAlchemyError as exc:
            raise self._failure("*", "fetch", exc) from exc
        return _build_snapshot(documents)

    def _save_sync(self, collection: str, record: Record) -> None:
        try:
            with self._session_factory() as session:
                session.add(
                    EntityRecordRow(
                        collection=collection,
                        id=record.id,
                        tenant_id=_tenant_of(record),
                        payload=record.to_document(),
                    )
                )
                session.commit()
        except SQLAlchemyError as exc:
            raise self._failure(collection, "save", exc) from exc

    def _update_sync(self, collection: str, record: Record) -> None:
        try:
            with self._session_factory() as session:
                row = session.get(EntityRecordRow, (collection, record.id))
                if row is None:
                    raise PersistenceError(collection, "update", f"missing id '{record.id}'")
                row.payload = record.to_document()
                row.tenant_id = _tenant_of(record)
                session.commit()
        except SQLAlchemyError as exc:
            raise self._failure(collection, "update", exc) from exc

    def _delete_sync(self, collection: str, record_id: str) -> None:
        try:
            with self._session_factory() as session:
                session.execute(
                    delete(EntityRecordRow).where(
                        EntityRecordRow.collection == collection,
                        EntityRecordRow.id == record_id,
                    )
                )
                session.commit()
        except SQLAlchemyError as exc:
            raise self._failure(collection, "delete", exc) from exc

    @staticmethod
    def _failure(collection: str, action: str, exc: SQLAlchemyError) -> PersistenceError:
        logger.warning(
            "storage_failure",
            extra={"collection": collection, "action": action, "error": exc.__class__.__name__},
        )
        return PersistenceError(collection, action, exc.__class__.__name__)
