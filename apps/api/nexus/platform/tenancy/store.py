from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from nexus.records import Company, EntityKind, TenantScopedRecord


@dataclass(frozen=True, slots=True)
class StoreSnapshot:
    """Full, unscoped contents of every collection as returned by ``fetch_all``."""

    companies: tuple[Company, ...] = ()
    collections: dict[EntityKind, tuple[TenantScopedRecord, ...]] = field(default_factory=dict)

    def get(self, kind: EntityKind) -> tuple[TenantScopedRecord, ...]:
        return self.collections.get(kind, ())


class EntityStore:
    """Owner of the raw collections.

    Only the initial load and the mutation coordinator write here. Every write swaps
    in a new tuple so readers holding an earlier view never see it change.
    """

    def __init__(self, snapshot: StoreSnapshot | None = None) -> None:
        self._companies: tuple[Company, ...] = ()
        self._collections: dict[EntityKind, tuple[TenantScopedRecord, ...]] = {kind: () for kind in EntityKind}
        if snapshot is not None:
            self.load(snapshot)

    def load(self, snapshot: StoreSnapshot) -> None:
        self._companies = tuple(snapshot.companies)
        self._collections = {kind: tuple(snapshot.get(kind)) for kind in EntityKind}

    def snapshot(self) -> StoreSnapshot:
        return StoreSnapshot(companies=self._companies, collections=dict(self._collections))

    @property
    def companies(self) -> tuple[Company, ...]:
        return self._companies

    def records(self, kind: EntityKind) -> tuple[TenantScopedRecord, ...]:
        return self._collections[kind]

    def get(self, kind: EntityKind, record_id: str) -> TenantScopedRecord | None:
        for record in self._collections[kind]:
            if record.id == record_id:
                return record
        return None

    def get_company(self, tenant_id: str | None) -> Company | None:
        if tenant_id is None:
            return None
        for company in self._companies:
            if company.id == tenant_id:
                return company
        return None

    def append(self, record: TenantScopedRecord) -> None:
        self._collections[record.kind] = (*self._collections[record.kind], record)

    def replace(self, record: TenantScopedRecord) -> None:
        self._collections[record.kind] = _replaced(self._collections[record.kind], record)

    def remove(self, kind: EntityKind, record_id: str) -> None:
        self._collections[kind] = tuple(item for item in self._collections[kind] if item.id != record_id)

    def append_company(self, company: Company) -> None:
        self._companies = (*self._companies, company)

    def replace_company(self, company: Company) -> None:
        self._companies = _replaced(self._companies, company)

    def remove_company(self, tenant_id: str) -> None:
        self._companies = tuple(company for company in self._companies if company.id != tenant_id)

    def find_user_by_email(self, email: str):
        needle = email.strip().lower()
        for user in self._collections[EntityKind.USERS]:
            if getattr(user, "email", "").lower() == needle:
                return user
        return None


def _replaced(items: Iterable, record):
    return tuple(record if item.id == record.id else item for item in items)
