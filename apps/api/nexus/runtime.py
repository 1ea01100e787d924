from __future__ import annotations

import logging
from dataclasses import dataclass, field

from nexus.accounts.service import AccountService
from nexus.business.subscription.service import SubscriptionService
from nexus.core.config import Settings
from nexus.platform.tenancy.coordinator import MutationCoordinator
from nexus.platform.tenancy.storage import InMemoryStorageBackend, SqlStorageBackend, StorageBackend
from nexus.platform.tenancy.store import EntityStore
from nexus.projects.service import ProjectService


logger = logging.getLogger("nexus.lifecycle")


@dataclass(slots=True)
class Runtime:
    """Process-wide store plus the services that write to it."""

    store: EntityStore
    storage: StorageBackend
    coordinator: MutationCoordinator = field(init=False)
    accounts: AccountService = field(init=False)
    subscriptions: SubscriptionService = field(init=False)
    projects: ProjectService = field(init=False)

    def __post_init__(self) -> None:
        self.coordinator = MutationCoordinator(store=self.store, storage=self.storage)
        self.accounts = AccountService(self.coordinator)
        self.subscriptions = SubscriptionService(self.coordinator)
        self.projects = ProjectService(self.coordinator)


def build_storage(settings: Settings) -> StorageBackend:
    backend = settings.storage_backend.lower()
    if backend == "sql":
        return SqlStorageBackend()
    if backend != "memory":
        logger.warning("unknown_storage_backend", extra={"error": backend})
    return InMemoryStorageBackend()


async def load_runtime(storage: StorageBackend) -> Runtime:
    """Bulk-load every collection once; the store is the only cache afterwards."""
    snapshot = await storage.fetch_all()
    store = EntityStore(snapshot)
    logger.info(
        "store_loaded",
        extra={"event_name": "store.loaded", "usage": sum(len(items) for items in snapshot.collections.values())},
    )
    return Runtime(store=store, storage=storage)
