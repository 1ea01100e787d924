from nexus.platform.tenancy.coordinator import MutationCoordinator
from nexus.platform.tenancy.errors import (
    CrossTenantMutationForbidden,
    ImpersonationForbidden,
    NoActiveTenant,
    PersistenceError,
    RecordNotFound,
    SuperAdminRequired,
    TenancyError,
    TenantReassignmentForbidden,
)
from nexus.platform.tenancy.identity import Actor, IdentityContext, IdentitySession, resolve_identity
from nexus.platform.tenancy.scoping import (
    active_tenant_name,
    scope_collections,
    scope_records,
    scope_tenants,
    scoped_count,
)
from nexus.platform.tenancy.storage import InMemoryStorageBackend, SqlStorageBackend, StorageBackend
from nexus.platform.tenancy.store import EntityStore, StoreSnapshot

__all__ = [
    "Actor",
    "IdentityContext",
    "IdentitySession",
    "resolve_identity",
    "EntityStore",
    "StoreSnapshot",
    "scope_records",
    "scope_tenants",
    "scope_collections",
    "scoped_count",
    "active_tenant_name",
    "MutationCoordinator",
    "StorageBackend",
    "InMemoryStorageBackend",
    "SqlStorageBackend",
    "TenancyError",
    "NoActiveTenant",
    "TenantReassignmentForbidden",
    "CrossTenantMutationForbidden",
    "RecordNotFound",
    "ImpersonationForbidden",
    "PersistenceError",
    "SuperAdminRequired",
]
