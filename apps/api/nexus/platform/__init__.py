from nexus.platform.tenancy import (
    Actor,
    EntityStore,
    IdentityContext,
    IdentitySession,
    MutationCoordinator,
    TenancyError,
    resolve_identity,
    scope_records,
    scope_tenants,
)

__all__ = [
    "Actor",
    "EntityStore",
    "IdentityContext",
    "IdentitySession",
    "MutationCoordinator",
    "TenancyError",
    "resolve_identity",
    "scope_records",
    "scope_tenants",
]
