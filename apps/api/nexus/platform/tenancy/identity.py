from __future__ import annotations

from dataclasses import dataclass, field

from nexus.platform.tenancy.errors import ImpersonationForbidden
from nexus.records import Company, User


DEFAULT_VIEW = "Dashboard"


@dataclass(frozen=True, slots=True)
class Actor:
    """The authenticated user a request runs as."""

    id: str
    tenant_id: str | None
    role: str = "Member"
    name: str = ""
    email: str = ""

    @classmethod
    def from_user(cls, user: User) -> Actor:
        return cls(id=user.id, tenant_id=user.tenant_id or None, role=user.role, name=user.name, email=user.email)

    @property
    def is_super_admin(self) -> bool:
        return self.role == "SuperAdmin"


@dataclass(frozen=True, slots=True)
class IdentityContext:
    """Explicit identity value passed to every scoping, entitlement and mutation call."""

    actor: Actor
    impersonated_tenant: Company | None = None

    @property
    def active_tenant_id(self) -> str | None:
        if self.impersonated_tenant is not None:
            return self.impersonated_tenant.id
        return self.actor.tenant_id

    @property
    def is_super_admin(self) -> bool:
        return self.actor.is_super_admin

    @property
    def is_impersonating(self) -> bool:
        return self.impersonated_tenant is not None

    @property
    def has_global_view(self) -> bool:
        return self.is_super_admin and not self.is_impersonating


def resolve_identity(actor: Actor, impersonated_tenant: Company | None = None) -> IdentityContext:
    """Resolve the active tenant for ``actor``.

    Only a SuperAdmin may impersonate, but that is a precondition of whoever sets
    ``impersonated_tenant`` (see :class:`IdentitySession`), not something checked here.
    """
    return IdentityContext(actor=actor, impersonated_tenant=impersonated_tenant)


@dataclass(slots=True)
class IdentitySession:
    actor: Actor
    impersonated_tenant: Company | None = None
    active_view: str = field(default=DEFAULT_VIEW)

    @property
    def context(self) -> IdentityContext:
        return resolve_identity(self.actor, self.impersonated_tenant)

    def start_impersonation(self, tenant: Company) -> IdentityContext:
        if not self.actor.is_super_admin:
            raise ImpersonationForbidden(self.actor.id)
        self.impersonated_tenant = tenant
        return self.context

    def stop_impersonation(self) -> IdentityContext:
        # views rendered for the impersonated tenant must not survive the switch
        self.impersonated_tenant = None
        self.active_view = DEFAULT_VIEW
        return self.context
