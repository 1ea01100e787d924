from __future__ import annotations


class TenancyError(Exception):
    """Base error for tenant ownership and persistence failures."""


class NoActiveTenant(TenancyError):
    """Raised when a create has no tenant to assign ownership to."""

    def __init__(self, collection: str) -> None:
        self.collection = collection
        super().__init__(f"No active tenant to own new '{collection}' record")


class TenantReassignmentForbidden(TenancyError):
    def __init__(self, collection: str, record_id: str, current_tenant_id: str, requested_tenant_id: str) -> None:
        self.collection = collection
        self.record_id = record_id
        self.current_tenant_id = current_tenant_id
        self.requested_tenant_id = requested_tenant_id
        super().__init__(
            f"Record '{record_id}' in '{collection}' belongs to tenant '{current_tenant_id}' "
            f"and cannot be moved to '{requested_tenant_id}'"
        )


class CrossTenantMutationForbidden(TenancyError):
    def __init__(self, collection: str, record_id: str, active_tenant_id: str | None) -> None:
        self.collection = collection
        self.record_id = record_id
        self.active_tenant_id = active_tenant_id
        super().__init__(f"Record '{record_id}' in '{collection}' is outside the active tenant")


class RecordNotFound(TenancyError):
    def __init__(self, collection: str, record_id: str) -> None:
        self.collection = collection
        self.record_id = record_id
        super().__init__(f"Record '{record_id}' not found in '{collection}'")


class ImpersonationForbidden(TenancyError):
    def __init__(self, actor_id: str) -> None:
        self.actor_id = actor_id
        super().__init__("Only a SuperAdmin may impersonate a tenant")


class PersistenceError(TenancyError):
    """The storage collaborator failed; the in-memory store was left untouched."""

    def __init__(self, collection: str, action: str, message: str = "storage backend failure") -> None:
        self.collection = collection
        self.action = action
        super().__init__(f"Could not {action} '{collection}' record: {message}")


class SuperAdminRequired(TenancyError):
    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"'{operation}' is restricted to a SuperAdmin outside impersonation")
