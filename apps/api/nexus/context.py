from __future__ import annotations

from contextvars import ContextVar, Token

correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)
active_tenant_var: ContextVar[str | None] = ContextVar("active_tenant", default=None)


def set_correlation_id(value: str | None) -> Token[str | None]:
    return correlation_id_var.set(value)


def reset_correlation_id(token: Token[str | None]) -> None:
    correlation_id_var.reset(token)


def get_correlation_id() -> str | None:
    return correlation_id_var.get()


def set_active_tenant(value: str | None) -> Token[str | None]:
    return active_tenant_var.set(value)


def get_active_tenant() -> str | None:
    """Tenant id of the identity serving the current request, for log enrichment only."""
    return active_tenant_var.get()
