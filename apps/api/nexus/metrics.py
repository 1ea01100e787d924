from __future__ import annotations

import re

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.requests import Request


http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)

tenancy_mutations_total = Counter(
    "tenancy_mutations_total",
    "Committed record mutations by collection and action",
    ["collection", "action"],
)

tenancy_mutation_duration_seconds = Histogram(
    "tenancy_mutation_duration_seconds",
    "Duration of persist-then-commit mutations in seconds",
    ["collection", "action"],
)

tenancy_mutation_rejections_total = Counter(
    "tenancy_mutation_rejections_total",
    "Mutations rejected before persistence, by reason",
    ["collection", "reason"],
)

persistence_failures_total = Counter(
    "persistence_failures_total",
    "Storage collaborator failures by collection and action",
    ["collection", "action"],
)

entitlement_denials_total = Counter(
    "entitlement_denials_total",
    "Plan entitlement denials by feature and plan",
    ["feature", "plan"],
)

unknown_plan_total = Counter(
    "unknown_plan_total",
    "Entitlement checks against a plan name missing from the catalog",
    ["plan"],
)


_UUID_RE = re.compile(
    r"\b[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[1-5][0-9a-fA-F]{3}-[89abAB][0-9a-fA-F]{3}-[0-9a-fA-F]{12}\b"
)
_INT_RE = re.compile(r"/\d+\b")


def _sanitize_path(path: str) -> str:
    without_uuids = _UUID_RE.sub("{id}", path)
    return _INT_RE.sub("/{id}", without_uuids)


def resolve_http_path_label(request: Request) -> str:
    route = request.scope.get("route")
    if route is not None:
        path_format = getattr(route, "path_format", None)
        if isinstance(path_format, str) and path_format:
            return path_format
        route_path = getattr(route, "path", None)
        if isinstance(route_path, str) and route_path:
            return route_path
    return _sanitize_path(request.url.path)


def observe_http_request(method: str, path: str, status: int, duration: float) -> None:
    http_requests_total.labels(method=method, path=path, status=str(status)).inc()
    http_request_duration_seconds.labels(method=method, path=path).observe(duration)


def observe_mutation(collection: str, action: str, duration: float) -> None:
    tenancy_mutations_total.labels(collection=collection, action=action).inc()
    tenancy_mutation_duration_seconds.labels(collection=collection, action=action).observe(duration)


def observe_mutation_rejected(collection: str, reason: str) -> None:
    tenancy_mutation_rejections_total.labels(collection=collection, reason=reason).inc()


def observe_persistence_failure(collection: str, action: str) -> None:
    persistence_failures_total.labels(collection=collection, action=action).inc()


def observe_entitlement_denied(feature: str, plan: str) -> None:
    entitlement_denials_total.labels(feature=feature, plan=plan).inc()


def observe_unknown_plan(plan: str) -> None:
    unknown_plan_total.labels(plan=plan).inc()


def generate_metrics_payload() -> bytes:
    return generate_latest()


def metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
