from contextlib import asynccontextmanager
from datetime import date
import logging

from fastapi import FastAPI
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from nexus.api.routes import router as api_router
from nexus.core.config import get_settings
from nexus.events import InternalEvent, event_bus
from nexus.logging import configure_logging
from nexus.middleware.correlation_id import CorrelationIdMiddleware
from nexus.middleware.request_logging import RequestLoggingMiddleware
from nexus.otel import get_fastapi_server_request_hook, setup_otel
from nexus.runtime import build_storage, load_runtime


configure_logging()
logger = logging.getLogger("nexus.lifecycle")
_subscriptions_registered = False


def _on_system_started(event: InternalEvent) -> None:
    logger.info("system_event", extra={"event_name": event.name})


@asynccontextmanager
async def lifespan(app: FastAPI):
    global _subscriptions_registered
    if not _subscriptions_registered:
        event_bus.subscribe("system.started", _on_system_started)
        _subscriptions_registered = True

    settings = get_settings()
    runtime = getattr(app.state, "runtime", None)
    if runtime is None:
        runtime = await load_runtime(build_storage(settings))
        app.state.runtime = runtime
    if settings.bootstrap_admin_email and settings.bootstrap_admin_password:
        await runtime.accounts.ensure_platform_admin(
            settings.bootstrap_admin_email,
            settings.bootstrap_admin_password,
            today=date.today(),
        )
    event_bus.publish("system.started", {"service": "api", "storage_backend": settings.storage_backend})
    yield


app = FastAPI(title="Nexus API", version="0.1.0", lifespan=lifespan)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)
app.include_router(api_router)

settings = get_settings()
if settings.otel_enabled:
    setup_otel("nexus-api", True)

if not getattr(app, "_is_instrumented_by_opentelemetry", False):
    FastAPIInstrumentor().instrument_app(app, server_request_hook=get_fastapi_server_request_hook())
