"""API layer — FastAPI application factory.

``create_app()`` is the single entry point for building the FastAPI app.
All dependencies are wired here so that tests can override them by
calling ``create_app()`` with custom settings.
"""

from __future__ import annotations

from fastapi import FastAPI

from da_rack import __version__
from da_rack.api.envelope import EnvelopeCodec
from da_rack.api.middleware import AccessLogMiddleware
from da_rack.api.routes import data, meta
from da_rack.config import Settings, get_settings
from da_rack.diagnostics import DiagnosticReporter, DiagnosticSink, LogFileSink, NullSink
from da_rack.dispatch.dispatcher import ActionDispatcher
from da_rack.logging import configure_logging, get_logger
from da_rack.storage.store import SqlStore

log = get_logger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional settings override (used in tests).

    Returns:
        A fully configured FastAPI application instance.
    """
    if settings is None:
        settings = get_settings()

    configure_logging(
        level=settings.logging.level,
        format=settings.logging.format,
        log_file=str(settings.logging.file) if settings.logging.file else None,
    )

    app = FastAPI(
        title="DA Rack",
        description="Schema-fixed relational data access over a single action endpoint.",
        version=__version__,
    )

    app.add_middleware(AccessLogMiddleware)

    app.include_router(data.router)
    app.include_router(meta.router)

    # Computed once per process; read-only afterwards.
    source_id = settings.service.source_id()
    app.state.settings = settings

    @app.on_event("startup")
    async def startup() -> None:
        log.info("service_starting", version=__version__, source_id=source_id)

        store = SqlStore(settings.storage.database, timeout=settings.storage.timeout)
        await store.init()

        sink: DiagnosticSink = (
            LogFileSink(settings.diagnostics.file) if settings.diagnostics.file else NullSink()
        )
        reporter = DiagnosticReporter(sink)
        dispatcher = ActionDispatcher(store, reporter)

        app.state.store = store
        app.state.reporter = reporter
        app.state.codec = EnvelopeCodec(
            dispatcher,
            source_id=source_id,
            write_token=settings.security.write_token,
        )
        if settings.security.write_token is None:
            log.warning("write_token_unset", detail="every request will be rejected")

    @app.on_event("shutdown")
    async def shutdown() -> None:
        await app.state.reporter.drain()
        await app.state.store.close()
        log.info("service_stopped")

    return app
