"""aiohttp application entrypoint."""
from __future__ import annotations

from aiohttp import web
from aiohttp_cors import ResourceOptions, setup as cors_setup

from revalidation_service.api.router import setup_routes
from revalidation_service.logging_config import configure_logging
from revalidation_service.middleware import create_trace_middleware, json_error_middleware
from revalidation_service.otel import setup_otel
from revalidation_service.services.audit import AuditLog
from revalidation_service.services.dependencies import (
    AUDIT_LOG_KEY,
    CONTENT_GRAPH_KEY,
    REGENERATOR_KEY,
    SETTINGS_KEY,
    close_invalidation,
    init_invalidation,
)
from revalidation_service.services.executor import PageRegenerator
from revalidation_service.services.resolver import ContentGraph
from revalidation_service.settings import Settings, get_settings
from revalidation_service.worker import BackgroundWorker, audit_prune_task

_ALLOWED_HEADERS = ("Accept", "Content-Type", "X-Trace-Id", "X-Request-Id")
_EXPOSED_HEADERS = ("X-Trace-Id", "X-Request-Id")


def create_app(
    settings: Settings | None = None,
    *,
    regenerator: PageRegenerator | None = None,
    content_graph: ContentGraph | None = None,
) -> web.Application:
    settings = settings or get_settings()
    app = web.Application()

    app.middlewares.append(create_trace_middleware(settings.app_name))
    app.middlewares.append(json_error_middleware)
    setup_otel(app, settings)

    # One audit log per process, owned by the app for its whole lifetime.
    audit_log = AuditLog(
        retention_seconds=settings.audit_retention_seconds,
        max_entries=settings.audit_max_entries,
    )
    app[SETTINGS_KEY] = settings
    app[AUDIT_LOG_KEY] = audit_log
    app[REGENERATOR_KEY] = regenerator
    app[CONTENT_GRAPH_KEY] = content_graph

    cors = cors_setup(
        app,
        defaults={
            origin: ResourceOptions(
                allow_credentials=False,
                expose_headers=_EXPOSED_HEADERS,
                allow_headers=_ALLOWED_HEADERS,
                allow_methods=("GET", "POST", "OPTIONS"),
            )
            for origin in settings.cors_allowed_origins
        },
    )

    async def healthcheck(_request: web.Request) -> web.Response:
        return web.json_response({"status": "ok", "service": settings.app_name, "env": settings.env})

    app.router.add_get("/health", healthcheck)
    setup_routes(app)
    for route in list(app.router.routes()):
        cors.add(route)

    worker = BackgroundWorker(
        interval_seconds=settings.worker_interval_seconds,
        tasks=[audit_prune_task(audit_log)],
    )
    app.on_startup.append(init_invalidation)
    app.on_startup.append(worker.start)
    app.on_cleanup.append(worker.stop)
    app.on_cleanup.append(close_invalidation)
    return app


def main() -> None:
    configure_logging()
    settings = get_settings()
    web.run_app(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
