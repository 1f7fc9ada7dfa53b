"""Wiring of services onto the aiohttp application and handler accessors."""
from __future__ import annotations

from aiohttp import ClientSession, ClientTimeout, web

from revalidation_service.clients.content_graph import HygraphContentGraph
from revalidation_service.clients.regeneration import HttpPageRegenerator
from revalidation_service.services.audit import AuditLog
from revalidation_service.services.executor import InvalidationExecutor, PageRegenerator
from revalidation_service.services.invalidation import InvalidationService
from revalidation_service.services.resolver import ContentGraph, TargetResolver
from revalidation_service.services.validator import InvalidationRequestValidator
from revalidation_service.settings import Settings

SETTINGS_KEY = "settings"
AUDIT_LOG_KEY = "audit_log"
REGENERATOR_KEY = "page_regenerator"
CONTENT_GRAPH_KEY = "content_graph"
_INVALIDATION_SERVICE_KEY = "invalidation_service"
_HTTP_SESSION_KEY = "revalidation_http_session"


def build_invalidation_service(
    settings: Settings,
    *,
    audit_log: AuditLog,
    regenerator: PageRegenerator,
    content_graph: ContentGraph | None = None,
) -> InvalidationService:
    validator = InvalidationRequestValidator(settings.revalidation_secret.get_secret_value())
    resolver = TargetResolver(content_graph)
    executor = InvalidationExecutor(
        regenerator,
        audit_log,
        attempt_timeout=settings.regeneration_attempt_timeout_seconds,
        retry_backoff=settings.regeneration_retry_backoff_seconds,
        max_concurrency=settings.regeneration_max_concurrency,
        batch_timeout=settings.batch_timeout_seconds,
        debounce_window=settings.debounce_window_seconds,
        deployed_kinds=settings.deployed_page_kinds,
    )
    return InvalidationService(validator, resolver, executor)


async def init_invalidation(app: web.Application) -> None:
    """Create the HTTP session and collaborators. Register with ``app.on_startup``.

    Collaborators already placed on the app (tests, embedding) are kept.
    """
    settings: Settings = app[SETTINGS_KEY]
    regenerator = app.get(REGENERATOR_KEY)
    content_graph = app.get(CONTENT_GRAPH_KEY)

    if regenerator is None or (content_graph is None and settings.hygraph_endpoint):
        session = ClientSession(timeout=ClientTimeout(total=settings.regeneration_attempt_timeout_seconds))
        app[_HTTP_SESSION_KEY] = session
        if regenerator is None:
            secret = settings.regeneration_secret
            regenerator = HttpPageRegenerator(
                session,
                url=str(settings.regeneration_url),
                secret=secret.get_secret_value() if secret else None,
            )
        if content_graph is None and settings.hygraph_endpoint:
            token = settings.hygraph_token
            content_graph = HygraphContentGraph(
                session,
                endpoint=str(settings.hygraph_endpoint),
                token=token.get_secret_value() if token else None,
                timeout_s=settings.content_graph_timeout_seconds,
            )

    app[_INVALIDATION_SERVICE_KEY] = build_invalidation_service(
        settings,
        audit_log=app[AUDIT_LOG_KEY],
        regenerator=regenerator,
        content_graph=content_graph,
    )


async def close_invalidation(app: web.Application) -> None:
    """Close the outbound HTTP session. Register with ``app.on_cleanup``."""
    session = app.get(_HTTP_SESSION_KEY)
    if session is not None:
        await session.close()


def get_invalidation_service(request: web.Request) -> InvalidationService:
    return request.app[_INVALIDATION_SERVICE_KEY]


def get_audit_log(request: web.Request) -> AuditLog:
    return request.app[AUDIT_LOG_KEY]