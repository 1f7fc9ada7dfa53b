"""Middleware binding trace_id / request_id into the structlog context."""
from __future__ import annotations

import time
from uuid import UUID, uuid4

import structlog
from aiohttp import web

from revalidation_service.logging_config import redact_query_secrets

TRACE_ID_HEADER = "X-Trace-Id"
REQUEST_ID_HEADER = "X-Request-Id"

logger = structlog.get_logger(__name__)


def _header_id(request: web.Request, header: str) -> str:
    value = request.headers.get(header)
    if value:
        try:
            return str(UUID(value))
        except ValueError:
            pass
    return str(uuid4())


def create_trace_middleware(service_name: str):
    """Create trace middleware with specified service name."""

    @web.middleware
    async def trace_middleware(request: web.Request, handler):
        start = time.monotonic()
        trace_id = _header_id(request, TRACE_ID_HEADER)
        request_id = _header_id(request, REQUEST_ID_HEADER)
        request["trace_id"] = trace_id
        request["request_id"] = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            trace_id=trace_id,
            request_id=request_id,
            service=service_name,
            method=request.method,
            path=request.path,
        )
        query = redact_query_secrets(f"?{request.query_string}") if request.query_string else None
        logger.info("Incoming request", query=query, remote=request.remote)

        try:
            response = await handler(request)
        except web.HTTPException as exc:
            logger.warning(
                "Request failed with HTTP exception",
                status_code=exc.status_code,
                duration_ms=round((time.monotonic() - start) * 1000, 2),
                error=exc.text,
            )
            raise
        except Exception:
            logger.exception(
                "Request failed with exception",
                duration_ms=round((time.monotonic() - start) * 1000, 2),
            )
            raise
        else:
            log = logger.warning if response.status >= 400 else logger.info
            log(
                "Request completed",
                status_code=response.status,
                duration_ms=round((time.monotonic() - start) * 1000, 2),
            )
        finally:
            structlog.contextvars.clear_contextvars()

        response.headers[TRACE_ID_HEADER] = trace_id
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    return trace_middleware
