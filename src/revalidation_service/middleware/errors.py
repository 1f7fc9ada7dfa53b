"""Render router-level errors as JSON ``{"error": ...}`` bodies."""
from __future__ import annotations

import json

from aiohttp import web


def error_body(message: str) -> str:
    return json.dumps({"error": message})


@web.middleware
async def json_error_middleware(request: web.Request, handler):
    try:
        return await handler(request)
    except web.HTTPMethodNotAllowed as exc:
        raise web.HTTPMethodNotAllowed(
            exc.method,
            exc.allowed_methods,
            text=error_body("Method not allowed"),
            content_type="application/json",
        ) from exc
