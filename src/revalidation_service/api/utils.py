"""Helper utilities for API handlers."""
from __future__ import annotations

import json
from typing import Any

from aiohttp import web

from revalidation_service.core.exceptions import MalformedPayload, Unauthorized, ValidationError
from revalidation_service.middleware.errors import error_body

SECRET_PARAM = "secret"


async def read_json_or_none(request: web.Request) -> Any:
    """Parsed JSON body, or ``None`` when the body is empty or not JSON.

    Rejecting the body is left to the validator so that a bad secret is
    reported before a bad payload.
    """
    try:
        return await request.json()
    except ValueError:
        return None


def request_secret(request: web.Request) -> str | None:
    return request.rel_url.query.get(SECRET_PARAM)


def http_error_for(exc: ValidationError) -> web.HTTPException:
    if isinstance(exc, Unauthorized):
        return web.HTTPUnauthorized(text=error_body(str(exc)), content_type="application/json")
    if isinstance(exc, MalformedPayload):
        return web.HTTPBadRequest(text=error_body(str(exc)), content_type="application/json")
    return web.HTTPUnprocessableEntity(text=error_body(str(exc)), content_type="application/json")


def parse_limit(request: web.Request, *, default: int = 50, maximum: int = 500) -> int:
    raw = request.rel_url.query.get("limit", str(default))
    try:
        limit = int(raw)
    except ValueError as exc:
        raise web.HTTPBadRequest(
            text=error_body("limit must be an integer"), content_type="application/json"
        ) from exc
    if limit <= 0:
        limit = default
    return min(limit, maximum)


def dumps(payload: Any) -> str:
    return json.dumps(payload, separators=(",", ":"))
