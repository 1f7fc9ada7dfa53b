"""Webhook and manual revalidation endpoints."""
from __future__ import annotations

import asyncio
from typing import Awaitable

from aiohttp import web

from revalidation_service.api.utils import dumps, http_error_for, read_json_or_none, request_secret
from revalidation_service.core.exceptions import ValidationError
from revalidation_service.domain.dto import InvalidationReport
from revalidation_service.services.dependencies import get_invalidation_service

routes = web.RouteTableDef()


async def _complete(work: Awaitable[InvalidationReport]) -> web.Response:
    # Shielded: a client hanging up must not abandon regeneration half-way.
    try:
        report = await asyncio.shield(work)
    except ValidationError as exc:
        raise http_error_for(exc) from exc
    return web.json_response(report.model_dump(mode="json"), dumps=dumps)


@routes.post("/invalidate")
async def invalidate_from_webhook(request: web.Request):
    service = get_invalidation_service(request)
    payload = await read_json_or_none(request)
    return await _complete(service.handle_webhook(payload, request_secret(request)))


@routes.get("/invalidate")
async def invalidate_manually(request: web.Request):
    service = get_invalidation_service(request)
    return await _complete(service.handle_manual(request.rel_url.query, request_secret(request)))
