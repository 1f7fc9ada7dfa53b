"""Recent invalidation history, for operators."""
from __future__ import annotations

from aiohttp import web

from revalidation_service.api.utils import dumps, http_error_for, parse_limit, request_secret
from revalidation_service.core.exceptions import ValidationError
from revalidation_service.services.dependencies import get_audit_log, get_invalidation_service

routes = web.RouteTableDef()


@routes.get("/invalidate/recent")
async def list_recent_invalidations(request: web.Request):
    try:
        get_invalidation_service(request).authenticate(request_secret(request))
    except ValidationError as exc:
        raise http_error_for(exc) from exc

    audit_log = get_audit_log(request)
    entries = audit_log.recent(parse_limit(request))
    payload = {
        "entries": [entry.model_dump(mode="json") for entry in entries],
        "total": len(audit_log),
    }
    return web.json_response(payload, dumps=dumps)
