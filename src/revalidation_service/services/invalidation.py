"""Entry point tying validation, resolution and execution together."""
from __future__ import annotations

from typing import Any, Mapping

import structlog

from revalidation_service.domain.dto import InvalidationReport, InvalidationRequest
from revalidation_service.services.executor import InvalidationExecutor
from revalidation_service.services.resolver import TargetResolver
from revalidation_service.services.validator import InvalidationRequestValidator

logger = structlog.get_logger(__name__)


class InvalidationService:
    """Received -> Validated -> Resolved -> Executing -> Completed.

    Validation errors propagate to the caller (the request is rejected and
    no report exists). Once a request is validated a report is always
    returned, whatever happened to individual targets.
    """

    def __init__(
        self,
        validator: InvalidationRequestValidator,
        resolver: TargetResolver,
        executor: InvalidationExecutor,
    ):
        self._validator = validator
        self._resolver = resolver
        self._executor = executor

    def authenticate(self, secret: str | None) -> None:
        self._validator.authenticate(secret)

    async def handle_webhook(self, payload: Any, secret: str | None) -> InvalidationReport:
        request = self._validator.validate(payload, secret)
        return await self._process(request)

    async def handle_manual(self, query: Mapping[str, str], secret: str | None) -> InvalidationReport:
        request = self._validator.validate_query(query, secret)
        return await self._process(request)

    async def _process(self, request: InvalidationRequest) -> InvalidationReport:
        logger.info(
            "invalidation_request validated",
            operation=request.operation.value,
            entity_type=request.entity_type,
            slug=request.slug,
            stage=request.stage,
        )
        batch = await self._resolver.resolve(request)
        return await self._executor.execute(batch)
