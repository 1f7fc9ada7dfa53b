from __future__ import annotations

import asyncio
from typing import Any, Sequence, Union

from revalidation_service.clients.regeneration import RegenerationResponse
from revalidation_service.domain.dto import InvalidationRequest
from revalidation_service.domain.enums import Operation
from revalidation_service.settings import Settings

TEST_SECRET = "test-revalidation-secret-0123456789abcdef"

# Script value that makes the fake regenerator block until cancelled.
HANG = "hang"

Outcome = Union[int, BaseException, str]


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "revalidation_secret": TEST_SECRET,
        "regeneration_retry_backoff_str": "0,0",
        "regeneration_attempt_timeout_seconds": 1.0,
        "batch_timeout_seconds": 5.0,
        "worker_interval_seconds": 3600.0,
    }
    values.update(overrides)
    return Settings(**values)


def make_request(
    *,
    operation: Operation = Operation.UPDATE,
    entity_type: str = "Post",
    slug: str | None = "hello-world",
    category_slugs: Sequence[str] = (),
    paths: Sequence[str] = (),
) -> InvalidationRequest:
    return InvalidationRequest(
        operation=operation,
        entity_type=entity_type,
        slug=slug,
        category_slugs=tuple(category_slugs),
        paths=tuple(paths),
    )


def webhook_body(
    *,
    operation: str = "publish",
    typename: str = "Post",
    slug: str | None = "hello-world",
    categories: Sequence[str] = ("tech",),
) -> dict[str, Any]:
    return {
        "operation": operation,
        "data": {
            "__typename": typename,
            "slug": slug,
            "stage": "PUBLISHED",
            "categories": [{"slug": c} for c in categories],
        },
    }


class FakeRegenerator:
    """Scriptable stand-in for the page regeneration endpoint.

    ``scripts`` maps a path to the outcomes of successive calls; the last
    outcome repeats. An outcome is an HTTP status, an exception to raise,
    or ``HANG``.
    """

    def __init__(
        self,
        scripts: dict[str, Sequence[Outcome]] | None = None,
        *,
        default: Outcome = 200,
        delay: float = 0.0,
    ):
        self._scripts = {path: list(outcomes) for path, outcomes in (scripts or {}).items()}
        self._default = default
        self._delay = delay
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def calls_for(self, path: str) -> int:
        return self.calls.count(path)

    async def regenerate(self, path: str) -> RegenerationResponse:
        self.calls.append(path)
        script = self._scripts.get(path)
        if script:
            outcome = script.pop(0) if len(script) > 1 else script[0]
        else:
            outcome = self._default

        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self._delay:
                await asyncio.sleep(self._delay)
            if outcome == HANG:
                await asyncio.Event().wait()
            if isinstance(outcome, BaseException):
                raise outcome
            return RegenerationResponse(status=int(outcome), paths=[path])
        finally:
            self.in_flight -= 1
