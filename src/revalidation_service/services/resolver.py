"""Expansion of content changes into the pages that depend on them."""
from __future__ import annotations

from typing import Iterable, Protocol

import structlog

from revalidation_service.core.exceptions import UnsupportedEntity
from revalidation_service.domain.dto import InvalidationRequest, ResolvedBatch
from revalidation_service.domain.enums import EntityType, Operation
from revalidation_service.domain.targets import (
    CategoryPage,
    CustomPath,
    Home,
    InvalidationTarget,
    PostPage,
    Sitemap,
    is_valid_slug,
)

logger = structlog.get_logger(__name__)


class ContentGraph(Protocol):
    """Best-effort lookup of a post's current categories."""

    async def get_post_categories(self, slug: str) -> list[str]: ...


class TargetResolver:
    """Maps a validated request to an ordered, de-duplicated batch.

    Most specific pages come first so that a partially executed batch has
    already refreshed the page readers are most likely looking at. ``Home``
    and ``Sitemap`` close the batch.
    """

    def __init__(self, content_graph: ContentGraph | None = None):
        self._content_graph = content_graph

    async def resolve(self, request: InvalidationRequest) -> ResolvedBatch:
        notes: list[str] = []
        try:
            entity = request.entity
        except UnsupportedEntity as exc:
            logger.info("invalidation_request skipped", entity_type=request.entity_type)
            return ResolvedBatch(request=request, targets=(), notes=(str(exc),))

        targets: list[InvalidationTarget] = []
        if entity is EntityType.POST:
            targets.extend(await self._post_targets(request, notes))
        elif entity is EntityType.CATEGORY:
            if request.slug:
                targets.append(CategoryPage(slug=request.slug))
            targets.extend(CategoryPage(slug=slug) for slug in request.category_slugs)

        targets.extend(CustomPath(path=path) for path in request.paths)
        targets.append(Home())
        if entity is EntityType.POST or request.operation is Operation.DELETE:
            targets.append(Sitemap())

        return ResolvedBatch(request=request, targets=_dedupe(targets), notes=tuple(notes))

    async def _post_targets(
        self, request: InvalidationRequest, notes: list[str]
    ) -> list[InvalidationTarget]:
        targets: list[InvalidationTarget] = []
        if request.slug:
            targets.append(PostPage(slug=request.slug))

        category_slugs: Iterable[str] = request.category_slugs
        if not category_slugs and request.slug and self._content_graph is not None:
            category_slugs = await self._lookup_categories(request.slug, notes)
        targets.extend(CategoryPage(slug=slug) for slug in category_slugs)
        return targets

    async def _lookup_categories(self, slug: str, notes: list[str]) -> list[str]:
        assert self._content_graph is not None
        try:
            found = await self._content_graph.get_post_categories(slug)
        except Exception as exc:
            logger.warning("content_graph lookup failed", slug=slug, error=str(exc))
            notes.append(f"category pages skipped: content graph lookup failed ({exc})")
            return []

        slugs: list[str] = []
        for raw in found:
            candidate = raw.strip().lower()
            if is_valid_slug(candidate):
                slugs.append(candidate)
            else:
                notes.append(f"category page skipped: invalid slug {raw!r} from content graph")
        return slugs


def _dedupe(targets: Iterable[InvalidationTarget]) -> tuple[InvalidationTarget, ...]:
    return tuple(dict.fromkeys(targets))
