from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from revalidation_service.core.exceptions import ContentGraphError
from revalidation_service.domain.enums import Operation
from revalidation_service.domain.targets import CategoryPage, CustomPath, Home, PostPage, Sitemap
from revalidation_service.services.resolver import TargetResolver
from tests.utils import make_request


@pytest.mark.asyncio
@pytest.mark.parametrize("operation", list(Operation))
@pytest.mark.parametrize("categories", [(), ("tech",), ("tech", "news", "ai"), ("a", "b", "c", "d", "e")])
async def test_post_yields_n_plus_three_targets(operation, categories):
    resolver = TargetResolver()
    batch = await resolver.resolve(make_request(operation=operation, category_slugs=categories))

    assert len(batch.targets) == len(categories) + 3
    assert len(set(batch.targets)) == len(batch.targets)
    assert PostPage(slug="hello-world") in batch.targets
    assert Home() in batch.targets
    assert Sitemap() in batch.targets
    for slug in categories:
        assert CategoryPage(slug=slug) in batch.targets


@pytest.mark.asyncio
async def test_post_targets_are_ordered_most_specific_first():
    resolver = TargetResolver()
    batch = await resolver.resolve(make_request(category_slugs=("tech", "news")))

    assert batch.targets == (
        PostPage(slug="hello-world"),
        CategoryPage(slug="tech"),
        CategoryPage(slug="news"),
        Home(),
        Sitemap(),
    )
    assert batch.notes == ()
    assert [t.path for t in batch.targets] == [
        "/post/hello-world",
        "/category/tech",
        "/category/news",
        "/",
        "/sitemap.xml",
    ]


@pytest.mark.asyncio
async def test_resolution_is_deterministic():
    resolver = TargetResolver()
    request = make_request(category_slugs=("b", "a"), paths=("/about",))
    first = await resolver.resolve(request)
    second = await resolver.resolve(request)
    assert first.targets == second.targets


@pytest.mark.asyncio
async def test_content_graph_fills_missing_categories():
    graph = AsyncMock()
    graph.get_post_categories = AsyncMock(return_value=["Tech", "news", "tech"])
    resolver = TargetResolver(graph)

    batch = await resolver.resolve(make_request())

    graph.get_post_categories.assert_awaited_once_with("hello-world")
    assert batch.targets == (
        PostPage(slug="hello-world"),
        CategoryPage(slug="tech"),
        CategoryPage(slug="news"),
        Home(),
        Sitemap(),
    )


@pytest.mark.asyncio
async def test_content_graph_not_consulted_when_categories_given():
    graph = AsyncMock()
    graph.get_post_categories = AsyncMock(return_value=["other"])
    resolver = TargetResolver(graph)

    batch = await resolver.resolve(make_request(category_slugs=("tech",)))

    graph.get_post_categories.assert_not_awaited()
    assert CategoryPage(slug="other") not in batch.targets


@pytest.mark.asyncio
@pytest.mark.parametrize("operation", [Operation.UPDATE, Operation.DELETE])
async def test_lookup_failure_degrades_gracefully(operation):
    graph = AsyncMock()
    graph.get_post_categories = AsyncMock(side_effect=ContentGraphError("HTTP 503"))
    resolver = TargetResolver(graph)

    batch = await resolver.resolve(make_request(operation=operation))

    assert batch.targets == (PostPage(slug="hello-world"), Home(), Sitemap())
    assert len(batch.notes) == 1
    assert "category pages skipped" in batch.notes[0]


@pytest.mark.asyncio
async def test_invalid_slugs_from_content_graph_are_noted():
    graph = AsyncMock()
    graph.get_post_categories = AsyncMock(return_value=["ok", "not ok"])
    resolver = TargetResolver(graph)

    batch = await resolver.resolve(make_request())

    assert CategoryPage(slug="ok") in batch.targets
    assert len(batch.targets) == 4
    assert any("not ok" in note for note in batch.notes)


@pytest.mark.asyncio
async def test_post_without_slug_still_touches_listing_pages():
    resolver = TargetResolver()
    batch = await resolver.resolve(make_request(slug=None, category_slugs=("tech",)))
    assert batch.targets == (CategoryPage(slug="tech"), Home(), Sitemap())


@pytest.mark.asyncio
async def test_category_yields_category_page_and_home():
    resolver = TargetResolver()
    batch = await resolver.resolve(make_request(entity_type="Category", slug="tech"))
    assert batch.targets == (CategoryPage(slug="tech"), Home())


@pytest.mark.asyncio
async def test_category_delete_includes_sitemap():
    resolver = TargetResolver()
    batch = await resolver.resolve(
        make_request(entity_type="Category", slug="tech", operation=Operation.DELETE)
    )
    assert batch.targets == (CategoryPage(slug="tech"), Home(), Sitemap())


@pytest.mark.asyncio
async def test_site_wide_change_yields_home_and_extra_paths():
    resolver = TargetResolver()
    batch = await resolver.resolve(make_request(entity_type="Site", slug=None, paths=("/about", "/")))
    assert batch.targets == (CustomPath(path="/about"), CustomPath(path="/"), Home())


@pytest.mark.asyncio
async def test_unsupported_entity_yields_empty_batch():
    graph = AsyncMock()
    resolver = TargetResolver(graph)

    batch = await resolver.resolve(make_request(entity_type="Author", slug="jane"))

    assert batch.targets == ()
    assert batch.notes == ("unsupported entity type Author",)
    graph.get_post_categories.assert_not_awaited()
