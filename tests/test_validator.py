from __future__ import annotations

import pytest
from multidict import MultiDict

from revalidation_service.core.exceptions import MalformedPayload, Unauthorized
from revalidation_service.domain.enums import EntityType, Operation
from revalidation_service.services.validator import InvalidationRequestValidator
from tests.utils import TEST_SECRET, webhook_body


@pytest.fixture
def validator():
    return InvalidationRequestValidator(TEST_SECRET)


@pytest.mark.parametrize("secret", [None, "", "wrong", TEST_SECRET.upper(), TEST_SECRET + "x"])
def test_rejects_bad_secret(validator, secret):
    with pytest.raises(Unauthorized) as exc_info:
        validator.validate(webhook_body(), secret)
    assert str(exc_info.value) == "Invalid token"


def test_bad_secret_wins_over_bad_payload(validator):
    with pytest.raises(Unauthorized):
        validator.validate(None, "wrong")


def test_empty_configured_secret_rejects_everything():
    validator = InvalidationRequestValidator("")
    with pytest.raises(Unauthorized):
        validator.validate(webhook_body(), "")


def test_webhook_body_is_normalized(validator):
    body = {
        "operation": "publish",
        "data": {
            "__typename": "Post",
            "slug": "  Hello-World ",
            "stage": "PUBLISHED",
            "categories": [{"slug": "Tech"}, {"slug": ""}, {"slug": "news"}, {"slug": "tech"}, {"id": "x"}],
        },
    }
    request = validator.validate(body, TEST_SECRET)

    assert request.operation is Operation.PUBLISH
    assert request.entity_type == "Post"
    assert request.entity is EntityType.POST
    assert request.slug == "hello-world"
    assert request.category_slugs == ("tech", "news")
    assert request.stage == "PUBLISHED"


def test_categories_may_be_plain_strings(validator):
    body = webhook_body()
    body["data"]["categories"] = ["AI", "ai", "cloud"]
    request = validator.validate(body, TEST_SECRET)
    assert request.category_slugs == ("ai", "cloud")


def test_model_field_is_accepted_as_entity_type(validator):
    body = {"operation": "update", "data": {"model": "Category", "slug": "tech"}}
    request = validator.validate(body, TEST_SECRET)
    assert request.entity is EntityType.CATEGORY
    assert request.slug == "tech"


@pytest.mark.parametrize(
    "body",
    [
        [],
        "publish",
        {"operation": "publish"},
        {"data": {"__typename": "Post", "slug": "a"}},
        {"operation": "publish", "data": {"slug": "a"}},
        {"operation": "publish", "data": {"__typename": "  ", "slug": "a"}},
        {"operation": "archive", "data": {"__typename": "Post", "slug": "a"}},
        {"operation": "publish", "data": {"__typename": "Post", "slug": "not a slug"}},
        {"operation": "publish", "data": {"__typename": "Post", "slug": "ok", "categories": [{"slug": "a/b"}]}},
    ],
)
def test_malformed_payloads(validator, body):
    with pytest.raises(MalformedPayload):
        validator.validate(body, TEST_SECRET)


def test_unknown_operation_message_lists_allowed_values(validator):
    with pytest.raises(MalformedPayload) as exc_info:
        validator.validate(webhook_body(operation="archive"), TEST_SECRET)
    assert "unpublish" in str(exc_info.value)


def test_unsupported_entity_is_accepted(validator):
    request = validator.validate(webhook_body(typename="Author", slug="jane"), TEST_SECRET)
    assert request.entity_type == "Author"


def test_empty_slug_becomes_none(validator):
    request = validator.validate(webhook_body(slug="   "), TEST_SECRET)
    assert request.slug is None


def test_manual_slug_maps_to_post_update(validator):
    query = MultiDict([("slug", "Hello-World"), ("category", "tech"), ("path", "/about")])
    request = validator.validate_query(query, TEST_SECRET)

    assert request.operation is Operation.UPDATE
    assert request.entity is EntityType.POST
    assert request.slug == "hello-world"
    assert request.category_slugs == ("tech",)
    assert request.paths == ("/about",)


def test_manual_category_maps_to_category(validator):
    query = MultiDict([("category", "tech"), ("category", "news")])
    request = validator.validate_query(query, TEST_SECRET)

    assert request.entity is EntityType.CATEGORY
    assert request.slug == "tech"
    assert request.category_slugs == ("news",)


def test_manual_without_slug_or_category_is_site_wide(validator):
    request = validator.validate_query({}, TEST_SECRET)
    assert request.entity is EntityType.SITE
    assert request.slug is None
    assert request.paths == ()


def test_manual_accepts_plain_mapping(validator):
    request = validator.validate_query({"slug": "post-1", "path": "/tags/x"}, TEST_SECRET)
    assert request.slug == "post-1"
    assert request.paths == ("/tags/x",)


@pytest.mark.parametrize("path", ["about", "//evil.example.com", "/a/../b", "/x?y=1", "/with space"])
def test_manual_rejects_unsafe_paths(validator, path):
    with pytest.raises(MalformedPayload):
        validator.validate_query({"path": path}, TEST_SECRET)


def test_manual_rejects_bad_secret(validator):
    with pytest.raises(Unauthorized):
        validator.validate_query({"slug": "a"}, "nope")


def test_fingerprint_ignores_category_order(validator):
    first = validator.validate(webhook_body(categories=("a", "b")), TEST_SECRET)
    second = validator.validate(webhook_body(categories=("b", "a")), TEST_SECRET)
    other = validator.validate(webhook_body(operation="update", categories=("a", "b")), TEST_SECRET)

    assert first.fingerprint() == second.fingerprint()
    assert first.fingerprint() != other.fingerprint()
