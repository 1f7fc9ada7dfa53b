"""Authentication and normalization of inbound invalidation requests."""
from __future__ import annotations

import hmac
from typing import Any, Iterable, Mapping

import pydantic

from revalidation_service.core.exceptions import MalformedPayload, Unauthorized
from revalidation_service.domain.dto import HygraphCategoryRef, HygraphWebhookPayload, InvalidationRequest
from revalidation_service.domain.enums import EntityType, Operation
from revalidation_service.domain.targets import is_valid_path, is_valid_slug


def _normalize_slug(value: str | None, label: str) -> str | None:
    if value is None:
        return None
    slug = value.strip().lower()
    if not slug:
        return None
    if not is_valid_slug(slug):
        raise MalformedPayload(f"{label} must be URL-safe: {value!r}")
    return slug


def _normalize_category_slugs(values: Iterable[HygraphCategoryRef | str | None]) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for value in values:
        raw = value.slug if isinstance(value, HygraphCategoryRef) else value
        slug = _normalize_slug(raw, "category slug")
        if slug:
            seen.setdefault(slug, None)
    return tuple(seen)


def _normalize_paths(values: Iterable[str]) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for value in values:
        path = value.strip()
        if not path:
            continue
        if not is_valid_path(path):
            raise MalformedPayload(f"path must be a site-relative path: {value!r}")
        seen.setdefault(path, None)
    return tuple(seen)


class InvalidationRequestValidator:
    """Turns untrusted webhook bodies and query strings into requests.

    Pure: no I/O, no state besides the configured secret.
    """

    def __init__(self, secret: str):
        self._secret = secret.encode("utf-8")

    def authenticate(self, secret: str | None) -> None:
        if not self._secret or secret is None:
            raise Unauthorized()
        if not hmac.compare_digest(self._secret, secret.encode("utf-8")):
            raise Unauthorized()

    def validate(self, payload: Any, secret: str | None) -> InvalidationRequest:
        """Validate a CMS webhook body ``{operation, data: {...}}``."""
        self.authenticate(secret)
        if not isinstance(payload, Mapping):
            raise MalformedPayload("JSON body must be an object")
        try:
            parsed = HygraphWebhookPayload.model_validate(payload)
        except pydantic.ValidationError as exc:
            raise MalformedPayload(_describe(exc)) from exc

        entity_type = (parsed.data.entity_type or "").strip()
        if not entity_type:
            raise MalformedPayload("data.__typename is required")
        operation = _parse_operation(parsed.operation)

        return InvalidationRequest(
            operation=operation,
            entity_type=entity_type,
            slug=_normalize_slug(parsed.data.slug, "slug"),
            category_slugs=_normalize_category_slugs(parsed.data.categories or ()),
            stage=parsed.data.stage,
        )

    def validate_query(self, query: Mapping[str, str], secret: str | None) -> InvalidationRequest:
        """Validate a manual trigger; ``operation=update`` is implied."""
        self.authenticate(secret)
        getall = getattr(query, "getall", None)
        categories = getall("category", []) if getall else [query.get("category") or ""]
        paths = getall("path", []) if getall else [query.get("path") or ""]

        slug = _normalize_slug(query.get("slug"), "slug")
        category_slugs = _normalize_category_slugs(categories)

        if slug:
            entity_type, request_slug = EntityType.POST.value, slug
        elif category_slugs:
            entity_type, request_slug = EntityType.CATEGORY.value, category_slugs[0]
            category_slugs = category_slugs[1:]
        else:
            entity_type, request_slug = EntityType.SITE.value, None

        return InvalidationRequest(
            operation=Operation.UPDATE,
            entity_type=entity_type,
            slug=request_slug,
            category_slugs=category_slugs,
            paths=_normalize_paths(paths),
        )


def _parse_operation(value: str) -> Operation:
    try:
        return Operation(value.strip().lower())
    except ValueError as exc:
        allowed = ", ".join(op.value for op in Operation)
        raise MalformedPayload(f"operation must be one of: {allowed}") from exc


def _describe(exc: pydantic.ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    return f"{location}: {first['msg']}" if location else first["msg"]
