"""Domain enums for invalidation requests and outcomes."""
from __future__ import annotations

from enum import Enum


class Operation(str, Enum):
    """CMS content mutations that can trigger revalidation."""

    CREATE = "create"
    UPDATE = "update"
    PUBLISH = "publish"
    UNPUBLISH = "unpublish"
    DELETE = "delete"


class EntityType(str, Enum):
    """Entity types that map to generated pages."""

    POST = "Post"
    CATEGORY = "Category"
    SITE = "Site"


class TargetKind(str, Enum):
    """Page families served by the frontend."""

    HOME = "home"
    POST = "post"
    CATEGORY = "category"
    SITEMAP = "sitemap"
    PATH = "path"


class ResultStatus(str, Enum):
    """Per-target outcome of a regeneration."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"
