"""Invalidation targets: the page artifacts that can be regenerated."""
from __future__ import annotations

import re
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

SLUG_PATTERN = r"^[a-z0-9][a-z0-9._~-]*$"
_SLUG_RE = re.compile(SLUG_PATTERN)


def is_valid_slug(value: str) -> bool:
    return bool(_SLUG_RE.match(value))


def is_valid_path(value: str) -> bool:
    """Site-relative path without traversal, query or fragment."""
    if not value.startswith("/") or value.startswith("//"):
        return False
    if any(ch in value for ch in ("?", "#", "\\")) or any(ch.isspace() for ch in value):
        return False
    return ".." not in value.split("/")


class _Target(BaseModel):
    model_config = ConfigDict(frozen=True)


class Home(_Target):
    kind: Literal["home"] = "home"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def path(self) -> str:
        return "/"


class PostPage(_Target):
    kind: Literal["post"] = "post"
    slug: str = Field(pattern=SLUG_PATTERN)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def path(self) -> str:
        return f"/post/{self.slug}"


class CategoryPage(_Target):
    kind: Literal["category"] = "category"
    slug: str = Field(pattern=SLUG_PATTERN)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def path(self) -> str:
        return f"/category/{self.slug}"


class Sitemap(_Target):
    kind: Literal["sitemap"] = "sitemap"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def path(self) -> str:
        return "/sitemap.xml"


class CustomPath(_Target):
    """Arbitrary site path requested by an operator."""

    kind: Literal["path"] = "path"
    path: str

    @field_validator("path")
    @classmethod
    def _check_path(cls, value: str) -> str:
        if not is_valid_path(value):
            raise ValueError(f"invalid site path: {value!r}")
        return value


InvalidationTarget = Annotated[
    Union[Home, PostPage, CategoryPage, Sitemap, CustomPath],
    Field(discriminator="kind"),
]
