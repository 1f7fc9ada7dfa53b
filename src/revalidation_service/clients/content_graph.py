"""Hygraph lookup of a post's categories."""
from __future__ import annotations

import asyncio
from typing import Any

from aiohttp import ClientError, ClientSession, ClientTimeout

from revalidation_service.core.exceptions import ContentGraphError

POST_CATEGORIES_QUERY = """
query PostCategories($slug: String!) {
  post(where: { slug: $slug }) {
    categories {
      slug
    }
  }
}
"""


class HygraphContentGraph:
    def __init__(
        self,
        session: ClientSession,
        *,
        endpoint: str,
        token: str | None = None,
        timeout_s: float = 3.0,
    ):
        self._session = session
        self._endpoint = endpoint
        self._token = token
        self._timeout = ClientTimeout(total=timeout_s)

    async def get_post_categories(self, slug: str) -> list[str]:
        """Category slugs of the post, ``[]`` if the post no longer exists."""
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        payload = {"query": POST_CATEGORIES_QUERY, "variables": {"slug": slug}}
        try:
            async with self._session.post(
                self._endpoint, json=payload, headers=headers, timeout=self._timeout
            ) as resp:
                if resp.status != 200:
                    text = await resp.text()
                    raise ContentGraphError(f"HTTP {resp.status}: {text[:200]}")
                body = await resp.json(content_type=None)
        except (ClientError, asyncio.TimeoutError, ValueError) as exc:
            raise ContentGraphError(str(exc) or type(exc).__name__) from exc
        return _extract_category_slugs(body)


def _extract_category_slugs(body: Any) -> list[str]:
    if not isinstance(body, dict):
        raise ContentGraphError("GraphQL response must be an object")
    errors = body.get("errors")
    if errors:
        first = errors[0] if isinstance(errors, list) and errors else errors
        message = first.get("message") if isinstance(first, dict) else str(first)
        raise ContentGraphError(f"GraphQL error: {message}")
    post = (body.get("data") or {}).get("post")
    if not post:
        return []
    return [
        category["slug"]
        for category in post.get("categories") or []
        if isinstance(category, dict) and category.get("slug")
    ]
