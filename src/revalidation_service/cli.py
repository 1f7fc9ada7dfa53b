"""Operator front-end for the manual revalidation trigger.

    revalidation-cli --url https://revalidate.example.com --slug hello-world

Exit codes: 0 all targets regenerated, 1 some target failed or the service
could not be reached, 2 the request was rejected (bad secret or parameters).
"""
from __future__ import annotations

import argparse
import asyncio
import os
import sys
from typing import Any, Sequence

import httpx

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_REJECTED = 2


class RevalidationClient:
    def __init__(
        self,
        *,
        base_url: str,
        secret: str,
        timeout_s: float = 35.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._secret = secret
        self._timeout_s = timeout_s
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "RevalidationClient":
        self._client = httpx.AsyncClient(timeout=self._timeout_s, transport=self._transport)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def invalidate(
        self,
        *,
        slug: str | None = None,
        categories: Sequence[str] = (),
        paths: Sequence[str] = (),
    ) -> tuple[int, dict[str, Any]]:
        if not self._client:
            raise RuntimeError("Client is not started; use 'async with RevalidationClient(...)'.")
        params: list[tuple[str, str]] = [("secret", self._secret)]
        if slug:
            params.append(("slug", slug))
        params.extend(("category", category) for category in categories)
        params.extend(("path", path) for path in paths)

        resp = await self._client.get(f"{self._base_url}/invalidate", params=params)
        try:
            body = resp.json()
        except ValueError:
            body = {"error": resp.text[:500]}
        return resp.status_code, body if isinstance(body, dict) else {"error": str(body)}


def exit_code_for(status: int, body: dict[str, Any]) -> int:
    if status in (400, 401):
        return EXIT_REJECTED
    if status != 200:
        return EXIT_FAILED
    return EXIT_OK if not body.get("failed_count") else EXIT_FAILED


def render_report(body: dict[str, Any]) -> str:
    lines = []
    for result in body.get("results", []):
        target = result.get("target", {})
        line = f"{result.get('status', '?'):<9} {target.get('path', '?')} (attempts={result.get('attempts', 0)})"
        if result.get("error"):
            line = f"{line} {result['error']}"
        lines.append(line)
    for note in body.get("notes", []):
        lines.append(f"note      {note}")
    lines.append(
        "succeeded={} failed={} skipped={}".format(
            body.get("succeeded_count", 0), body.get("failed_count", 0), body.get("skipped_count", 0)
        )
    )
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Trigger on-demand page revalidation.")
    parser.add_argument(
        "--url",
        default=os.environ.get("REVALIDATION_URL", "http://localhost:8010"),
        help="Base URL of the revalidation service",
    )
    parser.add_argument(
        "--secret",
        default=os.environ.get("REVALIDATION_SECRET"),
        help="Shared secret (defaults to $REVALIDATION_SECRET)",
    )
    parser.add_argument("--slug", help="Post slug to revalidate")
    parser.add_argument("--category", action="append", default=[], help="Category slug (repeatable)")
    parser.add_argument("--path", action="append", default=[], help="Extra site path (repeatable)")
    parser.add_argument("--timeout", type=float, default=35.0, help="Request timeout in seconds")
    return parser


async def _run(args: argparse.Namespace) -> tuple[int, dict[str, Any]]:
    async with RevalidationClient(base_url=args.url, secret=args.secret, timeout_s=args.timeout) as client:
        return await client.invalidate(slug=args.slug, categories=args.category, paths=args.path)


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if not args.secret:
        print("A secret is required (--secret or REVALIDATION_SECRET).", file=sys.stderr)
        return EXIT_REJECTED

    try:
        status, body = asyncio.run(_run(args))
    except httpx.HTTPError as exc:
        print(f"Revalidation service unreachable: {exc}", file=sys.stderr)
        return EXIT_FAILED

    if status == 200:
        print(render_report(body))
    else:
        print(f"HTTP {status}: {body.get('error', body)}", file=sys.stderr)
    return exit_code_for(status, body)


if __name__ == "__main__":
    sys.exit(main())
