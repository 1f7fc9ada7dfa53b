"""Client for the hosting platform's on-demand page regeneration endpoint."""
from __future__ import annotations

from dataclasses import dataclass, field

from aiohttp import ClientResponse, ClientSession

SECRET_HEADER = "X-Revalidation-Secret"


@dataclass(frozen=True)
class RegenerationResponse:
    status: int
    paths: list[str] = field(default_factory=list)
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


async def _read_paths(resp: ClientResponse, requested: str) -> list[str]:
    try:
        body = await resp.json(content_type=None)
    except ValueError:
        return [requested]
    if isinstance(body, dict):
        paths = body.get("revalidated", body.get("paths"))
        if isinstance(paths, list):
            return [str(p) for p in paths]
    return [requested]


class HttpPageRegenerator:
    """POSTs ``<url>?path=<path>`` once per call.

    Network errors propagate as ``aiohttp.ClientError``; retries and timeouts
    are the executor's business.
    """

    def __init__(self, session: ClientSession, *, url: str, secret: str | None = None):
        self._session = session
        self._url = url
        self._secret = secret

    async def regenerate(self, path: str) -> RegenerationResponse:
        headers = {"Content-Type": "application/json"}
        if self._secret:
            headers[SECRET_HEADER] = self._secret
        async with self._session.post(self._url, params={"path": path}, headers=headers) as resp:
            if 200 <= resp.status < 300:
                return RegenerationResponse(status=resp.status, paths=await _read_paths(resp, path))
            text = await resp.text()
            return RegenerationResponse(status=resp.status, detail=text[:500] or None)
