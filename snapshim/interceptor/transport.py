"""
httpx Interception Transport for snapshim.

Lets client-side code talk to the emulated API with a plain
``httpx.AsyncClient``. Classified requests are answered locally from the
snapshot; pass-through requests reach the inner transport unmodified.

Usage:
    interceptor = Interceptor(lifecycle, scope="http://app.local/")
    async with httpx.AsyncClient(
        transport=InterceptingTransport(interceptor),
        base_url="http://app.local",
    ) as client:
        resp = await client.post("/api", json={"query": "SELECT 1 AS x"})
        resp.json()  # [{"x": 1}]
"""
from __future__ import annotations

import logging
from dataclasses import replace

import httpx

from .handlers import Interceptor
from .routing import Branch
from .types import InterceptedRequest

logger = logging.getLogger(__name__)


class InterceptingTransport(httpx.AsyncBaseTransport):
    """
    httpx transport that serves intercepted API calls offline.

    Args:
        interceptor: Interceptor answering classified requests
        inner: Transport for pass-through requests (defaults to the
            regular network transport)
    """

    def __init__(
        self,
        interceptor: Interceptor,
        inner: httpx.AsyncBaseTransport | None = None,
    ):
        self._interceptor = interceptor
        self._inner = inner or httpx.AsyncHTTPTransport()

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        intercepted = InterceptedRequest(
            method=request.method.upper(),
            url=str(request.url),
        )
        branch = self._interceptor.route(intercepted)

        if branch is Branch.PASS_THROUGH:
            return await self._inner.handle_async_request(request)

        if branch is Branch.SQL_QUERY:
            intercepted = replace(intercepted, body=await request.aread())

        envelope = await self._interceptor.respond(branch, intercepted)
        return httpx.Response(
            status_code=envelope.status_code,
            headers=envelope.headers,
            content=envelope.render(),
            request=request,
        )

    async def aclose(self) -> None:
        await self._inner.aclose()
