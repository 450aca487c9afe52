"""
Interceptor for snapshim.

Composes the classifier with the branch handlers. Surfaces (the httpx
transport and the ASGI middleware) call ``route()`` first, read the body
only when the branch needs it, then call ``respond()``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .executor import QueryExecutor
from .routing import Branch, RouteTable, classify
from .types import InterceptedRequest, ResponseEnvelope

if TYPE_CHECKING:
    from snapshim.engine import DatabaseLifecycle

logger = logging.getLogger(__name__)

FORBIDDEN_WRITE = ResponseEnvelope(403, {"error": "Forbidden in static build"})


class Interceptor:
    """
    Answers intercepted API calls from the embedded snapshot.

    Args:
        lifecycle: Lifecycle manager owning the engine
        scope: Base URL intercepted paths are relative to. A relative scope
            is resolved against each request's own URL (or the base URL the
            surface passes in).
        executor: Optional executor override
    """

    def __init__(
        self,
        lifecycle: "DatabaseLifecycle",
        scope: str = "/",
        executor: QueryExecutor | None = None,
    ):
        self._lifecycle = lifecycle
        self._scope = scope
        self._executor = executor or QueryExecutor(lifecycle)

    @property
    def scope(self) -> str:
        return self._scope

    def routes_for(self, request: InterceptedRequest, base_url: str | None = None) -> RouteTable:
        return RouteTable.resolve(self._scope, base_url or request.url)

    def route(self, request: InterceptedRequest, base_url: str | None = None) -> Branch:
        """Classify a request without touching its body."""
        branch = classify(request, self.routes_for(request, base_url))
        logger.debug(f"[interceptor] {request.method} {request.path} -> {branch.value}")
        return branch

    async def respond(self, branch: Branch, request: InterceptedRequest) -> ResponseEnvelope:
        """Produce the response for an already classified, non pass-through request."""
        if branch is Branch.DIAGNOSTIC:
            return await self.diagnostic()
        if branch is Branch.FORBIDDEN_WRITE:
            return FORBIDDEN_WRITE
        if branch is Branch.SQL_QUERY:
            return await self._executor.execute(request.body)
        raise ValueError(f"Branch {branch.value} has no response")

    async def handle(
        self,
        request: InterceptedRequest,
        base_url: str | None = None,
    ) -> ResponseEnvelope | None:
        """
        Classify and answer a request whose body is already known.

        Returns:
            The response, or None for pass-through
        """
        branch = self.route(request, base_url)
        if branch is Branch.PASS_THROUGH:
            return None
        return await self.respond(branch, request)

    async def diagnostic(self) -> ResponseEnvelope:
        """Readiness probe. Load failures are swallowed and reported as not ready."""
        try:
            await self._lifecycle.ensure_ready()
        except Exception as e:
            logger.debug(f"[interceptor] Diagnostic load failed: {e}")
        return ResponseEnvelope(200, {"ready": self._lifecycle.is_ready})
