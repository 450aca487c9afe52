"""
snapshim - Offline API emulation over an embedded database snapshot

FastAPI application entry point.

Run with:
    uvicorn snapshim.app.main:app
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from dataclasses import replace
from typing import Any
from uuid import uuid4

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import Response

from snapshim import __version__
from snapshim.app.dependencies import SnapshimServices, get_services
from snapshim.interceptor import Branch, InterceptedRequest
from snapshim.interceptor.types import JSON_CONTENT_TYPE
from snapshim.messaging import WebSocketClient

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(services: SnapshimServices | None = None) -> FastAPI:
    """
    Create the snapshim application.

    Args:
        services: Service instances for this process era. Defaults to the
            process-wide services built from environment settings.
    """
    services = services or get_services()
    settings = services.settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.

        Startup kicks off activation in the background so clients that
        connect while the snapshot is loading still receive the broadcast.
        """
        logger.info("Starting snapshim services...")
        activation = asyncio.create_task(services.notifier.on_activate())
        app.state.activation = activation

        yield

        logger.info("Shutting down snapshim services...")
        if not activation.done():
            activation.cancel()
        with suppress(asyncio.CancelledError):
            await activation
        await services.close()

    app = FastAPI(
        title="snapshim",
        description="Offline API emulation over an embedded read-only database snapshot",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.services = services

    @app.middleware("http")
    async def intercept(request: Request, call_next):
        """Answer intercepted API calls; everything else reaches the app's routes."""
        interceptor = services.interceptor
        intercepted = InterceptedRequest(method=request.method.upper(), url=str(request.url))
        branch = interceptor.route(intercepted, base_url=str(request.base_url))

        if branch is Branch.PASS_THROUGH:
            return await call_next(request)

        if branch is Branch.SQL_QUERY:
            intercepted = replace(intercepted, body=await request.body())

        envelope = await interceptor.respond(branch, intercepted)
        return Response(
            content=envelope.render(),
            status_code=envelope.status_code,
            media_type=JSON_CONTENT_TYPE,
        )

    @app.get("/", tags=["root"])
    async def root() -> dict[str, str]:
        """Root endpoint with service info."""
        return {
            "service": settings.service_name,
            "version": __version__,
            "status": "running",
        }

    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, Any]:
        """Health check endpoint. Reports load state without triggering a load."""
        return {
            "status": "healthy",
            "database": services.lifecycle.state.value,
            "clients": len(services.clients),
            "snapshot": settings.snapshot_url,
        }

    @app.websocket(settings.clients_path)
    async def clients_endpoint(websocket: WebSocket) -> None:
        """Readiness channel: one connected page per socket."""
        await websocket.accept()
        client = WebSocketClient(websocket, client_id=uuid4().hex)
        services.clients.register(client)
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                raw = message.get("text")
                if raw is None:
                    raw = message.get("bytes") or b""
                await services.notifier.on_message(client, raw)
        except WebSocketDisconnect:
            pass
        finally:
            services.clients.unregister(client.client_id)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = app.state.services.settings
    uvicorn.run(
        "snapshim.app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=_settings.debug,
    )
