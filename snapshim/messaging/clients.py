"""
Client Registry for snapshim.

Tracks the page clients currently reachable for readiness messages. The
registry never persists anything: ``match_all()`` returns a snapshot of the
clients connected at the moment of the call, so each notification pass
enumerates afresh.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from starlette.websockets import WebSocket

logger = logging.getLogger(__name__)


@runtime_checkable
class Client(Protocol):
    """
    A reachable page context, used only as a message-delivery target.

    Example implementations:
    - WebSocketClient (pages connected to the app's clients endpoint)
    - test doubles recording posted messages
    """

    @property
    def client_id(self) -> str:
        """Unique identifier for this client."""
        ...

    async def post_message(self, message: dict[str, Any]) -> None:
        """Deliver a JSON-ready message to this client."""
        ...


class WebSocketClient:
    """Client backed by an accepted Starlette/FastAPI WebSocket."""

    def __init__(self, websocket: "WebSocket", client_id: str):
        self._websocket = websocket
        self._client_id = client_id

    @property
    def client_id(self) -> str:
        return self._client_id

    async def post_message(self, message: dict[str, Any]) -> None:
        await self._websocket.send_json(message)


class ClientRegistry:
    """
    Registry of connected clients.

    Example:
        registry = ClientRegistry()
        registry.register(WebSocketClient(ws, "c-1"))

        for client in registry.match_all():
            await client.post_message({"type": "DB_READY"})
    """

    def __init__(self) -> None:
        self._clients: dict[str, Client] = {}

    def register(self, client: Client) -> None:
        """
        Register a client.

        Note:
            A client with the same client_id replaces the earlier one.
        """
        client_id = client.client_id
        if client_id in self._clients:
            logger.warning(f"[clients] Replacing existing client: {client_id}")
        self._clients[client_id] = client
        logger.debug(f"[clients] Registered client: {client_id}")

    def unregister(self, client_id: str) -> bool:
        """Remove a client. Returns False if it was not registered."""
        if client_id in self._clients:
            del self._clients[client_id]
            logger.debug(f"[clients] Unregistered client: {client_id}")
            return True
        return False

    def has(self, client_id: str) -> bool:
        return client_id in self._clients

    def match_all(self) -> list[Client]:
        """Snapshot of all currently connected clients."""
        return list(self._clients.values())

    def __len__(self) -> int:
        return len(self._clients)

    def clear(self) -> None:
        """Clear all registered clients (for testing)."""
        self._clients.clear()
