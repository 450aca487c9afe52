"""
Readiness Notifier for snapshim.

Tells page clients whether the embedded database is usable.

Two triggers:
- Activation: warm the database, then broadcast DB_READY (or DB_ERROR) to
  every client connected at that moment. One pass per activation.
- PING_DB from a client: warm the database (sharing any in-flight load),
  then reply to that client only. Other clients hear nothing.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from snapshim.errors import ProtocolError
from snapshim.messaging.messages import (
    DbErrorMessage,
    DbReadyMessage,
    Message,
    PingDbMessage,
    decode_message,
    encode_message,
)

if TYPE_CHECKING:
    from snapshim.engine import DatabaseLifecycle
    from snapshim.messaging.clients import Client, ClientRegistry

logger = logging.getLogger(__name__)


class ReadinessNotifier:
    """
    Sends readiness outcomes to clients.

    Args:
        lifecycle: Lifecycle manager owning the engine
        clients: Registry enumerated on each broadcast
    """

    def __init__(self, lifecycle: "DatabaseLifecycle", clients: "ClientRegistry"):
        self._lifecycle = lifecycle
        self._clients = clients

    async def on_activate(self) -> Message:
        """
        Warm the database and broadcast the outcome.

        Returns:
            The message that was broadcast
        """
        message = await self._readiness()
        delivered = await self._broadcast(message)
        logger.info(f"[notifier] Activation broadcast {message.type} to {delivered} client(s)")
        return message

    async def on_message(self, sender: "Client", raw: str | bytes | dict[str, Any]) -> Message | None:
        """
        Handle an inbound client message.

        Returns:
            The reply sent to the sender, or None if the message was dropped
        """
        try:
            message = decode_message(raw)
            if not isinstance(message, PingDbMessage):
                raise ProtocolError(f"Unexpected inbound message type: {message.type}", raw=raw)
        except ProtocolError as e:
            logger.warning(f"[notifier] Dropping message from {sender.client_id}: {e}")
            return None

        reply = await self._readiness()
        await self._deliver(sender, reply)
        return reply

    async def _readiness(self) -> Message:
        try:
            await self._lifecycle.ensure_ready()
        except Exception as e:
            return DbErrorMessage(error=str(e) or type(e).__name__)
        return DbReadyMessage()

    async def _broadcast(self, message: Message) -> int:
        delivered = 0
        for client in self._clients.match_all():
            if await self._deliver(client, message):
                delivered += 1
        return delivered

    async def _deliver(self, client: "Client", message: Message) -> bool:
        try:
            await client.post_message(encode_message(message))
        except Exception as e:
            # A closed client must not stop delivery to the others
            logger.warning(f"[notifier] Could not deliver {message.type} to {client.client_id}: {e}")
            return False
        return True
