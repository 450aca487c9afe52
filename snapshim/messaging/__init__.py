"""
snapshim Messaging Layer.

Readiness notifications between the intercepting process and its clients.

Core Components:
- Message types: DbReadyMessage, DbErrorMessage, PingDbMessage
- Client / ClientRegistry: Reachable page contexts
- ReadinessNotifier: Activation broadcast and PING_DB replies
"""

from .clients import Client, ClientRegistry, WebSocketClient
from .messages import (
    DB_ERROR,
    DB_READY,
    PING_DB,
    DbErrorMessage,
    DbReadyMessage,
    Message,
    PingDbMessage,
    decode_message,
    encode_message,
)
from .notifier import ReadinessNotifier

__all__ = [
    "DB_ERROR",
    "DB_READY",
    "PING_DB",
    "Client",
    "ClientRegistry",
    "DbErrorMessage",
    "DbReadyMessage",
    "Message",
    "PingDbMessage",
    "ReadinessNotifier",
    "WebSocketClient",
    "decode_message",
    "encode_message",
]
