"""
Readiness messages exchanged between snapshim and its page clients.

Messages are a closed tagged union keyed by ``type``:

    process -> client(s):  DB_READY               (no payload)
    process -> client(s):  DB_ERROR  {error}      (human-readable error)
    client  -> process:    PING_DB                (no payload)

Inbound payloads are decoded once at the boundary with ``decode_message``;
anything outside the union raises ``ProtocolError``.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from snapshim.errors import ProtocolError

DB_READY = "DB_READY"
DB_ERROR = "DB_ERROR"
PING_DB = "PING_DB"


class DbReadyMessage(BaseModel):
    """The database is loaded and queries can be served."""

    model_config = ConfigDict(frozen=True)

    type: Literal["DB_READY"] = DB_READY


class DbErrorMessage(BaseModel):
    """The database failed to load."""

    model_config = ConfigDict(frozen=True)

    type: Literal["DB_ERROR"] = DB_ERROR
    error: str = Field(..., description="Human-readable load failure")


class PingDbMessage(BaseModel):
    """A client asking whether the database is ready."""

    model_config = ConfigDict(frozen=True)

    type: Literal["PING_DB"] = PING_DB


Message = Annotated[
    Union[DbReadyMessage, DbErrorMessage, PingDbMessage],
    Field(discriminator="type"),
]

_message_adapter: TypeAdapter[Message] = TypeAdapter(Message)


def decode_message(raw: str | bytes | dict[str, Any]) -> Message:
    """
    Decode an inbound message.

    Args:
        raw: JSON text/bytes or an already-parsed mapping

    Returns:
        The typed message

    Raises:
        ProtocolError: If the payload is not a known message
    """
    try:
        if isinstance(raw, (str, bytes, bytearray)):
            return _message_adapter.validate_json(raw)
        return _message_adapter.validate_python(raw)
    except PydanticValidationError as e:
        raise ProtocolError(f"Malformed message: {e.error_count()} validation error(s)", raw=raw) from e


def encode_message(message: Message) -> dict[str, Any]:
    """Encode a message as a JSON-ready mapping."""
    return message.model_dump()
