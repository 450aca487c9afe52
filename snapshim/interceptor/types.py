"""
Request and response types for the interception layer.

Both types are immutable: a request is classified and answered, never
mutated. A response envelope is rendered by whichever surface intercepted
the request (httpx transport or ASGI middleware).
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlsplit

JSON_CONTENT_TYPE = "application/json"

_DEFAULT_PORTS = {"http": 80, "https": 443, "ws": 80, "wss": 443}


def url_origin(url: str) -> str:
    """
    Origin of a URL: scheme, host and non-default port.

    Example:
        url_origin("HTTP://Example.com:80/api?x=1")  # "http://example.com"
    """
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    port = parts.port
    if port is None or port == _DEFAULT_PORTS.get(scheme):
        return f"{scheme}://{host}"
    return f"{scheme}://{host}:{port}"


@dataclass(frozen=True, slots=True)
class InterceptedRequest:
    """
    A network call seen by the interceptor.

    Attributes:
        method: HTTP method, upper case
        url: Absolute request URL
        body: Raw body bytes (only read for branches that need it)
    """

    method: str
    url: str
    body: bytes = b""

    @property
    def origin(self) -> str:
        return url_origin(self.url)

    @property
    def path(self) -> str:
        return urlsplit(self.url).path or "/"


@dataclass(frozen=True, slots=True)
class ResponseEnvelope:
    """Status code plus JSON body for one intercepted request."""

    status_code: int
    body: Any

    def render(self) -> bytes:
        """Compact JSON encoding of the body."""
        return json.dumps(
            self.body,
            ensure_ascii=False,
            separators=(",", ":"),
            allow_nan=False,
        ).encode("utf-8")

    @property
    def headers(self) -> dict[str, str]:
        return {"Content-Type": JSON_CONTENT_TYPE}
