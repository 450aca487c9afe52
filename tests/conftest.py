"""
Pytest configuration and fixtures for snapshim tests.
"""

import asyncio
import sqlite3
import sys
from pathlib import Path

import httpx
import pytest

# Add the repository root to path for imports
# This allows `from snapshim.engine import ...` to work
repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))


SNAPSHOT_URL = "http://app.local/assets/db/app.sqlite?v=2"


def build_snapshot_bytes() -> bytes:
    """Serialize a small catalog database, the way a published snapshot looks."""
    conn = sqlite3.connect(":memory:")
    conn.executescript(
        """
        CREATE TABLE items (
            id INTEGER PRIMARY KEY,
            name TEXT NOT NULL,
            kind TEXT,
            price REAL,
            thumb BLOB
        );
        INSERT INTO items (id, name, kind, price, thumb) VALUES
            (1, 'Dune', 'book', 9.5, NULL),
            (2, 'Neuromancer', 'book', 7.25, X'0102'),
            (3, 'Blade Runner', 'film', 12.0, NULL);

        CREATE TABLE users (id INTEGER PRIMARY KEY, email TEXT);
        INSERT INTO users (id, email) VALUES (1, 'admin@example.com');

        CREATE TABLE my_users_table (id INTEGER PRIMARY KEY, label TEXT);
        INSERT INTO my_users_table (id, label) VALUES (1, 'visible');
        """
    )
    conn.commit()
    data = conn.serialize()
    conn.close()
    return data


class SnapshotServer:
    """
    Stand-in for the host serving the snapshot resource.

    Counts requests so tests can assert how many fetches happened.
    """

    def __init__(self, payload: bytes | None = None, status_code: int = 200, delay: float = 0.0):
        self.payload = build_snapshot_bytes() if payload is None else payload
        self.status_code = status_code
        self.delay = delay
        self.requests: list[httpx.Request] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        return httpx.Response(self.status_code, content=self.payload)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


class RecordingClient:
    """Page client double that records every posted message."""

    def __init__(self, client_id: str, fail: bool = False):
        self._client_id = client_id
        self.fail = fail
        self.messages: list[dict] = []

    @property
    def client_id(self) -> str:
        return self._client_id

    async def post_message(self, message: dict) -> None:
        if self.fail:
            raise ConnectionError("client went away")
        self.messages.append(message)


@pytest.fixture
def snapshot_bytes() -> bytes:
    return build_snapshot_bytes()


@pytest.fixture
def snapshot_server() -> SnapshotServer:
    return SnapshotServer()


@pytest.fixture
def failing_snapshot_server() -> SnapshotServer:
    return SnapshotServer(payload=b"not here", status_code=404)
