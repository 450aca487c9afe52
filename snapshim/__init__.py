"""
snapshim - Offline API emulation over an embedded database snapshot.

snapshim intercepts a client application's API calls and answers them from
a read-only SQLite snapshot loaded once per process:

- **Diagnostics**: ``GET api`` reports whether the snapshot is loaded
- **SQL queries**: ``POST api`` with ``{"query": ..., "data": [...]}``
- **Refused writes**: ``login`` and ``update`` always answer 403
- **Readiness messages**: ``DB_READY`` / ``DB_ERROR`` broadcast on activation
  and sent in reply to ``PING_DB``

Quick Start:
    >>> import httpx
    >>> from snapshim import DatabaseLifecycle, Interceptor, SnapshotLoader
    >>> from snapshim.interceptor import InterceptingTransport
    >>>
    >>> lifecycle = DatabaseLifecycle(SnapshotLoader("http://app.local/assets/db/app.sqlite?v=2"))
    >>> transport = InterceptingTransport(Interceptor(lifecycle, scope="http://app.local/"))
    >>> async with httpx.AsyncClient(transport=transport) as client:
    ...     resp = await client.post("http://app.local/api", json={"query": "SELECT 1 AS x"})
"""

__version__ = "0.1.0"
__license__ = "MIT"

from snapshim.engine import DatabaseLifecycle, LoadState, SnapshotEngine, SnapshotLoader
from snapshim.interceptor import Interceptor, QueryExecutor
from snapshim.messaging import ClientRegistry, ReadinessNotifier

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Engine
    "DatabaseLifecycle",
    "LoadState",
    "SnapshotEngine",
    "SnapshotLoader",
    # Interception
    "Interceptor",
    "QueryExecutor",
    # Messaging
    "ClientRegistry",
    "ReadinessNotifier",
]
