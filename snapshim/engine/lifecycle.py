"""
Database Lifecycle Manager for snapshim.

Memoizes snapshot loading so the engine is built at most once per process
era, no matter how many callers ask for it concurrently.

State machine:
    UNLOADED --ensure_ready()--> LOADING --success--> READY (permanent)
                                     |
                                     +--failure--> UNLOADED (not poisoned)

Concurrency:
    Everything runs on one event loop. Two callers can each reach their
    first suspension point before either sees the other's load, so the
    in-flight load is held as a single shared task that every concurrent
    caller awaits. No lock is needed beyond that.

Usage:
    lifecycle = DatabaseLifecycle(SnapshotLoader.from_settings(settings))
    engine = await lifecycle.ensure_ready()
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Protocol, runtime_checkable

from snapshim.engine.engine import SnapshotEngine

logger = logging.getLogger(__name__)


class LoadState(str, Enum):
    """Lifecycle state of the embedded database."""

    UNLOADED = "unloaded"
    LOADING = "loading"
    READY = "ready"


@runtime_checkable
class SnapshotSource(Protocol):
    """Anything that can produce a fresh engine on each call."""

    async def load(self) -> SnapshotEngine:
        ...


class DatabaseLifecycle:
    """
    Owner of the process-wide engine handle.

    Success is cached for the lifetime of this object; failure is not.
    Construct one per process era (per app instance).
    """

    def __init__(self, source: SnapshotSource):
        self._source = source
        self._engine: SnapshotEngine | None = None
        self._loading: asyncio.Task[SnapshotEngine] | None = None
        self._load_count = 0

    @property
    def state(self) -> LoadState:
        if self._engine is not None:
            return LoadState.READY
        if self._loading is not None:
            return LoadState.LOADING
        return LoadState.UNLOADED

    @property
    def is_ready(self) -> bool:
        """True iff the engine handle is cached."""
        return self._engine is not None

    @property
    def load_count(self) -> int:
        """Number of load attempts started during this era."""
        return self._load_count

    async def ensure_ready(self) -> SnapshotEngine:
        """
        Return the engine, loading it if necessary.

        Concurrent callers during a load all await the same attempt and
        observe the same outcome.

        Raises:
            DbFetchError: If the snapshot could not be fetched
            DbFormatError: If the snapshot bytes are not a database image
        """
        if self._engine is not None:
            return self._engine

        if self._loading is None:
            self._load_count += 1
            logger.info(f"[lifecycle] Starting snapshot load (attempt {self._load_count})")
            self._loading = asyncio.ensure_future(self._load())

        # A cancelled caller must not cancel the load other callers share
        return await asyncio.shield(self._loading)

    async def _load(self) -> SnapshotEngine:
        try:
            engine = await self._source.load()
        except BaseException as e:
            self._loading = None
            logger.error(f"[lifecycle] Snapshot load failed: {e}")
            raise

        self._engine = engine
        self._loading = None
        logger.info("[lifecycle] Snapshot ready")
        return engine
