"""
Snapshot Loader for snapshim.

Fetches the version-tagged snapshot resource and turns its bytes into a
``SnapshotEngine``. Each call to ``load()`` is a single attempt; memoizing
the result is the lifecycle manager's job, not the loader's.

Cache-first:
    When a cache directory is configured (``SnapshimSettings`` defaults to a
    per-user cache directory), a cached copy of the exact
    versioned URL is preferred over the network. The cache file name is a
    hash of the versioned URL, so bumping the snapshot version busts it.
    Only images that parsed successfully are written to the cache.

Usage:
    loader = SnapshotLoader(
        "http://localhost:8000/assets/db/app.sqlite?v=2",
        cache_dir=Path("~/.cache/snapshim").expanduser(),
    )
    engine = await loader.load()
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import time
from pathlib import Path
from typing import TYPE_CHECKING

import httpx

from snapshim.engine.engine import SnapshotEngine
from snapshim.errors import DbFetchError, DbFormatError

if TYPE_CHECKING:
    from snapshim.config import SnapshimSettings

logger = logging.getLogger(__name__)


class SnapshotLoader:
    """
    Single-shot loader for the snapshot resource.

    Args:
        url: Absolute, version-tagged snapshot URL
        cache_dir: Optional directory for cached copies
        client: Optional pre-built httpx client (tests inject a MockTransport)
        timeout: Request timeout in seconds for the default client
    """

    def __init__(
        self,
        url: str,
        *,
        cache_dir: Path | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ):
        self._url = url
        self._cache_dir = cache_dir
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout

    @classmethod
    def from_settings(
        cls,
        settings: "SnapshimSettings",
        client: httpx.AsyncClient | None = None,
    ) -> "SnapshotLoader":
        return cls(
            settings.snapshot_url,
            cache_dir=settings.cache_dir,
            client=client,
            timeout=settings.fetch_timeout,
        )

    @property
    def url(self) -> str:
        return self._url

    @property
    def cache_path(self) -> Path | None:
        """Location of the cached copy for this URL, if caching is enabled."""
        if self._cache_dir is None:
            return None
        digest = hashlib.sha256(self._url.encode("utf-8")).hexdigest()[:32]
        return Path(self._cache_dir) / f"snapshot-{digest}.sqlite"

    async def load(self) -> SnapshotEngine:
        """
        Load the snapshot and build an engine from it.

        Raises:
            DbFetchError: If the resource responded with a non-success status
                or could not be reached
            DbFormatError: If the bytes are not a valid database image
        """
        start = time.time()
        data = await self._read_cache()
        from_cache = data is not None

        if data is None:
            data = await self._fetch()

        try:
            engine = SnapshotEngine.from_bytes(data)
        except DbFormatError:
            if from_cache:
                logger.warning(f"[loader] Discarding corrupt cached snapshot: {self.cache_path}")
                await asyncio.to_thread(self._discard_cache)
            raise

        if not from_cache:
            await self._write_cache(data)

        logger.info(
            f"[loader] Snapshot loaded from {'cache' if from_cache else 'network'} "
            f"({len(data)} bytes) in {time.time() - start:.2f}s"
        )
        return engine

    async def close(self) -> None:
        """Close the HTTP client if this loader created it."""
        if self._client is not None and self._owns_client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    # =========================================================================
    # Network
    # =========================================================================

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._timeout)
            self._owns_client = True
        return self._client

    async def _fetch(self) -> bytes:
        client = self._get_client()
        logger.info(f"[loader] Fetching snapshot: {self._url}")

        try:
            response = await client.get(self._url)
        except httpx.HTTPError as e:
            raise DbFetchError(0, str(e)) from e

        if not response.is_success:
            raise DbFetchError(response.status_code, response.reason_phrase)

        return response.content

    # =========================================================================
    # Cache
    # =========================================================================

    async def _read_cache(self) -> bytes | None:
        path = self.cache_path
        if path is None:
            return None
        try:
            data = await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning(f"[loader] Could not read cached snapshot {path}: {e}")
            return None
        logger.debug(f"[loader] Using cached snapshot: {path}")
        return data

    async def _write_cache(self, data: bytes) -> None:
        path = self.cache_path
        if path is None:
            return
        try:
            await asyncio.to_thread(self._write_atomic, path, data)
        except OSError as e:
            # The engine is already built; a cache miss next time is acceptable
            logger.warning(f"[loader] Could not cache snapshot at {path}: {e}")

    @staticmethod
    def _write_atomic(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".tmp")
        tmp.write_bytes(data)
        tmp.replace(path)

    def _discard_cache(self) -> None:
        path = self.cache_path
        if path is not None:
            path.unlink(missing_ok=True)
