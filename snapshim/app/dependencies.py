"""
Dependency wiring for snapshim.

Provides the per-process service instances: settings, snapshot loader,
lifecycle manager, client registry, notifier and interceptor.

Every process era gets its own lifecycle. Nothing here is shared across
processes; a new process loads the snapshot again.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

import httpx

from snapshim.config import SnapshimSettings, default_cache_dir
from snapshim.engine import DatabaseLifecycle, SnapshotLoader
from snapshim.interceptor import Interceptor
from snapshim.messaging import ClientRegistry, ReadinessNotifier

logger = logging.getLogger(__name__)


@lru_cache()
def get_settings() -> SnapshimSettings:
    """
    Get application settings from environment.

    Uses lru_cache for singleton pattern.
    """
    cache_dir = os.getenv("SNAPSHIM_CACHE_DIR")
    if cache_dir is None:
        cache_dir_value = default_cache_dir()
    else:
        # An empty value disables the disk cache
        cache_dir_value = Path(cache_dir).expanduser() if cache_dir else None

    return SnapshimSettings(
        # Service
        service_name=os.getenv("SNAPSHIM_SERVICE_NAME", "snapshim"),
        environment=os.getenv("SNAPSHIM_ENVIRONMENT", "development"),
        debug=os.getenv("SNAPSHIM_DEBUG", "false").lower() == "true",
        # Interception
        scope=os.getenv("SNAPSHIM_SCOPE", "/"),
        clients_path=os.getenv("SNAPSHIM_CLIENTS_PATH", "/_snapshim/clients"),
        # Snapshot
        snapshot_path=os.getenv("SNAPSHIM_SNAPSHOT_PATH", "assets/db/app.sqlite"),
        snapshot_version=os.getenv("SNAPSHIM_SNAPSHOT_VERSION", "2"),
        snapshot_base_url=os.getenv("SNAPSHIM_SNAPSHOT_BASE_URL", "http://localhost:8000/"),
        cache_dir=cache_dir_value,
        fetch_timeout=float(os.getenv("SNAPSHIM_FETCH_TIMEOUT", "30.0")),
    )


@dataclass
class SnapshimServices:
    """Service instances owned by one process era."""

    settings: SnapshimSettings
    loader: SnapshotLoader
    lifecycle: DatabaseLifecycle
    clients: ClientRegistry
    notifier: ReadinessNotifier
    interceptor: Interceptor

    async def close(self) -> None:
        await self.loader.close()


def build_services(
    settings: SnapshimSettings,
    *,
    client: httpx.AsyncClient | None = None,
) -> SnapshimServices:
    """
    Wire a fresh set of services.

    Args:
        settings: Application settings
        client: Optional HTTP client for the snapshot fetch
    """
    loader = SnapshotLoader.from_settings(settings, client=client)
    lifecycle = DatabaseLifecycle(loader)
    clients = ClientRegistry()
    return SnapshimServices(
        settings=settings,
        loader=loader,
        lifecycle=lifecycle,
        clients=clients,
        notifier=ReadinessNotifier(lifecycle, clients),
        interceptor=Interceptor(lifecycle, scope=settings.scope),
    )


# Global instance (initialized on first access)
_services: SnapshimServices | None = None


def get_services() -> SnapshimServices:
    """
    Get the process-wide services.

    Creates them from environment settings on first call.
    """
    global _services
    if _services is None:
        _services = build_services(get_settings())
        logger.info(f"[deps] Services initialized (snapshot={_services.settings.snapshot_url})")
    return _services


def get_lifecycle() -> DatabaseLifecycle:
    return get_services().lifecycle


def get_client_registry() -> ClientRegistry:
    return get_services().clients


def get_notifier() -> ReadinessNotifier:
    return get_services().notifier


def get_interceptor() -> Interceptor:
    return get_services().interceptor


async def shutdown_services() -> None:
    """Close the global services, if any were created."""
    global _services
    if _services is not None:
        await _services.close()
        _services = None


def reset_services() -> None:
    """
    Drop the global services and cached settings (for testing).

    The next access starts a new era with an unloaded database.
    """
    global _services
    _services = None
    get_settings.cache_clear()
