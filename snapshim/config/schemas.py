"""
Configuration Schemas for snapshim.

Pydantic models for runtime settings. Values are read from the environment
by ``snapshim.app.dependencies.get_settings``.
"""

from __future__ import annotations

import os
from pathlib import Path
from urllib.parse import urljoin

from pydantic import BaseModel, ConfigDict, Field, field_validator


def default_cache_dir() -> Path:
    """Per-user cache directory, honoring XDG_CACHE_HOME."""
    base = os.getenv("XDG_CACHE_HOME") or "~/.cache"
    return Path(base).expanduser() / "snapshim"


class SnapshimSettings(BaseModel):
    """
    Application settings model.

    The scope is the base every intercepted path is resolved against. A
    relative scope (the default ``/``) is resolved per request against the
    host the request arrived on; an absolute scope pins the origin.
    """

    # Service identity
    service_name: str = "snapshim"
    environment: str = "development"
    debug: bool = False

    # Interception
    scope: str = Field(default="/", description="Base URL intercepted paths are relative to")
    clients_path: str = Field(default="/_snapshim/clients", description="WebSocket path for page clients")

    # Snapshot resource
    snapshot_path: str = Field(default="assets/db/app.sqlite", description="Scope-relative snapshot path")
    snapshot_version: str = Field(default="2", description="Bump when the snapshot is republished")
    snapshot_base_url: str = Field(
        default="http://localhost:8000/",
        description="Where the snapshot resource is fetched from",
    )
    cache_dir: Path | None = Field(
        default_factory=default_cache_dir,
        description="Directory for cached snapshot copies; None disables the cache",
    )
    fetch_timeout: float = Field(default=30.0, gt=0)

    model_config = ConfigDict(extra="forbid")

    @field_validator("snapshot_version")
    @classmethod
    def _version_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("snapshot_version must not be blank")
        return value.strip()

    @property
    def snapshot_url(self) -> str:
        """Absolute, version-tagged URL of the snapshot resource."""
        base = urljoin(self.snapshot_base_url, self.scope)
        return urljoin(base, f"{self.snapshot_path}?v={self.snapshot_version}")
