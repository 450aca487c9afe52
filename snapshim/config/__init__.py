"""
snapshim Configuration

Environment-driven settings.
"""

from .schemas import SnapshimSettings, default_cache_dir

__all__ = [
    "SnapshimSettings",
    "default_cache_dir",
]
