from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("bonkwatch")
except PackageNotFoundError:  # pragma: no cover
    # Allow running from source (e.g. `PYTHONPATH=src`) without installed package metadata.
    __version__ = "0.0.0+dev"

__all__ = [
    "attribution",
    "baseline",
    "cli",
    "debug_log",
    "diff",
    "engine",
    "events",
    "feed",
    "game_data",
    "pending",
    "recording",
    "scheduler",
    "settings",
    "snapshot",
]
