"""Cached configuration access facade.

The forwarder asks for config on every approval event; the cache is refreshed
whenever the file's mtime moves so edits take effect without a restart.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Callable

from execrelay.config.loader import get_config_path, load_config
from execrelay.config.schema import Config

_lock = threading.RLock()
_cache: dict[str, tuple[float | None, Config]] = {}


def _resolve(config_path: Path | None = None) -> Path:
    return Path(config_path or get_config_path()).expanduser().resolve()


def _mtime(path: Path) -> float | None:
    try:
        return path.stat().st_mtime
    except OSError:
        return None


def get_config(*, config_path: Path | None = None, force_reload: bool = False) -> Config:
    """Get config with process-local cache; reloads when the file changed."""
    path = _resolve(config_path)
    key = str(path)
    mtime = _mtime(path)
    with _lock:
        cached = _cache.get(key)
        if force_reload or cached is None or cached[0] != mtime:
            _cache[key] = (mtime, load_config(path))
        return _cache[key][1]


def config_provider(config_path: Path | None = None) -> Callable[[], Config]:
    """Zero-arg config getter bound to one file, for ExecApprovalForwarder(get_config=...)."""

    def _get() -> Config:
        return get_config(config_path=config_path)

    return _get


def clear_config_cache(*, config_path: Path | None = None) -> None:
    """Clear cached config entry (or all cache entries)."""
    with _lock:
        if config_path is None:
            _cache.clear()
            return
        _cache.pop(str(_resolve(config_path)), None)
