"""Environment-driven defaults for ranktok."""

import logging
import os
from pathlib import Path

log = logging.getLogger(__name__)

VOCAB_DIR_ENV = "RANKTOK_VOCAB_DIR"
NUM_WORKERS_ENV = "RANKTOK_NUM_WORKERS"
CACHE_SHARDS_ENV = "RANKTOK_CACHE_SHARDS"
CACHE_MAX_ENTRIES_ENV = "RANKTOK_CACHE_MAX_ENTRIES"

DEFAULT_CACHE_SHARDS = 16
# per shard, so the default cache holds at most 16 * 4096 pieces
DEFAULT_CACHE_MAX_ENTRIES = 4096


def _env_int(name: str) -> int | None:
    """Read an integer environment variable, ignoring unset or invalid values."""
    raw = os.environ.get(name, "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        log.warning(f"ignoring {name}={raw!r}: expected an integer")
        return None


def vocab_dir() -> Path | None:
    """Directory holding local vocabulary files, if configured."""
    raw = os.environ.get(VOCAB_DIR_ENV, "").strip()
    return Path(raw) if raw else None


def num_workers(requested: int | None = None) -> int:
    """Resolve the worker count for batch operations ("0" means one worker)."""
    if requested is None:
        requested = _env_int(NUM_WORKERS_ENV)
    if requested is None:
        return os.cpu_count() or 1
    return max(1, requested)


def cache_shards(requested: int | None = None) -> int:
    """Resolve the number of split cache shards."""
    if requested is None:
        requested = _env_int(CACHE_SHARDS_ENV)
    if requested is None:
        return DEFAULT_CACHE_SHARDS
    return max(1, requested)


def cache_max_entries(requested: int | None = None) -> int | None:
    """
    Resolve the per-shard split cache bound.

    Unset means ``DEFAULT_CACHE_MAX_ENTRIES``; zero or a negative value turns
    the bound off and returns ``None``.
    """
    if requested is None:
        requested = _env_int(CACHE_MAX_ENTRIES_ENV)
    if requested is None:
        return DEFAULT_CACHE_MAX_ENTRIES
    if requested <= 0:
        return None
    return requested
