"""
Sharded memoization of merge results per byte piece.
"""

import logging
import threading
from collections.abc import Callable
from typing import NamedTuple

from . import _config
from .types import Rank

log = logging.getLogger(__name__)


class CacheInfo(NamedTuple):
    """Snapshot of split cache statistics."""

    hits: int
    misses: int
    max_entries: int | None
    currsize: int


class SplitCache:
    """
    Maps byte pieces to the ranks the merge engine resolves them to.

    The cache is purely an accelerator: every entry can be recomputed from
    ``compute`` and always comes out the same, so misses, evictions and two
    threads filling the same key at once never change results.

    Keys are spread over independent shards. Reads go straight to the shard
    dict without locking; a write takes only its shard's lock, which guards
    the size bound and eviction. ``compute`` always runs outside any lock.

    Hit and miss counters are updated without synchronization and are only
    approximate under concurrent use.
    """

    def __init__(
        self,
        compute: Callable[[bytes], list[Rank]],
        *,
        n_shards: int | None = None,
        max_entries: int | None = None,
    ) -> None:
        """
        :param compute: Pure function resolving a piece to its ranks.
        :param n_shards: Number of shards; defaults to ``RANKTOK_CACHE_SHARDS`` or 16.
        :param max_entries: Per-shard bound; defaults to ``RANKTOK_CACHE_MAX_ENTRIES``
            or 4096. Zero or less disables eviction.
        """
        self._compute = compute
        self._n_shards = _config.cache_shards(n_shards)
        self._max_entries = _config.cache_max_entries(max_entries)
        self._shards: list[dict[bytes, tuple[Rank, ...]]] = [
            {} for _ in range(self._n_shards)
        ]
        self._locks = [threading.Lock() for _ in range(self._n_shards)]
        self._hits = 0
        self._misses = 0
        log.debug(
            f"split cache with {self._n_shards} shards "
            f"(max entries per shard: {self._max_entries or 'unbounded'})"
        )

    def _shard_index(self, piece: bytes) -> int:
        return hash(piece) % self._n_shards

    def get(self, piece: bytes) -> tuple[Rank, ...] | None:
        """Return the cached ranks of ``piece`` without computing them."""
        return self._shards[self._shard_index(piece)].get(piece)

    def get_or_compute(self, piece: bytes) -> tuple[Rank, ...]:
        """
        Return the ranks of ``piece``, computing and storing them on a miss.

        :param piece: Non-empty byte piece.
        :returns: Immutable rank sequence shared between callers.
        """
        idx = self._shard_index(piece)
        shard = self._shards[idx]

        cached = shard.get(piece)
        if cached is not None:
            self._hits += 1
            return cached

        self._misses += 1
        ranks = tuple(self._compute(piece))

        with self._locks[idx]:
            if self._max_entries is not None and piece not in shard:
                # dicts keep insertion order: drop the oldest entries first
                while len(shard) >= self._max_entries:
                    del shard[next(iter(shard))]
            # overwriting a concurrent writer's entry is harmless, values are equal
            shard[piece] = ranks

        return ranks

    def clear(self) -> None:
        """Drop every entry and reset statistics."""
        for lock, shard in zip(self._locks, self._shards):
            with lock:
                shard.clear()
        self._hits = 0
        self._misses = 0

    def info(self) -> CacheInfo:
        """Return hit/miss counters and the current entry count."""
        return CacheInfo(
            hits=self._hits,
            misses=self._misses,
            max_entries=self._max_entries,
            currsize=len(self),
        )

    def __len__(self) -> int:
        return sum(len(shard) for shard in self._shards)

    def __contains__(self, piece: object) -> bool:
        if not isinstance(piece, bytes):
            return False
        return piece in self._shards[self._shard_index(piece)]


__all__ = ["CacheInfo", "SplitCache"]
