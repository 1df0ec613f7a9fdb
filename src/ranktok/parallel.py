"""Parallel processing helpers for batch encoding and decoding."""

import logging
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from math import ceil
from typing import TYPE_CHECKING, Literal, TypeVar

from . import _config
from .errors import PolicyError
from .types import Rank

if TYPE_CHECKING:
    from ._models.encoding import Encoding
    from .policy import SpecialPolicy

log = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

ParallelStrategy = Literal["auto", "batch", "off"]

# below this much total work (characters or tokens) thread dispatch costs more
# than it saves
AUTO_MIN_WEIGHT = 100_000


class ParallelMode(str, Enum):
    """Named parallelization modes for batch operations."""

    AUTO = "auto"
    BATCH = "batch"
    OFF = "off"

    @classmethod
    def get(cls, name: "str | ParallelMode") -> "ParallelMode":
        """Get parallel mode by name (case-insensitive)."""
        if isinstance(name, ParallelMode):
            return name
        try:
            return cls[name.upper()]
        except KeyError:
            raise PolicyError(
                "unknown mode",
                invalid_name=name,
                available=list_parallel_modes(),
            ) from None


def list_parallel_modes() -> list[str]:
    """Return available parallel mode names."""
    return [mode.value for mode in ParallelMode]


def run_batch(
    fn: Callable[[T], R],
    items: Sequence[T],
    *,
    num_workers: int | None = None,
    parallel_mode: "ParallelStrategy | ParallelMode" = "auto",
    weight: Callable[[T], int] = len,
) -> list[R]:
    """
    Apply ``fn`` to every item, optionally across a thread pool.

    ``off`` runs on the caller's thread. ``batch`` groups items and maps the
    groups over a ``ThreadPoolExecutor``. ``auto`` stays serial for a single
    item, a single worker, or a small total ``weight``, and batches otherwise.

    Results always follow input order, whatever order workers finish in. The
    first exception raised by ``fn`` propagates and fails the whole call.

    :param fn: Function applied to each item.
    :param items: Inputs.
    :param num_workers: Pool size; defaults to ``RANKTOK_NUM_WORKERS`` or the CPU count.
    :param parallel_mode: Parallelization policy.
    :param weight: Cost estimate per item used by ``auto``.
    :returns: ``[fn(item) for item in items]``.
    """
    mode = ParallelMode.get(parallel_mode)
    workers = _config.num_workers(num_workers)

    if not items:
        return []

    def serial() -> list[R]:
        return [fn(item) for item in items]

    def process_batch() -> list[R]:
        """Run grouped items in parallel."""
        if workers == 1 or len(items) <= 1:
            return serial()

        # group items to reduce task-scheduling overhead when the input
        # contains many small documents
        target_tasks = min(len(items), workers * 2)
        group_size = max(1, ceil(len(items) / target_tasks))
        groups = [
            items[idx : idx + group_size] for idx in range(0, len(items), group_size)
        ]

        def run_group(group: Sequence[T]) -> list[R]:
            return [fn(item) for item in group]

        log.debug(f"dispatching {len(items)} items in {len(groups)} groups to {workers} workers")
        with ThreadPoolExecutor(max_workers=workers) as pool:
            done = list(pool.map(run_group, groups))
        return [result for group in done for result in group]

    match mode:
        case ParallelMode.OFF:
            return serial()
        case ParallelMode.BATCH:
            return process_batch()
        case ParallelMode.AUTO:
            if len(items) == 1 or workers == 1:
                return serial()
            total = sum(weight(item) for item in items)
            if total < AUTO_MIN_WEIGHT:
                return serial()
            return process_batch()


def encode_batch(
    encoding: "Encoding",
    texts: list[str],
    policy: "SpecialPolicy | None" = None,
    num_workers: int | None = None,
    parallel_mode: ParallelStrategy = "auto",
) -> list[list[Rank]]:
    """Encode many texts with optional parallel processing mode."""
    return encoding.encode_batch(
        texts,
        policy,
        num_workers=num_workers,
        parallel_mode=parallel_mode,
    )


__all__ = [
    "ParallelStrategy",
    "ParallelMode",
    "list_parallel_modes",
    "run_batch",
    "encode_batch",
]
