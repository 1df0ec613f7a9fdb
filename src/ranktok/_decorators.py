"""Timing for vocabulary loads and encoding construction."""

import functools
import logging
import time
from collections.abc import Sized
from typing import Callable

log = logging.getLogger(__name__)


def measure_time(func: Callable) -> Callable:
    """
    Log how long a load took, what it loaded and how many entries came back.

    The first positional argument (a path or an encoding name) identifies the
    load; sized results report their length.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        source = args[0] if args else None
        start = time.perf_counter()
        try:
            result = func(*args, **kwargs)
        except Exception:
            log.info(
                f"{func.__qualname__}({source}) failed after "
                f"{time.perf_counter() - start:.2f} s"
            )
            raise
        elapsed = time.perf_counter() - start
        size = f", {len(result)} entries" if isinstance(result, Sized) else ""
        log.info(f"{func.__qualname__}({source}) loaded in {elapsed:.2f} s{size}")
        return result

    return wrapper
