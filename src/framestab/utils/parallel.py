"""Thread-pool fan-out used by the frame writer and the stabilizer.

Every task must own a disjoint output (a file, a FrameSet slot); the helper
provides no synchronisation beyond the final barrier.
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, TypeVar

T = TypeVar("T")
R = TypeVar("R")

logger = logging.getLogger(__name__)


def resolve_workers(workers: int | None) -> int:
    """``None`` or 0 means one worker per CPU."""
    if not workers:
        return os.cpu_count() or 1
    return max(1, int(workers))


def run_parallel(fn: Callable[[T], R], items: Iterable[T], workers: int | None = None) -> list[R]:
    """Apply ``fn`` to every item and return results in input order.

    Blocks until all tasks have finished. With a single worker the items are
    processed sequentially in the calling thread. The first task exception
    is re-raised after the pool has drained.
    """
    items = list(items)
    n_workers = min(resolve_workers(workers), max(1, len(items)))
    if n_workers == 1:
        return [fn(item) for item in items]

    logger.debug(f"Fanning out {len(items)} tasks over {n_workers} threads")
    with ThreadPoolExecutor(max_workers=n_workers) as ex:
        futures = [ex.submit(fn, item) for item in items]
    return [f.result() for f in futures]
