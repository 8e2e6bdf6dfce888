"""
Worker pool for the pipeline package.

Runs per-item read+compute work on a bounded thread pool and hands results
back in input order, with cooperative cancellation checked between items.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Iterable, Optional

from ..config import DEFAULT_CANCEL_CHECK_INTERVAL, DEFAULT_WORKERS
from ..exceptions import AnalysisCancelled
from ..models import ImageRef, ItemResult, SkipReason

_logger = logging.getLogger(__name__)

_EXHAUSTED = object()


class CancellationToken:
    """Thread-safe cancellation flag passed through every stage call."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise AnalysisCancelled if cancellation has been requested."""
        if self._event.is_set():
            raise AnalysisCancelled("Analysis cancelled")


def process_item(
    ref: ImageRef,
    read_bytes: Callable[[ImageRef], bytes],
    compute: Callable[[bytes], Any],
) -> ItemResult:
    """
    Read one image and run a computation on its bytes.

    Any failure is turned into a skip result instead of propagating.

    Args:
        ref: Image to process
        read_bytes: Reader returning the image's bytes
        compute: Function applied to the bytes; returning None counts as failure

    Returns:
        ItemResult carrying the computed value or the skip reason
    """
    try:
        data = read_bytes(ref)
    except Exception as e:
        _logger.debug(f"Read failed for {ref}: {e}")
        return ItemResult.skip(ref, SkipReason.READ_FAILED, str(e))

    try:
        value = compute(data)
    except Exception as e:
        _logger.debug(f"Computation failed for {ref}: {e}")
        return ItemResult.skip(ref, SkipReason.COMPUTE_FAILED, str(e))

    if value is None:
        _logger.debug(f"Computation returned no result for {ref}")
        return ItemResult.skip(ref, SkipReason.COMPUTE_FAILED, "no result")

    return ItemResult.success(ref, value)


def run_ordered(
    refs: Iterable[ImageRef],
    task: Callable[[ImageRef], ItemResult],
    max_workers: int = DEFAULT_WORKERS,
    cancel_token: Optional[CancellationToken] = None,
    check_interval: int = DEFAULT_CANCEL_CHECK_INTERVAL,
    on_result: Optional[Callable[[int, ItemResult], None]] = None,
) -> list[ItemResult]:
    """
    Run a task over many images in parallel, preserving input order.

    At most max_workers items are in flight at any time. Futures are
    collected oldest-first, so results come back (and on_result fires) in the
    order the refs were given, from the calling thread only.

    Args:
        refs: Images to process
        task: Per-item function returning an ItemResult
        max_workers: Maximum number of in-flight items
        cancel_token: Token checked every check_interval collected items
        check_interval: Cancellation check interval in items
        on_result: Optional callback(count_done, result) after each item

    Returns:
        List of ItemResult objects in input order

    Raises:
        AnalysisCancelled: If cancellation was observed; items already
            running are allowed to finish but their results are discarded
    """
    token = cancel_token or CancellationToken()
    max_workers = max(1, int(max_workers))
    check_interval = max(1, int(check_interval))

    results: list[ItemResult] = []
    refs_iter = iter(refs)

    token.raise_if_cancelled()

    executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix='photoclean-worker')
    pending: deque = deque()
    try:
        while True:
            while len(pending) < max_workers:
                ref = next(refs_iter, _EXHAUSTED)
                if ref is _EXHAUSTED:
                    break
                pending.append(executor.submit(task, ref))

            if not pending:
                break

            result = pending.popleft().result()
            results.append(result)

            if on_result:
                on_result(len(results), result)

            if len(results) % check_interval == 0:
                token.raise_if_cancelled()
    finally:
        for future in pending:
            future.cancel()
        executor.shutdown(wait=True, cancel_futures=True)

    return results


__all__ = [
    'CancellationToken',
    'process_item',
    'run_ordered',
]
