"""
Exact-duplicate stage.

Hashes every image and buckets images whose content digests are identical.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Sequence

from ..config import DEFAULT_CANCEL_CHECK_INTERVAL, DEFAULT_WORKERS
from ..models import GroupCandidate, ImageRef, ItemResult, MatchKind
from .workers import CancellationToken, process_item, run_ordered

_logger = logging.getLogger(__name__)


def detect_exact(
    refs: Sequence[ImageRef],
    read_bytes: Callable[[ImageRef], bytes],
    hash_bytes: Callable[[bytes], Any],
    on_item_done: Optional[Callable[[int, int], None]] = None,
    *,
    max_workers: int = DEFAULT_WORKERS,
    cancel_token: Optional[CancellationToken] = None,
    check_interval: int = DEFAULT_CANCEL_CHECK_INTERVAL,
    on_skip: Optional[Callable[[ItemResult], None]] = None,
) -> dict[Any, list[ImageRef]]:
    """
    Bucket images by content digest.

    Args:
        refs: Images to hash
        read_bytes: Reader returning an image's bytes
        hash_bytes: Digest function applied to the bytes
        on_item_done: Optional callback(processed, total) after every item,
            whether it was hashed or skipped
        max_workers: Maximum number of in-flight items
        cancel_token: Cancellation token checked between items
        check_interval: Cancellation check interval in items
        on_skip: Optional callback receiving each skipped ItemResult

    Returns:
        Mapping of digest to the images sharing it, including singletons.
        Members of a bucket keep their input order; callers must not rely on
        the order of the buckets themselves.

    Raises:
        AnalysisCancelled: If cancellation was observed
    """
    refs = list(refs)
    buckets: dict[Any, list[ImageRef]] = {}
    if not refs:
        return buckets

    total = len(refs)

    def task(ref: ImageRef) -> ItemResult:
        return process_item(ref, read_bytes, hash_bytes)

    def handle(count: int, result: ItemResult) -> None:
        if result.ok:
            buckets.setdefault(result.value, []).append(result.ref)
        elif on_skip:
            on_skip(result)
        if on_item_done:
            on_item_done(count, total)

    run_ordered(
        refs,
        task,
        max_workers=max_workers,
        cancel_token=cancel_token,
        check_interval=check_interval,
        on_result=handle,
    )

    _logger.debug(f"Hashed {sum(len(b) for b in buckets.values()):,}/{total:,} images into {len(buckets):,} buckets")
    return buckets


def _position_key(order: Optional[Sequence[ImageRef]]) -> Callable[[ImageRef], tuple]:
    """Sort key placing refs by their position in order, unknown refs last."""
    positions = {ref: i for i, ref in enumerate(order or ())}
    fallback = len(positions)
    return lambda ref: (positions.get(ref, fallback), str(ref))


def select_representatives(
    buckets: dict[Any, list[ImageRef]],
    order: Optional[Sequence[ImageRef]] = None,
) -> list[ImageRef]:
    """
    Pick one image per digest bucket for near-duplicate detection.

    The first member of each bucket represents it. Representatives are sorted
    by discovery position (then by ref), never by bucket iteration order.

    Args:
        buckets: Output of detect_exact
        order: Discovery order of the refs

    Returns:
        One representative per bucket, singletons included
    """
    firsts = [members[0] for members in buckets.values() if members]
    return sorted(firsts, key=_position_key(order))


def exact_duplicate_groups(
    buckets: dict[Any, list[ImageRef]],
    order: Optional[Sequence[ImageRef]] = None,
) -> list[GroupCandidate]:
    """
    Turn buckets with two or more members into exact-duplicate groups.

    Groups are ordered by the discovery position of their first member.
    """
    key = _position_key(order)
    multi = [members for members in buckets.values() if len(members) > 1]
    multi.sort(key=lambda members: key(members[0]))
    return [GroupCandidate(members=tuple(members), kind=MatchKind.EXACT) for members in multi]


__all__ = [
    'detect_exact',
    'select_representatives',
    'exact_duplicate_groups',
]
