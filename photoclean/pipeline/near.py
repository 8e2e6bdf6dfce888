"""
Near-duplicate stage.

Extracts a perceptual feature print for one representative per exact-duplicate
bucket and clusters the representatives by feature distance.

Clustering is anchored ("star") clustering: the first unassigned image opens
a group and pulls in every later unassigned image closer to it than the
threshold. Membership depends only on the distance to the anchor, so two
non-anchor members of one group may be further apart than the threshold.
This is a known precision limitation, kept because switching to transitive
grouping would change results materially.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Sequence

from ..config import DEFAULT_CANCEL_CHECK_INTERVAL, DEFAULT_WORKERS
from ..models import GroupCandidate, ImageRef, ItemResult, MatchKind
from .capabilities import phash_distance
from .workers import CancellationToken, process_item, run_ordered

_logger = logging.getLogger(__name__)


def _is_near(
    distance: Callable[[Any, Any], float],
    anchor: Any,
    candidate: Any,
    threshold: float,
) -> bool:
    try:
        return distance(anchor, candidate) < threshold
    except Exception as e:
        _logger.debug(f"Distance computation failed: {e}")
        return False


def cluster_star(
    entries: Sequence[tuple[ImageRef, Any]],
    distance: Callable[[Any, Any], float],
    distance_threshold: float,
    cancel_token: Optional[CancellationToken] = None,
    check_interval: int = DEFAULT_CANCEL_CHECK_INTERVAL,
) -> list[list[ImageRef]]:
    """
    Group feature prints around anchors.

    Args:
        entries: (ref, feature print) pairs in a fixed, reproducible order
        distance: Symmetric distance between two feature prints
        distance_threshold: Strict upper bound on distance-to-anchor
        cancel_token: Token checked every check_interval anchors
        check_interval: Cancellation check interval

    Returns:
        Groups of two or more refs, in the order their anchors were processed.
        Within a group the anchor comes first, followed by members in input order.

    Raises:
        AnalysisCancelled: If cancellation was observed
    """
    n = len(entries)
    assigned = [False] * n
    groups: list[list[ImageRef]] = []
    check_interval = max(1, int(check_interval))

    for i in range(n):
        if cancel_token is not None and i % check_interval == 0:
            cancel_token.raise_if_cancelled()

        if assigned[i]:
            continue

        anchor_ref, anchor_print = entries[i]
        members = [anchor_ref]

        for j in range(i + 1, n):
            if assigned[j]:
                continue
            candidate_ref, candidate_print = entries[j]
            if _is_near(distance, anchor_print, candidate_print, distance_threshold):
                members.append(candidate_ref)
                assigned[j] = True

        if len(members) > 1:
            assigned[i] = True
            groups.append(members)

    return groups


def detect_near(
    representatives: Sequence[ImageRef],
    read_bytes: Callable[[ImageRef], bytes],
    extract_feature: Callable[[bytes], Any],
    distance_threshold: float,
    on_item_done: Optional[Callable[[int, int], None]] = None,
    *,
    distance: Callable[[Any, Any], float] = phash_distance,
    max_workers: int = DEFAULT_WORKERS,
    cancel_token: Optional[CancellationToken] = None,
    check_interval: int = DEFAULT_CANCEL_CHECK_INTERVAL,
    on_skip: Optional[Callable[[ItemResult], None]] = None,
) -> list[list[ImageRef]]:
    """
    Find groups of visually similar images.

    Args:
        representatives: One image per exact-duplicate bucket, in a
            deterministic order (this order decides which image anchors a group)
        read_bytes: Reader returning an image's bytes
        extract_feature: Feature print extractor applied to the bytes
        distance_threshold: Images closer than this to an anchor join its group
        on_item_done: Optional callback(processed, total) after every extraction
        distance: Distance function between two feature prints
        max_workers: Maximum number of in-flight items
        cancel_token: Cancellation token checked between items
        check_interval: Cancellation check interval in items
        on_skip: Optional callback receiving each skipped ItemResult

    Returns:
        Near-duplicate groups (lists of refs), in anchor order

    Raises:
        AnalysisCancelled: If cancellation was observed
    """
    representatives = list(representatives)
    if not representatives:
        return []

    total = len(representatives)

    def task(ref: ImageRef) -> ItemResult:
        return process_item(ref, read_bytes, extract_feature)

    def handle(count: int, result: ItemResult) -> None:
        if not result.ok and on_skip:
            on_skip(result)
        if on_item_done:
            on_item_done(count, total)

    results = run_ordered(
        representatives,
        task,
        max_workers=max_workers,
        cancel_token=cancel_token,
        check_interval=check_interval,
        on_result=handle,
    )

    entries = [(r.ref, r.value) for r in results if r.ok]
    _logger.debug(f"Extracted {len(entries):,}/{total:,} feature prints")

    if len(entries) < 2:
        return []

    return cluster_star(
        entries,
        distance=distance,
        distance_threshold=distance_threshold,
        cancel_token=cancel_token,
        check_interval=check_interval,
    )


def near_duplicate_groups(clusters: Sequence[Sequence[ImageRef]]) -> list[GroupCandidate]:
    """Wrap clusters from detect_near as near-duplicate groups."""
    return [GroupCandidate(members=tuple(members), kind=MatchKind.NEAR) for members in clusters]


__all__ = [
    'cluster_star',
    'detect_near',
    'near_duplicate_groups',
]
