"""
Quality stage.

Scores every member of every duplicate group and picks the sharpest member
as the group's representative.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, Optional, Sequence

from ..config import DEFAULT_CANCEL_CHECK_INTERVAL, DEFAULT_WORKERS
from ..models import DuplicateGroup, GroupCandidate, ImageRef, ItemResult, MatchKind
from .workers import CancellationToken, process_item, run_ordered

_logger = logging.getLogger(__name__)


def _checked_score(score_sharpness: Callable[[bytes], Optional[float]]) -> Callable[[bytes], Optional[float]]:
    """Wrap a scoring function so out-of-range results count as failures."""
    def score(data: bytes) -> Optional[float]:
        value = score_sharpness(data)
        if value is None:
            return None
        value = float(value)
        if math.isnan(value) or not 0.0 <= value <= 1.0:
            raise ValueError(f"Quality score out of range: {value}")
        return value
    return score


def pick_representative(members: Sequence[ImageRef], scores: dict) -> ImageRef:
    """
    Choose the member with the strictly highest score.

    Ties keep the earliest member; if no member was scored the first member
    is returned.
    """
    best = members[0]
    best_score: Optional[float] = None
    for ref in members:
        score = scores.get(ref)
        if score is None:
            continue
        if best_score is None or score > best_score:
            best = ref
            best_score = score
    return best


def score_and_rank(
    groups: Sequence[GroupCandidate],
    read_bytes: Callable[[ImageRef], bytes],
    score_sharpness: Callable[[bytes], Optional[float]],
    on_item_done: Optional[Callable[[int, int], None]] = None,
    *,
    max_workers: int = DEFAULT_WORKERS,
    cancel_token: Optional[CancellationToken] = None,
    check_interval: int = DEFAULT_CANCEL_CHECK_INTERVAL,
    on_skip: Optional[Callable[[ItemResult], None]] = None,
    start_id: int = 1,
) -> list[DuplicateGroup]:
    """
    Score group members and finalize duplicate groups.

    Each distinct image is scored once even when it belongs to both an exact
    and a near group. Scoring failures only remove an image from the running
    for representative; it stays a member of its group.

    Args:
        groups: Group candidates from the exact and near stages
        read_bytes: Reader returning an image's bytes
        score_sharpness: Scoring function returning a value in [0, 1]
        on_item_done: Optional callback(processed, total) after each image
        max_workers: Maximum number of in-flight items
        cancel_token: Cancellation token checked between items
        check_interval: Cancellation check interval in items
        on_skip: Optional callback receiving each skipped ItemResult
        start_id: ID given to the first output group

    Returns:
        One DuplicateGroup per input group, exact groups first, each kind in
        its input order, every group with a representative set

    Raises:
        AnalysisCancelled: If cancellation was observed
    """
    ordered = [g for g in groups if g.kind is MatchKind.EXACT]
    ordered += [g for g in groups if g.kind is not MatchKind.EXACT]
    if not ordered:
        return []

    unique_refs = list(dict.fromkeys(ref for g in ordered for ref in g.members))
    total = len(unique_refs)
    scorer = _checked_score(score_sharpness)
    scores: dict = {}

    def task(ref: ImageRef) -> ItemResult:
        return process_item(ref, read_bytes, scorer)

    def handle(count: int, result: ItemResult) -> None:
        if result.ok:
            scores[result.ref] = result.value
        elif on_skip:
            on_skip(result)
        if on_item_done:
            on_item_done(count, total)

    run_ordered(
        unique_refs,
        task,
        max_workers=max_workers,
        cancel_token=cancel_token,
        check_interval=check_interval,
        on_result=handle,
    )

    _logger.debug(f"Scored {len(scores):,}/{total:,} group members")

    final_groups = []
    for group_id, candidate in enumerate(ordered, start_id):
        members = list(candidate.members)
        final_groups.append(DuplicateGroup(
            id=group_id,
            members=members,
            kind=candidate.kind,
            representative=pick_representative(members, scores),
            scores={ref: scores[ref] for ref in members if ref in scores},
        ))

    return final_groups


__all__ = [
    'pick_representative',
    'score_and_rank',
]
