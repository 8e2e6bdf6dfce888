"""
Data models for PhotoClean.

Contains the value types passed between the analysis stages, the
DuplicateGroup result entity and the observable run snapshot.
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from .config import (
    DEFAULT_CANCEL_CHECK_INTERVAL,
    DEFAULT_DISTANCE_THRESHOLD,
    DEFAULT_STAGE_WEIGHTS,
    DEFAULT_WORKERS,
)

# Opaque, stable identifier for one candidate image (a file path by default)
ImageRef = str


class MatchKind(str, Enum):
    """How the members of a group were found to be duplicates."""
    EXACT = 'exact'
    NEAR = 'near'


class RunPhase(str, Enum):
    """Lifecycle phase of one analysis run."""
    NOT_STARTED = 'not_started'
    HASHING = 'hashing'
    CLUSTERING = 'clustering'
    SCORING = 'scoring'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'
    FAILED = 'failed'

    @property
    def is_active(self) -> bool:
        return self in (RunPhase.HASHING, RunPhase.CLUSTERING, RunPhase.SCORING)

    @property
    def is_terminal(self) -> bool:
        return self in (RunPhase.COMPLETED, RunPhase.CANCELLED, RunPhase.FAILED)


class SkipReason(str, Enum):
    """Why an item dropped out of a stage."""
    READ_FAILED = 'read_failed'
    COMPUTE_FAILED = 'compute_failed'


@dataclass(frozen=True)
class ItemResult:
    """
    Outcome of processing a single image in one stage.

    Attributes:
        ref: The image this result belongs to
        value: Computed value (digest, feature print, score), None when skipped
        reason: Skip reason, None on success
        detail: Human-readable failure detail for logging
    """
    ref: ImageRef
    value: Any = None
    reason: Optional[SkipReason] = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.reason is None

    @classmethod
    def success(cls, ref: ImageRef, value: Any) -> 'ItemResult':
        return cls(ref=ref, value=value)

    @classmethod
    def skip(cls, ref: ImageRef, reason: SkipReason, detail: str = "") -> 'ItemResult':
        return cls(ref=ref, reason=reason, detail=detail)


@dataclass(frozen=True)
class GroupCandidate:
    """A discovered group before quality scoring picks its representative."""
    members: tuple
    kind: MatchKind


@dataclass
class DuplicateGroup:
    """
    A group of duplicate images.

    Attributes:
        id: Unique identifier for this group within one run
        members: Images in this group, in discovery/clustering order (at least 2)
        kind: How duplicates were detected (exact or near)
        representative: Member recommended to keep
        scores: Quality scores of the members that could be scored
    """
    id: int
    members: list = field(default_factory=list)
    kind: MatchKind = MatchKind.EXACT
    representative: Optional[ImageRef] = None
    scores: dict = field(default_factory=dict)

    def __post_init__(self):
        self.kind = MatchKind(self.kind)
        if len(self.members) < 2:
            raise ValueError(f"A duplicate group needs at least 2 members, got {len(self.members)}")
        if self.representative is not None and self.representative not in self.members:
            raise ValueError(f"Representative {self.representative!r} is not a member of group {self.id}")

    @property
    def member_count(self) -> int:
        """Number of images in this group."""
        return len(self.members)

    @property
    def duplicates(self) -> list:
        """Returns all members except the representative."""
        return [ref for ref in self.members if ref != self.representative]

    @property
    def is_exact(self) -> bool:
        return self.kind is MatchKind.EXACT

    def score_of(self, ref: ImageRef) -> Optional[float]:
        """Quality score of a member, or None if scoring failed for it."""
        return self.scores.get(ref)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'id': self.id,
            'kind': self.kind.value,
            'member_count': self.member_count,
            'members': [
                {
                    'path': ref,
                    'filename': os.path.basename(ref),
                    'score': self.scores.get(ref),
                    'is_representative': ref == self.representative,
                }
                for ref in self.members
            ],
            'representative': self.representative,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'DuplicateGroup':
        """Create DuplicateGroup from dictionary."""
        members = []
        scores = {}
        for member in data.get('members', []):
            members.append(member['path'])
            if member.get('score') is not None:
                scores[member['path']] = member['score']
        return cls(
            id=data['id'],
            members=members,
            kind=MatchKind(data.get('kind', MatchKind.EXACT.value)),
            representative=data.get('representative'),
            scores=scores,
        )


@dataclass(frozen=True)
class AnalysisConfig:
    """
    Options for one analysis run.

    Attributes:
        distance_threshold: Feature distance below which two images are near
            duplicates (lower = stricter)
        stage_concurrency: Maximum number of in-flight items per stage
        cancellation_check_interval: Check for cancellation every N items
        stage_weights: Share of overall progress for hashing, clustering and
            scoring; must sum to 1
    """
    distance_threshold: float = DEFAULT_DISTANCE_THRESHOLD
    stage_concurrency: int = DEFAULT_WORKERS
    cancellation_check_interval: int = DEFAULT_CANCEL_CHECK_INTERVAL
    stage_weights: tuple = DEFAULT_STAGE_WEIGHTS

    def __post_init__(self):
        if not self.distance_threshold > 0:
            raise ValueError("distance_threshold must be greater than 0")
        if int(self.stage_concurrency) < 1:
            raise ValueError("stage_concurrency must be at least 1")
        if int(self.cancellation_check_interval) < 1:
            raise ValueError("cancellation_check_interval must be at least 1")
        weights = tuple(float(w) for w in self.stage_weights)
        if len(weights) != 3 or any(w < 0 for w in weights):
            raise ValueError("stage_weights must be three non-negative numbers")
        if not math.isclose(sum(weights), 1.0, abs_tol=1e-9):
            raise ValueError(f"stage_weights must sum to 1, got {sum(weights)}")
        object.__setattr__(self, 'stage_weights', weights)

    @classmethod
    def from_user_config(cls, **overrides) -> 'AnalysisConfig':
        """
        Build a config from the user config file and environment.

        Keyword arguments that are not None take priority.
        """
        from .user_config import get_user_config

        user = get_user_config()
        values = {
            'distance_threshold': float(user.default_threshold),
            'stage_concurrency': int(user.default_workers),
            'cancellation_check_interval': int(user.cancellation_check_interval),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def to_dict(self) -> dict:
        return {
            'distance_threshold': self.distance_threshold,
            'stage_concurrency': self.stage_concurrency,
            'cancellation_check_interval': self.cancellation_check_interval,
            'stage_weights': list(self.stage_weights),
        }


@dataclass
class RunStats:
    """Counters collected while a run progresses."""
    submitted: int = 0
    hashed: int = 0
    hash_skipped: int = 0
    featured: int = 0
    feature_skipped: int = 0
    scored: int = 0
    score_skipped: int = 0
    exact_groups: int = 0
    near_groups: int = 0
    elapsed_seconds: float = 0.0

    def to_dict(self) -> dict:
        return {
            'submitted': self.submitted,
            'hashed': self.hashed,
            'hash_skipped': self.hash_skipped,
            'featured': self.featured,
            'feature_skipped': self.feature_skipped,
            'scored': self.scored,
            'score_skipped': self.score_skipped,
            'exact_groups': self.exact_groups,
            'near_groups': self.near_groups,
            'elapsed_seconds': round(self.elapsed_seconds, 2),
        }


@dataclass(frozen=True)
class RunSnapshot:
    """Immutable view of an analysis run handed to observers."""
    run_id: Optional[str] = None
    phase: RunPhase = RunPhase.NOT_STARTED
    progress: float = 0.0
    message: str = ""
    groups: tuple = ()
    stats: RunStats = field(default_factory=RunStats)

    @property
    def has_results(self) -> bool:
        return self.phase is RunPhase.COMPLETED and len(self.groups) > 0

    def to_status_dict(self) -> dict:
        """Return current status for API response."""
        return {
            'run_id': self.run_id,
            'phase': self.phase.value,
            'progress': round(self.progress, 4),
            'message': self.message,
            'is_active': self.phase.is_active,
            'group_count': len(self.groups),
            'stats': self.stats.to_dict(),
        }

    def to_groups_dict(self) -> dict:
        """Return groups data for API response."""
        return {
            'run_id': self.run_id,
            'phase': self.phase.value,
            'groups': [g.to_dict() for g in self.groups],
        }


__all__ = [
    'ImageRef',
    'MatchKind',
    'RunPhase',
    'SkipReason',
    'ItemResult',
    'GroupCandidate',
    'DuplicateGroup',
    'AnalysisConfig',
    'RunStats',
    'RunSnapshot',
]
