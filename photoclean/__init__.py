"""
PhotoClean
==========
Finds exact and near-duplicate photos and picks the best copy of each.

Pipeline:
- Stage 1: exact duplicates by content digest
- Stage 2: near duplicates by perceptual feature distance (star clustering)
- Stage 3: quality scoring and representative selection

Runs are driven by an orchestrator that publishes progress snapshots and
supports cooperative cancellation. A CLI and a local JSON API sit on top.
"""

__version__ = "1.0.0"

from .models import (
    AnalysisConfig,
    DuplicateGroup,
    GroupCandidate,
    ItemResult,
    MatchKind,
    RunPhase,
    RunSnapshot,
    RunStats,
    SkipReason,
)
from .config import IMAGE_EXTENSIONS, DEFAULT_DISTANCE_THRESHOLD
from .exceptions import AnalysisCancelled, ConcurrentRunRejected, ItemReadError, PhotoCleanError
from .orchestrator import AnalysisOrchestrator, RunHandle
from .pipeline import (
    Capabilities,
    CancellationToken,
    find_image_files,
    detect_exact,
    detect_near,
    score_and_rank,
)

__all__ = [
    "AnalysisConfig",
    "DuplicateGroup",
    "GroupCandidate",
    "ItemResult",
    "MatchKind",
    "RunPhase",
    "RunSnapshot",
    "RunStats",
    "SkipReason",
    "IMAGE_EXTENSIONS",
    "DEFAULT_DISTANCE_THRESHOLD",
    "AnalysisCancelled",
    "ConcurrentRunRejected",
    "ItemReadError",
    "PhotoCleanError",
    "AnalysisOrchestrator",
    "RunHandle",
    "Capabilities",
    "CancellationToken",
    "find_image_files",
    "detect_exact",
    "detect_near",
    "score_and_rank",
]
