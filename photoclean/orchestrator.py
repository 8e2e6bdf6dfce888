"""
Analysis orchestration for PhotoClean.

Provides the AnalysisOrchestrator class that sequences the hashing,
clustering and scoring stages on a background thread, maps stage progress
onto a single overall fraction, and publishes the final duplicate groups.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from typing import Callable, Iterable, Optional

from .config import PROGRESS_CEILING
from .exceptions import AnalysisCancelled, ConcurrentRunRejected
from .models import (
    AnalysisConfig,
    DuplicateGroup,
    GroupCandidate,
    ImageRef,
    ItemResult,
    RunPhase,
    RunSnapshot,
)
from .pipeline import (
    Capabilities,
    detect_exact,
    detect_near,
    exact_duplicate_groups,
    near_duplicate_groups,
    score_and_rank,
    select_representatives,
)
from .state import AnalysisRun
from .utils import formatters

# Module logger
_logger = logging.getLogger(__name__)

STAGE_LABELS = ('Hashing', 'Extracting features', 'Assessing quality')


class ProgressTracker:
    """
    Maps per-stage item counts onto the overall progress fraction.

    Each stage owns a disjoint slice of [0, 1] sized by the configured stage
    weights. Reported progress stays below PROGRESS_CEILING until the run
    completes.
    """

    def __init__(self, run: AnalysisRun, publish: Callable[[], None]):
        self.run = run
        self.publish = publish
        self.weights = run.config.stage_weights
        self.starts = []
        total = 0.0
        for weight in self.weights:
            self.starts.append(total)
            total += weight
        self.stage_start_time = time.time()

    def overall(self, stage: int, done: int, total: int) -> float:
        """Overall progress for done/total items of the given stage (0-based)."""
        fraction = done / total if total else 1.0
        value = self.starts[stage] + self.weights[stage] * fraction
        return min(value, PROGRESS_CEILING)

    def begin_stage(self, stage: int, phase: RunPhase, total: int) -> None:
        """Enter a stage and publish its opening message."""
        self.stage_start_time = time.time()
        self.run.update(
            phase=phase,
            progress=self.overall(stage, 0, total),
            message=f'Stage {stage + 1}/3: {STAGE_LABELS[stage]} 0/{formatters.format_number(total)}',
        )
        self.publish()

    def item_done(self, stage: int, done: int, total: int) -> None:
        """Record one more finished item of the given stage."""
        message = (
            f'Stage {stage + 1}/3: {STAGE_LABELS[stage]} '
            f'{formatters.format_number(done)}/{formatters.format_number(total)}'
        )

        elapsed = time.time() - self.stage_start_time
        if elapsed >= 2 and done < total:
            rate = done / elapsed
            if rate > 0:
                eta_str = formatters.format_time_estimate((total - done) / rate)
                message += f' ({rate:.1f}/sec, ~{eta_str} remaining)'

        self.run.update(progress=self.overall(stage, done, total), message=message)
        self.publish()

    def end_stage(self, stage: int) -> None:
        """Move progress to the end of the stage's slice."""
        self.run.update(progress=self.overall(stage, 1, 1))
        self.publish()


class PipelineRun:
    """
    Executes the three analysis stages for one run.

    Runs on the run's worker thread, which is the only writer of the run's
    state. Stage completions arrive through the stages' callbacks on this
    same thread.
    """

    def __init__(
        self,
        run: AnalysisRun,
        refs: list[ImageRef],
        capabilities: Capabilities,
        publish: Callable[[], None],
    ):
        self.run = run
        self.refs = refs
        self.capabilities = capabilities
        self.publish = publish
        self.config = run.config
        self.tracker = ProgressTracker(run, publish)

    @property
    def _pool_options(self) -> dict:
        return {
            'max_workers': self.config.stage_concurrency,
            'cancel_token': self.run.token,
            'check_interval': self.config.cancellation_check_interval,
        }

    def _check_cancelled(self) -> None:
        if self.run.cancel_requested:
            raise AnalysisCancelled("Analysis cancelled")

    def _log_skip(self, stage: str, result: ItemResult) -> None:
        _logger.debug(f"{stage}: skipped {result.ref} ({result.reason.value}: {result.detail})")

    def execute(self) -> list[DuplicateGroup]:
        """
        Run all stages and return the final groups.

        Raises:
            AnalysisCancelled: If cancellation was observed at any point
        """
        exact_candidates, representatives = self._hashing_phase()
        near_candidates = self._clustering_phase(representatives)
        groups = self._scoring_phase(exact_candidates + near_candidates)

        # Check for cancel one last time before publishing
        self._check_cancelled()
        return groups

    def _hashing_phase(self) -> tuple[list[GroupCandidate], list[ImageRef]]:
        """
        Stage 1: Bucket images by content digest.

        Returns:
            Tuple of (exact group candidates, one representative per bucket)
        """
        self._check_cancelled()
        stats = self.run.stats
        total = len(self.refs)
        self.tracker.begin_stage(0, RunPhase.HASHING, total)

        def on_skip(result: ItemResult) -> None:
            stats.hash_skipped += 1
            self._log_skip('Hashing', result)

        buckets = detect_exact(
            self.refs,
            self.capabilities.read_bytes,
            self.capabilities.hash_bytes,
            lambda done, n: self.tracker.item_done(0, done, n),
            on_skip=on_skip,
            **self._pool_options,
        )

        stats.hashed = sum(len(members) for members in buckets.values())
        exact_candidates = exact_duplicate_groups(buckets, order=self.refs)
        representatives = select_representatives(buckets, order=self.refs)
        stats.exact_groups = len(exact_candidates)

        _logger.info(
            f"Stage 1 complete: {stats.hashed:,} hashed, {stats.hash_skipped:,} skipped, "
            f"{len(exact_candidates):,} exact duplicate groups"
        )
        self.tracker.end_stage(0)
        return exact_candidates, representatives

    def _clustering_phase(self, representatives: list[ImageRef]) -> list[GroupCandidate]:
        """
        Stage 2: Cluster representatives by perceptual feature distance.

        Args:
            representatives: One image per digest bucket, in discovery order

        Returns:
            Near-duplicate group candidates
        """
        self._check_cancelled()
        stats = self.run.stats
        self.tracker.begin_stage(1, RunPhase.CLUSTERING, len(representatives))

        def on_skip(result: ItemResult) -> None:
            stats.feature_skipped += 1
            self._log_skip('Feature extraction', result)

        clusters = detect_near(
            representatives,
            self.capabilities.read_bytes,
            self.capabilities.extract_feature,
            self.config.distance_threshold,
            lambda done, n: self.tracker.item_done(1, done, n),
            distance=self.capabilities.distance,
            on_skip=on_skip,
            **self._pool_options,
        )

        near_candidates = near_duplicate_groups(clusters)
        stats.featured = len(representatives) - stats.feature_skipped
        stats.near_groups = len(near_candidates)

        _logger.info(
            f"Stage 2 complete: {stats.featured:,} feature prints, {stats.feature_skipped:,} skipped, "
            f"{len(near_candidates):,} near duplicate groups (threshold={self.config.distance_threshold})"
        )
        self.tracker.end_stage(1)
        return near_candidates

    def _scoring_phase(self, candidates: list[GroupCandidate]) -> list[DuplicateGroup]:
        """
        Stage 3: Score members and pick a representative for every group.

        Args:
            candidates: Exact and near group candidates

        Returns:
            Final duplicate groups, exact groups first
        """
        self._check_cancelled()
        stats = self.run.stats
        member_count = len({ref for c in candidates for ref in c.members})
        self.tracker.begin_stage(2, RunPhase.SCORING, member_count)

        def on_skip(result: ItemResult) -> None:
            stats.score_skipped += 1
            self._log_skip('Scoring', result)

        groups = score_and_rank(
            candidates,
            self.capabilities.read_bytes,
            self.capabilities.score_sharpness,
            lambda done, n: self.tracker.item_done(2, done, n),
            on_skip=on_skip,
            **self._pool_options,
        )

        stats.scored = member_count - stats.score_skipped
        _logger.info(f"Stage 3 complete: {stats.scored:,} scored, {stats.score_skipped:,} skipped")
        self.tracker.end_stage(2)
        return groups


def build_summary(groups: list[DuplicateGroup], run: AnalysisRun) -> str:
    """Build the final human-readable summary message for a completed run."""
    exact_count = sum(len(g.members) - 1 for g in groups if g.is_exact)
    near_count = sum(len(g.members) - 1 for g in groups if not g.is_exact)
    total_dupes = exact_count + near_count

    summary_parts = [
        f'Found {formatters.format_number(total_dupes)} duplicates in '
        f'{formatters.format_number(len(groups))} groups'
    ]

    if exact_count > 0 and near_count > 0:
        summary_parts.append(
            f'({formatters.format_number(exact_count)} exact, {formatters.format_number(near_count)} similar)'
        )
    elif exact_count > 0:
        summary_parts.append('(exact matches)')
    elif near_count > 0:
        summary_parts.append('(visually similar)')

    summary_parts.append(f'• Completed in {formatters.format_time_estimate(time.time() - run.start_time)}')

    unreadable = run.stats.hash_skipped
    if unreadable > 0:
        summary_parts.append(f'• {formatters.format_number(unreadable)} files could not be hashed')

    later_skips = run.stats.feature_skipped + run.stats.score_skipped
    if later_skips > 0:
        summary_parts.append(
            f'• {formatters.format_number(later_skips)} feature or quality computations failed'
        )

    return ' '.join(summary_parts)


class RunHandle:
    """Caller-side handle for one analysis run."""

    def __init__(self, orchestrator: 'AnalysisOrchestrator', run: AnalysisRun, thread: threading.Thread):
        self._orchestrator = orchestrator
        self._run = run
        self._thread = thread

    @property
    def run_id(self) -> str:
        return self._run.run_id

    @property
    def done(self) -> bool:
        return not self._thread.is_alive()

    def snapshot(self) -> RunSnapshot:
        return self._run.snapshot()

    def cancel(self) -> bool:
        return self._orchestrator.cancel(self)

    def wait(self, timeout: Optional[float] = None) -> RunSnapshot:
        """Block until the run finishes (or timeout) and return its state."""
        self._thread.join(timeout)
        return self._run.snapshot()


class AnalysisOrchestrator:
    """
    Starts, observes and cancels analysis runs.

    At most one run is active at a time. Each run works on a fresh
    AnalysisRun that only its worker thread mutates; observers read
    snapshots or subscribe through on_update.
    """

    def __init__(
        self,
        capabilities: Optional[Capabilities] = None,
        on_update: Optional[Callable[[RunSnapshot], None]] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            capabilities: Platform functions used by the stages (defaults to
                file reading, pixel hashing, pHash and edge sharpness)
            on_update: Optional listener called with a snapshot after every
                state change, on the run's worker thread
        """
        self.capabilities = capabilities or Capabilities.default()
        self.on_update = on_update
        self._lock = threading.Lock()
        self._active: Optional[AnalysisRun] = None
        self._latest: Optional[AnalysisRun] = None

    @property
    def is_active(self) -> bool:
        with self._lock:
            return self._active is not None

    def snapshot(self) -> RunSnapshot:
        """Snapshot of the most recent run, or an idle snapshot if none ran yet."""
        with self._lock:
            run = self._latest
        return run.snapshot() if run is not None else RunSnapshot()

    def start_run(self, refs: Iterable[ImageRef], config: Optional[AnalysisConfig] = None) -> RunHandle:
        """
        Start analysing the given images in the background.

        Args:
            refs: Images to analyse, in discovery order
            config: Run options (defaults to AnalysisConfig())

        Returns:
            Handle for observing, waiting on and cancelling the run

        Raises:
            ConcurrentRunRejected: If another run is still active
        """
        config = config or AnalysisConfig()
        refs = list(refs)

        with self._lock:
            if self._active is not None:
                _logger.warning(f"Rejected new analysis: run {self._active.run_id} is still active")
                raise ConcurrentRunRejected(self._active.run_id)
            run = AnalysisRun(uuid.uuid4().hex, config, len(refs))
            self._active = run
            self._latest = run

        _logger.info(f"Starting analysis {run.run_id} of {len(refs):,} images")
        thread = threading.Thread(
            target=self._execute,
            args=(run, refs),
            name=f'photoclean-run-{run.run_id[:8]}',
            daemon=True,
        )
        handle = RunHandle(self, run, thread)
        thread.start()
        return handle

    def run(self, refs: Iterable[ImageRef], config: Optional[AnalysisConfig] = None) -> RunSnapshot:
        """Start a run and block until it finishes."""
        return self.start_run(refs, config).wait()

    def cancel(self, handle: Optional[RunHandle] = None) -> bool:
        """
        Request cancellation of a run.

        Args:
            handle: Run to cancel; None cancels whichever run is active

        Returns:
            True if a cancellation request was delivered to an active run
        """
        with self._lock:
            run = self._active
        if run is None or (handle is not None and handle.run_id != run.run_id):
            return False
        _logger.info(f"Cancellation requested for run {run.run_id}")
        run.request_cancel()
        return True

    def _publish(self, run: AnalysisRun) -> None:
        if self.on_update is not None:
            self.on_update(run.snapshot())

    def _release(self, run: AnalysisRun) -> None:
        with self._lock:
            if self._active is run:
                self._active = None

    def _execute(self, run: AnalysisRun, refs: list[ImageRef]) -> None:
        """Worker thread body: run the pipeline and record the outcome."""
        try:
            if not refs:
                run.update(phase=RunPhase.COMPLETED, progress=1.0, message='No images to analyze', groups=[])
                return

            pipeline = PipelineRun(run, refs, self.capabilities, lambda: self._publish(run))
            groups = pipeline.execute()

            run.update(
                phase=RunPhase.COMPLETED,
                progress=1.0,
                message=build_summary(groups, run),
                groups=groups,
            )
            _logger.info(f"Analysis {run.run_id} completed: {len(groups):,} groups")

        except AnalysisCancelled:
            # Partial results are discarded
            run.update(phase=RunPhase.CANCELLED, message='Analysis cancelled by user', groups=[])
            _logger.info(f"Analysis {run.run_id} cancelled")

        except Exception as e:
            run.update(phase=RunPhase.FAILED, message=f'Error: {e}', groups=[])
            _logger.exception(f"Analysis {run.run_id} failed: {e}")

        finally:
            self._release(run)
            self._publish(run)


__all__ = [
    'AnalysisOrchestrator',
    'RunHandle',
    'PipelineRun',
    'ProgressTracker',
    'build_summary',
]
