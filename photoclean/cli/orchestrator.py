"""
CLI workflow orchestration for PhotoClean.

Provides the CLIOrchestrator class that coordinates the CLI workflow from
argument parsing through analysis, reporting and export.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from ..exceptions import ConcurrentRunRejected
from ..models import AnalysisConfig, RunPhase, RunSnapshot
from ..orchestrator import AnalysisOrchestrator
from ..pipeline import Capabilities, find_image_files
from ..pipeline.dependencies import HAS_TQDM, _tqdm_class
from ..user_config import get_user_config
from ..utils.exporters import export_results
from ..utils.validators import validate_threshold, validate_workers
from .arg_parser import parse_arguments
from .reporting import print_duplicate_report

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CANCELLED = 130

# Resolution of the progress bar (steps for the whole run)
_PROGRESS_STEPS = 1000


def setup_logging(verbose: bool = False) -> logging.Logger:
    """
    Configure logging for the CLI.

    Args:
        verbose: Enable verbose (DEBUG level) logging

    Returns:
        Configured logger instance
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )
    return logging.getLogger(__name__)


class _ProgressBar:
    """tqdm bar fed from orchestrator snapshots."""

    def __init__(self, enabled: bool):
        self.pbar: Optional[Any] = None
        if enabled and HAS_TQDM and _tqdm_class is not None:
            self.pbar = _tqdm_class(total=_PROGRESS_STEPS, desc="Analyzing", unit="", ncols=80,
                                    bar_format='{desc}: {percentage:3.0f}%|{bar}| {elapsed}')

    def update(self, snapshot: RunSnapshot) -> None:
        if self.pbar is None:
            return
        target = int(snapshot.progress * _PROGRESS_STEPS)
        if target > self.pbar.n:
            self.pbar.update(target - self.pbar.n)
        self.pbar.set_description_str(snapshot.phase.value.replace('_', ' ').capitalize(), refresh=False)

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.close()


class CLIOrchestrator:
    """
    Orchestrates the CLI workflow.

    Manages the complete lifecycle from argument parsing through discovery,
    analysis, reporting and export.
    """

    def __init__(self, argv=None):
        self.argv = argv
        self.logger: Optional[logging.Logger] = None
        self.args = None
        self.config: Optional[AnalysisConfig] = None
        self.capabilities: Optional[Capabilities] = None
        self.image_files: list[str] = []
        self.snapshot: Optional[RunSnapshot] = None

    def run(self) -> int:
        """
        Execute the complete CLI workflow.

        Returns:
            Exit code (0 for success, 1 for error, 130 if cancelled)
        """
        self._setup_phase()

        exit_code = self._validate_phase()
        if exit_code != EXIT_OK:
            return exit_code

        exit_code = self._configure_phase()
        if exit_code != EXIT_OK:
            return exit_code

        exit_code = self._scan_phase()
        if exit_code != EXIT_OK:
            return exit_code

        exit_code = self._analyze_phase()
        if exit_code != EXIT_OK:
            return exit_code

        return self._report_phase()

    def _setup_phase(self) -> None:
        """Parse arguments and setup logging."""
        self.args = parse_arguments(self.argv)
        self.logger = setup_logging(self.args.verbose)

    def _validate_phase(self) -> int:
        """Validate arguments."""
        directory = self.args.directory
        if not directory.exists():
            self.logger.error(f"Directory not found: {directory}")
            return EXIT_ERROR
        if not directory.is_dir():
            self.logger.error(f"Not a directory: {directory}")
            return EXIT_ERROR

        if self.args.threshold is not None:
            is_valid, error = validate_threshold(self.args.threshold)
            if not is_valid:
                self.logger.error(error)
                return EXIT_ERROR

        if self.args.workers is not None:
            is_valid, error = validate_workers(self.args.workers)
            if not is_valid:
                self.logger.error(error)
                return EXIT_ERROR

        if self.args.check_interval is not None and self.args.check_interval < 1:
            self.logger.error("--check-interval must be at least 1")
            return EXIT_ERROR

        return EXIT_OK

    def _configure_phase(self) -> int:
        """Build the run configuration and capabilities."""
        try:
            self.config = AnalysisConfig.from_user_config(
                distance_threshold=self.args.threshold,
                stage_concurrency=self.args.workers,
                cancellation_check_interval=self.args.check_interval,
            )
            hash_mode = self.args.hash_mode or get_user_config().hash_mode
            self.capabilities = Capabilities.default(hash_mode)
        except ValueError as e:
            self.logger.error(f"Invalid configuration: {e}")
            return EXIT_ERROR

        self.logger.debug(f"Configuration: {self.config.to_dict()}, hash mode: {hash_mode}")
        return EXIT_OK

    def _scan_phase(self) -> int:
        """Scan for image files."""
        self.logger.info(f"Scanning {self.args.directory} for images...")
        self.image_files = find_image_files(self.args.directory, recursive=not self.args.no_recursive)
        self.logger.info(f"Found {len(self.image_files):,} image files")

        if not self.image_files:
            self.logger.info("No images found. Exiting.")
            return EXIT_ERROR

        return EXIT_OK

    def _analyze_phase(self) -> int:
        """Run the analysis, showing progress, and wait for it to finish."""
        progress = _ProgressBar(enabled=not self.args.no_progress)
        orchestrator = AnalysisOrchestrator(self.capabilities, on_update=progress.update)

        try:
            handle = orchestrator.start_run(self.image_files, self.config)
        except ConcurrentRunRejected as e:
            progress.close()
            self.logger.error(str(e))
            return EXIT_ERROR

        try:
            while not handle.done:
                handle.wait(timeout=0.25)
        except KeyboardInterrupt:
            self.logger.warning("Interrupted - cancelling analysis...")
            handle.cancel()
            handle.wait()
        finally:
            progress.close()

        self.snapshot = handle.snapshot()
        self.logger.info(self.snapshot.message)

        if self.snapshot.phase is RunPhase.CANCELLED:
            return EXIT_CANCELLED
        if self.snapshot.phase is not RunPhase.COMPLETED:
            return EXIT_ERROR
        return EXIT_OK

    def _report_phase(self) -> int:
        """Print the report and handle exports."""
        groups = list(self.snapshot.groups)
        print_duplicate_report(groups)

        if self.args.export:
            try:
                export_results(groups, self.args.export, self.args.export_format)
            except OSError as e:
                self.logger.error(f"Could not export results: {e}")
                return EXIT_ERROR
            self.logger.info(f"Results exported to: {self.args.export}")

        return EXIT_OK


__all__ = ['CLIOrchestrator', 'setup_logging', 'EXIT_OK', 'EXIT_ERROR', 'EXIT_CANCELLED']
