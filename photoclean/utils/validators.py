"""
Input validation for PhotoClean.

Provides validators for directories and analysis parameters coming from the
CLI and the JSON API.
"""

from __future__ import annotations

import os
from typing import Any, Optional


def validate_directory(directory: str) -> tuple[bool, str]:
    """
    Validate that a directory exists and is accessible.

    Args:
        directory: Directory path to validate

    Returns:
        Tuple of (is_valid, error_message)

    Examples:
        >>> validate_directory('/nonexistent/directory')
        (False, 'Directory not found: /nonexistent/directory')
    """
    if not directory:
        return False, "Directory path is required"

    if not os.path.isabs(directory):
        return False, "Directory must be an absolute path"

    if not os.path.exists(directory):
        return False, f"Directory not found: {directory}"

    if not os.path.isdir(directory):
        return False, f"Path is not a directory: {directory}"

    if not os.access(directory, os.R_OK):
        return False, f"Cannot read directory (permission denied): {directory}"

    return True, ""


def validate_threshold(threshold: Any) -> tuple[bool, str]:
    """
    Validate a near-duplicate distance threshold.

    Args:
        threshold: Threshold value to validate (normalised distance, 0-1)

    Returns:
        Tuple of (is_valid, error_message)

    Examples:
        >>> validate_threshold(0.3)
        (True, '')
        >>> validate_threshold(2)
        (False, 'Threshold must be greater than 0 and at most 1')
    """
    if isinstance(threshold, bool):
        return False, "Threshold must be a number"
    try:
        threshold = float(threshold)
    except (ValueError, TypeError):
        return False, "Threshold must be a number"
    if not 0 < threshold <= 1:
        return False, "Threshold must be greater than 0 and at most 1"
    return True, ""


def validate_workers(workers: Any) -> tuple[bool, str]:
    """Validate the per-stage worker count (1-32)."""
    if isinstance(workers, bool):
        return False, "Workers must be an integer"
    try:
        workers = int(workers)
    except (ValueError, TypeError):
        return False, "Workers must be an integer"
    if not 1 <= workers <= 32:
        return False, "Workers must be between 1 and 32"
    return True, ""


def validate_scan_params(
    directory: str,
    threshold: Optional[Any] = None,
    workers: Optional[Any] = None,
    check_interval: Optional[Any] = None,
) -> tuple[bool, str]:
    """
    Validate all analysis parameters.

    Args:
        directory: Directory to scan
        threshold: Near-duplicate distance threshold (optional)
        workers: Number of worker threads (optional)
        check_interval: Cancellation check interval (optional)

    Returns:
        Tuple of (is_valid, error_message)
    """
    is_valid, error = validate_directory(directory)
    if not is_valid:
        return False, error

    if threshold is not None:
        is_valid, error = validate_threshold(threshold)
        if not is_valid:
            return False, error

    if workers is not None:
        is_valid, error = validate_workers(workers)
        if not is_valid:
            return False, error

    if check_interval is not None:
        try:
            if isinstance(check_interval, bool) or int(check_interval) < 1:
                return False, "Check interval must be a positive integer"
        except (ValueError, TypeError):
            return False, "Check interval must be a positive integer"

    return True, ""


__all__ = [
    'validate_directory',
    'validate_threshold',
    'validate_workers',
    'validate_scan_params',
]
