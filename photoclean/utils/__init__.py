"""
Utilities package for PhotoClean.

Provides:
- formatters: Human-readable formatting for numbers, time, and file sizes
- validators: Input validation for directories and analysis parameters
- exporters: Export duplicate groups to files
"""

from __future__ import annotations

from . import formatters
from . import validators
from . import exporters

from .formatters import format_number, format_time_estimate, format_size
from .validators import (
    validate_directory,
    validate_threshold,
    validate_workers,
    validate_scan_params,
)
from .exporters import EXPORT_FORMATS, export_results

__all__ = [
    # Submodules
    'formatters',
    'validators',
    'exporters',
    # Formatters
    'format_number',
    'format_time_estimate',
    'format_size',
    # Validators
    'validate_directory',
    'validate_threshold',
    'validate_workers',
    'validate_scan_params',
    # Exporters
    'EXPORT_FORMATS',
    'export_results',
]
