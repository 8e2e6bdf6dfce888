"""
Argument parsing for the CLI interface.

Provides functions to create and configure the argument parser for the
PhotoClean command-line interface.
"""

from __future__ import annotations

import argparse
from pathlib import Path

from ..config import HASH_MODES
from ..utils.exporters import EXPORT_FORMATS


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Options left unset fall back to the user config file, environment
    variables and built-in defaults, in that order.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        description='Find duplicate and near-duplicate photos and recommend which to keep',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s /path/to/photos
      Analyze a folder and print a report (no files are changed)

  %(prog)s /path/to/photos --threshold 0.15
      Stricter near-duplicate matching

  %(prog)s /path/to/photos --hash-mode bytes
      Treat only byte-identical files as exact duplicates

  %(prog)s /path/to/photos --export results.csv --export-format csv
      Export results to CSV for external review
        """
    )

    parser.add_argument(
        'directory',
        type=Path,
        help='Directory to scan for duplicate images'
    )

    parser.add_argument(
        '-r', '--no-recursive',
        action='store_true',
        help='Do not scan subdirectories'
    )

    parser.add_argument(
        '-t', '--threshold',
        type=float,
        default=None,
        help='Near-duplicate distance threshold (0-1, lower=stricter). Default: 0.30'
    )

    parser.add_argument(
        '-w', '--workers',
        type=int,
        default=None,
        help='Maximum in-flight images per stage'
    )

    parser.add_argument(
        '--check-interval',
        type=int,
        default=None,
        help='Check for cancellation every N images'
    )

    parser.add_argument(
        '--hash-mode',
        choices=HASH_MODES,
        default=None,
        help="Exact matching on decoded pixels or raw file bytes. Default: pixels"
    )

    parser.add_argument(
        '-e', '--export',
        type=Path,
        help='Export results to file'
    )

    parser.add_argument(
        '--export-format',
        choices=EXPORT_FORMATS,
        default='txt',
        help='Export format. Default: txt'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Verbose output'
    )

    parser.add_argument(
        '--no-progress',
        action='store_true',
        help='Disable progress bars (useful for piping output)'
    )

    return parser


def parse_arguments(argv=None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Examples:
        >>> args = parse_arguments(['/path/to/photos', '--threshold', '0.2'])
        >>> args.threshold
        0.2
    """
    parser = create_parser()
    return parser.parse_args(argv)


__all__ = [
    'create_parser',
    'parse_arguments',
]
