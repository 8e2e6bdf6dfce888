"""
File discovery module for the pipeline package.

Provides functionality to find and enumerate image files in directories,
with support for recursive scanning and HEIC/HEIF format detection.
"""

from __future__ import annotations

from pathlib import Path

from ..config import HEIF_EXTENSIONS, IMAGE_EXTENSIONS
from .dependencies import HAS_HEIF_SUPPORT


def find_image_files(root_path: str | Path, recursive: bool = True) -> list[str]:
    """
    Find all image files in the given directory.

    Args:
        root_path: Directory path to search for images
        recursive: If True, search subdirectories recursively

    Returns:
        Sorted list of absolute file paths as strings

    Notes:
        - Automatically filters out HEIC/HEIF files if pillow-heif is not installed
        - Handles symlinks by resolving to canonical paths
        - Deduplicates files that may be encountered via multiple paths
        - The sorted order is the discovery order used for clustering, so two
          scans of the same tree always produce the same groups
    """
    root = Path(root_path)

    extensions_to_scan = IMAGE_EXTENSIONS
    if not HAS_HEIF_SUPPORT:
        extensions_to_scan = IMAGE_EXTENSIONS - HEIF_EXTENSIONS

    seen: set[str] = set()

    iterator = root.rglob('*') if recursive else root.glob('*')

    for filepath in iterator:
        if filepath.is_file() and filepath.suffix.lower() in extensions_to_scan:
            seen.add(str(filepath.resolve()))

    return sorted(seen)


__all__ = ['find_image_files']
