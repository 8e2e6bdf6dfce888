"""
Pipeline package for PhotoClean.

Provides the three analysis stages, the ordered worker pool they share and
the default platform capabilities they call.

Public API:
- find_image_files: Discover image files in directories
- detect_exact: Bucket images by content digest
- detect_near: Cluster representatives by perceptual feature distance
- score_and_rank: Score group members and pick representatives
- Capabilities: Bundle of injectable read/hash/feature/distance/score functions
- CancellationToken: Cooperative cancellation flag passed to every stage
"""

from __future__ import annotations

from .file_discovery import find_image_files
from .capabilities import (
    Capabilities,
    read_file_bytes,
    hash_file_bytes,
    hash_pixels,
    extract_phash,
    phash_distance,
    edge_sharpness,
)
from .workers import CancellationToken, process_item, run_ordered
from .exact import detect_exact, select_representatives, exact_duplicate_groups
from .near import cluster_star, detect_near, near_duplicate_groups
from .quality import pick_representative, score_and_rank
from .dependencies import HAS_HEIF_SUPPORT


def has_heif_support() -> bool:
    """Check if HEIC/HEIF support is available."""
    return HAS_HEIF_SUPPORT


__all__ = [
    # File discovery
    'find_image_files',
    # Capabilities
    'Capabilities',
    'read_file_bytes',
    'hash_file_bytes',
    'hash_pixels',
    'extract_phash',
    'phash_distance',
    'edge_sharpness',
    # Worker pool
    'CancellationToken',
    'process_item',
    'run_ordered',
    # Stages
    'detect_exact',
    'select_representatives',
    'exact_duplicate_groups',
    'cluster_star',
    'detect_near',
    'near_duplicate_groups',
    'pick_representative',
    'score_and_rank',
    # Feature detection
    'has_heif_support',
]
