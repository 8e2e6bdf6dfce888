"""
Configuration constants for PhotoClean.

This module contains all configurable defaults including:
- Supported image extensions
- Near-duplicate distance threshold and worker pool sizing
- Progress slice widths for the three analysis stages
"""

import os

# Image extensions picked up by file discovery
IMAGE_EXTENSIONS = {
    # Common formats
    '.jpg', '.jpeg', '.png', '.gif', '.bmp', '.webp', '.tiff', '.tif',
    # Modern formats (HEIC/HEIF need pillow-heif)
    '.heic', '.heif', '.avif',
    # Other raster formats Pillow can decode
    '.ico', '.pbm', '.pgm', '.ppm', '.pnm',
    '.tga', '.jp2', '.j2k', '.pcx', '.sgi',
}

HEIF_EXTENSIONS = {'.heic', '.heif'}

# Default near-duplicate threshold on the normalised feature distance (0-1)
# Lower = stricter matching
DEFAULT_DISTANCE_THRESHOLD = 0.30

# Default number of in-flight items per stage
# Each in-flight item holds a full decoded image, so keep this modest
DEFAULT_WORKERS = min(8, os.cpu_count() or 1)

# Check the cancellation flag after this many collected items
DEFAULT_CANCEL_CHECK_INTERVAL = 10

# Share of overall progress given to hashing, clustering and scoring
DEFAULT_STAGE_WEIGHTS = (1 / 3, 1 / 3, 1 / 3)

# Largest progress value reported before a run completes
PROGRESS_CEILING = 0.999

# Perceptual hash size (16 -> 256-bit pHash)
PHASH_SIZE = 16

# Hash modes for exact duplicate detection
HASH_MODE_PIXELS = 'pixels'
HASH_MODE_BYTES = 'bytes'
HASH_MODES = (HASH_MODE_PIXELS, HASH_MODE_BYTES)
DEFAULT_HASH_MODE = HASH_MODE_PIXELS

# Pillow decompression bomb limit (500 megapixels)
MAX_IMAGE_PIXELS = 500_000_000

# User configuration directory and file
CONFIG_DIR = os.path.join(os.path.expanduser('~'), '.photoclean')
