"""
Default platform capabilities for the analysis pipeline.

Provides the byte reader, content hashing, perceptual feature extraction,
feature distance and sharpness scoring used when the caller does not inject
its own implementations.
"""

from __future__ import annotations

import hashlib
import io
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

from ..config import HASH_MODE_BYTES, HASH_MODE_PIXELS, HASH_MODES, PHASH_SIZE
from ..exceptions import ItemReadError
from ..models import ImageRef
from .dependencies import Image, ImageFilter, imagehash, np


def read_file_bytes(ref: ImageRef) -> bytes:
    """
    Read the full contents of an image file.

    Raises:
        ItemReadError: If the file is missing or cannot be read
    """
    try:
        return Path(ref).read_bytes()
    except OSError as e:
        raise ItemReadError(str(ref), e.strerror or str(e)) from e


def _open_image(data: bytes):
    img = Image.open(io.BytesIO(data))
    # Force load to detect truncated/corrupt images early
    img.load()
    return img


def hash_file_bytes(data: bytes) -> str:
    """SHA-256 hex digest of the raw file bytes."""
    return hashlib.sha256(data).hexdigest()


def hash_pixels(data: bytes) -> str:
    """
    SHA-256 hex digest of the decoded pixel data.

    Mode and dimensions are hashed along with the pixel buffer, so the same
    picture saved with different encoder settings or metadata still counts as
    an exact duplicate while a reshaped buffer does not. Palette images are
    expanded to RGBA first so the colours are hashed, not the indices.
    """
    with _open_image(data) as img:
        if img.mode in ('P', 'PA'):
            img = img.convert('RGBA')
        hasher = hashlib.sha256()
        hasher.update(f"{img.mode}:{img.width}x{img.height}:".encode('ascii'))
        hasher.update(img.tobytes())
        return hasher.hexdigest()


def extract_phash(data: bytes, hash_size: int = PHASH_SIZE):
    """
    Perceptual hash (pHash) of an image.

    Args:
        data: Encoded image bytes
        hash_size: Size of the hash (default 16, resulting in 256-bit hash)

    Returns:
        imagehash.ImageHash feature print
    """
    with _open_image(data) as img:
        # Convert to RGB if necessary (handles transparency, palettes, etc.)
        if img.mode not in ('RGB', 'L'):
            img = img.convert('RGB')
        return imagehash.phash(img, hash_size=hash_size)


def phash_distance(a, b) -> float:
    """
    Normalised Hamming distance between two perceptual hashes.

    Returns:
        Fraction of differing bits, 0.0 (identical) to 1.0
    """
    bits = a.hash.size
    if bits != b.hash.size:
        raise ValueError(f"Feature prints differ in size ({bits} vs {b.hash.size} bits)")
    return (a - b) / bits


def edge_sharpness(data: bytes) -> float:
    """
    Sharpness score from the mean edge intensity of the image.

    The grayscale image is run through an edge filter and the mean response
    is normalised to 0-1. Higher = sharper.
    """
    with _open_image(data) as img:
        gray = img.convert('L')
        if gray.width < 3 or gray.height < 3:
            raise ValueError(f"Image too small to score ({gray.width}x{gray.height})")
        edges = gray.filter(ImageFilter.FIND_EDGES)
        # FIND_EDGES leaves a 1px border untouched
        arr = np.asarray(edges, dtype=np.float32)[1:-1, 1:-1]
        score = float(arr.mean()) / 255.0
    return min(1.0, max(0.0, score))


@dataclass(frozen=True)
class Capabilities:
    """
    The platform functions the pipeline depends on.

    Any field can be replaced to inject a different implementation, e.g.
    test doubles or a GPU-backed feature extractor.
    """
    read_bytes: Callable[[ImageRef], bytes] = read_file_bytes
    hash_bytes: Callable[[bytes], Any] = hash_pixels
    extract_feature: Callable[[bytes], Any] = extract_phash
    distance: Callable[[Any, Any], float] = phash_distance
    score_sharpness: Callable[[bytes], Optional[float]] = edge_sharpness

    @classmethod
    def default(cls, hash_mode: str = HASH_MODE_PIXELS) -> 'Capabilities':
        """
        Build the default capabilities.

        Args:
            hash_mode: 'pixels' to hash decoded pixel data, 'bytes' to hash
                raw file contents

        Raises:
            ValueError: If hash_mode is not recognised
        """
        if hash_mode not in HASH_MODES:
            raise ValueError(f"Unsupported hash mode: {hash_mode}. Use one of {', '.join(HASH_MODES)}.")
        hasher = hash_file_bytes if hash_mode == HASH_MODE_BYTES else hash_pixels
        return cls(hash_bytes=hasher)


__all__ = [
    'Capabilities',
    'read_file_bytes',
    'hash_file_bytes',
    'hash_pixels',
    'extract_phash',
    'phash_distance',
    'edge_sharpness',
]
