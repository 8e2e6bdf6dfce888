"""
Pytest configuration and shared fixtures for test suite.
"""

import pytest
import tempfile
import threading
import shutil
from pathlib import Path

import numpy as np
from PIL import Image, ImageFilter

from photoclean.exceptions import ItemReadError
from photoclean.pipeline import Capabilities


def make_pattern(seed: int, size: int = 128) -> Image.Image:
    """Blocky random pattern; distinct seeds give perceptually unrelated images."""
    rng = np.random.default_rng(seed)
    blocks = rng.integers(0, 256, size=(8, 8, 3), dtype=np.uint8)
    return Image.fromarray(blocks, 'RGB').resize((size, size), Image.NEAREST)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    tmpdir = tempfile.mkdtemp()
    yield Path(tmpdir)
    shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def sample_images(temp_dir):
    """
    Create a set of sample images for testing.

    Returns:
        dict with paths to:
        - identical1.png, identical2.png (exact duplicates)
        - similar.jpg (same picture as identical1, re-encoded as JPEG)
        - blurred.png (same picture, blurred)
        - unique.png (unrelated picture)
        - corrupted.png (not an image)
        - tiny.png (2x2 image)
    """
    images = {}

    img1 = make_pattern(1)
    path1 = temp_dir / "identical1.png"
    img1.save(path1, 'PNG')
    images['identical1'] = str(path1)

    # Exact copy
    path2 = temp_dir / "identical2.png"
    img1.save(path2, 'PNG')
    images['identical2'] = str(path2)

    # Same picture, lossy re-encode
    path3 = temp_dir / "similar.jpg"
    img1.save(path3, 'JPEG', quality=90)
    images['similar'] = str(path3)

    path4 = temp_dir / "blurred.png"
    img1.filter(ImageFilter.GaussianBlur(3)).save(path4, 'PNG')
    images['blurred'] = str(path4)

    path5 = temp_dir / "unique.png"
    make_pattern(2).save(path5, 'PNG')
    images['unique'] = str(path5)

    # Has an image extension but is not an image
    path6 = temp_dir / "corrupted.png"
    path6.write_text("not an image")
    images['corrupted'] = str(path6)

    path7 = temp_dir / "tiny.png"
    Image.new('RGB', (2, 2), color='red').save(path7, 'PNG')
    images['tiny'] = str(path7)

    return images


class FakeMedia:
    """
    In-memory stand-in for the platform capabilities.

    Every ref maps to a content string. The bytes handed to the stages carry
    the ref, so features and scores can be looked up per ref while the digest
    depends only on the content.
    """

    def __init__(self, contents, features=None, scores=None, unreadable=(), gate=None):
        self.contents = dict(contents)
        self.features = dict(features or {})
        self.scores = dict(scores or {})
        self.unreadable = set(unreadable)
        self.gate = gate
        self.score_calls = []
        self._lock = threading.Lock()

    @staticmethod
    def ref_of(data: bytes) -> str:
        return data.decode().split('|', 1)[0]

    def read_bytes(self, ref):
        if ref in self.unreadable or ref not in self.contents:
            raise ItemReadError(ref, "missing")
        return f"{ref}|{self.contents[ref]}".encode()

    def hash_bytes(self, data):
        return data.decode().split('|', 1)[1]

    def extract_feature(self, data):
        if self.gate is not None:
            self.gate(self.ref_of(data))
        return self.features.get(self.ref_of(data))

    @staticmethod
    def distance(a, b):
        return abs(a - b)

    def score(self, data):
        ref = self.ref_of(data)
        with self._lock:
            self.score_calls.append(ref)
        return self.scores.get(ref)

    def capabilities(self) -> Capabilities:
        return Capabilities(
            read_bytes=self.read_bytes,
            hash_bytes=self.hash_bytes,
            extract_feature=self.extract_feature,
            distance=self.distance,
            score_sharpness=self.score,
        )


@pytest.fixture
def fake_media():
    """Factory for FakeMedia test doubles."""
    return FakeMedia


@pytest.fixture
def scenario_media():
    """
    Five images: A and B identical, C and D perceptually close, E unrelated.
    """
    return FakeMedia(
        contents={'A': 'sunset', 'B': 'sunset', 'C': 'beach-1', 'D': 'beach-2', 'E': 'forest'},
        features={'A': 5.0, 'C': 1.0, 'D': 1.1, 'E': 9.0},
        scores={'A': 0.4, 'B': 0.7, 'C': 0.5, 'D': 0.3, 'E': 0.9},
    )


@pytest.fixture
def isolated_user_config(temp_dir, monkeypatch):
    """Point the user config at an empty temporary directory."""
    from photoclean.user_config import get_user_config

    for var in ('PHOTOCLEAN_THRESHOLD', 'PHOTOCLEAN_WORKERS', 'PHOTOCLEAN_CHECK_INTERVAL',
                'PHOTOCLEAN_MAX_PIXELS', 'PHOTOCLEAN_HASH_MODE'):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv('PHOTOCLEAN_CONFIG_DIR', str(temp_dir / 'config'))

    config = get_user_config()
    config.reload()
    yield config
    config.reload()


def _palette_image(colour) -> Image.Image:
    img = Image.new('P', (8, 8))
    img.putdata([(x + y) % 2 for y in range(8) for x in range(8)])
    img.putpalette(list(colour) + [255, 255, 255] + [0, 0, 0] * 254)
    return img


@pytest.fixture
def palette_images(temp_dir):
    """
    Palette PNGs sharing one index map.

    Returns:
        dict with paths to:
        - red1.png, red2.png (same indices, same palette)
        - blue.png (same indices, palette entry 0 recoloured blue)
        - red_rgb.png (red1 stored as RGB)
    """
    images = {}
    for name, colour in (('red1', (255, 0, 0)), ('red2', (255, 0, 0)), ('blue', (0, 0, 255))):
        path = temp_dir / f"{name}.png"
        _palette_image(colour).save(path, 'PNG')
        images[name] = str(path)

    path = temp_dir / "red_rgb.png"
    _palette_image((255, 0, 0)).convert('RGB').save(path, 'PNG')
    images['red_rgb'] = str(path)
    return images
