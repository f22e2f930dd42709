"""Shared fixtures: small synthetic images and PNG writers."""

import logging
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from rendiff import RgbaImage
from rendiff.utils import logging_config

BLACK = (0, 0, 0, 255)
WHITE = (255, 255, 255, 255)


def add_border(inner: np.ndarray, border=BLACK) -> RgbaImage:
    """Surround an (H, W, 4) array with a 1 px border of `border`."""
    inner = np.asarray(inner, dtype=np.uint8)
    h, w = inner.shape[:2]
    arr = np.empty((h + 2, w + 2, 4), dtype=np.uint8)
    arr[...] = border
    arr[1:h + 1, 1:w + 1] = inner
    return RgbaImage(arr)


def vertical_line(width: int, height: int, x: int, color=WHITE, background=BLACK) -> RgbaImage:
    arr = np.empty((height, width, 4), dtype=np.uint8)
    arr[...] = background
    arr[:, x] = color
    return RgbaImage(arr)


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def random_image(rng):
    """Factory for random opaque-or-not RGBA images."""
    def make(width: int, height: int) -> RgbaImage:
        return RgbaImage(rng.integers(0, 256, size=(height, width, 4), dtype=np.uint8))
    return make


@pytest.fixture
def write_png(tmp_path):
    """Factory writing an RgbaImage (or uint8 array) to tmp_path/<name> as PNG."""
    def write(name: str, image) -> Path:
        data = image.data if isinstance(image, RgbaImage) else np.asarray(image, dtype=np.uint8)
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        Image.fromarray(np.ascontiguousarray(data)).save(path)
        return path
    return write


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers and context left behind by setup_logging()."""
    yield
    logging_config.pop_context()
    logging_config.shutdown()
    logging.getLogger().setLevel(logging.WARNING)
