from io import BytesIO

import numpy as np
import pytest
from PIL import Image as PILImage

from alchemy_studio.models.image import RasterImage


def make_image(rows, alpha=255) -> RasterImage:
    """Build a RasterImage from nested lists of (r, g, b) tuples."""
    rgb = np.array(rows, dtype=np.uint8)
    alpha_plane = np.full(rgb.shape[:2] + (1,), alpha, dtype=np.uint8)
    return RasterImage(pixels=np.concatenate([rgb, alpha_plane], axis=2))


def png_bytes(pixels: np.ndarray) -> bytes:
    buffer = BytesIO()
    PILImage.fromarray(pixels).save(buffer, format="PNG")
    return buffer.getvalue()


class ScriptedRng:
    """
    Stand-in for np.random.Generator: scalar draws come from *draws*,
    vector draws (the per-pixel coin flips) from *coins*.
    """

    def __init__(self, draws, coins=()):
        self.draws = list(draws)
        self.coins = list(coins)

    def random(self, size=None):
        if size is None:
            return self.draws.pop(0)
        return np.array(self.coins.pop(0), dtype=np.float64)


@pytest.fixture
def noisy_image() -> RasterImage:
    """13x7 random RGBA image with varied alpha."""
    rng = np.random.default_rng(1234)
    return RasterImage(pixels=rng.integers(0, 256, size=(7, 13, 4), dtype=np.uint8))


@pytest.fixture
def gradient_image() -> RasterImage:
    """Every byte value 0..255 along a 256x1 gray ramp."""
    ramp = np.arange(256, dtype=np.uint8)
    pixels = np.zeros((1, 256, 4), dtype=np.uint8)
    pixels[..., 0] = ramp
    pixels[..., 1] = ramp
    pixels[..., 2] = ramp
    pixels[..., 3] = 255
    return RasterImage(pixels=pixels)
