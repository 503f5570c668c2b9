"""
Shared fixtures for LutStudio tests.
"""

import numpy as np
import pytest


def _solid(rgb, width=8, height=8, alpha=255):
    image = np.empty((height, width, 4), dtype=np.uint8)
    image[..., :3] = rgb
    image[..., 3] = alpha
    return image


@pytest.fixture
def solid_image():
    """Factory for a single-color (H, W, 4) RGBA image."""
    return _solid


@pytest.fixture
def gray_bands():
    """Factory for an image made of equal-height bands of gray levels."""
    def make(levels, width=16, rows_per_band=8):
        return np.concatenate([_solid((level,) * 3, width, rows_per_band) for level in levels])
    return make


@pytest.fixture
def random_image():
    """Deterministic random RGBA image with varying alpha."""
    rng = np.random.default_rng(1234)
    return rng.integers(0, 256, size=(32, 48, 4), dtype=np.uint8)


@pytest.fixture
def gradient_image():
    """Horizontal gray ramp over the full 0-255 range, 256x16."""
    ramp = np.tile(np.arange(256, dtype=np.uint8), (16, 1))
    image = np.empty((16, 256, 4), dtype=np.uint8)
    image[..., 0] = ramp
    image[..., 1] = ramp
    image[..., 2] = ramp
    image[..., 3] = 255
    return image
