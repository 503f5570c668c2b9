"""
Tests for the sRGB <-> LAB and sRGB <-> HSL conversions.
"""

import numpy as np
import pytest

from lutstudio.processing.color import rgb_to_lab, lab_to_rgb, rgb_to_hsl, hsl_to_rgb


def _rgb_grid(step=15):
    values = np.arange(0, 256, step, dtype=np.float64)
    values = np.union1d(values, [255.0])
    r, g, b = np.meshgrid(values, values, values, indexing='ij')
    return np.stack([r.ravel(), g.ravel(), b.ravel()], axis=-1)


class TestLab:
    """Test CIELAB conversion."""

    def test_white_and_black(self):
        """White maps to L=100 and black to L=0, both neutral."""
        white = rgb_to_lab([255, 255, 255])
        black = rgb_to_lab([0, 0, 0])

        assert white[0] == pytest.approx(100.0, abs=0.05)
        assert abs(white[1]) < 0.05 and abs(white[2]) < 0.05
        assert np.allclose(black, 0.0, atol=1e-9)

    def test_mid_gray_lightness(self):
        """sRGB 119 gray sits close to L=50."""
        lab = rgb_to_lab([119, 119, 119])
        assert lab[0] == pytest.approx(50.0, abs=0.5)

    def test_primary_signs(self):
        """Red has positive a, blue negative b."""
        red = rgb_to_lab([255, 0, 0])
        blue = rgb_to_lab([0, 0, 255])
        assert red[1] > 50
        assert blue[2] < -50

    def test_round_trip(self):
        """LAB round trip reconstructs RGB within one unit."""
        rgb = _rgb_grid()
        restored = np.rint(lab_to_rgb(rgb_to_lab(rgb)))
        assert np.abs(restored - rgb).max() <= 1

    def test_lab_to_rgb_clamps(self):
        """Out-of-gamut LAB input is clamped into [0, 255]."""
        rgb = lab_to_rgb([[50.0, 150.0, -150.0], [120.0, 0.0, 0.0], [-10.0, 0.0, 0.0]])
        assert rgb.min() >= 0.0
        assert rgb.max() <= 255.0

    def test_preserves_leading_shape(self):
        """Conversions keep the leading axes."""
        image = np.zeros((4, 5, 3))
        assert rgb_to_lab(image).shape == (4, 5, 3)
        assert lab_to_rgb(image).shape == (4, 5, 3)

    def test_rejects_wrong_channel_count(self):
        with pytest.raises(ValueError):
            rgb_to_lab(np.zeros((4, 4)))


class TestHsl:
    """Test HSL conversion."""

    def test_primaries(self):
        """Primaries land on 0, 120 and 240 degrees at full saturation."""
        hsl = rgb_to_hsl([[255, 0, 0], [0, 255, 0], [0, 0, 255]])
        assert np.allclose(hsl[:, 0], [0.0, 120.0, 240.0])
        assert np.allclose(hsl[:, 1], 100.0)
        assert np.allclose(hsl[:, 2], 50.0)

    def test_gray_is_achromatic(self):
        """Grays have zero hue and saturation."""
        hsl = rgb_to_hsl([128, 128, 128])
        assert hsl[0] == 0.0
        assert hsl[1] == 0.0
        assert hsl[2] == pytest.approx(128 / 255 * 100)

    def test_round_trip(self):
        """HSL round trip reconstructs RGB within one unit."""
        rgb = _rgb_grid()
        restored = np.rint(hsl_to_rgb(rgb_to_hsl(rgb)))
        assert np.abs(restored - rgb).max() <= 1

    def test_hue_wraps(self):
        """Hue outside [0, 360) wraps around."""
        assert np.allclose(hsl_to_rgb([480.0, 100.0, 50.0]), hsl_to_rgb([120.0, 100.0, 50.0]))
        assert np.allclose(hsl_to_rgb([-120.0, 100.0, 50.0]), hsl_to_rgb([240.0, 100.0, 50.0]))

    def test_zero_saturation_returns_lightness(self):
        rgb = hsl_to_rgb([200.0, 0.0, 40.0])
        assert np.allclose(rgb, 0.4 * 255.0)
