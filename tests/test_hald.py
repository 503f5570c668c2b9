"""
Tests for Hald CLUT generation, decoding and .cube export.
"""

import numpy as np
import pytest

from lutstudio.processing.color import (
    ColorAdjustments, ColorGrader, NEUTRAL_TARGET_STATS, generate_hald_lut,
    hald_to_lut3d, read_cube_lut, write_cube_lut
)
from lutstudio.processing.color.hald import HALD_LEVELS, hald_levels


class TestGenerateHald:
    """Test the identity cube layout."""

    @pytest.fixture
    def hald(self):
        return generate_hald_lut()

    def test_size(self, hald):
        assert hald.shape == (512, 512, 4)
        assert hald.dtype == np.uint8
        assert hald.nbytes == 512 * 512 * 4
        assert (hald[..., 3] == 255).all()

    def test_corners(self, hald):
        """Tile (0,0) starts at black, tile (7,7) ends at white."""
        assert hald[0, 0].tolist() == [0, 0, 0, 255]
        assert hald[511, 511].tolist() == [255, 255, 255, 255]

    def test_levels(self):
        levels = hald_levels()
        assert len(levels) == HALD_LEVELS
        assert levels[0] == 0 and levels[-1] == 255
        assert levels[10] == 40 and levels[20] == 81

    def test_tile_layout(self, hald):
        """Tile index is blue; x within the tile is red and y is green."""
        levels = hald_levels()
        # Tile 9 sits at column 1, row 1
        assert hald[64 + 7, 64 + 5, :3].tolist() == [levels[5], levels[7], levels[9]]
        # Tile 10 sits at column 2, row 1
        assert hald[64 + 3, 128 + 2, 2] == levels[10]

    def test_every_color_once(self, hald):
        colors = hald[..., :3].reshape(-1, 3)
        assert len(np.unique(colors, axis=0)) == HALD_LEVELS ** 3


class TestLut3d:
    """Test decoding and .cube files."""

    def test_identity_decode(self):
        lut3d = hald_to_lut3d(generate_hald_lut())
        levels = hald_levels() / 255.0

        assert lut3d.shape == (64, 64, 64, 3)
        b, g, r = 12, 40, 63
        assert np.allclose(lut3d[b, g, r], [levels[r], levels[g], levels[b]])

    def test_decode_rejects_wrong_size(self):
        with pytest.raises(ValueError):
            hald_to_lut3d(np.zeros((256, 256, 4), dtype=np.uint8))

    def test_cube_round_trip(self, tmp_path):
        lut3d = hald_to_lut3d(generate_hald_lut())
        path = write_cube_lut(tmp_path / "grade.cube", lut3d, title="Test Grade")

        text = path.read_text()
        assert 'TITLE "Test Grade"' in text
        assert "LUT_3D_SIZE 64" in text

        restored = read_cube_lut(path)
        assert restored.shape == lut3d.shape
        assert np.allclose(restored, lut3d, atol=1e-6)

    def test_cube_red_varies_fastest(self, tmp_path):
        path = write_cube_lut(tmp_path / "id.cube", hald_to_lut3d(generate_hald_lut()))
        rows = [line for line in path.read_text().splitlines()
                if line and line[0].isdigit()]
        second = [float(v) for v in rows[1].split()]
        assert second[0] > 0 and second[1] == 0 and second[2] == 0

    def test_read_invalid_cube(self, tmp_path):
        path = tmp_path / "broken.cube"
        path.write_text("LUT_3D_SIZE 4\n0 0 0\n")
        with pytest.raises(ValueError):
            read_cube_lut(path)


class TestGradedLut:
    """The LUT reproduces the preview grade."""

    def test_neutral_reference_gives_near_identity(self):
        grader = ColorGrader()
        lut = grader.create_lut(ColorAdjustments(), reference_stats=NEUTRAL_TARGET_STATS)
        diff = np.abs(lut.astype(int) - generate_hald_lut().astype(int))
        assert diff.max() <= 1

    def test_adjustments_reach_the_lut(self):
        grader = ColorGrader()
        neutral = grader.create_lut(ColorAdjustments(), reference_stats=NEUTRAL_TARGET_STATS)
        bright = grader.create_lut(ColorAdjustments(brightness=30),
                                   reference_stats=NEUTRAL_TARGET_STATS)
        assert bright[..., :3].mean() > neutral[..., :3].mean()

    def test_create_lut_requires_images(self):
        with pytest.raises(RuntimeError):
            ColorGrader().create_lut(ColorAdjustments())
