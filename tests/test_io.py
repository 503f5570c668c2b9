"""
Tests for image file loading and saving.
"""

import cv2
import numpy as np
import pytest

from lutstudio.io import load_rgba, save_rgba


class TestImageIO:
    """OpenCV-backed RGBA conversion."""

    def test_png_round_trip_keeps_alpha(self, tmp_path, random_image):
        path = save_rgba(tmp_path / "image.png", random_image)
        assert np.array_equal(load_rgba(path), random_image)

    def test_channel_order(self, tmp_path, solid_image):
        path = save_rgba(tmp_path / "red.png", solid_image((200, 10, 30)))
        assert tuple(cv2.imread(str(path))[0, 0]) == (30, 10, 200)
        assert tuple(load_rgba(path)[0, 0]) == (200, 10, 30, 255)

    def test_grayscale_gets_opaque_alpha(self, tmp_path):
        path = tmp_path / "gray.png"
        cv2.imwrite(str(path), np.full((4, 6), 77, dtype=np.uint8))

        image = load_rgba(path)
        assert image.shape == (4, 6, 4)
        assert tuple(image[0, 0]) == (77, 77, 77, 255)

    def test_sixteen_bit_scaled(self, tmp_path):
        path = tmp_path / "deep.png"
        cv2.imwrite(str(path), np.full((2, 2, 3), 65535, dtype=np.uint16))
        assert load_rgba(path)[0, 0].tolist() == [255, 255, 255, 255]

    def test_jpeg_drops_alpha(self, tmp_path, solid_image):
        path = save_rgba(tmp_path / "image.jpg", solid_image((128, 128, 128), alpha=10))
        image = load_rgba(path)
        assert image[..., 3].min() == 255
        assert abs(int(image[0, 0, 0]) - 128) <= 2

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_rgba(tmp_path / "missing.png")

    def test_unknown_suffix_is_value_error(self, tmp_path, solid_image):
        with pytest.raises(ValueError, match="Could not encode"):
            save_rgba(tmp_path / "image.unknownformat", solid_image((1, 2, 3)))

    def test_rejects_non_rgba(self, tmp_path):
        with pytest.raises(ValueError):
            save_rgba(tmp_path / "x.png", np.zeros((4, 4, 3), dtype=np.uint8))
