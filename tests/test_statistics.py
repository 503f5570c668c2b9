"""
Tests for zone statistics extraction.
"""

import numpy as np
import pytest

from lutstudio.processing import BufferContractError
from lutstudio.processing.color import FALLBACK_STATS, compute_stats, rgb_to_lab
from lutstudio.processing.color.statistics import (
    STD_EPSILON, ZoneAccumulator, accumulate_pixels, merge_accumulators, zone_index
)


class TestZoneIndex:
    """Test lightness bucketing."""

    def test_boundaries(self):
        """33 belongs to midtones and 66 to highlights."""
        lightness = np.array([0.0, 32.99, 33.0, 65.99, 66.0, 100.0])
        assert zone_index(lightness).tolist() == [0, 0, 1, 1, 2, 2]


class TestComputeStats:
    """Test per-zone statistics."""

    def test_solid_midtone_image(self, solid_image):
        """A single mid gray fills only the midtone zone."""
        stats = compute_stats(solid_image((119, 119, 119)))

        assert stats.shadows == FALLBACK_STATS
        assert stats.highlights == FALLBACK_STATS
        assert stats.midtones.mean[0] == pytest.approx(50.0, abs=0.5)
        assert stats.midtones.std == pytest.approx((STD_EPSILON,) * 3, abs=1e-6)
        assert stats.global_mean_l == pytest.approx(stats.midtones.mean[0])

    def test_black_and_white(self, gray_bands):
        """Black goes to shadows, white to highlights, midtones fall back."""
        stats = compute_stats(gray_bands([0, 255]))

        assert stats.shadows.mean[0] == pytest.approx(0.0, abs=1e-6)
        assert stats.highlights.mean[0] == pytest.approx(100.0, abs=0.05)
        assert stats.midtones == FALLBACK_STATS
        assert stats.global_mean_l == pytest.approx(50.0, abs=0.05)

    def test_population_std(self, gray_bands):
        """Std is the population std of LAB values plus epsilon."""
        image = gray_bands([130, 150])
        lab = rgb_to_lab(image[..., :3].reshape(-1, 3).astype(np.float64))

        stats = compute_stats(image)
        expected = lab.std(axis=0) + STD_EPSILON
        assert np.allclose(stats.midtones.std, expected)
        assert np.allclose(stats.midtones.mean, lab.mean(axis=0))

    def test_std_is_strictly_positive(self, random_image):
        stats = compute_stats(random_image)
        assert (stats.std_array() > 0).all()

    def test_chunking_does_not_change_result(self, random_image):
        """Merged partial accumulators match a single pass."""
        whole = compute_stats(random_image)
        chunked = compute_stats(random_image, chunk_pixels=97)

        assert np.allclose(whole.mean_array(), chunked.mean_array())
        assert np.allclose(whole.std_array(), chunked.std_array())
        assert whole.global_mean_l == pytest.approx(chunked.global_mean_l)

    def test_flat_buffer_with_size(self, random_image):
        """Flat buffers with declared dimensions give the same stats."""
        height, width = random_image.shape[:2]
        flat = compute_stats(random_image.ravel(), width, height)
        shaped = compute_stats(random_image)
        assert np.allclose(flat.mean_array(), shaped.mean_array())

    def test_bytes_buffer(self, solid_image):
        image = solid_image((10, 200, 30))
        assert compute_stats(image.tobytes()) == compute_stats(image)

    def test_empty_buffer(self):
        """No pixels: every zone falls back and the mean lightness is 0."""
        stats = compute_stats(np.zeros(0, dtype=np.uint8))
        assert stats.zones == (FALLBACK_STATS, FALLBACK_STATS, FALLBACK_STATS)
        assert stats.global_mean_l == 0.0

    def test_input_not_modified(self, random_image):
        original = random_image.copy()
        compute_stats(random_image)
        assert np.array_equal(random_image, original)

    def test_to_dict(self, solid_image):
        data = compute_stats(solid_image((119, 119, 119))).to_dict()
        assert set(data) == {'shadows', 'midtones', 'highlights', 'global_mean_l'}
        assert data['shadows'] == {'mean': [50.0, 0.0, 0.0], 'std': [15.0, 10.0, 10.0]}


class TestContract:
    """Malformed buffers fail fast."""

    def test_length_not_multiple_of_four(self):
        with pytest.raises(BufferContractError):
            compute_stats(np.zeros(10, dtype=np.uint8))

    def test_declared_size_mismatch(self):
        with pytest.raises(BufferContractError):
            compute_stats(np.zeros(4 * 12, dtype=np.uint8), 4, 4)

    def test_wrong_dtype(self):
        with pytest.raises(BufferContractError):
            compute_stats(np.zeros((4, 4, 4), dtype=np.float32))


class TestAccumulators:
    """Test the mergeable accumulators."""

    def test_merge_matches_single_pass(self):
        rng = np.random.default_rng(7)
        samples = rng.normal(50.0, 10.0, size=(200, 3))

        merged = ZoneAccumulator.from_samples(samples[:37]).merge(
            ZoneAccumulator.from_samples(samples[37:]))
        whole = ZoneAccumulator.from_samples(samples)

        assert merged.count == whole.count
        assert np.allclose(merged.mean, whole.mean)
        assert np.allclose(merged.m2, whole.m2)

    def test_merge_with_empty(self):
        part = ZoneAccumulator.from_samples(np.ones((3, 3)))
        assert part.merge(ZoneAccumulator()) is part
        assert ZoneAccumulator().merge(part) is part

    def test_merge_accumulators_over_chunks(self, random_image):
        pixels = random_image.reshape(-1, 4)
        total = merge_accumulators(accumulate_pixels(pixels[i:i + 100])
                                   for i in range(0, len(pixels), 100))
        assert total.pixel_count == len(pixels)
        assert sum(zone.count for zone in total.zones) == len(pixels)
