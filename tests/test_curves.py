"""
Tests for tone curve evaluation and lookup tables.
"""

import numpy as np
import pytest

from lutstudio.processing.color import CurvePoint, CurveSet, CurveLUTs, evaluate_curve, build_lut
from lutstudio.processing.color.curves import identity_curve


class TestEvaluateCurve:
    """Test piecewise-linear evaluation."""

    def test_identity_curve(self):
        """The two-point identity curve returns its input."""
        t = np.linspace(0.0, 1.0, 101)
        points = [CurvePoint(0, 0), CurvePoint(1, 1)]
        assert np.allclose(evaluate_curve(t, points), t)

    def test_interpolates_between_points(self):
        points = [(0.0, 0.0), (0.5, 0.75), (1.0, 1.0)]
        assert evaluate_curve(0.25, points) == pytest.approx(0.375)
        assert evaluate_curve(0.75, points) == pytest.approx(0.875)

    def test_unsorted_points(self):
        """Points are sorted by x before evaluation."""
        points = [(1.0, 1.0), (0.0, 0.0), (0.5, 0.75)]
        assert evaluate_curve(0.25, points) == pytest.approx(0.375)

    def test_clamps_outside_points(self):
        """Inputs outside the control range take the end point values."""
        points = [(0.2, 0.3), (0.8, 0.6)]
        assert evaluate_curve(0.0, points) == pytest.approx(0.3)
        assert evaluate_curve(1.0, points) == pytest.approx(0.6)

    def test_empty_curve_is_identity(self):
        assert evaluate_curve(0.42, []) == 0.42

    def test_accepts_dict_points(self):
        points = [{'x': 0.0, 'y': 1.0}, {'x': 1.0, 'y': 0.0}]
        assert evaluate_curve(0.25, points) == pytest.approx(0.75)


class TestBuildLut:
    """Test 256-entry table construction."""

    def test_identity_table(self):
        """The default curve gives the identity table exactly."""
        lut = build_lut(identity_curve())
        assert lut.dtype == np.uint8
        assert np.array_equal(lut, np.arange(256))

    def test_inverting_curve(self):
        lut = build_lut([(0, 1), (1, 0)])
        assert np.array_equal(lut, 255 - np.arange(256))

    def test_entries_truncate(self):
        """Fractional levels are truncated, not rounded."""
        lut = build_lut([(0, 0), (1, 0.5)])
        assert lut[203] == 101
        assert lut[255] == 127
        assert np.array_equal(lut, np.arange(256) // 2)

    def test_clamps_to_byte_range(self):
        lut = build_lut([(0, -0.5), (1, 1.5)])
        assert lut[0] == 0
        assert lut[255] == 255


class TestCurveLUTs:
    """Test applying a curve set."""

    def test_default_set_is_identity(self):
        assert CurveLUTs.from_curve_set(CurveSet()).is_identity

    def test_channel_curve_before_master(self):
        """Channel curves apply first, then the master curve."""
        curves = CurveSet(red=[(0, 0), (1, 0.5)], master=[(0, 1), (1, 0)])
        luts = CurveLUTs.from_curve_set(curves)
        rgb = np.array([[200, 200, 200]], dtype=np.uint8)

        out = luts.apply(rgb)
        assert out.tolist() == [[155, 55, 55]]

    def test_curve_set_dict_round_trip(self):
        curves = CurveSet(blue=[(0, 0.1), (1, 0.9)])
        restored = CurveSet.from_dict(curves.to_dict())
        assert restored == curves
