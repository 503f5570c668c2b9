"""
Color processing modules for LutStudio

Includes color space conversions, zone statistics, statistical transfer,
interactive adjustments and Hald LUT generation.
"""

from .color_space import rgb_to_lab, lab_to_rgb, rgb_to_hsl, hsl_to_rgb
from .curves import CurvePoint, CurveSet, CurveLUTs, evaluate_curve, build_lut
from .statistics import ColorStats, AdvancedStats, FALLBACK_STATS, compute_stats
from .transfer import transfer_color
from .adjustments import (
    ColorBand, HSLAdjustment, ColorAdjustments, AdjustmentEngine,
    apply_color_adjustments, band_for_hue, is_skin_tone
)
from .hald import (
    NEUTRAL_TARGET_STATS, generate_hald_lut, hald_to_lut3d,
    write_cube_lut, read_cube_lut
)
from .color_grading import ColorGrader, GradeBase

__all__ = [
    "rgb_to_lab",
    "lab_to_rgb",
    "rgb_to_hsl",
    "hsl_to_rgb",
    "CurvePoint",
    "CurveSet",
    "CurveLUTs",
    "evaluate_curve",
    "build_lut",
    "ColorStats",
    "AdvancedStats",
    "FALLBACK_STATS",
    "compute_stats",
    "transfer_color",
    "ColorBand",
    "HSLAdjustment",
    "ColorAdjustments",
    "AdjustmentEngine",
    "apply_color_adjustments",
    "band_for_hue",
    "is_skin_tone",
    "NEUTRAL_TARGET_STATS",
    "generate_hald_lut",
    "hald_to_lut3d",
    "write_cube_lut",
    "read_cube_lut",
    "ColorGrader",
    "GradeBase",
]
