"""
LutStudio: reference-based color grading

Grades a target photograph to match the color character of a reference
photograph using zone-based LAB statistics, applies interactive curve and
selective-color adjustments, and exports the grade as a Hald CLUT.
"""

__version__ = "0.1.0"
__author__ = "LutStudio Team"

# Core imports for easy access
from .config import load_config
from .processing.color import ColorGrader, ColorAdjustments, compute_stats, transfer_color

__all__ = [
    "load_config",
    "ColorGrader",
    "ColorAdjustments",
    "compute_stats",
    "transfer_color",
]
