"""
Color grading module for LutStudio

Ties statistics, transfer, adjustments and the Hald LUT together:
reference + target stats -> transfer -> adjustments -> preview, and the
identity cube through the same pair for the exportable LUT.
"""

from dataclasses import dataclass
from typing import Optional
import logging
import time
import numpy as np

from ..buffers import BufferLike, validate_pixel_buffer
from .statistics import AdvancedStats, compute_stats
from .transfer import transfer_color
from .adjustments import AdjustmentEngine, ColorAdjustments
from .hald import generate_hald_lut, NEUTRAL_TARGET_STATS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GradeBase:
    """Transferred target plus the statistics it was derived from."""
    pixels: np.ndarray
    width: int
    height: int
    reference_stats: AdvancedStats
    target_stats: AdvancedStats


class ColorGrader:
    """
    Reference-based color grading engine

    Features:
    - Zone-based statistical transfer from a reference image
    - Curves, tone, selective color, skin tones, saturation, temperature/tint
    - Hald CLUT export of the complete grade
    """

    def __init__(self):
        """Initialize color grader"""
        self.base: Optional[GradeBase] = None
        self._hald_identity = generate_hald_lut()

    def prepare(self, reference: BufferLike, target: BufferLike,
                reference_size: Optional[tuple] = None,
                target_size: Optional[tuple] = None) -> GradeBase:
        """
        Compute both images' statistics and transfer the target.

        Args:
            reference: Reference RGBA8 buffer
            target: Target RGBA8 buffer
            reference_size: Optional (width, height) of the reference
            target_size: (width, height) of the target; required for flat buffers

        Returns:
            The base-transferred image, also kept on the grader
        """
        start_time = time.time()
        ref_w, ref_h = reference_size or (None, None)
        reference_stats = compute_stats(reference, ref_w, ref_h)

        width, height = self._dimensions(target, target_size)
        target_stats = compute_stats(target, width, height)

        pixels = transfer_color(target, reference_stats, target_stats)
        self.base = GradeBase(pixels=pixels, width=width, height=height,
                              reference_stats=reference_stats, target_stats=target_stats)

        logger.info(f"Transferred {width}x{height} target in {time.time() - start_time:.3f}s")
        return self.base

    def apply(self, adjustments: ColorAdjustments) -> np.ndarray:
        """
        Apply an adjustment snapshot to the base-transferred image.

        Returns:
            Graded RGBA8 buffer sized to the target
        """
        base = self._require_base()
        return AdjustmentEngine(adjustments).apply(base.pixels)

    def create_lut(self, adjustments: ColorAdjustments,
                   reference_stats: Optional[AdvancedStats] = None) -> np.ndarray:
        """
        Render the grade into a Hald CLUT.

        The identity cube is transferred from the fixed neutral profile to
        the reference statistics, then adjusted exactly like the preview.

        Returns:
            (512, 512, 4) uint8 Hald image
        """
        if reference_stats is None:
            reference_stats = self._require_base().reference_stats

        transferred = transfer_color(self._hald_identity, reference_stats, NEUTRAL_TARGET_STATS)
        return AdjustmentEngine(adjustments).apply(transferred)

    def _require_base(self) -> GradeBase:
        if self.base is None:
            raise RuntimeError("No images prepared; call prepare() first")
        return self.base

    @staticmethod
    def _dimensions(buffer: BufferLike, size: Optional[tuple]) -> tuple:
        if size is not None:
            return size
        array = validate_pixel_buffer(buffer)
        if array.ndim != 3:
            raise ValueError("Target size is required for flat pixel buffers")
        return array.shape[1], array.shape[0]
