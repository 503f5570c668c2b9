"""
Zone-based statistical color transfer

Maps the LAB moments of a target image onto those of a reference,
interpolating the zone statistics by each pixel's own lightness so that
there is no banding at the zone boundaries.
"""

from typing import Optional, Tuple
import numpy as np

from ..buffers import BufferLike, as_pixels, prepare_output, to_uint8
from .color_space import rgb_to_lab, lab_to_rgb
from .statistics import AdvancedStats, SHADOW_LIMIT, HIGHLIGHT_LIMIT


def zone_blend(lightness: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Zone pair and blend weight for each lightness value.

    L <= 33 blends shadows -> midtones with t = L/33, 33 < L <= 66 blends
    midtones -> highlights with t = (L-33)/33, L > 66 uses highlights only.

    Returns:
        (lower zone index, upper zone index, t)
    """
    zone_width = HIGHLIGHT_LIMIT - SHADOW_LIMIT
    in_shadows = lightness <= SHADOW_LIMIT
    in_midtones = ~in_shadows & (lightness <= HIGHLIGHT_LIMIT)

    lower = np.where(in_shadows, 0, np.where(in_midtones, 1, 2))
    upper = np.minimum(lower + 1, 2)
    t = np.where(in_shadows, lightness / SHADOW_LIMIT,
                 np.where(in_midtones, (lightness - SHADOW_LIMIT) / zone_width, 0.0))
    return lower, upper, t


def _interpolate(zone_values: np.ndarray, lower: np.ndarray, upper: np.ndarray,
                 t: np.ndarray) -> np.ndarray:
    weight = t[:, np.newaxis]
    return zone_values[lower] * (1.0 - weight) + zone_values[upper] * weight


def transfer_lab(lab: np.ndarray, source_stats: AdvancedStats,
                 target_stats: AdvancedStats) -> np.ndarray:
    """
    Apply the zone-interpolated transfer to LAB pixels (N, 3).

    new = (value - target_mean) * (source_std / target_std) + source_mean,
    with L clamped to [0, 100]; a and b are left unclamped.
    """
    lower, upper, t = zone_blend(lab[:, 0])

    source_mean = _interpolate(source_stats.mean_array(), lower, upper, t)
    source_std = _interpolate(source_stats.std_array(), lower, upper, t)
    target_mean = _interpolate(target_stats.mean_array(), lower, upper, t)
    target_std = _interpolate(target_stats.std_array(), lower, upper, t)

    shifted = (lab - target_mean) * (source_std / target_std) + source_mean
    shifted[:, 0] = np.clip(shifted[:, 0], 0.0, 100.0)
    return shifted


def transfer_color(target: BufferLike,
                   source_stats: AdvancedStats,
                   target_stats: AdvancedStats,
                   out: Optional[np.ndarray] = None,
                   width: Optional[int] = None,
                   height: Optional[int] = None) -> np.ndarray:
    """
    Grade a target buffer so its zone statistics match the source's.

    Args:
        target: RGBA8 pixel buffer to grade
        source_stats: Statistics to move towards (the reference image)
        target_stats: Statistics of the target image
        out: Optional output array of matching size
        width: Optional declared width, validated against the buffer
        height: Optional declared height

    Returns:
        New RGBA8 buffer with the same shape as ``target``; alpha is copied
    """
    pixels, shape = as_pixels(target, width, height)
    result = prepare_output(out, shape)
    result_pixels = result.reshape(-1, 4)

    if len(pixels):
        lab = rgb_to_lab(pixels[:, :3].astype(np.float64))
        rgb = lab_to_rgb(transfer_lab(lab, source_stats, target_stats))
        result_pixels[:, :3] = to_uint8(rgb)
        result_pixels[:, 3] = pixels[:, 3]
    return result
