"""
Color space conversions for LutStudio

sRGB <-> CIELAB (D65) and sRGB <-> HSL, vectorized over numpy arrays.
All functions take arrays whose last axis holds the three channels and
return float64 arrays of the same shape. RGB is in [0, 255], LAB L in
[0, 100] (not clamped), HSL hue in degrees and S/L in percent.
"""

import numpy as np
from typing import Union, Sequence

ArrayLike = Union[np.ndarray, Sequence[float]]

# sRGB (D65) -> XYZ
_RGB_TO_XYZ = np.array([
    [0.4124, 0.3576, 0.1805],
    [0.2126, 0.7152, 0.0722],
    [0.0193, 0.1192, 0.9505],
])

# XYZ -> sRGB (D65)
_XYZ_TO_RGB = np.array([
    [3.2406, -1.5372, -0.4986],
    [-0.9689, 1.8758, 0.0415],
    [0.0557, -0.2040, 1.0570],
])

# D65 reference white, scaled to Y = 100
_WHITE_D65 = np.array([95.047, 100.000, 108.883])

_LAB_EPSILON = 0.008856
_LAB_KAPPA = 7.787
_LAB_OFFSET = 16.0 / 116.0


def _as_channels(values: ArrayLike) -> np.ndarray:
    arr = np.asarray(values, dtype=np.float64)
    if arr.shape[-1:] != (3,):
        raise ValueError(f"Expected last axis of size 3, got shape {arr.shape}")
    return arr


def _srgb_to_linear(c: np.ndarray) -> np.ndarray:
    """Piecewise sRGB decoding of values in [0, 1]."""
    return np.where(c > 0.04045,
                    np.power((np.maximum(c, 0.04045) + 0.055) / 1.055, 2.4),
                    c / 12.92)


def _linear_to_srgb(c: np.ndarray) -> np.ndarray:
    """Piecewise sRGB encoding of linear values."""
    return np.where(c > 0.0031308,
                    1.055 * np.power(np.maximum(c, 0.0031308), 1 / 2.4) - 0.055,
                    12.92 * c)


def rgb_to_lab(rgb: ArrayLike) -> np.ndarray:
    """
    Convert sRGB to CIELAB.

    Args:
        rgb: Array (..., 3) of R, G, B values in [0, 255]

    Returns:
        Array (..., 3) of L, a, b
    """
    linear = _srgb_to_linear(_as_channels(rgb) / 255.0)
    xyz = (linear @ _RGB_TO_XYZ.T) * 100.0 / _WHITE_D65

    f = np.where(xyz > _LAB_EPSILON,
                 np.cbrt(xyz),
                 _LAB_KAPPA * xyz + _LAB_OFFSET)
    fx, fy, fz = f[..., 0], f[..., 1], f[..., 2]

    return np.stack([116.0 * fy - 16.0,
                     500.0 * (fx - fy),
                     200.0 * (fy - fz)], axis=-1)


def lab_to_rgb(lab: ArrayLike) -> np.ndarray:
    """
    Convert CIELAB to sRGB.

    Args:
        lab: Array (..., 3) of L, a, b

    Returns:
        Array (..., 3) of R, G, B clamped to [0, 255]
    """
    lab = _as_channels(lab)
    fy = (lab[..., 0] + 16.0) / 116.0
    fx = lab[..., 1] / 500.0 + fy
    fz = fy - lab[..., 2] / 200.0
    f = np.stack([fx, fy, fz], axis=-1)

    cubed = f ** 3
    xyz = np.where(cubed > _LAB_EPSILON, cubed, (f - _LAB_OFFSET) / _LAB_KAPPA)
    xyz = xyz * _WHITE_D65 / 100.0

    rgb = _linear_to_srgb(xyz @ _XYZ_TO_RGB.T) * 255.0
    return np.clip(rgb, 0.0, 255.0)


def rgb_to_hsl(rgb: ArrayLike) -> np.ndarray:
    """
    Convert RGB to cylindrical HSL.

    Args:
        rgb: Array (..., 3) of R, G, B values in [0, 255]

    Returns:
        Array (..., 3) of hue [0, 360), saturation and lightness in percent
    """
    rgb = _as_channels(rgb) / 255.0
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]

    max_val = rgb.max(axis=-1)
    min_val = rgb.min(axis=-1)
    delta = max_val - min_val
    lightness = (max_val + min_val) / 2.0

    chromatic = delta != 0
    safe_delta = np.where(chromatic, delta, 1.0)

    denom = np.where(lightness > 0.5, 2.0 - max_val - min_val, max_val + min_val)
    saturation = np.where(chromatic, delta / np.where(denom == 0, 1.0, denom), 0.0)

    # Channel precedence on ties: red, then green, then blue
    hue_r = (g - b) / safe_delta + np.where(g < b, 6.0, 0.0)
    hue_g = (b - r) / safe_delta + 2.0
    hue_b = (r - g) / safe_delta + 4.0
    hue = np.select([max_val == r, max_val == g], [hue_r, hue_g], hue_b)
    hue = np.where(chromatic, hue / 6.0, 0.0)

    return np.stack([hue * 360.0, saturation * 100.0, lightness * 100.0], axis=-1)


def _hue_to_channel(p: np.ndarray, q: np.ndarray, t: np.ndarray) -> np.ndarray:
    t = np.mod(t, 1.0)
    return np.select(
        [t < 1 / 6, t < 1 / 2, t < 2 / 3],
        [p + (q - p) * 6.0 * t, q, p + (q - p) * (2 / 3 - t) * 6.0],
        p,
    )


def hsl_to_rgb(hsl: ArrayLike) -> np.ndarray:
    """
    Convert HSL to RGB.

    Args:
        hsl: Array (..., 3) of hue in degrees (wrapped modulo 360),
            saturation and lightness in percent

    Returns:
        Array (..., 3) of R, G, B in [0, 255] for in-range input
    """
    hsl = _as_channels(hsl)
    h = np.mod(hsl[..., 0], 360.0) / 360.0
    s = hsl[..., 1] / 100.0
    l = hsl[..., 2] / 100.0

    q = np.where(l < 0.5, l * (1 + s), l + s - l * s)
    p = 2 * l - q

    rgb = np.stack([_hue_to_channel(p, q, h + 1 / 3),
                    _hue_to_channel(p, q, h),
                    _hue_to_channel(p, q, h - 1 / 3)], axis=-1)

    # Achromatic pixels are pure lightness
    rgb = np.where((s == 0)[..., np.newaxis], l[..., np.newaxis], rgb)
    return rgb * 255.0
