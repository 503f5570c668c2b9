"""
Interactive color adjustments for LutStudio

Applies the user-controlled grade on top of the transferred image:
curves, brightness/contrast, selective color with skin-tone correction,
saturation and temperature/tint. Stages whose parameters are neutral are
skipped entirely, so neutral settings never pay for a color-space round
trip.
"""

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, Optional, Union
import logging
import numpy as np

from ..buffers import BufferLike, as_pixels, prepare_output, to_uint8
from .color_space import rgb_to_hsl, hsl_to_rgb, rgb_to_lab, lab_to_rgb
from .curves import CurveSet, CurveLUTs

logger = logging.getLogger(__name__)


class ColorBand(Enum):
    """Named hue bands for selective color."""
    REDS = "reds"
    ORANGES = "oranges"
    YELLOWS = "yellows"
    GREENS = "greens"
    CYANS = "cyans"
    BLUES = "blues"
    PURPLES = "purples"
    MAGENTAS = "magentas"


# Lower hue edge (degrees) of each band after reds; reds wrap around 345-15
_BAND_EDGES = np.array([15.0, 45.0, 75.0, 165.0, 195.0, 255.0, 315.0, 345.0])
_BAND_ORDER = (
    ColorBand.REDS, ColorBand.ORANGES, ColorBand.YELLOWS, ColorBand.GREENS,
    ColorBand.CYANS, ColorBand.BLUES, ColorBand.PURPLES, ColorBand.MAGENTAS,
)
# searchsorted slot -> position in _BAND_ORDER (slot 8 is reds again)
_SLOT_TO_BAND = np.array([0, 1, 2, 3, 4, 5, 6, 7, 0])

# Skin-tone gate
SKIN_HUE_RANGE = (0.0, 45.0)
SKIN_MIN_SATURATION = 8.0
SKIN_MIN_LIGHTNESS = 15.0

# Luma weights for the saturation blend
_GRAY_WEIGHTS = np.array([0.2989, 0.5870, 0.1140])


def band_indices(hues: np.ndarray) -> np.ndarray:
    """Index into the band order (reds=0 ... magentas=7) for each hue in degrees."""
    wrapped = np.mod(np.asarray(hues, dtype=np.float64), 360.0)
    return _SLOT_TO_BAND[np.searchsorted(_BAND_EDGES, wrapped, side='right')]


def band_for_hue(hue: float) -> ColorBand:
    """The single band a hue (degrees, any range) belongs to."""
    return _BAND_ORDER[int(band_indices(hue))]


def is_skin_tone(hue: Union[float, np.ndarray], saturation: Union[float, np.ndarray],
                 lightness: Union[float, np.ndarray]) -> Union[bool, np.ndarray]:
    """
    Skin-tone heuristic: hue strictly between 0 and 45 degrees, saturation
    above 8% and lightness above 15%.
    """
    low, high = SKIN_HUE_RANGE
    mask = ((np.asarray(hue) > low) & (np.asarray(hue) < high)
            & (np.asarray(saturation) > SKIN_MIN_SATURATION)
            & (np.asarray(lightness) > SKIN_MIN_LIGHTNESS))
    if np.ndim(mask) == 0:
        return bool(mask)
    return mask


@dataclass(frozen=True)
class HSLAdjustment:
    """Additive hue (degrees), saturation and lightness (percent) shift."""
    hue_shift: float = 0.0
    saturation_shift: float = 0.0
    lightness_shift: float = 0.0

    @property
    def is_neutral(self) -> bool:
        return self.hue_shift == 0 and self.saturation_shift == 0 and self.lightness_shift == 0

    def as_array(self) -> np.ndarray:
        return np.array([self.hue_shift, self.saturation_shift, self.lightness_shift],
                        dtype=np.float64)

    @classmethod
    def from_dict(cls, data: Dict[str, float]) -> 'HSLAdjustment':
        # Short keys are accepted for hand-written adjustment files
        return cls(
            hue_shift=float(data.get('hue_shift', data.get('hue', 0.0))),
            saturation_shift=float(data.get('saturation_shift', data.get('saturation', 0.0))),
            lightness_shift=float(data.get('lightness_shift', data.get('lightness', 0.0))),
        )

    def to_dict(self) -> Dict[str, float]:
        return {
            'hue_shift': self.hue_shift,
            'saturation_shift': self.saturation_shift,
            'lightness_shift': self.lightness_shift,
        }


@dataclass(frozen=True)
class ColorAdjustments:
    """Immutable snapshot of every user-controlled grading parameter."""
    brightness: float = 0.0  # -100 to +100
    contrast: float = 0.0  # -100 to +100
    saturation: float = 0.0  # -100 to +100
    temperature: float = 0.0  # -100 to +100
    tint: float = 0.0  # -100 to +100
    curves: CurveSet = field(default_factory=CurveSet)

    reds: HSLAdjustment = field(default_factory=HSLAdjustment)
    oranges: HSLAdjustment = field(default_factory=HSLAdjustment)
    yellows: HSLAdjustment = field(default_factory=HSLAdjustment)
    greens: HSLAdjustment = field(default_factory=HSLAdjustment)
    cyans: HSLAdjustment = field(default_factory=HSLAdjustment)
    blues: HSLAdjustment = field(default_factory=HSLAdjustment)
    purples: HSLAdjustment = field(default_factory=HSLAdjustment)
    magentas: HSLAdjustment = field(default_factory=HSLAdjustment)

    skin: HSLAdjustment = field(default_factory=HSLAdjustment)

    def band(self, band: ColorBand) -> HSLAdjustment:
        return getattr(self, band.value)

    @property
    def has_selective_color(self) -> bool:
        return not all(self.band(b).is_neutral for b in ColorBand)

    @property
    def has_skin_adjustment(self) -> bool:
        return not self.skin.is_neutral

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ColorAdjustments':
        """
        Build a snapshot from plain data (e.g. a YAML/JSON adjustments file).

        Band adjustments may be given at the top level or under an ``hsl``
        mapping; ``temp`` is accepted for ``temperature``.
        """
        bands = dict(data.get('hsl') or {})
        kwargs: Dict[str, Any] = {}
        for name in ('brightness', 'contrast', 'saturation', 'tint'):
            if name in data:
                kwargs[name] = float(data[name])
        if 'temperature' in data or 'temp' in data:
            kwargs['temperature'] = float(data.get('temperature', data.get('temp')))
        if 'curves' in data:
            kwargs['curves'] = CurveSet.from_dict(data['curves'])
        for band in ColorBand:
            value = data.get(band.value, bands.get(band.value))
            if value is not None:
                kwargs[band.value] = HSLAdjustment.from_dict(value)
        if 'skin' in data:
            kwargs['skin'] = HSLAdjustment.from_dict(data['skin'])

        unknown = set(data) - {f.name for f in fields(cls)} - {'hsl', 'temp'}
        if unknown:
            logger.warning(f"Ignoring unknown adjustment keys: {sorted(unknown)}")
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'brightness': self.brightness,
            'contrast': self.contrast,
            'saturation': self.saturation,
            'temperature': self.temperature,
            'tint': self.tint,
            'curves': self.curves.to_dict(),
            'hsl': {band.value: self.band(band).to_dict() for band in ColorBand},
            'skin': self.skin.to_dict(),
        }


class AdjustmentEngine:
    """
    Applies one adjustment snapshot to pixel buffers.

    The curve tables and band table are built once per snapshot and shared
    read-only by every chunk the engine processes.
    """

    def __init__(self, adjustments: ColorAdjustments):
        self.adjustments = adjustments
        self.curve_luts = CurveLUTs.from_curve_set(adjustments.curves)

        self.brightness = adjustments.brightness / 100.0
        self.contrast = (adjustments.contrast + 100.0) / 100.0
        self.saturation = (adjustments.saturation + 100.0) / 100.0
        self.temperature = adjustments.temperature / 5.0
        self.tint = adjustments.tint / 5.0

        self.band_shifts = np.stack([adjustments.band(b).as_array() for b in _BAND_ORDER])
        self.skin_shift = adjustments.skin.as_array()

        self.use_curves = not self.curve_luts.is_identity
        self.use_tone = adjustments.brightness != 0 or adjustments.contrast != 0
        self.use_selective = adjustments.has_selective_color
        self.use_skin = adjustments.has_skin_adjustment
        self.use_saturation = adjustments.saturation != 0
        self.use_lab = self.temperature != 0 or self.tint != 0

    @property
    def has_float_stages(self) -> bool:
        return (self.use_tone or self.use_selective or self.use_skin
                or self.use_saturation or self.use_lab)

    @property
    def is_neutral(self) -> bool:
        return not (self.use_curves or self.has_float_stages)

    def apply(self, buffer: BufferLike, out: Optional[np.ndarray] = None) -> np.ndarray:
        """
        Apply the snapshot to an RGBA8 buffer.

        Args:
            buffer: RGBA8 pixel buffer
            out: Optional output array of matching size

        Returns:
            New RGBA8 buffer with the same shape as ``buffer``; alpha is copied
        """
        pixels, shape = as_pixels(buffer)
        result = prepare_output(out, shape)
        result_pixels = result.reshape(-1, 4)

        rgb = pixels[:, :3]
        if self.use_curves:
            rgb = self.curve_luts.apply(rgb)

        if not self.has_float_stages:
            result_pixels[:, :3] = rgb
            result_pixels[:, 3] = pixels[:, 3]
            return result

        values = rgb.astype(np.float64)
        if self.use_tone:
            values = self._apply_tone(values)
        if self.use_selective or self.use_skin:
            values = self._apply_selective_color(values)
        if self.use_saturation:
            values = self._apply_saturation(values)
        if self.use_lab:
            values = self._apply_temperature_tint(values)

        result_pixels[:, :3] = to_uint8(values)
        result_pixels[:, 3] = pixels[:, 3]
        return result

    def _apply_tone(self, rgb: np.ndarray) -> np.ndarray:
        """Contrast around the 0.5 midpoint plus additive brightness."""
        return ((rgb / 255.0 - 0.5) * self.contrast + 0.5 + self.brightness) * 255.0

    def _apply_selective_color(self, rgb: np.ndarray) -> np.ndarray:
        """Skin-tone shift, then the shift of the band the (shifted) hue falls in."""
        hsl = rgb_to_hsl(rgb)

        if self.use_skin:
            skin = is_skin_tone(hsl[:, 0], hsl[:, 1], hsl[:, 2])
            hsl = hsl + np.where(skin[:, np.newaxis], self.skin_shift, 0.0)

        if self.use_selective:
            hsl = hsl + self.band_shifts[band_indices(hsl[:, 0])]

        hsl[:, 1:] = np.clip(hsl[:, 1:], 0.0, 100.0)
        return hsl_to_rgb(hsl)

    def _apply_saturation(self, rgb: np.ndarray) -> np.ndarray:
        """Blend towards the luma gray value."""
        gray = (rgb @ _GRAY_WEIGHTS)[:, np.newaxis]
        return gray + (rgb - gray) * self.saturation

    def _apply_temperature_tint(self, rgb: np.ndarray) -> np.ndarray:
        """Tint on the a axis, temperature on the b axis."""
        lab = rgb_to_lab(rgb)
        lab[:, 1] += self.tint
        lab[:, 2] += self.temperature
        return lab_to_rgb(lab)


def apply_color_adjustments(buffer: BufferLike, adjustments: ColorAdjustments,
                            out: Optional[np.ndarray] = None) -> np.ndarray:
    """Apply an adjustment snapshot to an RGBA8 buffer."""
    return AdjustmentEngine(adjustments).apply(buffer, out=out)
