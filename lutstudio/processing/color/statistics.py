"""
Zone statistics for LutStudio

Per-tonal-zone LAB mean and standard deviation, used as the moments that
the statistical transfer maps between.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple
import logging
import numpy as np

from ..buffers import BufferLike, as_pixels
from .color_space import rgb_to_lab

logger = logging.getLogger(__name__)

Triple = Tuple[float, float, float]

# Zone boundaries on LAB lightness
SHADOW_LIMIT = 33.0
HIGHLIGHT_LIMIT = 66.0

STD_EPSILON = 1e-4

ZONE_NAMES = ('shadows', 'midtones', 'highlights')


@dataclass(frozen=True)
class ColorStats:
    """LAB mean and standard deviation of a set of pixels."""
    mean: Triple
    std: Triple

    def __post_init__(self):
        object.__setattr__(self, 'mean', tuple(float(v) for v in self.mean))
        object.__setattr__(self, 'std', tuple(float(v) for v in self.std))


# Used for zones without any pixels
FALLBACK_STATS = ColorStats(mean=(50.0, 0.0, 0.0), std=(15.0, 10.0, 10.0))


@dataclass(frozen=True)
class AdvancedStats:
    """Shadow, midtone and highlight statistics plus global mean lightness."""
    shadows: ColorStats
    midtones: ColorStats
    highlights: ColorStats
    global_mean_l: float

    @property
    def zones(self) -> Tuple[ColorStats, ColorStats, ColorStats]:
        return (self.shadows, self.midtones, self.highlights)

    def mean_array(self) -> np.ndarray:
        """Zone means as a (3 zones, 3 channels) array."""
        return np.array([zone.mean for zone in self.zones], dtype=np.float64)

    def std_array(self) -> np.ndarray:
        """Zone standard deviations as a (3 zones, 3 channels) array."""
        return np.array([zone.std for zone in self.zones], dtype=np.float64)

    def to_dict(self) -> Dict[str, object]:
        result = {name: {'mean': list(zone.mean), 'std': list(zone.std)}
                  for name, zone in zip(ZONE_NAMES, self.zones)}
        result['global_mean_l'] = self.global_mean_l
        return result


@dataclass
class ZoneAccumulator:
    """
    Running count, mean and sum of squared deviations for one zone.

    Partial accumulators from separate chunks merge exactly, so the
    statistics of a buffer do not depend on how it was split.
    """
    count: int = 0
    mean: np.ndarray = field(default_factory=lambda: np.zeros(3))
    m2: np.ndarray = field(default_factory=lambda: np.zeros(3))

    @classmethod
    def from_samples(cls, lab: np.ndarray) -> 'ZoneAccumulator':
        if len(lab) == 0:
            return cls()
        mean = lab.mean(axis=0)
        return cls(count=len(lab), mean=mean, m2=((lab - mean) ** 2).sum(axis=0))

    def merge(self, other: 'ZoneAccumulator') -> 'ZoneAccumulator':
        if other.count == 0:
            return self
        if self.count == 0:
            return other
        total = self.count + other.count
        delta = other.mean - self.mean
        mean = self.mean + delta * (other.count / total)
        m2 = self.m2 + other.m2 + delta ** 2 * (self.count * other.count / total)
        return ZoneAccumulator(count=total, mean=mean, m2=m2)

    def to_stats(self) -> ColorStats:
        if self.count == 0:
            return FALLBACK_STATS
        std = np.sqrt(self.m2 / self.count) + STD_EPSILON
        return ColorStats(mean=tuple(self.mean), std=tuple(std))


@dataclass
class StatsAccumulator:
    """Zone accumulators plus the lightness sum of a (partial) buffer."""
    zones: List[ZoneAccumulator] = field(
        default_factory=lambda: [ZoneAccumulator() for _ in ZONE_NAMES])
    pixel_count: int = 0
    lightness_sum: float = 0.0

    def merge(self, other: 'StatsAccumulator') -> 'StatsAccumulator':
        return StatsAccumulator(
            zones=[a.merge(b) for a, b in zip(self.zones, other.zones)],
            pixel_count=self.pixel_count + other.pixel_count,
            lightness_sum=self.lightness_sum + other.lightness_sum,
        )

    def finalize(self) -> AdvancedStats:
        shadows, midtones, highlights = (zone.to_stats() for zone in self.zones)
        global_mean_l = self.lightness_sum / self.pixel_count if self.pixel_count else 0.0
        return AdvancedStats(shadows=shadows, midtones=midtones,
                             highlights=highlights, global_mean_l=float(global_mean_l))


def zone_index(lightness: np.ndarray) -> np.ndarray:
    """0 for shadows (L < 33), 1 for midtones (33 <= L < 66), 2 for highlights."""
    return np.searchsorted(np.array([SHADOW_LIMIT, HIGHLIGHT_LIMIT]), lightness, side='right')


def accumulate_pixels(pixels: np.ndarray) -> StatsAccumulator:
    """Accumulate zone statistics for (N, 4) RGBA pixels."""
    lab = rgb_to_lab(pixels[:, :3].astype(np.float64))
    lightness = lab[:, 0]
    zones = zone_index(lightness)

    return StatsAccumulator(
        zones=[ZoneAccumulator.from_samples(lab[zones == i]) for i in range(len(ZONE_NAMES))],
        pixel_count=len(lab),
        lightness_sum=float(lightness.sum()),
    )


def merge_accumulators(parts: Iterable[StatsAccumulator]) -> StatsAccumulator:
    total = StatsAccumulator()
    for part in parts:
        total = total.merge(part)
    return total


def compute_stats(buffer: BufferLike,
                  width: Optional[int] = None,
                  height: Optional[int] = None,
                  chunk_pixels: int = 1 << 20) -> AdvancedStats:
    """
    Compute zone statistics of an RGBA buffer.

    Every pixel is converted to LAB and bucketed by lightness; each zone
    gets its per-channel mean and population standard deviation (plus a
    small epsilon). Zones without pixels get FALLBACK_STATS.

    Args:
        buffer: RGBA8 pixel buffer
        width: Optional declared width, validated against the buffer
        height: Optional declared height
        chunk_pixels: Pixels converted per step, bounds temporary memory

    Returns:
        AdvancedStats for the buffer
    """
    pixels, _ = as_pixels(buffer, width, height)
    parts = (accumulate_pixels(pixels[start:start + chunk_pixels])
             for start in range(0, len(pixels), chunk_pixels))
    stats = merge_accumulators(parts).finalize()
    logger.debug(f"Computed zone stats for {len(pixels)} pixels "
                 f"(global mean L {stats.global_mean_l:.2f})")
    return stats
