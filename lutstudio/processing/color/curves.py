"""
Tone curves for LutStudio

Piecewise-linear curve evaluation and 256-entry lookup tables for the
master and per-channel curves.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence, Tuple, Union, Any
import numpy as np


@dataclass(frozen=True)
class CurvePoint:
    """A control point of a tone curve, both coordinates in [0, 1]."""
    x: float
    y: float


def identity_curve() -> Tuple[CurvePoint, ...]:
    """Default 5-point identity curve."""
    return tuple(CurvePoint(v, v) for v in (0.0, 0.25, 0.5, 0.75, 1.0))


def _coerce_points(points: Iterable[Union[CurvePoint, Sequence[float], Dict[str, float]]]) -> Tuple[CurvePoint, ...]:
    coerced = []
    for point in points:
        if isinstance(point, CurvePoint):
            coerced.append(point)
        elif isinstance(point, dict):
            coerced.append(CurvePoint(float(point['x']), float(point['y'])))
        else:
            x, y = point
            coerced.append(CurvePoint(float(x), float(y)))
    return tuple(coerced)


@dataclass(frozen=True)
class CurveSet:
    """Master and per-channel curves, edited independently."""
    master: Tuple[CurvePoint, ...] = field(default_factory=identity_curve)
    red: Tuple[CurvePoint, ...] = field(default_factory=identity_curve)
    green: Tuple[CurvePoint, ...] = field(default_factory=identity_curve)
    blue: Tuple[CurvePoint, ...] = field(default_factory=identity_curve)

    def __post_init__(self):
        for name in ('master', 'red', 'green', 'blue'):
            object.__setattr__(self, name, _coerce_points(getattr(self, name)))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CurveSet':
        return cls(**{name: data[name] for name in ('master', 'red', 'green', 'blue') if name in data})

    def to_dict(self) -> Dict[str, List[Dict[str, float]]]:
        return {
            name: [{'x': p.x, 'y': p.y} for p in getattr(self, name)]
            for name in ('master', 'red', 'green', 'blue')
        }


def evaluate_curve(t: Union[float, np.ndarray], points: Sequence[CurvePoint]) -> Union[float, np.ndarray]:
    """
    Evaluate a piecewise-linear curve.

    Points are sorted by x first. Inputs below the first point clamp to its
    y, inputs above the last point clamp to its y, anything in between is
    linearly interpolated between the bracketing pair. An empty curve is
    the identity.

    Args:
        t: Scalar or array of inputs in [0, 1]
        points: Curve control points (duplicate x values are not supported)

    Returns:
        Curve output with the same shape as ``t``
    """
    if not points:
        return t

    ordered = sorted(_coerce_points(points), key=lambda p: p.x)
    xs = np.array([p.x for p in ordered], dtype=np.float64)
    ys = np.array([p.y for p in ordered], dtype=np.float64)

    result = np.interp(t, xs, ys)
    if np.ndim(t) == 0:
        return float(result)
    return result


_TRUNCATION_TOLERANCE = 1e-9


def build_lut(points: Sequence[CurvePoint]) -> np.ndarray:
    """
    Sample a curve into a 256-entry byte table.

    Entry i holds the curve evaluated at i/255, scaled to [0, 255],
    clamped and truncated to an integer.
    """
    samples = evaluate_curve(np.arange(256, dtype=np.float64) / 255.0, points)
    scaled = np.clip(np.asarray(samples) * 255.0, 0.0, 255.0)
    # Interpolation noise (154.99999999999997) must not drop a whole level
    return np.floor(scaled + _TRUNCATION_TOLERANCE).astype(np.uint8)


_IDENTITY_LUT = np.arange(256, dtype=np.uint8)


@dataclass(frozen=True, eq=False)
class CurveLUTs:
    """The four curve tables of one adjustment snapshot."""
    master: np.ndarray
    red: np.ndarray
    green: np.ndarray
    blue: np.ndarray

    @classmethod
    def from_curve_set(cls, curves: CurveSet) -> 'CurveLUTs':
        return cls(
            master=build_lut(curves.master),
            red=build_lut(curves.red),
            green=build_lut(curves.green),
            blue=build_lut(curves.blue),
        )

    @property
    def is_identity(self) -> bool:
        return all(np.array_equal(lut, _IDENTITY_LUT)
                   for lut in (self.master, self.red, self.green, self.blue))

    def apply(self, rgb: np.ndarray) -> np.ndarray:
        """
        Apply channel curves, then the master curve, to uint8 RGB (N, 3).
        """
        out = np.empty_like(rgb)
        out[:, 0] = self.master[self.red[rgb[:, 0]]]
        out[:, 1] = self.master[self.green[rgb[:, 1]]]
        out[:, 2] = self.master[self.blue[rgb[:, 2]]]
        return out
