"""
Data models for the LutStudio preview system.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional
import threading
import time
import numpy as np

from ..config import get_config_value
from ..processing.color import AdvancedStats, ColorAdjustments, GradeBase


@dataclass
class PreviewConfig:
    """Configuration for preview processing."""
    # Performance settings
    max_worker_threads: int = 4      # Processing thread pool size
    chunk_pixels: int = 262144       # Pixels per parallel work item

    # Interactive settings
    debounce_interval: float = 0.05  # Seconds before a new snapshot renders

    # Memory settings
    buffer_pool_size: int = 8        # Idle buffers kept for reuse

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'PreviewConfig':
        """Build from the ``preview`` section of a loaded configuration."""
        defaults = cls()
        return cls(
            max_worker_threads=int(get_config_value(config, 'preview.max_worker_threads',
                                                    defaults.max_worker_threads)),
            chunk_pixels=int(get_config_value(config, 'preview.chunk_pixels',
                                              defaults.chunk_pixels)),
            debounce_interval=float(get_config_value(config, 'preview.debounce_interval',
                                                     defaults.debounce_interval)),
            buffer_pool_size=int(get_config_value(config, 'preview.buffer_pool_size',
                                                  defaults.buffer_pool_size)),
        )


@dataclass(eq=False)
class RenderResult:
    """A finished render of one adjustment snapshot."""
    generation: int
    adjustments: ColorAdjustments
    preview: np.ndarray              # Graded target, RGBA8 (H, W, 4)
    lut: np.ndarray                  # Graded Hald image, RGBA8 (512, 512, 4)
    width: int
    height: int
    started_at: float
    completed_at: float = field(default_factory=time.time)

    @property
    def duration(self) -> float:
        """Render duration in seconds."""
        return self.completed_at - self.started_at


@dataclass
class PreviewState:
    """Current state of the preview system."""
    base: Optional[GradeBase] = None
    hald_base: Optional[np.ndarray] = None  # Identity Hald transferred to the reference
    adjustments: ColorAdjustments = field(default_factory=ColorAdjustments)
    latest: Optional[RenderResult] = None
    is_processing: bool = False
    error: Optional[str] = None

    # Display-only results of the style analysis
    style_profile: Optional[Any] = None  # StyleProfile (avoiding circular import)
    style_error: Optional[str] = None

    # Thread safety
    _lock: threading.RLock = field(default_factory=threading.RLock)

    @property
    def reference_stats(self) -> Optional[AdvancedStats]:
        with self._lock:
            return self.base.reference_stats if self.base else None

    @property
    def target_stats(self) -> Optional[AdvancedStats]:
        with self._lock:
            return self.base.target_stats if self.base else None
