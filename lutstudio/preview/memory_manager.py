"""
Memory Manager for repeated full-resolution renders.

Keeps idle output buffers around so that a stream of adjustment changes
reuses arrays of the same shape instead of allocating new ones.
"""

import logging
import threading
from collections import OrderedDict
from typing import Any, Dict, List, Tuple
import numpy as np

logger = logging.getLogger(__name__)


class BufferPool:
    """
    Pool of uint8 pixel buffers keyed by shape.

    Buffers handed out by ``acquire`` belong to the caller until they are
    given back with ``release``. At most ``max_buffers`` idle buffers are
    kept; the least recently released shape is dropped first.
    """

    def __init__(self, max_buffers: int = 8):
        self.max_buffers = max_buffers
        self._idle: "OrderedDict[Tuple[int, ...], List[np.ndarray]]" = OrderedDict()
        self._idle_count = 0
        self._lock = threading.Lock()

        self.stats = {
            'hits': 0,
            'misses': 0,
            'released': 0,
            'dropped': 0,
        }

        logger.info(f"BufferPool initialized (max_buffers: {max_buffers})")

    def acquire(self, shape: Tuple[int, ...]) -> np.ndarray:
        """Get a buffer of ``shape``, reusing an idle one when possible."""
        shape = tuple(shape)
        with self._lock:
            buffers = self._idle.get(shape)
            if buffers:
                self._idle_count -= 1
                self.stats['hits'] += 1
                buffer = buffers.pop()
                if not buffers:
                    del self._idle[shape]
                return buffer
            self.stats['misses'] += 1

        return np.empty(shape, dtype=np.uint8)

    def release(self, buffer: np.ndarray):
        """Return a buffer to the pool; the caller must not use it afterwards."""
        if buffer is None or buffer.dtype != np.uint8 or not buffer.flags.c_contiguous:
            return

        with self._lock:
            self._idle.setdefault(buffer.shape, []).append(buffer)
            self._idle.move_to_end(buffer.shape)
            self._idle_count += 1
            self.stats['released'] += 1

            while self._idle_count > self.max_buffers:
                oldest_shape = next(iter(self._idle))
                oldest = self._idle[oldest_shape]
                oldest.pop(0)
                if not oldest:
                    del self._idle[oldest_shape]
                self._idle_count -= 1
                self.stats['dropped'] += 1

    def clear(self):
        """Drop all idle buffers."""
        with self._lock:
            self._idle.clear()
            self._idle_count = 0
        logger.debug("BufferPool cleared")

    def get_cache_stats(self) -> Dict[str, Any]:
        """Get pool statistics."""
        with self._lock:
            idle_bytes = sum(b.nbytes for buffers in self._idle.values() for b in buffers)
            return {
                'idle_buffers': self._idle_count,
                'idle_memory_mb': idle_bytes / (1024 * 1024),
                'max_buffers': self.max_buffers,
                **self.stats,
            }
