"""
Threading Manager for responsive grading.

Splits per-pixel work into row-aligned chunks and runs them on a worker
pool. Every chunk checks a generation token first, so a render that has
been superseded by a newer adjustment snapshot stops early.
"""

import logging
import time
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar
import numpy as np

from .models import PreviewConfig

logger = logging.getLogger(__name__)

T = TypeVar('T')


class TaskCancelled(Exception):
    """Raised inside a render whose generation has been superseded."""


class GenerationCounter:
    """Monotonic counter; advancing it supersedes every outstanding token."""

    def __init__(self):
        self._value = 0
        self.lock = threading.RLock()

    @property
    def current(self) -> int:
        with self.lock:
            return self._value

    def advance(self) -> 'GenerationToken':
        with self.lock:
            self._value += 1
            return GenerationToken(self, self._value)


class GenerationToken:
    """Handle for one generation; cancelled once the counter moves past it."""

    def __init__(self, counter: GenerationCounter, generation: int):
        self._counter = counter
        self.generation = generation

    @property
    def cancelled(self) -> bool:
        return self._counter.current != self.generation

    def raise_if_cancelled(self):
        if self.cancelled:
            raise TaskCancelled(f"Generation {self.generation} superseded")

    def __repr__(self):
        return f"GenerationToken(generation={self.generation})"


class ThreadingManager:
    """
    Runs chunked pixel work on a shared thread pool.

    Chunk boundaries are whole pixels and every stage is per-pixel, so
    the chunked result is identical to a single pass over the buffer.
    """

    def __init__(self, config: PreviewConfig):
        self.config = config
        self.max_workers = config.max_worker_threads
        self.chunk_pixels = max(1, config.chunk_pixels)

        # Thread pool
        self.executor = ThreadPoolExecutor(
            max_workers=self.max_workers,
            thread_name_prefix="LutStudio-Worker"
        )

        # Shutdown management
        self._shutdown = False
        self._lock = threading.RLock()

        # Statistics
        self.stats = {
            'jobs_submitted': 0,
            'jobs_completed': 0,
            'jobs_cancelled': 0,
            'jobs_failed': 0,
            'chunks_processed': 0,
            'total_processing_time': 0.0
        }

        logger.info(f"ThreadingManager initialized with {self.max_workers} workers")

    def chunk_bounds(self, pixel_count: int) -> List[slice]:
        """Split ``pixel_count`` pixels into slices of at most ``chunk_pixels``."""
        return [slice(start, min(start + self.chunk_pixels, pixel_count))
                for start in range(0, pixel_count, self.chunk_pixels)]

    def run_chunked(self, func: Callable[[np.ndarray, np.ndarray], Any],
                    pixels: np.ndarray, out: np.ndarray,
                    token: Optional[GenerationToken] = None) -> np.ndarray:
        """
        Apply ``func(chunk_in, chunk_out)`` over (N, 4) pixels in parallel.

        Args:
            func: Writes its result for ``chunk_in`` into ``chunk_out``
            pixels: (N, 4) input pixels
            out: (N, 4) contiguous output, same length as ``pixels``
            token: Optional generation token checked before each chunk

        Returns:
            ``out``

        Raises:
            TaskCancelled: If the token was superseded before completion
        """
        def work(bounds: slice):
            if token is not None:
                token.raise_if_cancelled()
            func(pixels[bounds], out[bounds])

        self._run(work, self.chunk_bounds(len(pixels)), token)
        return out

    def reduce_chunked(self, func: Callable[[np.ndarray], T],
                       pixels: np.ndarray,
                       merge: Callable[[Iterable[T]], T],
                       token: Optional[GenerationToken] = None) -> T:
        """Map ``func`` over pixel chunks in parallel and merge the partials in order."""
        def work(bounds: slice) -> T:
            if token is not None:
                token.raise_if_cancelled()
            return func(pixels[bounds])

        return merge(self._run(work, self.chunk_bounds(len(pixels)), token))

    def get_queue_stats(self) -> Dict[str, Any]:
        """Get worker pool statistics."""
        with self._lock:
            completed = self.stats['jobs_completed']
            return {
                'max_workers': self.max_workers,
                'chunk_pixels': self.chunk_pixels,
                'average_job_time': (self.stats['total_processing_time'] / completed
                                     if completed else 0.0),
                **self.stats
            }

    def shutdown(self, wait: bool = True):
        """
        Shutdown the threading manager.

        Args:
            wait: Whether to wait for running chunks to finish
        """
        logger.info("Shutting down ThreadingManager...")
        self._shutdown = True
        self.executor.shutdown(wait=wait)
        logger.info("ThreadingManager shutdown complete")

    def _run(self, work: Callable[[slice], T], bounds: List[slice],
             token: Optional[GenerationToken]) -> List[T]:
        if self._shutdown:
            raise RuntimeError("ThreadingManager is shutting down")

        start_time = time.time()
        with self._lock:
            self.stats['jobs_submitted'] += 1

        futures = [self.executor.submit(work, b) for b in bounds]
        try:
            results = [future.result() for future in futures]
        except BaseException as e:
            for future in futures:
                future.cancel()
            # Chunks already running still write into the caller's buffers
            wait(futures)
            cancelled = isinstance(e, TaskCancelled)
            with self._lock:
                self.stats['jobs_cancelled' if cancelled else 'jobs_failed'] += 1
            if cancelled:
                logger.debug(f"Chunked job cancelled ({token})")
            else:
                logger.error(f"Chunked job failed: {e}")
            raise

        with self._lock:
            self.stats['jobs_completed'] += 1
            self.stats['chunks_processed'] += len(bounds)
            self.stats['total_processing_time'] += time.time() - start_time
        return results
