"""
LutStudio Interactive Preview System - Main Integration Layer

Provides a single coordinator for responsive grading with:
- Parallel zone statistics and transfer when images load
- Debounced regrading on every adjustment change
- Cooperative cancellation of superseded renders
- Buffer reuse across renders
- Background style analysis that never touches pixel work
"""

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Callable, Dict, Optional, Set, Tuple, Union
import numpy as np

from ..processing.buffers import BufferLike, validate_pixel_buffer
from ..processing.color import (
    AdjustmentEngine, ColorAdjustments, GradeBase, NEUTRAL_TARGET_STATS,
    generate_hald_lut, transfer_color
)
from ..processing.color.statistics import AdvancedStats, accumulate_pixels, merge_accumulators
from ..utils.logging import RenderStats, StructuredLogger
from .memory_manager import BufferPool
from .models import PreviewConfig, PreviewState, RenderResult
from .threading_manager import GenerationCounter, GenerationToken, TaskCancelled, ThreadingManager

logger = logging.getLogger(__name__)
slog = StructuredLogger(__name__, {'component': 'preview'})

Size = Optional[Tuple[int, int]]


def _describe(image: np.ndarray) -> str:
    if image.ndim == 3:
        return f"{image.shape[1]}x{image.shape[0]}"
    return f"{image.size // 4} pixels"


class GradePreviewSystem:
    """
    Main interface for the LutStudio interactive preview system.

    Every load or adjustment change advances a generation counter. Work
    runs on a single dispatch thread (so stats, transfer and adjustment
    stay in order) and fans out to the worker pool per chunk; a render
    whose generation is no longer current is abandoned and its result is
    never published.
    """

    def __init__(self, config: Optional[PreviewConfig] = None,
                 style_analyzer: Optional[Any] = None,
                 on_result: Optional[Callable[[RenderResult], None]] = None):
        """
        Args:
            config: Preview settings, defaults when None
            style_analyzer: Optional StyleAnalyzer run when images load
            on_result: Called with every published RenderResult
        """
        # Use default config if none provided
        self.config = config or PreviewConfig()

        # Initialize subsystems
        self.threading_manager = ThreadingManager(self.config)
        self.buffer_pool = BufferPool(self.config.buffer_pool_size)
        self.style_analyzer = style_analyzer
        self.on_result = on_result

        self._dispatcher = ThreadPoolExecutor(
            max_workers=1,
            thread_name_prefix="LutStudio-Dispatch"
        )
        self._generations = GenerationCounter()
        self._loads = GenerationCounter()
        self._style_generation = 0
        self._pending: Set[Future] = set()
        self._pending_lock = threading.Lock()

        # System state
        self.state = PreviewState()
        self.render_stats = RenderStats()
        self._hald_identity = generate_hald_lut()
        self._start_time = time.time()
        self._shutdown = False

        logger.info("LutStudio Preview System initialized")

    @property
    def latest(self) -> Optional[RenderResult]:
        """Most recently published render."""
        with self.state._lock:
            return self.state.latest

    @property
    def generation(self) -> int:
        return self._generations.current

    def load_images(self, reference: BufferLike, target: BufferLike,
                    reference_size: Size = None, target_size: Size = None,
                    adjustments: Optional[ColorAdjustments] = None) -> Future:
        """
        Load a reference/target pair and start grading.

        Buffers are validated immediately; stats, transfer and the first
        render happen in the background.

        Args:
            reference: Reference RGBA8 buffer
            target: Target RGBA8 buffer
            reference_size: (width, height), required for flat reference buffers
            target_size: (width, height), required for flat target buffers
            adjustments: Snapshot for the first render; keeps the current one when None

        Returns:
            Future resolving to the RenderResult, or None if superseded
        """
        self._check_running()
        reference = self._snapshot_buffer(reference, reference_size)
        target = self._snapshot_buffer(target, target_size)
        if target.ndim != 3:
            raise ValueError("Target size is required for flat pixel buffers")

        with self.state._lock:
            if adjustments is not None:
                self.state.adjustments = adjustments
            adjustments = self.state.adjustments
            self.state.style_profile = None
            self.state.style_error = None

        load_token = self._loads.advance()
        token = self._generations.advance()
        self._start_style_analysis(reference)

        logger.info(f"Loading images (generation {token.generation}): "
                    f"reference {_describe(reference)}, target {_describe(target)}")
        return self._submit(self._prepare, token, load_token, reference, target, adjustments)

    def update_adjustments(self, adjustments: Union[ColorAdjustments, Dict[str, Any]]) -> Future:
        """
        Regrade with a new adjustment snapshot.

        The render waits ``debounce_interval`` first; if another snapshot
        arrives meanwhile, this one is dropped without rendering.

        Returns:
            Future resolving to the RenderResult, or None if superseded
        """
        self._check_running()
        if isinstance(adjustments, dict):
            adjustments = ColorAdjustments.from_dict(adjustments)

        with self.state._lock:
            self.state.adjustments = adjustments

        token = self._generations.advance()
        logger.debug(f"Adjustment snapshot queued (generation {token.generation})")
        return self._submit(self._render, token, adjustments, time.monotonic())

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until no load or render is in flight.

        Returns:
            True if idle, False on timeout
        """
        with self._pending_lock:
            pending = list(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def release_result(self, result: RenderResult):
        """Hand a result's buffers back for reuse once the caller is done with them."""
        with self.state._lock:
            if self.state.latest is result:
                self.state.latest = None
        self.buffer_pool.release(result.preview)
        self.buffer_pool.release(result.lut)

    def get_system_stats(self) -> Dict[str, Any]:
        """Get comprehensive system statistics."""
        with self._pending_lock:
            pending = len(self._pending)
        return {
            'generation': self.generation,
            'pending_tasks': pending,
            'renders': self.render_stats.get_summary(),
            'processing_queue': self.threading_manager.get_queue_stats(),
            'buffer_pool': self.buffer_pool.get_cache_stats(),
            'uptime': time.time() - self._start_time
        }

    def shutdown(self):
        """Shutdown the preview system."""
        if self._shutdown:
            return

        logger.info("Shutting down LutStudio Preview System...")
        self._shutdown = True

        # Supersede anything in flight
        self._loads.advance()
        self._generations.advance()

        self._dispatcher.shutdown(wait=True, cancel_futures=True)
        self.threading_manager.shutdown()
        if self.style_analyzer is not None:
            self.style_analyzer.shutdown()
        self.buffer_pool.clear()

        logger.info("LutStudio Preview System shutdown complete")

    def _check_running(self):
        if self._shutdown:
            raise RuntimeError("Preview system is shut down")

    @staticmethod
    def _snapshot_buffer(buffer: BufferLike, size: Size) -> np.ndarray:
        width, height = size or (None, None)
        array = validate_pixel_buffer(buffer, width, height)
        if size is not None:
            return array.reshape(height, width, 4).copy()
        return array.copy()

    def _submit(self, func: Callable, token: GenerationToken, *args) -> Future:
        future = self._dispatcher.submit(self._run_guarded, func, token, *args)
        with self._pending_lock:
            self._pending.add(future)

        def forget(f: Future):
            with self._pending_lock:
                self._pending.discard(f)

        future.add_done_callback(forget)
        return future

    def _run_guarded(self, func: Callable, token: GenerationToken, *args) -> Optional[RenderResult]:
        with self.state._lock:
            self.state.is_processing = True
        try:
            return func(token, *args)
        except TaskCancelled:
            self.render_stats.add_result(False)
            logger.debug(f"Generation {token.generation} superseded")
            return None
        except Exception as e:
            self.render_stats.add_error(func.__name__, str(e))
            with self.state._lock:
                self.state.error = str(e)
            logger.error(f"Generation {token.generation} failed: {e}")
            raise
        finally:
            with self.state._lock:
                self.state.is_processing = False

    def _compute_stats(self, image: np.ndarray, token: GenerationToken) -> AdvancedStats:
        accumulator = self.threading_manager.reduce_chunked(
            accumulate_pixels, image.reshape(-1, 4), merge_accumulators, token)
        return accumulator.finalize()

    def _transfer(self, image: np.ndarray, source_stats: AdvancedStats,
                  target_stats: AdvancedStats, token: GenerationToken) -> np.ndarray:
        out = np.empty_like(image)
        self.threading_manager.run_chunked(
            lambda chunk, chunk_out: transfer_color(chunk, source_stats, target_stats, out=chunk_out),
            image.reshape(-1, 4), out.reshape(-1, 4), token)
        return out

    def _prepare(self, token: GenerationToken, load_token: GenerationToken,
                 reference: np.ndarray, target: np.ndarray,
                 adjustments: ColorAdjustments) -> Optional[RenderResult]:
        # Only a newer load supersedes preparation; adjustment changes only supersede the render
        start_time = time.time()

        reference_stats = self._compute_stats(reference, load_token)
        target_stats = self._compute_stats(target, load_token)

        pixels = self._transfer(target, reference_stats, target_stats, load_token)
        hald_base = self._transfer(self._hald_identity, reference_stats, NEUTRAL_TARGET_STATS,
                                   load_token)

        base = GradeBase(pixels=pixels, width=target.shape[1], height=target.shape[0],
                         reference_stats=reference_stats, target_stats=target_stats)
        with self._loads.lock:
            load_token.raise_if_cancelled()
            with self.state._lock:
                self.state.base = base
                self.state.hald_base = hald_base

        slog.bind(load=load_token.generation).info(
            "Images prepared",
            duration=round(time.time() - start_time, 4),
            reference_mean_l=round(reference_stats.global_mean_l, 2),
            target_mean_l=round(target_stats.global_mean_l, 2))
        return self._render(token, adjustments)

    def _render(self, token: GenerationToken, adjustments: ColorAdjustments,
                queued_at: Optional[float] = None) -> Optional[RenderResult]:
        # Superseded snapshots drop before waiting; the debounce counts from submission
        token.raise_if_cancelled()
        if queued_at is not None:
            remaining = self.config.debounce_interval - (time.monotonic() - queued_at)
            if remaining > 0:
                time.sleep(remaining)
            token.raise_if_cancelled()

        with self.state._lock:
            base = self.state.base
            hald_base = self.state.hald_base
        if base is None:
            logger.debug("No images loaded; nothing to render")
            return None

        start_time = time.time()
        self.render_stats.add_started()
        engine = AdjustmentEngine(adjustments)

        preview = self.buffer_pool.acquire(base.pixels.shape)
        lut = self.buffer_pool.acquire(hald_base.shape)
        try:
            self.threading_manager.run_chunked(
                engine.apply, base.pixels.reshape(-1, 4), preview.reshape(-1, 4), token)
            self.threading_manager.run_chunked(
                engine.apply, hald_base.reshape(-1, 4), lut.reshape(-1, 4), token)

            result = RenderResult(
                generation=token.generation,
                adjustments=adjustments,
                preview=preview,
                lut=lut,
                width=base.width,
                height=base.height,
                started_at=start_time
            )

            # Publishing holds the counter lock so no newer generation slips in between
            with self._generations.lock:
                token.raise_if_cancelled()
                with self.state._lock:
                    self.state.latest = result
                    self.state.error = None
        except BaseException:
            self.buffer_pool.release(preview)
            self.buffer_pool.release(lut)
            raise

        self.render_stats.add_result(True, result.duration)
        slog.debug("Render published", generation=token.generation,
                   duration=round(result.duration, 4))

        if self.on_result is not None:
            try:
                self.on_result(result)
            except Exception as e:
                logger.error(f"Result callback failed: {e}")
        return result

    def _start_style_analysis(self, reference: np.ndarray):
        if self.style_analyzer is None:
            return
        if reference.ndim != 3:
            logger.warning("Skipping style analysis: reference size unknown")
            return

        with self.state._lock:
            self._style_generation += 1
            style_generation = self._style_generation

        def merge(profile, error):
            with self.state._lock:
                if style_generation != self._style_generation:
                    return
                if error is not None:
                    self.state.style_profile = None
                    self.state.style_error = str(error)
                else:
                    self.state.style_profile = profile
                    self.state.style_error = None
            if error is not None:
                logger.warning(f"Style analysis failed: {error}")

        try:
            self.style_analyzer.submit(reference, callback=merge)
        except Exception as e:
            logger.warning(f"Could not start style analysis: {e}")
            with self.state._lock:
                self.state.style_error = str(e)

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit with cleanup."""
        self.shutdown()
