"""
Logging utilities for LutStudio
Provides structured logging and render statistics
"""

import json
import logging
import sys
import threading
import time
from collections import deque
from pathlib import Path
from typing import Any, Deque, Dict, List, Optional

import colorlog

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class StructuredLogger:
    """
    Logger wrapper that appends key/value context as JSON.

    ``slog.info("Render published", generation=3)`` logs
    ``Render published | {"component": "preview", "generation": 3}``.
    """

    def __init__(self, name: str, metadata: Optional[Dict[str, Any]] = None):
        """
        Args:
            name: Logger name
            metadata: Context included in every record
        """
        self.logger = logging.getLogger(name)
        self.metadata = dict(metadata or {})

    def bind(self, **metadata) -> 'StructuredLogger':
        """Child logger with extra context on top of this one's."""
        return StructuredLogger(self.logger.name, {**self.metadata, **metadata})

    def _log(self, level: int, message: str, exc_info: bool = False, **kwargs):
        if not self.logger.isEnabledFor(level):
            return
        context = {**self.metadata, **kwargs}
        if context:
            message = f"{message} | {json.dumps(context, default=str)}"
        self.logger.log(level, message, exc_info=exc_info)

    def debug(self, message: str, **kwargs):
        self._log(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs):
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._log(logging.WARNING, message, **kwargs)

    def error(self, message: str, exc_info: bool = False, **kwargs):
        self._log(logging.ERROR, message, exc_info=exc_info, **kwargs)


class RenderStats:
    """
    Thread-safe counters for the preview system.

    A render either completes (published) or is superseded by a newer
    generation; errors are kept with the stage that raised them.
    """

    def __init__(self, max_samples: int = 256):
        self._started_at = time.monotonic()
        self._lock = threading.Lock()
        self.renders_started = 0
        self.renders_completed = 0
        self.renders_superseded = 0
        self.errors: List[Dict[str, Any]] = []
        self.render_times: Deque[float] = deque(maxlen=max_samples)

    def add_started(self):
        with self._lock:
            self.renders_started += 1

    def add_result(self, completed: bool, render_time: Optional[float] = None):
        """
        Args:
            completed: True if the render was published, False if superseded
            render_time: Seconds spent, recorded for published renders
        """
        with self._lock:
            if completed:
                self.renders_completed += 1
            else:
                self.renders_superseded += 1
            if render_time is not None:
                self.render_times.append(render_time)

    def add_error(self, stage: str, error: str):
        with self._lock:
            self.errors.append({'stage': stage, 'error': error, 'time': time.time()})

    def get_elapsed_time(self) -> float:
        return time.monotonic() - self._started_at

    def get_average_render_time(self) -> float:
        """Mean of the most recent render times."""
        with self._lock:
            samples = list(self.render_times)
        return sum(samples) / len(samples) if samples else 0.0

    def get_summary(self) -> Dict[str, Any]:
        average = self.get_average_render_time()
        with self._lock:
            return {
                'renders_started': self.renders_started,
                'renders_completed': self.renders_completed,
                'renders_superseded': self.renders_superseded,
                'errors': len(self.errors),
                'last_error': self.errors[-1]['error'] if self.errors else None,
                'elapsed_time': self.get_elapsed_time(),
                'average_render_time': average,
            }


def setup_console_logging(level: str = "INFO", color: bool = True,
                          log_file: Optional[str] = None, fmt: Optional[str] = None):
    """
    Setup console logging with optional color support

    Args:
        level: Logging level
        color: Whether to use colored output
        log_file: Optional file that also receives the log records
        fmt: Format for uncolored output, LOG_FORMAT when None
    """
    fmt = fmt or LOG_FORMAT

    # Create console handler
    console_handler = logging.StreamHandler(sys.stderr)

    # Create formatter
    if color and sys.stderr.isatty():
        formatter = colorlog.ColoredFormatter(
            '%(log_color)s%(asctime)s - %(name)s - %(levelname)s%(reset)s - %(message)s',
            log_colors={
                'DEBUG': 'cyan',
                'INFO': 'green',
                'WARNING': 'yellow',
                'ERROR': 'red',
                'CRITICAL': 'red,bg_white',
            }
        )
    else:
        formatter = logging.Formatter(fmt)

    console_handler.setFormatter(formatter)

    # Configure root logger, replacing handlers from an earlier call
    root_logger = logging.getLogger()
    for handler in [h for h in root_logger.handlers if getattr(h, '_lutstudio', False)]:
        root_logger.removeHandler(handler)
        handler.close()

    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    console_handler._lutstudio = True
    root_logger.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(fmt))
        file_handler._lutstudio = True
        root_logger.addHandler(file_handler)

    logger.debug(f"Console logging configured at {level.upper()}")
