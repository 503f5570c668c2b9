"""
LutStudio Interactive Preview System

Debounced, cancellable regrading for interactive adjustment:
- Chunked parallel stats, transfer and adjustments
- Generation counter that supersedes in-flight renders
- Buffer pool for repeated full-resolution renders
"""

from .models import PreviewConfig, PreviewState, RenderResult
from .memory_manager import BufferPool
from .threading_manager import (
    ThreadingManager, GenerationCounter, GenerationToken, TaskCancelled
)
from .preview_system import GradePreviewSystem

__all__ = [
    'PreviewConfig',
    'PreviewState',
    'RenderResult',
    'BufferPool',
    'ThreadingManager',
    'GenerationCounter',
    'GenerationToken',
    'TaskCancelled',
    'GradePreviewSystem',
]
