"""
Pixel processing for LutStudio
"""

from .buffers import BufferContractError, validate_pixel_buffer

__all__ = [
    "BufferContractError",
    "validate_pixel_buffer",
]
