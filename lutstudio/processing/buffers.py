"""
Pixel buffer contract for LutStudio

A pixel buffer is interleaved 8-bit RGBA, either flat or shaped
(height, width, 4). Engines never mutate their input; they write into a
fresh array (or a caller-supplied ``out`` array) of the same shape.
"""

from typing import Optional, Tuple, Union
import numpy as np

BufferLike = Union[np.ndarray, bytes, bytearray, memoryview]


class BufferContractError(ValueError):
    """Raised when a caller supplies a malformed pixel buffer."""


def validate_pixel_buffer(buffer: BufferLike,
                          width: Optional[int] = None,
                          height: Optional[int] = None) -> np.ndarray:
    """
    Check a pixel buffer against the RGBA8 contract.

    Args:
        buffer: Flat or (H, W, 4) uint8 array, or a bytes-like object
        width: Declared width, checked together with ``height``
        height: Declared height

    Returns:
        The buffer as a uint8 ndarray (no copy when already one)

    Raises:
        BufferContractError: On wrong dtype, length or declared size
    """
    if isinstance(buffer, (bytes, bytearray, memoryview)):
        array = np.frombuffer(buffer, dtype=np.uint8)
    elif isinstance(buffer, np.ndarray):
        array = buffer
    else:
        raise BufferContractError(
            f"Pixel buffer must be a numpy array or bytes-like object, got {type(buffer).__name__}")

    if array.dtype != np.uint8:
        raise BufferContractError(f"Pixel buffer must be uint8, got {array.dtype}")

    if array.size % 4 != 0:
        raise BufferContractError(
            f"Pixel buffer length {array.size} is not a multiple of 4 (RGBA)")

    if array.ndim > 1 and array.shape[-1] != 4:
        raise BufferContractError(
            f"Shaped pixel buffer must have 4 channels on its last axis, got shape {array.shape}")

    if width is not None or height is not None:
        if width is None or height is None:
            raise BufferContractError("Width and height must be declared together")
        if width < 0 or height < 0:
            raise BufferContractError(f"Invalid dimensions {width}x{height}")
        expected = width * height * 4
        if expected != array.size:
            raise BufferContractError(
                f"Declared size {width}x{height}x4 = {expected} does not match buffer length {array.size}")

    return array


def as_pixels(buffer: BufferLike,
              width: Optional[int] = None,
              height: Optional[int] = None) -> Tuple[np.ndarray, Tuple[int, ...]]:
    """
    Validate a buffer and view it as (N, 4) pixels.

    Returns:
        (pixels view, original shape)
    """
    array = validate_pixel_buffer(buffer, width, height)
    return array.reshape(-1, 4), array.shape


def prepare_output(out: Optional[np.ndarray], shape: Tuple[int, ...]) -> np.ndarray:
    """
    Return an output array for ``shape``: a new one, or ``out`` after
    checking it matches.
    """
    if out is None:
        return np.empty(shape, dtype=np.uint8)
    if out.dtype != np.uint8 or out.size != int(np.prod(shape)):
        raise BufferContractError(
            f"Output buffer of shape {out.shape}/{out.dtype} does not match input shape {shape}")
    return out


def to_uint8(values: np.ndarray) -> np.ndarray:
    """Clamp to [0, 255] and round half-to-even into uint8."""
    return np.rint(np.clip(values, 0.0, 255.0)).astype(np.uint8)
