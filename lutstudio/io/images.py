"""
Image decode/encode for LutStudio

The numeric core only sees RGBA8 arrays; this module converts between
files and that representation with OpenCV.
"""

import logging
from pathlib import Path
from typing import Union

import cv2
import numpy as np

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

JPEG_SUFFIXES = {'.jpg', '.jpeg'}
ALPHA_SUFFIXES = {'.png', '.tif', '.tiff', '.webp'}


def load_rgba(path: PathLike) -> np.ndarray:
    """
    Load an image file as an (H, W, 4) uint8 RGBA array.

    Grayscale and RGB files get an opaque alpha channel; 16-bit files are
    scaled down to 8 bits.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If OpenCV cannot decode it
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Image not found: {path}")

    image = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
    if image is None:
        raise ValueError(f"Could not decode image: {path}")

    if image.dtype == np.uint16:
        image = (image // 257).astype(np.uint8)
    elif image.dtype != np.uint8:
        raise ValueError(f"Unsupported image depth {image.dtype}: {path}")

    if image.ndim == 2:
        rgba = cv2.cvtColor(image, cv2.COLOR_GRAY2RGBA)
    elif image.shape[2] == 3:
        rgba = cv2.cvtColor(image, cv2.COLOR_BGR2RGBA)
    else:
        rgba = cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)

    logger.debug(f"Loaded {path.name}: {rgba.shape[1]}x{rgba.shape[0]}")
    return rgba


def save_rgba(path: PathLike, rgba: np.ndarray, quality: int = 90) -> Path:
    """
    Write an (H, W, 4) RGBA array to disk.

    The alpha channel is kept for formats that support it and dropped
    otherwise. JPEG files are written at ``quality``.

    Returns:
        The written path
    """
    path = Path(path)
    if rgba.ndim != 3 or rgba.shape[2] != 4 or rgba.dtype != np.uint8:
        raise ValueError(f"Expected an (H, W, 4) uint8 array, got {rgba.shape}/{rgba.dtype}")

    path.parent.mkdir(parents=True, exist_ok=True)
    suffix = path.suffix.lower()

    if suffix in ALPHA_SUFFIXES:
        bgr = cv2.cvtColor(rgba, cv2.COLOR_RGBA2BGRA)
    else:
        bgr = cv2.cvtColor(rgba, cv2.COLOR_RGBA2BGR)

    params = [cv2.IMWRITE_JPEG_QUALITY, quality] if suffix in JPEG_SUFFIXES else []
    try:
        ok = cv2.imwrite(str(path), bgr, params)
    except cv2.error as e:
        # Unknown extensions have no encoder
        raise ValueError(f"Could not encode image: {path}: {e}") from e

    if not ok:
        raise ValueError(f"Could not encode image: {path}")

    logger.debug(f"Saved {path}")
    return path
