"""
Hald CLUT generation and export for LutStudio

The identity cube is a 512x512 RGBA image holding 64 levels per channel
as an 8x8 grid of 64x64 tiles: the tile index is the blue level (tile
column = index % 8, tile row = index // 8) and inside a tile x is the red
level and y the green level. Running it through the same transfer and
adjustments as a real image yields the exportable LUT.
"""

from pathlib import Path
from typing import Optional, Union
import logging
import numpy as np

from ..buffers import validate_pixel_buffer
from .statistics import AdvancedStats, ColorStats

logger = logging.getLogger(__name__)

HALD_LEVELS = 64
HALD_TILES_PER_ROW = 8
HALD_SIZE = HALD_LEVELS * HALD_TILES_PER_ROW  # 512

# Fixed synthetic target profile approximating a neutral image, used
# instead of real target statistics when rendering the LUT
NEUTRAL_TARGET_STATS = AdvancedStats(
    shadows=ColorStats(mean=(15.0, 0.0, 0.0), std=(10.0, 10.0, 10.0)),
    midtones=ColorStats(mean=(50.0, 0.0, 0.0), std=(15.0, 15.0, 15.0)),
    highlights=ColorStats(mean=(85.0, 0.0, 0.0), std=(10.0, 10.0, 10.0)),
    global_mean_l=50.0,
)


def hald_levels() -> np.ndarray:
    """8-bit value of each of the 64 levels."""
    step = 255.0 / (HALD_LEVELS - 1)
    return np.rint(np.arange(HALD_LEVELS) * step).astype(np.uint8)


def generate_hald_lut() -> np.ndarray:
    """
    Generate the identity Hald image.

    Returns:
        (512, 512, 4) uint8 array, alpha fixed at 255
    """
    levels = hald_levels()
    tile_row, green, tile_col, red = np.meshgrid(
        np.arange(HALD_TILES_PER_ROW), np.arange(HALD_LEVELS),
        np.arange(HALD_TILES_PER_ROW), np.arange(HALD_LEVELS),
        indexing='ij',
    )

    image = np.empty((HALD_TILES_PER_ROW, HALD_LEVELS, HALD_TILES_PER_ROW, HALD_LEVELS, 4),
                     dtype=np.uint8)
    image[..., 0] = levels[red]
    image[..., 1] = levels[green]
    image[..., 2] = levels[tile_row * HALD_TILES_PER_ROW + tile_col]
    image[..., 3] = 255

    # (tile_row, green) -> image row, (tile_col, red) -> image column
    return image.reshape(HALD_SIZE, HALD_SIZE, 4)


def hald_to_lut3d(hald: np.ndarray) -> np.ndarray:
    """
    Decode a graded Hald image back into a 3D LUT.

    Args:
        hald: 512x512 RGBA8 buffer, flat or shaped

    Returns:
        (64, 64, 64, 3) float32 array indexed [blue, green, red], values in [0, 1]
    """
    array = validate_pixel_buffer(hald, HALD_SIZE, HALD_SIZE)
    tiles = array.reshape(HALD_TILES_PER_ROW, HALD_LEVELS, HALD_TILES_PER_ROW, HALD_LEVELS, 4)
    # -> (tile_row, tile_col, green, red, channel)
    cube = tiles.transpose(0, 2, 1, 3, 4).reshape(HALD_LEVELS, HALD_LEVELS, HALD_LEVELS, 4)
    return cube[..., :3].astype(np.float32) / 255.0


def write_cube_lut(path: Union[str, Path], lut3d: np.ndarray,
                   title: Optional[str] = "LutStudio Grade") -> Path:
    """
    Write a 3D LUT in .cube format (red varies fastest).

    Args:
        path: Destination file
        lut3d: (N, N, N, 3) array indexed [blue, green, red]
        title: Optional TITLE line

    Returns:
        The written path
    """
    path = Path(path)
    size = lut3d.shape[0]
    if lut3d.shape != (size, size, size, 3):
        raise ValueError(f"3D LUT must have shape (N, N, N, 3), got {lut3d.shape}")

    with open(path, 'w') as f:
        f.write("# Created by LutStudio\n")
        if title:
            f.write(f'TITLE "{title}"\n')
        f.write(f"LUT_3D_SIZE {size}\n")
        f.write("DOMAIN_MIN 0.0 0.0 0.0\n")
        f.write("DOMAIN_MAX 1.0 1.0 1.0\n")
        f.write("\n")
        for r, g, b in lut3d.reshape(-1, 3):
            f.write(f"{r:.6f} {g:.6f} {b:.6f}\n")

    logger.info(f"Wrote {size}^3 cube LUT to {path}")
    return path


def read_cube_lut(path: Union[str, Path]) -> np.ndarray:
    """
    Read a .cube 3D LUT.

    Returns:
        (N, N, N, 3) float32 array indexed [blue, green, red]

    Raises:
        ValueError: If the file has no size or the wrong number of entries
    """
    size = None
    data = []

    with open(path, 'r') as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith('#'):
                continue
            if line.startswith('LUT_3D_SIZE'):
                size = int(line.split()[1])
            elif line[0].isalpha():
                # TITLE, DOMAIN_MIN, DOMAIN_MAX and other keywords
                continue
            else:
                values = line.split()
                if len(values) >= 3:
                    data.append([float(v) for v in values[:3]])

    if size is None:
        raise ValueError(f"Missing LUT_3D_SIZE in {path}")
    if len(data) != size ** 3:
        raise ValueError(f"LUT data mismatch in {path}: expected {size ** 3} entries, got {len(data)}")

    return np.array(data, dtype=np.float32).reshape(size, size, size, 3)
