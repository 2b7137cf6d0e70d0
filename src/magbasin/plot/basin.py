# src/magbasin/plot/basin.py
from __future__ import annotations
from pathlib import Path
from typing import TYPE_CHECKING, Mapping
import matplotlib.pyplot as plt
import numpy as np

if TYPE_CHECKING:
    from magbasin.analysis.basin import BasinMap

__all__ = [
    "COLOR_TABLE",
    "UNRESOLVED_COLOR",
    "color_for_code",
    "colorize",
    "basin_image",
    "save_basin_image",
    "basin_plot",
]

# Canonical code -> RGB mapping; every other code renders as UNRESOLVED_COLOR
COLOR_TABLE: Mapping[int, tuple[int, int, int]] = {
    -1: (255, 255, 255),
    0: (255, 140, 0),
    1: (30, 144, 255),
    2: (178, 34, 34),
}
UNRESOLVED_COLOR = (0, 0, 0)


def color_for_code(code: int) -> tuple[int, int, int]:
    return COLOR_TABLE.get(int(code), UNRESOLVED_COLOR)


def colorize(codes: np.ndarray) -> np.ndarray:
    """Map an integer array of region codes to uint8 RGB, shape ``codes.shape + (3,)``."""
    codes = np.asarray(codes)
    out = np.zeros(codes.shape + (3,), dtype=np.uint8)
    out[...] = UNRESOLVED_COLOR
    for code, rgb in COLOR_TABLE.items():
        out[codes == code] = rgb
    return out


def basin_image(basin: BasinMap) -> np.ndarray:
    """
    Render to a ``(2*dim + 1, 2*dim + 1, 3)`` uint8 image.

    Lattice point ``(i, j)`` lands at column ``i + dim`` and row ``dim - j``
    (y axis pointing up). The top row and right column have no lattice
    point and stay black.
    """
    d = basin.grid.dim
    rgb = colorize(basin.codes)                # [i + dim, j + dim]
    img = np.zeros((2 * d + 1, 2 * d + 1, 3), dtype=np.uint8)
    img[1:, : 2 * d] = rgb.transpose(1, 0, 2)[::-1]
    return img


def save_basin_image(basin: BasinMap | np.ndarray, path: str | Path) -> Path:
    """Write the basin image (or an already rendered RGB array) as PNG."""
    img = basin if isinstance(basin, np.ndarray) else basin_image(basin)
    target = Path(path)
    if not target.suffix:
        target = target.with_suffix(".png")
    target.parent.mkdir(parents=True, exist_ok=True)
    plt.imsave(target, img, format="png")
    return target


def basin_plot(basin: BasinMap, ax=None, *, title: str | None = None):
    """Draw the basin image on ``ax`` with physical axis extents. Returns the axes."""
    if ax is None:
        _, ax = plt.subplots(figsize=(6, 6))
    d = basin.grid.dim
    res = basin.grid.resolution
    half = 0.5 * res
    # image rows run from y = dim*res (top) down to y = -dim*res
    extent = (-d * res - half, d * res + half, -d * res - half, d * res + half)
    ax.imshow(basin_image(basin), extent=extent, interpolation="nearest")
    ax.set_xlabel("x")
    ax.set_ylabel("y")
    ax.set_aspect("equal")
    if title:
        ax.set_title(title)
    return ax
