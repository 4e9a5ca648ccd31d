"""
Palette: maps smoothed escape values to RGB colors.

Two modes are available:
- Grayscale: a gamma-shaped ramp over smooth / max_iter. The ramp starts
  at MIN_LEVEL so escaped points are never confused with the interior.
- Colored: a cyclic hue wheel, one full turn every COLOR_PERIOD
  iterations, giving distinct escape bands at any zoom depth.

Bounded points are always INTERIOR_COLOR. Each mode is backed by a
lookup table of NUM_COLORS entries with linear interpolation between
adjacent entries.
"""

import enum
from functools import lru_cache

import numpy as np
from numba import jit

NUM_COLORS = 4096  # Resolution of the lookup tables

INTERIOR_COLOR = (0, 0, 0)

# Grayscale ramp shape
MIN_LEVEL = 24
GAMMA = 0.5

# Iterations per full hue cycle in Colored mode
COLOR_PERIOD = 32.0


class PaletteMode(enum.Enum):
    GRAYSCALE = 'grayscale'
    COLORED = 'colored'

    def toggled(self):
        if self is PaletteMode.GRAYSCALE:
            return PaletteMode.COLORED
        return PaletteMode.GRAYSCALE


def create_grayscale_table():
    """
    Grayscale table: dark gray -> white.

    Uses a power curve (gamma < 1) to lift the slow-escaping points near
    the set boundary out of the shadows.
    """
    colors = np.zeros((NUM_COLORS, 3), dtype=np.uint8)
    for i in range(NUM_COLORS):
        t = (i / (NUM_COLORS - 1)) ** GAMMA
        v = int(MIN_LEVEL + (255 - MIN_LEVEL) * t)
        colors[i] = [v, v, v]
    return colors


def create_colored_table():
    """
    Colored table: one full hue rotation (HSV with S=1, V=1).

    The table is cyclic: entry NUM_COLORS would equal entry 0.
    """
    colors = np.zeros((NUM_COLORS, 3), dtype=np.uint8)
    for i in range(NUM_COLORS):
        h = i / NUM_COLORS

        if h < 1/6:
            colors[i] = [255, int(255 * h * 6), 0]
        elif h < 2/6:
            colors[i] = [int(255 * (2/6 - h) * 6), 255, 0]
        elif h < 3/6:
            colors[i] = [0, 255, int(255 * (h - 2/6) * 6)]
        elif h < 4/6:
            colors[i] = [0, int(255 * (4/6 - h) * 6), 255]
        elif h < 5/6:
            colors[i] = [int(255 * (h - 4/6) * 6), 0, 255]
        else:
            colors[i] = [255, 0, int(255 * (1 - h) * 6)]
    return colors


@lru_cache(maxsize=None)
def get_table(mode):
    """Lookup table for a PaletteMode (built once, read-only)."""
    if mode is PaletteMode.GRAYSCALE:
        table = create_grayscale_table()
    else:
        table = create_colored_table()
    table.flags.writeable = False
    return table


@jit(nopython=True, nogil=True, cache=True)
def apply_palette(iterations, smooth, inv_period, cyclic, table, out):
    """
    Color a grid of escape results with linear table interpolation.

    Args:
        iterations: 2D int array, 0 marks bounded points
        smooth: 2D float array of smoothed escape values
        inv_period: Multiplier turning smooth values into table position
        cyclic: Wrap positions around the table instead of clamping
        table: Nx3 uint8 lookup table
        out: (height, width, 3) uint8 output, modified in place
    """
    height, width = iterations.shape
    num_colors = table.shape[0]

    for py in range(height):
        for px in range(width):
            if iterations[py, px] == 0:
                out[py, px, 0] = INTERIOR_COLOR[0]
                out[py, px, 1] = INTERIOR_COLOR[1]
                out[py, px, 2] = INTERIOR_COLOR[2]
                continue

            pos = smooth[py, px] * inv_period
            if cyclic:
                fidx = (pos - np.floor(pos)) * num_colors
                idx0 = int(fidx) % num_colors
                idx1 = (idx0 + 1) % num_colors
            else:
                pos = min(max(pos, 0.0), 1.0)
                fidx = pos * (num_colors - 1)
                idx0 = int(fidx)
                idx1 = min(idx0 + 1, num_colors - 1)
            t = fidx - int(fidx)

            for k in range(3):
                out[py, px, k] = np.uint8(table[idx0, k] * (1 - t) + table[idx1, k] * t)


def _mode_params(mode, max_iter):
    if mode is PaletteMode.GRAYSCALE:
        return 1.0 / max_iter, False
    return 1.0 / COLOR_PERIOD, True


def colorize_grid(grid, mode, max_iter, out=None):
    """
    Color a whole EscapeGrid.

    Args:
        grid: EscapeGrid from the escape-time engine
        mode: PaletteMode
        max_iter: Iteration cap the grid was computed with
        out: Optional (height, width, 3) uint8 array to fill

    Returns:
        The (height, width, 3) uint8 RGB array
    """
    mode = PaletteMode(mode)
    height, width = grid.shape
    if out is None:
        out = np.empty((height, width, 3), dtype=np.uint8)
    inv_period, cyclic = _mode_params(mode, max_iter)
    apply_palette(grid.iterations, grid.smooth, inv_period, cyclic, get_table(mode), out)
    return out


def colorize(result, mode, max_iter):
    """Color of a single EscapeResult as an (r, g, b) tuple."""
    mode = PaletteMode(mode)
    if result.bounded:
        return INTERIOR_COLOR
    iterations = np.array([[result.iteration]], dtype=np.int32)
    smooth = np.array([[result.smooth]], dtype=np.float64)
    out = np.empty((1, 1, 3), dtype=np.uint8)
    inv_period, cyclic = _mode_params(mode, max_iter)
    apply_palette(iterations, smooth, inv_period, cyclic, get_table(mode), out)
    return tuple(int(v) for v in out[0, 0])


class Palette:
    """
    Holds the process-wide palette mode.

    The mapping itself is pure; only the mode changes, via toggle().
    """

    def __init__(self, mode=PaletteMode.COLORED):
        self.mode = PaletteMode(mode)

    def toggle(self):
        self.mode = self.mode.toggled()
        return self.mode

    def colorize(self, result, max_iter):
        return colorize(result, self.mode, max_iter)

    def colorize_grid(self, grid, max_iter, out=None):
        return colorize_grid(grid, self.mode, max_iter, out)
