"""
Mandelbrot escape-time computation using Numba JIT compilation.

This module contains the performance-critical functions:
- Per-point escape time with smooth (fractional) iteration counts
- Row-band evaluation of a whole view, writing into caller-owned arrays

Escape values are smoothed. A point that escapes after iteration n
(1-based, test |z| >= bailout) gets

    smooth = n - log2(log|z| / log(bailout))

clamped at 0. For |c| <= bailout the value lies in (n - 2, n]; an orbit
that hits the bailout circle exactly gets n. Bounded points get iteration 0 and smooth 0.

The kernels are compiled with nogil=True so row bands can be evaluated on
several threads at once. Fast-math is off: the pixel coordinates computed
here must match Viewport.pixel_to_plane exactly.
"""

from dataclasses import dataclass

import numpy as np
from numba import jit


@dataclass(frozen=True)
class EscapeResult:
    """
    Outcome for a single point.

    iteration is 0 for Bounded points, otherwise the 1-based iteration at
    which the orbit left the bailout disk.
    """

    iteration: int = 0
    smooth: float = 0.0

    @property
    def escaped(self):
        return self.iteration > 0

    @property
    def bounded(self):
        return self.iteration == 0


BOUNDED = EscapeResult()


@dataclass(frozen=True)
class EscapeGrid:
    """Escape results for every pixel of a view, indexed [row, column]."""

    iterations: np.ndarray
    smooth: np.ndarray

    @classmethod
    def empty(cls, width, height):
        return cls(np.zeros((height, width), dtype=np.int32),
                   np.zeros((height, width), dtype=np.float64))

    @property
    def shape(self):
        return self.iterations.shape

    def at(self, px, py):
        """EscapeResult stored for pixel (px, py)."""
        return EscapeResult(int(self.iterations[py, px]), float(self.smooth[py, px]))

    def freeze(self):
        self.iterations.flags.writeable = False
        self.smooth.flags.writeable = False
        return self


@jit(nopython=True, nogil=True, cache=True)
def escape_time(cr, ci, max_iter, bailout):
    """
    Iterate z <- z^2 + c from z = 0 until |z| >= bailout.

    Args:
        cr, ci: Real and imaginary parts of c
        max_iter: Iteration cap
        bailout: Escape radius (> 1)

    Returns:
        (iteration, smooth); iteration is 0 if the orbit stayed bounded
    """
    zr = 0.0
    zi = 0.0
    bailout2 = bailout * bailout
    log_bailout = np.log(bailout)

    for n in range(1, max_iter + 1):
        zr, zi = zr * zr - zi * zi + cr, 2.0 * zr * zi + ci
        mag2 = zr * zr + zi * zi
        if mag2 >= bailout2:
            log_zn = 0.5 * np.log(mag2)
            smooth = n - np.log2(log_zn / log_bailout)
            if not smooth > 0.0:
                # Also catches -inf from an overflowed |z|
                smooth = 0.0
            return n, smooth

    return 0, 0.0


@jit(nopython=True, nogil=True, cache=True)
def compute_escape_rows(center_re, center_im, scale, width, height,
                        row_start, row_stop, max_iter, bailout,
                        iterations, smooth):
    """
    Compute escape results for rows [row_start, row_stop) of a view.

    Writes into existing arrays so several bands can fill one grid. Bands
    must not overlap when run concurrently.

    Args:
        center_re, center_im: View center in the complex plane
        scale: Plane units per pixel
        width, height: Full grid dimensions
        row_start, row_stop: Row band to compute
        max_iter: Maximum iterations
        bailout: Escape radius
        iterations: (height, width) int32 output, modified in place
        smooth: (height, width) float64 output, modified in place
    """
    half_w = width / 2.0
    half_h = height / 2.0
    for py in range(row_start, row_stop):
        ci = center_im - (py - half_h) * scale
        for px in range(width):
            cr = center_re + (px - half_w) * scale
            n, s = escape_time(cr, ci, max_iter, bailout)
            iterations[py, px] = n
            smooth[py, px] = s


def _check_params(max_iter, bailout):
    if max_iter < 1:
        raise ValueError(f"max_iter must be at least 1, got {max_iter}")
    if not bailout > 1.0:
        raise ValueError(f"bailout must be greater than 1, got {bailout}")


def compute(c, max_iter, bailout=2.0):
    """
    Escape result for a single point c.

    Examples:
        compute(0, 100)   -> EscapeResult(iteration=0, smooth=0.0)  (bounded)
        compute(2, 100)   -> EscapeResult(iteration=1, smooth=1.0)

    An orbit that lands exactly on the bailout circle counts as escaped,
    so c = -2 (orbit 0, -2, 2, 2, ...) reports iteration 1 even though it
    belongs to the set.
    """
    _check_params(max_iter, bailout)
    c = complex(c)
    n, s = escape_time(c.real, c.imag, int(max_iter), float(bailout))
    if n == 0:
        return BOUNDED
    return EscapeResult(int(n), float(s))


def compute_grid(view, max_iter, bailout=2.0):
    """
    Compute a full EscapeGrid for a ViewState on the calling thread.

    The renderer splits the same work into bands for its worker pool;
    this is the single-call form for one-off renders and warmup.
    """
    _check_params(max_iter, bailout)
    grid = EscapeGrid.empty(view.width, view.height)
    compute_escape_rows(float(view.center_re), float(view.center_im), float(view.scale),
                        view.width, view.height, 0, view.height,
                        int(max_iter), float(bailout),
                        grid.iterations, grid.smooth)
    return grid


def warmup_jit():
    """
    Warm up JIT compilation with a tiny grid.

    Call this once at startup so the first real frame doesn't pay for
    compilation.
    """
    iterations = np.zeros((4, 4), dtype=np.int32)
    smooth = np.zeros((4, 4), dtype=np.float64)
    compute_escape_rows(-0.5, 0.0, 0.75, 4, 4, 0, 4, 10, 2.0, iterations, smooth)
    escape_time(0.0, 0.0, 10, 2.0)
