"""
Mapping between screen pixels and the complex plane.

The view is described by a center point and a scale measured in plane
units per pixel. Pixel rows grow downward while the imaginary axis grows
upward, so the imaginary term flips sign:

    real = center_re + (px - width / 2) * scale
    imag = center_im - (py - height / 2) * scale

Viewport is the mutable object driven by user input. ViewState is the
immutable snapshot handed to render workers.
"""

import math
from dataclasses import dataclass

import numpy as np

from .errors import InvalidZoomFactor, OutOfRangePixel, PrecisionFloor

# A pixel step must span at least this many units in the last place of the
# coordinates it is added to, or neighbouring pixels collapse onto the same
# float value.
PRECISION_ULPS = 4.0


@dataclass(frozen=True)
class ViewState:
    """Immutable snapshot of a view; also the geometry part of a cache key."""

    center_re: float
    center_im: float
    scale: float
    width: int
    height: int

    def contains_pixel(self, px, py):
        return 0 <= px < self.width and 0 <= py < self.height

    def pixel_to_plane(self, px, py):
        """
        Convert a pixel coordinate to a point in the complex plane.

        Raises:
            OutOfRangePixel if (px, py) is outside [0, width) x [0, height)
        """
        if not self.contains_pixel(px, py):
            raise OutOfRangePixel(
                f"pixel ({px}, {py}) outside {self.width}x{self.height} grid")
        real = self.center_re + (px - self.width / 2) * self.scale
        imag = self.center_im - (py - self.height / 2) * self.scale
        return complex(real, imag)

    def plane_to_pixel(self, c):
        """Inverse of pixel_to_plane. The result may lie off-screen."""
        c = complex(c)
        px = (c.real - self.center_re) / self.scale + self.width / 2
        py = (self.center_im - c.imag) / self.scale + self.height / 2
        return px, py

    def nearest_pixel(self, c):
        """Integer pixel closest to plane point c, clamped into the grid."""
        px, py = self.plane_to_pixel(c)
        px = min(max(int(round(px)), 0), self.width - 1)
        py = min(max(int(round(py)), 0), self.height - 1)
        return px, py

    def bounds(self):
        """(re_min, re_max, im_min, im_max) covered by the pixel grid."""
        half_w = self.width / 2 * self.scale
        half_h = self.height / 2 * self.scale
        return (self.center_re - half_w, self.center_re + half_w,
                self.center_im - half_h, self.center_im + half_h)


class Viewport:
    """
    Current visible rectangle of the complex plane.

    Pans are accumulated as a pixel offset from the last zoom's center
    instead of being folded into the center right away. Integer pans are
    therefore exactly reversible; the next zoom folds the offset in.

    Usage:
        view = Viewport((640, 480), center=(-0.5, 0.0), scale=3.0 / 640)
        c = view.pixel_to_plane(320, 240)
        view.zoom((100, 80), 0.5)
        view.pan(32, 0)
    """

    def __init__(self, resolution, center=(-0.5, 0.0), scale=None):
        width, height = resolution
        if width < 1 or height < 1:
            raise ValueError(f"resolution must be positive, got {resolution!r}")
        if scale is None:
            scale = 3.0 / width
        if not (0.0 < scale < math.inf):
            raise ValueError(f"scale must be a positive finite number, got {scale!r}")

        self.width = int(width)
        self.height = int(height)
        self.initial_center = (float(center[0]), float(center[1]))
        self.initial_scale = float(scale)

        self._base_re, self._base_im = self.initial_center
        self._offset_x = 0
        self._offset_y = 0
        self.scale = self.initial_scale

    @property
    def center(self):
        """Effective center as a complex number."""
        re, im = self._effective_center()
        return complex(re, im)

    @property
    def zoom_level(self):
        """Magnification relative to the startup view."""
        return self.initial_scale / self.scale

    def _effective_center(self):
        return (self._base_re + self._offset_x * self.scale,
                self._base_im - self._offset_y * self.scale)

    def snapshot(self):
        re, im = self._effective_center()
        return ViewState(re, im, self.scale, self.width, self.height)

    def pixel_to_plane(self, px, py):
        return self.snapshot().pixel_to_plane(px, py)

    def plane_to_pixel(self, c):
        return self.snapshot().plane_to_pixel(c)

    def nearest_pixel(self, c):
        return self.snapshot().nearest_pixel(c)

    def zoom(self, at, factor):
        """
        Rescale the view by factor, keeping the plane point under `at` fixed.

        Args:
            at: (px, py) pixel that stays anchored
            factor: Scale multiplier; < 1 zooms in, > 1 zooms out

        Raises:
            InvalidZoomFactor: factor is not a finite positive number
            OutOfRangePixel: `at` is outside the pixel grid
            PrecisionFloor: the new scale is not representable here
        """
        try:
            factor = float(factor)
        except (TypeError, ValueError):
            raise InvalidZoomFactor(f"zoom factor must be a number, got {factor!r}") from None
        if not (0.0 < factor < math.inf):
            raise InvalidZoomFactor(f"zoom factor must be positive and finite, got {factor!r}")

        px, py = at
        anchor = self.pixel_to_plane(px, py)
        new_scale = self.scale * factor
        self._check_scale(new_scale, anchor)

        self._base_re = anchor.real - (px - self.width / 2) * new_scale
        self._base_im = anchor.imag + (py - self.height / 2) * new_scale
        self._offset_x = 0
        self._offset_y = 0
        self.scale = new_scale

    def _check_scale(self, new_scale, anchor):
        if not (0.0 < new_scale < math.inf) or new_scale < np.finfo(np.float64).tiny:
            raise PrecisionFloor(f"scale {new_scale!r} is not a usable positive float")
        extent = new_scale * max(self.width, self.height)
        if not math.isfinite(extent) or not math.isfinite(abs(anchor) + extent):
            raise PrecisionFloor(f"view extent at scale {new_scale!r} overflows")

        re, im = self._effective_center()
        ulp = max(np.spacing(abs(re)), np.spacing(abs(im)),
                  np.spacing(abs(anchor.real)), np.spacing(abs(anchor.imag)))
        if new_scale < PRECISION_ULPS * ulp:
            raise PrecisionFloor(
                f"scale {new_scale:.3e} is below the float64 resolution "
                f"({ulp:.3e}) at {anchor}")

    def pan(self, dx, dy):
        """
        Shift the view by (dx, dy) pixels, keeping the scale.

        Positive dx moves toward larger real values; positive dy moves down
        the screen, toward smaller imaginary values.
        """
        self._offset_x += dx
        self._offset_y += dy

    def reset(self):
        """Restore the startup center and scale."""
        self._base_re, self._base_im = self.initial_center
        self._offset_x = 0
        self._offset_y = 0
        self.scale = self.initial_scale
