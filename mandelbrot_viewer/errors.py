"""
Errors raised when a requested view change cannot be applied.

All of them leave the Viewport untouched. The renderer catches them at
the input boundary, logs a warning and keeps showing the current frame.
"""


class ViewportError(ValueError):
    """Base class for rejected viewport operations."""


class InvalidZoomFactor(ViewportError):
    """Zoom factor is zero, negative or not a finite number."""


class PrecisionFloor(ViewportError):
    """Requested scale cannot be represented at the current location."""


class OutOfRangePixel(ViewportError):
    """Pixel coordinate lies outside the pixel grid."""
