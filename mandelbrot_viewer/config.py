"""
Configuration for the Mandelbrot viewer.

Defaults live in settings.json next to this module. load_config() reads
that file (or another one), fills in anything it doesn't mention from
ViewerConfig's built-in defaults and applies keyword overrides on top.
"""

import json
import logging
import math
import os
from dataclasses import dataclass, fields, replace

from .palette import PaletteMode

logger = logging.getLogger(__name__)

SETTINGS_PATH = os.path.join(os.path.dirname(__file__), 'settings.json')

# Horizontal plane extent shown at startup when no initial_scale is given:
# the classic [-2, 1] overview.
DEFAULT_SPAN = 3.0


@dataclass(frozen=True)
class ViewerConfig:
    """
    Tunable constants consumed by the renderer and the application shell.

    Attributes:
        resolution: (width, height) of the pixel grid, fixed for the process
        max_iter: Iteration cap for the escape-time loop
        bailout: Escape radius, must be greater than 1
        zoom_in_factor: Scale multiplier for one zoom-in step (< 1)
        zoom_out_factor: Scale multiplier for one zoom-out step (> 1)
        pan_pixels: Pixels moved per pan key press
        initial_center: (real, imag) center of the startup view
        initial_scale: Plane units per pixel at startup (None = derive from DEFAULT_SPAN)
        palette: Startup palette mode name ('colored' or 'grayscale')
        workers: Worker threads for row bands (None = CPU count)
        band_rows: Rows per unit of parallel work
    """

    resolution: tuple = (640, 480)
    max_iter: int = 255
    bailout: float = 2.0
    zoom_in_factor: float = 0.5
    zoom_out_factor: float = 2.0
    pan_pixels: int = 32
    initial_center: tuple = (-0.5, 0.0)
    initial_scale: float = None
    palette: str = 'colored'
    workers: int = None
    band_rows: int = 16

    def __post_init__(self):
        width, height = self.resolution
        if int(width) != width or int(height) != height or width < 1 or height < 1:
            raise ValueError(f"resolution must be two positive integers, got {self.resolution!r}")
        object.__setattr__(self, 'resolution', (int(width), int(height)))
        object.__setattr__(self, 'initial_center', tuple(float(v) for v in self.initial_center))

        if self.max_iter < 1:
            raise ValueError(f"max_iter must be at least 1, got {self.max_iter}")
        if not self.bailout > 1.0:
            raise ValueError(f"bailout must be greater than 1, got {self.bailout}")
        if not 0.0 < self.zoom_in_factor < 1.0:
            raise ValueError(f"zoom_in_factor must be in (0, 1), got {self.zoom_in_factor}")
        if not self.zoom_out_factor > 1.0 or math.isinf(self.zoom_out_factor):
            raise ValueError(f"zoom_out_factor must be a finite value > 1, got {self.zoom_out_factor}")
        if self.pan_pixels < 1:
            raise ValueError(f"pan_pixels must be at least 1, got {self.pan_pixels}")
        if self.initial_scale is not None and not (0.0 < self.initial_scale < math.inf):
            raise ValueError(f"initial_scale must be positive, got {self.initial_scale}")
        if self.workers is not None and self.workers < 1:
            raise ValueError(f"workers must be at least 1, got {self.workers}")
        if self.band_rows < 1:
            raise ValueError(f"band_rows must be at least 1, got {self.band_rows}")
        # Raises ValueError for unknown names
        PaletteMode(self.palette)

    @property
    def width(self):
        return self.resolution[0]

    @property
    def height(self):
        return self.resolution[1]

    @property
    def start_scale(self):
        """Plane units per pixel for the startup view."""
        if self.initial_scale is not None:
            return float(self.initial_scale)
        return DEFAULT_SPAN / self.width

    @property
    def palette_mode(self):
        return PaletteMode(self.palette)


def read_settings(path=None):
    """
    Read a settings file.

    Returns the parsed dict, or None when the file is missing or is not
    valid JSON (a warning is logged in that case).
    """
    settings_path = path or SETTINGS_PATH
    try:
        with open(settings_path, 'r') as f:
            settings = json.load(f)
    except (FileNotFoundError, json.JSONDecodeError) as e:
        logger.warning("Could not load %s: %s", settings_path, e)
        return None
    if not isinstance(settings, dict):
        logger.warning("Ignoring %s: top level must be an object", settings_path)
        return None
    return settings


def load_config(path=None, **overrides):
    """
    Build a ViewerConfig from a settings file plus keyword overrides.

    Args:
        path: Settings file (default: the bundled settings.json)
        **overrides: Field values that win over the file

    Returns:
        A validated ViewerConfig

    Raises:
        ValueError if the combined values are invalid
    """
    known = {f.name for f in fields(ViewerConfig)}
    values = {}

    settings = read_settings(path)
    if settings:
        for key, value in settings.items():
            if key not in known:
                logger.warning("Unknown setting %r ignored", key)
                continue
            if value is not None:
                values[key] = tuple(value) if isinstance(value, list) else value

    for key, value in overrides.items():
        if key not in known:
            raise TypeError(f"Unknown configuration option {key!r}")
        if value is not None:
            values[key] = value

    return replace(ViewerConfig(), **values)
