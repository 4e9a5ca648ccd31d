"""
Mandelbrot Viewer Package

An interactive Mandelbrot set viewer using Pygame for display and Numba
for JIT-compiled escape-time computation on a pool of worker threads.

Quick Start:
    from mandelbrot_viewer import run
    run()

Or from command line:
    python -m mandelbrot_viewer

Package Structure:
    - viewport.py: Pixel <-> complex plane mapping, pan and zoom
    - compute.py: JIT-compiled escape-time computation
    - palette.py: Grayscale and colored palettes
    - renderer.py: Background rendering with supersession and caching
    - config.py: Settings (settings.json) and validation
    - app.py: Main application and event loop

Controls:
    - Left click / scroll up: Zoom in at mouse position
    - Right click / scroll down: Zoom out
    - Arrows / WASD: Pan
    - C or P: Toggle palette
    - R: Reset to default view
    - Ctrl+S: Save the frame as PNG
    - ESC: Quit
"""

from .app import run, ViewerApp
from .compute import BOUNDED, EscapeGrid, EscapeResult, compute, compute_grid
from .config import ViewerConfig, load_config
from .errors import InvalidZoomFactor, OutOfRangePixel, PrecisionFloor, ViewportError
from .palette import Palette, PaletteMode, colorize, colorize_grid
from .renderer import FrameBuffer, FrameRenderer, PanDirection, RenderState, ZoomDirection
from .viewport import Viewport, ViewState

__version__ = "1.0.0"
__all__ = [
    "run",
    "ViewerApp",
    "BOUNDED",
    "EscapeGrid",
    "EscapeResult",
    "compute",
    "compute_grid",
    "ViewerConfig",
    "load_config",
    "InvalidZoomFactor",
    "OutOfRangePixel",
    "PrecisionFloor",
    "ViewportError",
    "Palette",
    "PaletteMode",
    "colorize",
    "colorize_grid",
    "FrameBuffer",
    "FrameRenderer",
    "PanDirection",
    "RenderState",
    "ZoomDirection",
    "Viewport",
    "ViewState",
]
