import os

# No window is ever opened in tests
os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

import pytest

from mandelbrot_viewer.config import ViewerConfig
from mandelbrot_viewer.renderer import FrameRenderer


@pytest.fixture
def small_config():
    """A view small enough that JIT-compiled renders take milliseconds."""
    return ViewerConfig(resolution=(48, 32), max_iter=64, workers=2, band_rows=4)


@pytest.fixture
def make_renderer():
    renderers = []

    def factory(config):
        renderer = FrameRenderer(config)
        renderers.append(renderer)
        return renderer

    yield factory
    for renderer in renderers:
        renderer.close()


@pytest.fixture
def renderer(make_renderer, small_config):
    return make_renderer(small_config)
