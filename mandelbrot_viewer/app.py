"""
Main application module for the Mandelbrot viewer.

Contains the ViewerApp class which handles:
- Window setup and main loop
- User input (zoom, pan, palette toggle, reset, save, quit)
- Showing the renderer's latest frame

All computation lives in FrameRenderer; this module only turns pygame
events into its on_* calls and blits whatever get_frame() returns.
"""

import logging
import os
from datetime import datetime

import pygame

from .compute import warmup_jit
from .config import load_config
from .renderer import FrameRenderer, PanDirection, RenderState, ZoomDirection

logger = logging.getLogger(__name__)

PAN_KEYS = {
    pygame.K_UP: PanDirection.UP,
    pygame.K_w: PanDirection.UP,
    pygame.K_DOWN: PanDirection.DOWN,
    pygame.K_s: PanDirection.DOWN,
    pygame.K_LEFT: PanDirection.LEFT,
    pygame.K_a: PanDirection.LEFT,
    pygame.K_RIGHT: PanDirection.RIGHT,
    pygame.K_d: PanDirection.RIGHT,
}

PALETTE_KEYS = (pygame.K_c, pygame.K_p)


class ViewerApp:
    """
    Main application class for the Mandelbrot viewer.

    Handles the pygame window and event loop and forwards user intents
    to the FrameRenderer.

    Controls:
        Left click / wheel up: zoom in at the cursor
        Right click / wheel down: zoom out at the cursor
        Arrows or WASD: pan
        C or P: toggle grayscale / colored palette
        R: reset view
        Ctrl+S (Cmd+S on macOS): save the current frame as PNG
        Esc: quit
    """

    FPS = 60
    TITLE = "Mandelbrot Viewer"

    def __init__(self, config=None, renderer=None):
        """
        Initialize the application.

        Args:
            config: ViewerConfig (default: loaded from settings.json)
            renderer: Pre-built FrameRenderer (default: built from config)
        """
        self.renderer = renderer or FrameRenderer(config or load_config())
        self.config = self.renderer.config
        self.width, self.height = self.config.resolution

        # Pygame state (initialized in run())
        self.screen = None
        self.clock = None

        # Display state
        self.current_surface = None
        self.shown_generation = None

        self.running = False

    def run(self):
        """Run the application main loop."""
        self._init_pygame()
        self._warmup_and_initial_render()

        self.running = True
        try:
            while self.running:
                for event in pygame.event.get():
                    self.handle_event(event)
                    if not self.running:
                        break
                self._check_render_result()
                self._draw()
                self.clock.tick(self.FPS)
        finally:
            self.renderer.on_quit()
            pygame.quit()

    def _init_pygame(self):
        """Initialize pygame and create window."""
        pygame.init()
        self.screen = pygame.display.set_mode((self.width, self.height), pygame.DOUBLEBUF)
        pygame.display.set_caption(self.TITLE)
        self.clock = pygame.time.Clock()

    def _warmup_and_initial_render(self):
        """Warm up JIT and render the first frame synchronously."""
        pygame.display.set_caption("Compiling (first run only)...")
        warmup_jit()
        self.renderer.render_now()
        self._check_render_result()
        self._update_caption()

    def handle_event(self, event):
        """Dispatch a single pygame event. Returns True if it was used."""
        if self.renderer.closed:
            return False
        if event.type == pygame.QUIT:
            self.quit()
        elif event.type == pygame.MOUSEBUTTONDOWN:
            return self._handle_click(event)
        elif event.type == pygame.MOUSEWHEEL:
            return self._handle_wheel(event)
        elif event.type == pygame.KEYDOWN:
            return self._handle_key(event)
        else:
            return False
        return True

    def _handle_click(self, event):
        if event.button == 1:
            direction = ZoomDirection.IN
        elif event.button == 3:
            direction = ZoomDirection.OUT
        else:
            return False
        return self._zoom_at(event.pos, direction)

    def _handle_wheel(self, event):
        if event.y == 0:
            return False
        direction = ZoomDirection.IN if event.y > 0 else ZoomDirection.OUT
        return self._zoom_at(pygame.mouse.get_pos(), direction)

    def _zoom_at(self, pos, direction):
        mx, my = pos
        if not (0 <= mx < self.width and 0 <= my < self.height):
            return False
        return self.renderer.on_zoom((mx, my), direction)

    def _handle_key(self, event):
        if event.key == pygame.K_ESCAPE:
            self.quit()
        elif event.key == pygame.K_s and event.mod & (pygame.KMOD_CTRL | pygame.KMOD_META):
            self.save_frame()
        elif event.key in PAN_KEYS:
            return self.renderer.on_pan(PAN_KEYS[event.key])
        elif event.key in PALETTE_KEYS:
            return self.renderer.on_toggle_palette()
        elif event.key == pygame.K_r:
            return self.renderer.on_reset()
        else:
            return False
        return True

    def quit(self):
        self.running = False
        self.renderer.on_quit()

    def save_frame(self, directory=None):
        """
        Save the frame currently on screen as a PNG.

        Returns:
            Path of the written file, or None if no frame exists yet
        """
        frame = self.renderer.get_frame()
        if frame is None:
            return None
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filename = os.path.join(directory or os.getcwd(), f"mandelbrot_{timestamp}.png")
        surface = pygame.surfarray.make_surface(frame.pixels.swapaxes(0, 1))
        pygame.image.save(surface, filename)
        logger.info("Frame saved to %s", filename)
        return filename

    def _check_render_result(self):
        """Pick up a newly completed frame."""
        frame = self.renderer.get_frame()
        if frame is None or frame.generation == self.shown_generation:
            return
        self.current_surface = pygame.surfarray.make_surface(frame.pixels.swapaxes(0, 1))
        self.shown_generation = frame.generation
        self._update_caption()

    def _update_caption(self):
        view = self.renderer.viewport
        center = view.center
        caption = (f"{self.TITLE} - center {center.real:+.12g}{center.imag:+.12g}i, "
                   f"zoom {view.zoom_level:.3g}x, {self.renderer.palette.mode.value}")
        if self.renderer.state is RenderState.RENDERING:
            caption += " - Computing..."
        pygame.display.set_caption(caption)

    def _draw(self):
        """Draw the current frame."""
        if self.renderer.state is RenderState.RENDERING:
            self._update_caption()
        self.screen.fill((0, 0, 0))
        if self.current_surface is not None:
            self.screen.blit(self.current_surface, (0, 0))
        pygame.display.flip()


def run(config=None, **overrides):
    """
    Run the Mandelbrot viewer.

    Args:
        config: ViewerConfig to use (default: settings.json)
        **overrides: ViewerConfig fields overriding settings.json
    """
    logging.basicConfig(level=logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    if config is None:
        config = load_config(**overrides)
    logger.info("Starting viewer %dx%d, max_iter=%d", config.width, config.height, config.max_iter)
    app = ViewerApp(config)
    try:
        app.run()
    except KeyboardInterrupt:
        logger.info("Interrupted")
