"""
Background frame renderer with generation-based cancellation.

The FrameRenderer class handles:
- Turning user intents (zoom, pan, palette toggle) into view changes
- Background computation so the UI stays responsive
- Parallel evaluation of row bands on a worker thread pool
- Dropping superseded renders: only the newest request is ever shown
- Caching the last escape grid so a palette toggle only recolors

Every request takes a new generation id and an immutable snapshot of the
view and palette mode. Workers check the generation before each band and
a finished frame is swapped in only if its generation is still current,
so get_frame() never mixes two views.
"""

import enum
import logging
import os
import threading
import time
from concurrent.futures import CancelledError, ThreadPoolExecutor
from dataclasses import dataclass

import numpy as np

from .compute import EscapeGrid, compute_escape_rows
from .config import ViewerConfig
from .errors import ViewportError
from .palette import Palette, PaletteMode, colorize_grid
from .viewport import Viewport, ViewState

logger = logging.getLogger(__name__)


class RenderState(enum.Enum):
    IDLE = 'idle'
    RENDERING = 'rendering'
    COMPLETE = 'complete'
    SUPERSEDED = 'superseded'


class ZoomDirection(enum.Enum):
    IN = 'in'
    OUT = 'out'


class PanDirection(enum.Enum):
    UP = 'up'
    DOWN = 'down'
    LEFT = 'left'
    RIGHT = 'right'


# Unit pixel step per pan direction
_PAN_STEPS = {
    PanDirection.UP: (0, -1),
    PanDirection.DOWN: (0, 1),
    PanDirection.LEFT: (-1, 0),
    PanDirection.RIGHT: (1, 0),
}


@dataclass(frozen=True)
class RenderKey:
    """Fingerprint of everything an escape grid depends on."""

    view: ViewState
    max_iter: int
    bailout: float


@dataclass(frozen=True)
class RenderJob:
    generation: int
    key: RenderKey
    mode: PaletteMode


@dataclass(frozen=True)
class FrameBuffer:
    """
    A completed frame.

    pixels is a read-only (height, width, 3) uint8 array; row 0 is the
    top of the screen.
    """

    pixels: np.ndarray
    view: ViewState
    mode: PaletteMode
    generation: int

    @property
    def width(self):
        return self.view.width

    @property
    def height(self):
        return self.view.height


class EscapeCache:
    """
    Holds the most recent escape grid and the RenderKey that produced it.

    A lookup hits only on an exact key match, so any change of view,
    max_iter or bailout invalidates the entry.
    """

    def __init__(self):
        self._key = None
        self._grid = None
        self.hits = 0
        self.misses = 0
        self.lock = threading.Lock()

    def get(self, key):
        with self.lock:
            if self._grid is not None and self._key == key:
                self.hits += 1
                return self._grid
            self.misses += 1
            return None

    def put(self, key, grid):
        with self.lock:
            self._key = key
            self._grid = grid.freeze()

    def invalidate(self):
        with self.lock:
            self._key = None
            self._grid = None

    def __contains__(self, key):
        with self.lock:
            return self._grid is not None and self._key == key


class FrameRenderer:
    """
    Orchestrates Viewport, escape-time engine and Palette into frames.

    Usage:
        renderer = FrameRenderer(ViewerConfig(resolution=(320, 240)))
        renderer.request_render()

        # In your game loop:
        renderer.on_zoom((100, 80), 'in')
        frame = renderer.get_frame()
        if frame is not None:
            display(frame.pixels)

    Attributes:
        config: ViewerConfig in effect
        viewport: Current view, mutated only from the caller's thread
        palette: Current palette mode
        cache: EscapeCache for recolor-without-recompute
        state: RenderState of the newest generation
        superseded: Number of renders dropped because a newer one started
    """

    def __init__(self, config=None):
        self.config = config or ViewerConfig()
        self.viewport = Viewport(self.config.resolution,
                                 center=self.config.initial_center,
                                 scale=self.config.start_scale)
        self.palette = Palette(self.config.palette_mode)
        self.cache = EscapeCache()

        workers = self.config.workers or os.cpu_count() or 1
        self._pool = ThreadPoolExecutor(max_workers=workers,
                                        thread_name_prefix='mandelbrot-band')

        # Render state, guarded by lock
        self.lock = threading.Lock()
        self._changed = threading.Condition(self.lock)
        self.state = RenderState.IDLE
        self.generation = 0
        self.superseded = 0
        self.computing = False
        self.pending_job = None
        self.closed = False
        self._frame = None

    # ------------------------------------------------------------------
    # Intent signals from the application shell
    # ------------------------------------------------------------------

    def on_zoom(self, pixel, direction):
        """
        Zoom in or out keeping the plane point under `pixel` fixed.

        Returns:
            True if the view changed and a render started, False if the
            request was rejected (the current frame stays on screen) or the
            renderer is closed
        """
        direction = ZoomDirection(direction)
        if self.closed:
            return False
        if direction is ZoomDirection.IN:
            factor = self.config.zoom_in_factor
        else:
            factor = self.config.zoom_out_factor
        try:
            self.viewport.zoom(pixel, factor)
        except ViewportError as e:
            logger.warning("Zoom %s at %s rejected: %s", direction.value, pixel, e)
            return False
        self.request_render()
        return True

    def on_pan(self, direction):
        """Pan one step of config.pan_pixels in the given direction."""
        step_x, step_y = _PAN_STEPS[PanDirection(direction)]
        if self.closed:
            return False
        distance = self.config.pan_pixels
        self.viewport.pan(step_x * distance, step_y * distance)
        self.request_render()
        return True

    def on_toggle_palette(self):
        """Flip the palette mode; recolors the cached grid when it is still valid."""
        if self.closed:
            return False
        mode = self.palette.toggle()
        logger.debug("Palette mode now %s", mode.value)
        self.request_render()
        return True

    def on_reset(self):
        """Return to the startup view."""
        if self.closed:
            return False
        self.viewport.reset()
        self.request_render()
        return True

    def on_quit(self):
        """Stop rendering and release the worker pool."""
        self.close()

    def get_frame(self):
        """Latest complete FrameBuffer, or None before the first one."""
        with self.lock:
            return self._frame

    # ------------------------------------------------------------------
    # Render scheduling
    # ------------------------------------------------------------------

    def _make_job(self, generation):
        key = RenderKey(self.viewport.snapshot(), self.config.max_iter, self.config.bailout)
        return RenderJob(generation, key, self.palette.mode)

    def request_render(self):
        """
        Start rendering the current view in the background.

        Any render still in flight is superseded. Returns the generation id
        of the new render.
        """
        with self.lock:
            if self.closed:
                raise RuntimeError("renderer is closed")
            self.generation += 1
            job = self._make_job(self.generation)
            self.pending_job = job
            self.state = RenderState.RENDERING
            if not self.computing:
                self.computing = True
                thread = threading.Thread(target=self._compute_thread,
                                          name='mandelbrot-render')
                thread.daemon = True
                thread.start()
        return job.generation

    def render_now(self):
        """
        Render the current view on the calling thread and publish it.

        Used for the first frame at startup, where there is nothing else to
        show while waiting. Returns the FrameBuffer, or None if a newer
        request superseded it meanwhile.
        """
        with self.lock:
            if self.closed:
                raise RuntimeError("renderer is closed")
            self.generation += 1
            job = self._make_job(self.generation)
            self.pending_job = None
            self.state = RenderState.RENDERING
        try:
            frame = self._render(job)
        except Exception:
            with self.lock:
                self.state = RenderState.IDLE
                self._changed.notify_all()
            raise
        self._publish(job, frame)
        return frame

    def wait(self, timeout=None):
        """
        Block until the newest requested render is complete.

        Returns:
            True if the newest generation is on display, False on timeout
            or if the renderer was closed first
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._changed:
            while self.state is not RenderState.COMPLETE and not self.closed:
                if self.state is RenderState.IDLE and not self.computing:
                    return False
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    return False
                self._changed.wait(remaining)
            return self.state is RenderState.COMPLETE

    def is_current(self, generation):
        with self.lock:
            return generation == self.generation and not self.closed

    def _compute_thread(self):
        """Background thread: render pending jobs until none is left."""
        while True:
            with self.lock:
                job = self.pending_job
                self.pending_job = None
                if job is None:
                    self.computing = False
                    self._changed.notify_all()
                    break

            try:
                frame = self._render(job)
            except Exception:
                logger.exception("Render of generation %d failed", job.generation)
                with self.lock:
                    self.computing = False
                    self.pending_job = None
                    self.state = RenderState.IDLE
                    self._changed.notify_all()
                raise

            self._publish(job, frame)

    def _publish(self, job, frame):
        """
        Swap in a finished frame if its generation is still the newest.

        Returns the outcome of the job: COMPLETE or SUPERSEDED.
        """
        with self.lock:
            if frame is not None and job.generation == self.generation and not self.closed:
                self._frame = frame
                self.state = RenderState.COMPLETE
                outcome = RenderState.COMPLETE
            else:
                self.superseded += 1
                outcome = RenderState.SUPERSEDED
                logger.debug("Dropped superseded render %d (current %d)",
                             job.generation, self.generation)
            self._changed.notify_all()
        return outcome

    # ------------------------------------------------------------------
    # Computation
    # ------------------------------------------------------------------

    def _render(self, job):
        """
        Produce the FrameBuffer for a job, or None if it was superseded.
        """
        start = time.perf_counter()
        key = job.key
        grid = self.cache.get(key)
        if grid is None:
            grid = self._compute_escape(job)
            if grid is None:
                return None
            self.cache.put(key, grid)
            logger.debug("Generation %d computed in %.1f ms",
                         job.generation, (time.perf_counter() - start) * 1000)
        else:
            logger.debug("Generation %d recolored from cache", job.generation)

        if not self.is_current(job.generation):
            return None

        pixels = colorize_grid(grid, job.mode, key.max_iter)
        pixels.flags.writeable = False
        return FrameBuffer(pixels, key.view, job.mode, job.generation)

    def _compute_escape(self, job):
        """
        Compute the escape grid in row bands on the worker pool.

        Each render gets fresh arrays and every band writes only its own
        rows, so workers share nothing mutable.
        """
        key = job.key
        view = key.view
        grid = EscapeGrid.empty(view.width, view.height)
        band_rows = self.config.band_rows

        try:
            futures = [
                self._pool.submit(self._compute_band, job, grid, row,
                                  min(row + band_rows, view.height))
                for row in range(0, view.height, band_rows)
            ]
            completed = [future.result() for future in futures]
        except (CancelledError, RuntimeError):
            # Pool shut down by close() while this job was running
            if self.closed:
                return None
            raise
        if not all(completed) or not self.is_current(job.generation):
            return None
        return grid

    def _compute_band(self, job, grid, row_start, row_stop):
        """Compute one row band; returns False if the job went stale first."""
        if not self.is_current(job.generation):
            return False
        view = job.key.view
        compute_escape_rows(view.center_re, view.center_im, view.scale,
                            view.width, view.height, row_start, row_stop,
                            job.key.max_iter, job.key.bailout,
                            grid.iterations, grid.smooth)
        return True

    def close(self):
        """Stop accepting work and shut the worker pool down."""
        with self.lock:
            if self.closed:
                return
            self.closed = True
            self.pending_job = None
            self._changed.notify_all()
        self._pool.shutdown(wait=False, cancel_futures=True)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()
