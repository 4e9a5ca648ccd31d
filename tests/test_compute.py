import math

import numpy as np
import pytest

from mandelbrot_viewer.compute import (
    BOUNDED,
    EscapeGrid,
    EscapeResult,
    compute,
    compute_escape_rows,
    compute_grid,
    escape_time,
    warmup_jit,
)
from mandelbrot_viewer.viewport import ViewState


@pytest.mark.parametrize("c", [0, -1, -0.5 + 0.5j, 0.25, -1.25, 1j])
def test_points_in_the_set_are_bounded(c):
    result = compute(c, 200)
    assert result == BOUNDED
    assert result.bounded and not result.escaped
    assert result.smooth == 0.0


def test_two_escapes_at_first_iteration():
    result = compute(2, 100)
    assert result.escaped
    assert result.iteration == 1
    # |z1| sits exactly on the bailout circle
    assert result.smooth == pytest.approx(1.0)


def test_minus_two_touches_bailout_and_counts_as_escaped():
    # The orbit 0, -2, 2, 2, ... reaches |z| = 2 on the first step
    result = compute(-2, 100)
    assert result.iteration == 1
    assert result.smooth == pytest.approx(1.0)


def test_known_escape_iteration():
    # z: 0.5, 0.75, 1.0625, 1.6289..., 3.153...
    result = compute(0.5, 100)
    assert result.iteration == 5


@pytest.mark.parametrize("c", [0.5, 1.0, 1.5j, 0.26, -1.0 + 1.0j, 0.6 + 0.6j])
def test_smooth_value_within_escape_iteration(c):
    result = compute(c, 1000)
    assert result.escaped
    assert 1 <= result.iteration <= 1000
    # |z| < 4 + |c| at escape, so the correction stays below 2
    assert result.iteration - 2 < result.smooth <= result.iteration


def test_far_point_clamps_smooth_to_zero():
    result = compute(100, 50)
    assert result.iteration == 1
    assert result.smooth == 0.0


def test_huge_point_does_not_produce_nan():
    result = compute(complex(1e200, 1e200), 50)
    assert result.iteration == 1
    assert not math.isnan(result.smooth)


def test_max_iter_caps_slow_escape():
    # Just right of the cardioid cusp: escapes, but slowly
    assert compute(0.26, 5) == BOUNDED
    slow = compute(0.26, 1000)
    assert slow.iteration > 5


def test_larger_bailout_changes_escape_iteration():
    result = compute(2, 100, bailout=4.0)
    assert result.iteration == 2
    assert 1 < result.smooth < 2


@pytest.mark.parametrize("max_iter, bailout", [(0, 2.0), (-3, 2.0), (10, 1.0), (10, 0.5)])
def test_invalid_parameters(max_iter, bailout):
    with pytest.raises(ValueError):
        compute(0.1, max_iter, bailout)


def test_escape_time_kernel_returns_bounded_sentinel():
    assert escape_time(0.0, 0.0, 20, 2.0) == (0, 0.0)


def test_grid_matches_pointwise_compute():
    view = ViewState(-0.5, 0.0, 3.0 / 24, 24, 16)
    grid = compute_grid(view, 50)
    assert grid.shape == (16, 24)
    for py in range(view.height):
        for px in range(view.width):
            expected = compute(view.pixel_to_plane(px, py), 50)
            assert grid.at(px, py) == expected


def test_grid_interior_and_exterior():
    view = ViewState(-0.5, 0.0, 0.01, 300, 300)
    grid = compute_grid(view, 100)
    assert grid.at(*view.nearest_pixel(0)).bounded
    assert grid.at(0, 0).escaped


def test_row_band_only_touches_its_rows():
    width, height = 10, 8
    iterations = np.full((height, width), -1, dtype=np.int32)
    smooth = np.full((height, width), -1.0, dtype=np.float64)
    compute_escape_rows(-0.5, 0.0, 0.3, width, height, 2, 5, 30, 2.0, iterations, smooth)
    assert (iterations[:2] == -1).all()
    assert (iterations[5:] == -1).all()
    assert (iterations[2:5] >= 0).all()
    assert (smooth[2:5] >= 0).all()


def test_bands_compose_to_full_grid():
    view = ViewState(-0.7, 0.2, 0.05, 20, 12)
    full = compute_grid(view, 40)
    banded = EscapeGrid.empty(view.width, view.height)
    for start in range(0, view.height, 5):
        compute_escape_rows(view.center_re, view.center_im, view.scale,
                            view.width, view.height, start, min(start + 5, view.height),
                            40, 2.0, banded.iterations, banded.smooth)
    np.testing.assert_array_equal(full.iterations, banded.iterations)
    np.testing.assert_array_equal(full.smooth, banded.smooth)


def test_freeze_makes_grid_read_only():
    grid = EscapeGrid.empty(3, 2).freeze()
    with pytest.raises(ValueError):
        grid.iterations[0, 0] = 1


def test_escape_result_defaults_to_bounded():
    assert EscapeResult() == BOUNDED
    assert EscapeResult(3, 2.5).escaped


def test_warmup_runs():
    warmup_jit()
