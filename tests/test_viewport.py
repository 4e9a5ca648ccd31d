import math

import pytest

from mandelbrot_viewer.errors import InvalidZoomFactor, OutOfRangePixel, PrecisionFloor
from mandelbrot_viewer.viewport import Viewport, ViewState


@pytest.fixture
def view():
    return Viewport((640, 480), center=(-0.5, 0.0), scale=3.0 / 640)


def test_center_pixel_maps_to_center(view):
    assert view.pixel_to_plane(320, 240) == complex(-0.5, 0.0)


def test_top_left_corner(view):
    c = view.pixel_to_plane(0, 0)
    assert c.real == pytest.approx(-2.0)
    assert c.imag == pytest.approx(240 * 3.0 / 640)


def test_rows_grow_downward(view):
    assert view.pixel_to_plane(10, 10).imag > view.pixel_to_plane(10, 11).imag


@pytest.mark.parametrize("px", [0, 1, 137, 320, 639])
@pytest.mark.parametrize("py", [0, 59, 240, 479])
def test_pixel_round_trip(view, px, py):
    fx, fy = view.plane_to_pixel(view.pixel_to_plane(px, py))
    assert (round(fx), round(fy)) == (px, py)
    assert abs(fx - px) < 1e-6 and abs(fy - py) < 1e-6


def test_round_trip_after_zoom_and_pan(view):
    view.zoom((100, 400), 0.01)
    view.pan(-13, 7)
    for px, py in [(0, 0), (5, 470), (639, 1), (320, 240)]:
        fx, fy = view.plane_to_pixel(view.pixel_to_plane(px, py))
        assert (round(fx), round(fy)) == (px, py)


@pytest.mark.parametrize("pixel", [(-1, 0), (640, 0), (0, 480), (0, -0.5), (700, 900)])
def test_out_of_range_pixel(view, pixel):
    with pytest.raises(OutOfRangePixel):
        view.pixel_to_plane(*pixel)


def test_nearest_pixel_clamps(view):
    assert view.nearest_pixel(complex(-0.5, 0.0)) == (320, 240)
    assert view.nearest_pixel(complex(100.0, -100.0)) == (639, 479)
    assert view.nearest_pixel(complex(-100.0, 100.0)) == (0, 0)


def test_zoom_keeps_anchor_fixed(view):
    anchor = view.pixel_to_plane(100, 50)
    view.zoom((100, 50), 0.5)
    assert view.scale == pytest.approx(3.0 / 1280)
    moved = view.pixel_to_plane(100, 50)
    assert moved.real == pytest.approx(anchor.real, abs=1e-12)
    assert moved.imag == pytest.approx(anchor.imag, abs=1e-12)


def test_zoom_out_keeps_anchor_fixed(view):
    anchor = view.pixel_to_plane(600, 470)
    view.zoom((600, 470), 3.0)
    assert view.pixel_to_plane(600, 470) == pytest.approx(anchor, abs=1e-12)


@pytest.mark.parametrize("factor", [0.5, 0.1, 2.0, 1e-4])
def test_zoom_is_invertible(view, factor):
    before = view.snapshot()
    view.zoom((211, 97), factor)
    view.zoom((211, 97), 1 / factor)
    after = view.snapshot()
    assert after.scale == pytest.approx(before.scale, rel=1e-12)
    assert after.center_re == pytest.approx(before.center_re, abs=1e-12)
    assert after.center_im == pytest.approx(before.center_im, abs=1e-12)


@pytest.mark.parametrize("factor", [0, -0.5, -2, math.nan, math.inf, "big"])
def test_invalid_zoom_factor_leaves_view_unchanged(view, factor):
    before = view.snapshot()
    with pytest.raises(InvalidZoomFactor):
        view.zoom((10, 10), factor)
    assert view.snapshot() == before


def test_zoom_outside_grid_rejected(view):
    before = view.snapshot()
    with pytest.raises(OutOfRangePixel):
        view.zoom((640, 10), 0.5)
    assert view.snapshot() == before


def test_precision_floor_rejects_zoom():
    deep = Viewport((100, 100), center=(-0.75, 0.1), scale=1e-15)
    before = deep.snapshot()
    with pytest.raises(PrecisionFloor):
        deep.zoom((50, 50), 1e-3)
    assert deep.snapshot() == before


def test_repeated_zoom_stops_at_precision_floor():
    view = Viewport((64, 64), center=(-0.743643887, 0.131825904), scale=3.0 / 64)
    with pytest.raises(PrecisionFloor):
        for _ in range(200):
            view.zoom((40, 20), 0.5)
    assert view.scale > 0
    a = view.pixel_to_plane(0, 0)
    b = view.pixel_to_plane(1, 0)
    assert a != b


def test_zoom_out_overflow_rejected():
    view = Viewport((64, 64), center=(0.0, 0.0), scale=1e300)
    before = view.snapshot()
    with pytest.raises(PrecisionFloor):
        view.zoom((32, 32), 1e10)
    assert view.snapshot() == before


def test_pan_moves_by_scale(view):
    start = view.center
    view.pan(10, 0)
    assert view.center.real == pytest.approx(start.real + 10 * view.scale)
    view.pan(0, 10)
    assert view.center.imag == pytest.approx(start.imag - 10 * view.scale)
    assert view.scale == 3.0 / 640


def test_pan_and_back_restores_center_exactly(view):
    view.zoom((123, 321), 0.37)
    before = view.snapshot()
    view.pan(37, -12)
    assert view.snapshot() != before
    view.pan(-37, 12)
    assert view.snapshot() == before


def test_many_pans_restore_exactly(view):
    before = view.center
    for _ in range(50):
        view.pan(32, 0)
    for _ in range(50):
        view.pan(-32, 0)
    assert view.center == before


def test_reset(view):
    view.zoom((1, 1), 0.25)
    view.pan(5, 5)
    view.reset()
    assert view.center == complex(-0.5, 0.0)
    assert view.scale == 3.0 / 640
    assert view.zoom_level == 1.0


def test_zoom_level(view):
    view.zoom((320, 240), 0.5)
    view.zoom((320, 240), 0.5)
    assert view.zoom_level == pytest.approx(4.0)


def test_snapshot_is_hashable_value(view):
    a = view.snapshot()
    b = view.snapshot()
    assert a == b
    assert hash(a) == hash(b)
    view.pan(1, 0)
    assert view.snapshot() != a


def test_view_state_bounds():
    state = ViewState(-0.5, 0.0, 0.01, 300, 300)
    assert state.bounds() == pytest.approx((-2.0, 1.0, -1.5, 1.5))


@pytest.mark.parametrize("scale", [0.0, -1.0, math.inf])
def test_constructor_rejects_bad_scale(scale):
    with pytest.raises(ValueError):
        Viewport((10, 10), scale=scale)
