"""Tests for viewport geometry: zoom, pan and fit-to-screen."""

import math

import pytest

from orgchart_mcp.geometry import (
    DEFAULT_ZOOM,
    MAX_ZOOM,
    MIN_ZOOM,
    CenterOnMount,
    ContainerSize,
    FitToScreen,
    GeometryController,
    GeometryState,
    Point,
    SetZoom,
    SurfaceUpdate,
    ZoomIn,
    compute_fit,
    reduce_geometry,
)
from orgchart_mcp.organize import ContainerBounds

WORKED_BOUNDS = ContainerBounds(x=-320, y=-80, width=640, height=470)


class TestZoomButtons:

    def test_default_state(self):
        controller = GeometryController()
        assert controller.zoom == DEFAULT_ZOOM
        assert controller.translate == Point(0, 0)

    def test_zoom_in_and_out_step(self):
        controller = GeometryController()
        assert controller.zoom_in().zoom == 0.7
        assert controller.zoom_out().zoom == 0.6
        assert controller.zoom_out().zoom == 0.5

    def test_repeated_steps_do_not_drift(self):
        controller = GeometryController()
        for _ in range(7):
            controller.zoom_in()
        assert controller.zoom == 1.3
        for _ in range(12):
            controller.zoom_out()
        assert controller.zoom == 0.1

    def test_zoom_in_stops_at_max(self):
        controller = GeometryController(GeometryState(zoom=MAX_ZOOM))
        assert controller.zoom_in().zoom == MAX_ZOOM

    def test_zoom_out_stops_at_min(self):
        controller = GeometryController(GeometryState(zoom=MIN_ZOOM))
        assert controller.zoom_out().zoom == MIN_ZOOM

    def test_zoom_keeps_translate(self):
        controller = GeometryController(GeometryState(zoom=1.0, translate=Point(10, 20)))
        assert controller.zoom_in().translate == Point(10, 20)


class TestDirectEntry:

    @pytest.mark.parametrize("value, expected", [
        (1.5, 1.5),
        (2.5, 2.0),
        (0.0, 0.1),
        (-3, 0.1),
    ])
    def test_set_zoom_is_clamped(self, value, expected):
        assert GeometryController().set_zoom(value).zoom == expected


class TestSurfaceUpdates:

    def test_surface_update_replaces_state(self):
        state = reduce_geometry(GeometryState(), SurfaceUpdate(1.4, Point(-30, 55)))
        assert state == GeometryState(zoom=1.4, translate=Point(-30, 55))

    def test_surface_zoom_is_clamped(self):
        assert reduce_geometry(GeometryState(), SurfaceUpdate(9, Point())).zoom == MAX_ZOOM
        assert reduce_geometry(GeometryState(), SurfaceUpdate(0.01, Point())).zoom == MIN_ZOOM

    def test_last_write_wins(self):
        controller = GeometryController()
        controller.fit_to_screen(ContainerSize(1000, 800), WORKED_BOUNDS)
        controller.surface_update(0.8, Point(1, 2))
        assert controller.state == GeometryState(zoom=0.8, translate=Point(1, 2))
        controller.zoom_in()
        assert controller.zoom == 0.9

    def test_unknown_event(self):
        with pytest.raises(TypeError):
            reduce_geometry(GeometryState(), "zoom")


class TestCenterOnMount:

    def test_root_centered_near_top(self):
        state = GeometryController().center_on_mount(ContainerSize(1200, 700))
        assert state.translate == Point(600, 100)
        assert state.zoom == DEFAULT_ZOOM


class TestFitToScreen:

    def test_fit_never_zooms_past_one(self):
        state = GeometryController().fit_to_screen(ContainerSize(1000, 800), WORKED_BOUNDS)
        assert state.zoom == 1
        assert state.translate == Point(500, 245)

    def test_fit_scales_down_to_the_tighter_axis(self):
        state = compute_fit(ContainerSize(400, 300), WORKED_BOUNDS)
        assert state.zoom == pytest.approx(200 / 470)
        assert state.translate.x == pytest.approx(200)
        assert state.translate.y == pytest.approx(150 - 155 * 200 / 470)

    def test_fitted_bounds_are_inside_the_padded_viewport(self):
        container = ContainerSize(400, 300)
        state = compute_fit(container, WORKED_BOUNDS)
        left, top = state.to_viewport(WORKED_BOUNDS.x, WORKED_BOUNDS.y)
        right, bottom = state.to_viewport(
            WORKED_BOUNDS.x + WORKED_BOUNDS.width,
            WORKED_BOUNDS.y + WORKED_BOUNDS.height,
        )
        assert left >= 50 - 1e-9 and right <= 350 + 1e-9
        assert top == pytest.approx(50) and bottom == pytest.approx(250)

    def test_fit_is_floored_at_min_zoom(self):
        huge = ContainerBounds(x=0, y=0, width=100000, height=100000)
        assert compute_fit(ContainerSize(400, 300), huge).zoom == MIN_ZOOM

    @pytest.mark.parametrize("bounds", [
        None,
        ContainerBounds(x=0, y=0, width=0, height=100),
        ContainerBounds(x=math.nan, y=0, width=100, height=100),
        ContainerBounds(x=0, y=0, width=math.inf, height=100),
    ])
    def test_fallback_for_unusable_bounds(self, bounds):
        state = reduce_geometry(GeometryState(zoom=1.7), FitToScreen(ContainerSize(800, 600), bounds))
        assert state == GeometryState(zoom=DEFAULT_ZOOM, translate=Point(400, 100))

    def test_reset(self):
        controller = GeometryController()
        controller.set_zoom(1.5)
        assert controller.reset() == GeometryState()


class TestCoordinateMapping:

    def test_viewport_round_trip(self):
        state = GeometryState(zoom=0.5, translate=Point(100, 40))
        assert state.to_viewport(200, 80) == (200, 80)
        assert state.to_logical(200, 80) == (200, 80)
        assert state.to_logical(*state.to_viewport(-37, 12)) == pytest.approx((-37, 12))

    def test_reducer_is_pure(self):
        before = GeometryState(zoom=1.0)
        reduce_geometry(before, ZoomIn())
        reduce_geometry(before, SetZoom(1.8))
        reduce_geometry(before, CenterOnMount(ContainerSize(10, 10)))
        assert before == GeometryState(zoom=1.0)
