"""
Viewport geometry for the org chart: zoom, pan and fit-to-screen.

Geometry state is written from two directions: explicit user actions
(zoom buttons, fit-to-screen, direct zoom entry) and continuous feedback
from the drawing surface (drag-to-pan, scroll-to-zoom).  Both arrive as
events fed through one pure reducer, ``reduce_geometry``; whichever event
is applied last wins.  ``GeometryController`` is a thin stateful wrapper
around the reducer for callers that want methods instead of events.

Bounds:
  - Zoom buttons and surface feedback: [0.1, 3.0], step 0.1
  - Direct zoom entry:                 [0.1, 2.0]
  - Fit-to-screen never scales above 1.0
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Optional, Union

from .organize import ContainerBounds

logger = logging.getLogger(__name__)


# --- Geometry constants ---

DEFAULT_ZOOM = 0.6
ZOOM_STEP = 0.1
MIN_ZOOM = 0.1
MAX_ZOOM = 3.0
MAX_ENTRY_ZOOM = 2.0

FIT_PADDING = 50
TOP_MARGIN = 100


@dataclass(frozen=True)
class Point:
    x: float = 0.0
    y: float = 0.0


@dataclass(frozen=True)
class ContainerSize:
    """Pixel size of the viewport the chart is drawn into."""
    width: float
    height: float


@dataclass(frozen=True)
class GeometryState:
    """Zoom level and the pixel offset of the tree's logical origin."""
    zoom: float = DEFAULT_ZOOM
    translate: Point = Point()

    def to_viewport(self, x: float, y: float) -> tuple[float, float]:
        """Map a logical tree coordinate to viewport pixels."""
        return (self.translate.x + x * self.zoom, self.translate.y + y * self.zoom)

    def to_logical(self, x: float, y: float) -> tuple[float, float]:
        """Map a viewport pixel back to logical tree coordinates."""
        return ((x - self.translate.x) / self.zoom, (y - self.translate.y) / self.zoom)


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ZoomIn:
    pass


@dataclass(frozen=True)
class ZoomOut:
    pass


@dataclass(frozen=True)
class SetZoom:
    """Zoom typed in directly by the user."""
    zoom: float


@dataclass(frozen=True)
class SurfaceUpdate:
    """Zoom/translate reported back by the drawing surface after a drag or scroll."""
    zoom: float
    translate: Point


@dataclass(frozen=True)
class CenterOnMount:
    container: ContainerSize


@dataclass(frozen=True)
class FitToScreen:
    container: ContainerSize
    bounds: Optional[ContainerBounds]


GeometryEvent = Union[ZoomIn, ZoomOut, SetZoom, SurfaceUpdate, CenterOnMount, FitToScreen]


# ---------------------------------------------------------------------------
# Reducer
# ---------------------------------------------------------------------------

def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(value, high))


def _step_zoom(zoom: float, delta: float) -> float:
    return round(_clamp(zoom + delta, MIN_ZOOM, MAX_ZOOM), 10)


def center_translate(container: ContainerSize) -> Point:
    """Translate that puts the root horizontally centered near the top."""
    return Point(x=container.width / 2, y=TOP_MARGIN)


def compute_fit(
    container: ContainerSize,
    bounds: Optional[ContainerBounds],
    padding: float = FIT_PADDING,
) -> Optional[GeometryState]:
    """Compute the zoom/translate that fits ``bounds`` inside the container.

    Returns None when the bounding box cannot be used (missing, empty or
    non-finite); the caller falls back to the default view.
    """
    if bounds is None:
        return None
    values = (bounds.x, bounds.y, bounds.width, bounds.height)
    if not all(math.isfinite(v) for v in values):
        return None
    if bounds.width <= 0 or bounds.height <= 0:
        return None

    scale_x = (container.width - padding * 2) / bounds.width
    scale_y = (container.height - padding * 2) / bounds.height
    zoom = max(MIN_ZOOM, min(scale_x, scale_y, 1))

    return GeometryState(
        zoom=zoom,
        translate=Point(
            x=container.width / 2 - bounds.center_x * zoom,
            y=container.height / 2 - bounds.center_y * zoom,
        ),
    )


def reduce_geometry(state: GeometryState, event: GeometryEvent) -> GeometryState:
    """Apply one event to the geometry state and return the new state."""
    if isinstance(event, ZoomIn):
        return replace(state, zoom=_step_zoom(state.zoom, ZOOM_STEP))

    if isinstance(event, ZoomOut):
        return replace(state, zoom=_step_zoom(state.zoom, -ZOOM_STEP))

    if isinstance(event, SetZoom):
        return replace(state, zoom=_clamp(event.zoom, MIN_ZOOM, MAX_ENTRY_ZOOM))

    if isinstance(event, SurfaceUpdate):
        return GeometryState(
            zoom=_clamp(event.zoom, MIN_ZOOM, MAX_ZOOM),
            translate=event.translate,
        )

    if isinstance(event, CenterOnMount):
        return replace(state, translate=center_translate(event.container))

    if isinstance(event, FitToScreen):
        fitted = compute_fit(event.container, event.bounds)
        if fitted is None:
            logger.debug("Tree bounds unavailable; falling back to the default view")
            return GeometryState(
                zoom=DEFAULT_ZOOM,
                translate=center_translate(event.container),
            )
        return fitted

    raise TypeError(f"Unknown geometry event: {event!r}")


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------

class GeometryController:
    """Holds the chart's viewport state and applies events to it."""

    def __init__(self, state: Optional[GeometryState] = None):
        self.state = state or GeometryState()

    @property
    def zoom(self) -> float:
        return self.state.zoom

    @property
    def translate(self) -> Point:
        return self.state.translate

    def dispatch(self, event: GeometryEvent) -> GeometryState:
        self.state = reduce_geometry(self.state, event)
        return self.state

    def zoom_in(self) -> GeometryState:
        return self.dispatch(ZoomIn())

    def zoom_out(self) -> GeometryState:
        return self.dispatch(ZoomOut())

    def set_zoom(self, zoom: float) -> GeometryState:
        return self.dispatch(SetZoom(zoom))

    def surface_update(self, zoom: float, translate: Point) -> GeometryState:
        return self.dispatch(SurfaceUpdate(zoom, translate))

    def center_on_mount(self, container: ContainerSize) -> GeometryState:
        return self.dispatch(CenterOnMount(container))

    def fit_to_screen(
        self,
        container: ContainerSize,
        bounds: Optional[ContainerBounds],
    ) -> GeometryState:
        return self.dispatch(FitToScreen(container, bounds))

    def reset(self) -> GeometryState:
        self.state = GeometryState()
        return self.state
