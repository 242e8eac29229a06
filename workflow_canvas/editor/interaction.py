"""Pointer-driven canvas state machine.

The controller owns only transient gesture state. Everything that outlives
a gesture is committed through the editor (structural edits, recorded in
history) or the visual layout store (waypoints, labels, anchors).
"""

import logging
from collections.abc import Callable, Iterable
from enum import Enum
from typing import TYPE_CHECKING, Annotated, Any, Literal

from pydantic import BaseModel, Field

from workflow_canvas.config.settings import CanvasSettings
from workflow_canvas.constants import ZOOM_STEP
from workflow_canvas.geometry.box_edges import nearest_point_on_box_edge
from workflow_canvas.geometry.paths import find_insertion_index
from workflow_canvas.geometry.router import (
    TransitionGeometry,
    compute_scene,
    compute_transition_geometry,
)
from workflow_canvas.geometry.snapping import SnapBox, apply_snapping
from workflow_canvas.models.geometry import Point
from workflow_canvas.models.history import StateBox
from workflow_canvas.models.layout import Endpoint, VisualOverride
from workflow_canvas.models.workflow import CanvasConfig, WorkflowState
from workflow_canvas.persistence.notifier import NotificationKind
from workflow_canvas.utils.exceptions import WorkflowCanvasError

if TYPE_CHECKING:
    from workflow_canvas.editor.session import WorkflowEditor

logger = logging.getLogger(__name__)


class CanvasMode(str, Enum):
    SELECT = "select"
    PAN = "pan"
    CONNECT = "connect"
    RESIZE = "resize"


class ResizeHandle(str, Enum):
    N = "n"
    S = "s"
    E = "e"
    W = "w"
    NE = "ne"
    NW = "nw"
    SE = "se"
    SW = "sw"


# ── Hit targets ─────────────────────────────────────────────────────


class CanvasTarget(BaseModel):
    kind: Literal["canvas"] = "canvas"


class StateTarget(BaseModel):
    kind: Literal["state"] = "state"
    state_id: str


class ConnectorTarget(BaseModel):
    """The connection affordance drawn on a state's border."""

    kind: Literal["connector"] = "connector"
    state_id: str


class EndpointTarget(BaseModel):
    kind: Literal["endpoint"] = "endpoint"
    transition_id: str
    endpoint: Endpoint


class ResizeHandleTarget(BaseModel):
    kind: Literal["resize_handle"] = "resize_handle"
    state_id: str
    handle: ResizeHandle


class WaypointTarget(BaseModel):
    kind: Literal["waypoint"] = "waypoint"
    transition_id: str
    index: int


class PathTarget(BaseModel):
    kind: Literal["path"] = "path"
    transition_id: str


class ElbowHandleTarget(BaseModel):
    kind: Literal["elbow_handle"] = "elbow_handle"
    transition_id: str
    handle_index: int


class LabelTarget(BaseModel):
    kind: Literal["label"] = "label"
    transition_id: str


PointerTarget = Annotated[
    CanvasTarget
    | StateTarget
    | ConnectorTarget
    | EndpointTarget
    | ResizeHandleTarget
    | WaypointTarget
    | PathTarget
    | ElbowHandleTarget
    | LabelTarget,
    Field(discriminator="kind"),
]


# ── Gesture sessions ────────────────────────────────────────────────


class PanSession(BaseModel):
    kind: Literal["pan"] = "pan"
    start_screen: Point
    start_pan: Point


class NodeDragSession(BaseModel):
    kind: Literal["node_drag"] = "node_drag"
    state_id: str
    start_screen: Point
    start_center: Point
    current: Point
    dragging: bool = False


class ConnectSession(BaseModel):
    kind: Literal["connect"] = "connect"
    source_state_id: str
    current: Point


class EndpointSession(BaseModel):
    kind: Literal["endpoint"] = "endpoint"
    transition_id: str
    endpoint: Endpoint
    current: Point


class ResizeSession(BaseModel):
    kind: Literal["resize"] = "resize"
    state_id: str
    handle: ResizeHandle
    start_screen: Point
    start_box: StateBox
    current_box: StateBox


class WaypointSession(BaseModel):
    """Drag of one waypoint; ``waypoints`` is the full live list of the transition."""

    kind: Literal["waypoint"] = "waypoint"
    transition_id: str
    index: int
    start_screen: Point
    start_point: Point
    waypoints: list[Point]
    axis: Literal["x", "y"] | None = None
    changed: bool = False


class LabelSession(BaseModel):
    kind: Literal["label"] = "label"
    transition_id: str
    start_screen: Point
    start_value: Point
    pinned: bool
    current: Point
    changed: bool = False


GestureSession = (
    PanSession
    | NodeDragSession
    | ConnectSession
    | EndpointSession
    | ResizeSession
    | WaypointSession
    | LabelSession
)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class CanvasController:
    """Translate pointer events into drags, connections, resizes and layout edits.

    Screen points are in viewport pixels; everything stored is in canvas
    coordinates (``canvas = (screen - pan) / zoom``).
    """

    def __init__(self, editor: "WorkflowEditor", settings: CanvasSettings | None = None) -> None:
        self.editor = editor
        self.settings = settings or CanvasSettings()
        self.mode = CanvasMode.SELECT
        self.zoom = 1.0
        self.pan = Point(x=0, y=0)
        self.selected_state_id: str | None = None
        self.selected_transition_id: str | None = None
        self.hovered_state_id: str | None = None
        self.vertical_guide: float | None = None
        self.horizontal_guide: float | None = None
        self.session: GestureSession | None = None

    # ── Viewport ────────────────────────────────────────────────────

    def reset(self, config: CanvasConfig | None = None) -> None:
        config = config or CanvasConfig()
        self.cancel()
        self.zoom = _clamp(config.zoom, self.settings.min_zoom, self.settings.max_zoom)
        self.pan = Point(x=config.pan_x, y=config.pan_y)
        self.clear_selection()

    def center_on(self, states: Iterable[WorkflowState]) -> None:
        """Pan so the middle of the states' centers sits mid-viewport at the current zoom."""
        states = list(states)
        if not states:
            return
        xs = [s.position_x for s in states]
        ys = [s.position_y for s in states]
        cx = (min(xs) + max(xs)) / 2
        cy = (min(ys) + max(ys)) / 2
        self.pan = Point(
            x=self.settings.viewport_width / 2 - cx * self.zoom,
            y=self.settings.viewport_height / 2 - cy * self.zoom,
        )

    def canvas_config(self) -> CanvasConfig:
        return CanvasConfig(zoom=self.zoom, pan_x=self.pan.x, pan_y=self.pan.y)

    def to_canvas(self, screen: Point) -> Point:
        return Point(x=(screen.x - self.pan.x) / self.zoom, y=(screen.y - self.pan.y) / self.zoom)

    def to_screen(self, canvas: Point) -> Point:
        return Point(x=canvas.x * self.zoom + self.pan.x, y=canvas.y * self.zoom + self.pan.y)

    def set_zoom(self, zoom: float, anchor: Point | None = None) -> float:
        """Zoom keeping the screen point *anchor* fixed over the same canvas point."""
        zoom = _clamp(zoom, self.settings.min_zoom, self.settings.max_zoom)
        if anchor is not None:
            fixed = self.to_canvas(anchor)
            self.pan = Point(x=anchor.x - fixed.x * zoom, y=anchor.y - fixed.y * zoom)
        self.zoom = zoom
        return self.zoom

    def zoom_in(self, anchor: Point | None = None) -> float:
        return self.set_zoom(self.zoom * ZOOM_STEP, anchor)

    def zoom_out(self, anchor: Point | None = None) -> float:
        return self.set_zoom(self.zoom / ZOOM_STEP, anchor)

    def reset_zoom(self) -> float:
        self.pan = Point(x=0, y=0)
        return self.set_zoom(1.0)

    def set_mode(self, mode: CanvasMode) -> None:
        self.cancel()
        self.mode = CanvasMode(mode)

    # ── Selection ───────────────────────────────────────────────────

    def select_state(self, state_id: str) -> None:
        self.selected_state_id = state_id
        self.selected_transition_id = None

    def select_transition(self, transition_id: str) -> None:
        self.selected_transition_id = transition_id
        self.selected_state_id = None

    def clear_selection(self) -> None:
        self.selected_state_id = None
        self.selected_transition_id = None

    def forget(self, entity_id: str) -> None:
        """Drop every reference to a deleted state or transition."""
        if entity_id in (self.selected_state_id, self.selected_transition_id):
            self.clear_selection()
        if self.session is not None and entity_id in (
            getattr(self.session, "state_id", None),
            getattr(self.session, "source_state_id", None),
            getattr(self.session, "transition_id", None),
        ):
            self.cancel()

    # ── Hit testing ─────────────────────────────────────────────────

    def state_at(self, point: Point, margin: float = 0.0) -> WorkflowState | None:
        """Topmost state containing the canvas *point* (last drawn wins)."""
        for state in reversed(self.live_states()):
            if state.contains(point, margin):
                return state
        return None

    # ── Pointer events ──────────────────────────────────────────────

    def pointer_down(self, screen: Point, target: PointerTarget) -> None:
        self.cancel()
        canvas = self.to_canvas(screen)
        can_edit = self.editor.can_edit

        if self.mode == CanvasMode.PAN or isinstance(target, CanvasTarget):
            if self.mode == CanvasMode.SELECT and isinstance(target, CanvasTarget):
                self.clear_selection()
            self.session = PanSession(start_screen=screen, start_pan=self.pan)
            return

        if isinstance(target, StateTarget):
            if not can_edit:
                self.select_state(target.state_id)
            elif self.mode == CanvasMode.CONNECT:
                self._start_connect(target.state_id, canvas)
            else:
                state = self.editor.model.get_state(target.state_id)
                self.session = NodeDragSession(
                    state_id=state.id,
                    start_screen=screen,
                    start_center=state.center,
                    current=state.center,
                )
            return

        if isinstance(target, ResizeHandleTarget):
            if can_edit and self.mode in (CanvasMode.SELECT, CanvasMode.RESIZE):
                state = self.editor.model.get_state(target.state_id)
                box = StateBox(
                    position_x=state.position_x,
                    position_y=state.position_y,
                    width=state.width,
                    height=state.height,
                )
                self.select_state(state.id)
                self.session = ResizeSession(
                    state_id=state.id,
                    handle=target.handle,
                    start_screen=screen,
                    start_box=box,
                    current_box=box,
                )
            return

        if isinstance(target, ConnectorTarget):
            if can_edit:
                self._start_connect(target.state_id, canvas)
            return

        # The remaining targets all belong to a transition
        self.editor.model.get_transition(target.transition_id)
        self.select_transition(target.transition_id)
        if not can_edit:
            return

        if isinstance(target, EndpointTarget):
            self.session = EndpointSession(
                transition_id=target.transition_id, endpoint=target.endpoint, current=canvas
            )
        elif isinstance(target, WaypointTarget):
            waypoints = self.editor.layout.waypoints(target.transition_id)
            if 0 <= target.index < len(waypoints):
                self.session = WaypointSession(
                    transition_id=target.transition_id,
                    index=target.index,
                    start_screen=screen,
                    start_point=waypoints[target.index],
                    waypoints=waypoints,
                )
        elif isinstance(target, PathTarget):
            self._start_waypoint_insert(target.transition_id, screen, canvas)
        elif isinstance(target, ElbowHandleTarget):
            self._start_elbow_drag(target, screen)
        elif isinstance(target, LabelTarget):
            self._start_label_drag(target.transition_id, screen)

    def pointer_move(self, screen: Point) -> None:
        session = self.session
        if session is None:
            return
        canvas = self.to_canvas(screen)

        if isinstance(session, PanSession):
            self.pan = Point(
                x=session.start_pan.x + screen.x - session.start_screen.x,
                y=session.start_pan.y + screen.y - session.start_screen.y,
            )
        elif isinstance(session, NodeDragSession):
            self._move_node(session, screen)
        elif isinstance(session, (ConnectSession, EndpointSession)):
            session.current = canvas
            hovered = self.state_at(canvas, self.settings.edge_snap_distance)
            self.hovered_state_id = hovered.id if hovered else None
        elif isinstance(session, ResizeSession):
            session.current_box = self._resized_box(session, screen)
        elif isinstance(session, WaypointSession):
            point = self._dragged(session.start_point, session.start_screen, screen)
            if session.axis == "x":
                point = Point(x=point.x, y=session.start_point.y)
            elif session.axis == "y":
                point = Point(x=session.start_point.x, y=point.y)
            session.waypoints[session.index] = point
            session.changed = True
        elif isinstance(session, LabelSession):
            session.current = self._dragged(session.start_value, session.start_screen, screen)
            session.changed = True

    def pointer_up(self, screen: Point) -> None:
        session = self.session
        if session is None:
            return
        self.pointer_move(screen)
        self._end_session()
        canvas = self.to_canvas(screen)

        if isinstance(session, NodeDragSession):
            if session.dragging:
                self._commit(
                    "move state",
                    self.editor.move_state,
                    session.state_id,
                    session.current,
                    session.start_center,
                )
            self.select_state(session.state_id)
        elif isinstance(session, ConnectSession):
            target = self.state_at(canvas, self.settings.edge_snap_distance)
            if target is not None and target.id != session.source_state_id:
                self._commit(
                    "create transition",
                    self.editor.add_transition,
                    session.source_state_id,
                    target.id,
                )
        elif isinstance(session, EndpointSession):
            self._commit_endpoint(session, canvas)
        elif isinstance(session, ResizeSession):
            if session.current_box != session.start_box:
                self._commit(
                    "resize state",
                    self.editor.resize_state,
                    session.state_id,
                    session.current_box,
                    session.start_box,
                )
        elif isinstance(session, WaypointSession):
            if session.changed:
                self.editor.layout.set_waypoints(session.transition_id, session.waypoints)
        elif isinstance(session, LabelSession):
            if session.changed:
                if session.pinned:
                    self.editor.layout.pin_label(session.transition_id, session.current)
                else:
                    self.editor.layout.set_label_offset(session.transition_id, session.current)

    def cancel(self) -> None:
        """Abort the current gesture without touching the model or layout."""
        self._end_session()

    def _end_session(self) -> None:
        self.session = None
        self.hovered_state_id = None
        self.vertical_guide = None
        self.horizontal_guide = None

    # ── Gesture helpers ─────────────────────────────────────────────

    def _dragged(self, start: Point, start_screen: Point, screen: Point) -> Point:
        return Point(
            x=start.x + (screen.x - start_screen.x) / self.zoom,
            y=start.y + (screen.y - start_screen.y) / self.zoom,
        )

    def _start_connect(self, state_id: str, canvas: Point) -> None:
        self.editor.model.get_state(state_id)
        self.session = ConnectSession(source_state_id=state_id, current=canvas)

    def _move_node(self, session: NodeDragSession, screen: Point) -> None:
        if not session.dragging:
            dx = screen.x - session.start_screen.x
            dy = screen.y - session.start_screen.y
            if (dx * dx + dy * dy) ** 0.5 <= self.settings.drag_threshold:
                return
            session.dragging = True

        raw = self._dragged(session.start_center, session.start_screen, screen)
        state = self.editor.model.get_state(session.state_id)
        siblings = [
            SnapBox(id=s.id, center=s.center, size=s.size)
            for s in self.editor.model.states
            if s.id != session.state_id
        ]
        snapped = apply_snapping(
            session.state_id, raw, state.size, siblings, self.editor.layout.snap_settings
        )
        session.current = snapped.point
        self.vertical_guide = snapped.vertical_guide
        self.horizontal_guide = snapped.horizontal_guide

    def _resized_box(self, session: ResizeSession, screen: Point) -> StateBox:
        start = session.start_box
        handle = session.handle.value
        dx = (screen.x - session.start_screen.x) / self.zoom
        dy = (screen.y - session.start_screen.y) / self.zoom

        width, height = start.width, start.height
        if "e" in handle:
            width = start.width + dx
        elif "w" in handle:
            width = start.width - dx
        if "s" in handle:
            height = start.height + dy
        elif "n" in handle:
            height = start.height - dy
        width = max(self.settings.min_state_width, width)
        height = max(self.settings.min_state_height, height)

        # The edge opposite the handle stays put
        x, y = start.position_x, start.position_y
        if "e" in handle:
            x = start.position_x - start.width / 2 + width / 2
        elif "w" in handle:
            x = start.position_x + start.width / 2 - width / 2
        if "s" in handle:
            y = start.position_y - start.height / 2 + height / 2
        elif "n" in handle:
            y = start.position_y + start.height / 2 - height / 2
        return StateBox(position_x=x, position_y=y, width=width, height=height)

    def _start_waypoint_insert(self, transition_id: str, screen: Point, canvas: Point) -> None:
        geometry = self.transition_geometry(transition_id)
        if geometry is None:
            return
        waypoints = self.editor.layout.waypoints(transition_id)
        index = find_insertion_index(waypoints, geometry.start, geometry.end, canvas)
        waypoints.insert(index, canvas)
        self.session = WaypointSession(
            transition_id=transition_id,
            index=index,
            start_screen=screen,
            start_point=canvas,
            waypoints=waypoints,
            changed=True,
        )

    def _start_elbow_drag(self, target: ElbowHandleTarget, screen: Point) -> None:
        geometry = self.transition_geometry(target.transition_id)
        if geometry is None or not 0 <= target.handle_index < len(geometry.handles):
            return
        handle = geometry.handles[target.handle_index]
        waypoints = self.editor.layout.waypoints(target.transition_id)
        start_ends_horizontal = geometry.start.edge is not None and geometry.start.edge.is_horizontal
        end_ends_horizontal = geometry.end.edge is not None and geometry.end.edge.is_horizontal
        # With mixed exit/entry orientation a single waypoint shapes the whole route
        index = 0 if start_ends_horizontal != end_ends_horizontal else handle.waypoint_index

        created = index >= len(waypoints)
        if created:
            index = len(waypoints)
            waypoints.append(Point(x=handle.x, y=handle.y))
        self.session = WaypointSession(
            transition_id=target.transition_id,
            index=index,
            start_screen=screen,
            start_point=waypoints[index],
            waypoints=waypoints,
            axis=handle.drag_axis,
            changed=created,
        )

    def _start_label_drag(self, transition_id: str, screen: Point) -> None:
        layout = self.editor.layout
        pinned = layout.pinned_label_position(transition_id)
        start = pinned if pinned is not None else layout.label_offset(transition_id)
        self.session = LabelSession(
            transition_id=transition_id,
            start_screen=screen,
            start_value=start,
            pinned=pinned is not None,
            current=start,
        )

    def _commit_endpoint(self, session: EndpointSession, canvas: Point) -> None:
        transition = self.editor.model.find_transition(session.transition_id)
        if transition is None:
            return
        target = self.state_at(canvas, self.settings.edge_snap_distance)
        if target is None:
            return
        other = transition.to_state_id if session.endpoint == "start" else transition.from_state_id
        if target.id == other:
            return

        if session.endpoint == "start":
            rerouted = self._commit(
                "reroute transition", self.editor.reroute_transition,
                transition.id, from_state_id=target.id,
            )
        else:
            rerouted = self._commit(
                "reroute transition", self.editor.reroute_transition,
                transition.id, to_state_id=target.id,
            )
        if rerouted is None:
            return
        hit = nearest_point_on_box_edge(target.center, target.size, canvas)
        self.editor.layout.set_edge_position(transition.id, session.endpoint, hit.edge_position)

    def _commit(self, action: str, command: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        try:
            return command(*args, **kwargs)
        except WorkflowCanvasError as e:
            logger.warning("Could not %s: %s", action, e)
            self.editor.notifier.notify(NotificationKind.ERROR, f"Could not {action}: {e}")
            return None

    # ── Live rendering ──────────────────────────────────────────────

    @property
    def connection_preview(self) -> tuple[str, Point] | None:
        """Source state and current end of the rubber band being drawn, if any."""
        if isinstance(self.session, ConnectSession):
            return self.session.source_state_id, self.session.current
        return None

    def live_states(self) -> list[WorkflowState]:
        """Model states with an in-progress drag or resize applied."""
        states = self.editor.model.states
        session = self.session
        if isinstance(session, NodeDragSession) and session.dragging:
            return [
                s.model_copy(update={"position_x": session.current.x, "position_y": session.current.y})
                if s.id == session.state_id else s
                for s in states
            ]
        if isinstance(session, ResizeSession):
            return [
                s.model_copy(update=session.current_box.model_dump())
                if s.id == session.state_id else s
                for s in states
            ]
        return states

    def live_layout(self) -> VisualOverride | None:
        """The stored layout with an in-progress waypoint or label drag applied."""
        layout = self.editor.layout
        if not layout.is_active:
            return None
        current = layout.current
        session = self.session
        if isinstance(session, WaypointSession):
            waypoints = {**current.waypoints, session.transition_id: list(session.waypoints)}
            return current.model_copy(update={"waypoints": waypoints})
        if isinstance(session, LabelSession):
            if session.pinned:
                pinned = {**current.pinned_label_positions, session.transition_id: session.current}
                return current.model_copy(update={"pinned_label_positions": pinned})
            offsets = {**current.label_offsets, session.transition_id: session.current}
            return current.model_copy(update={"label_offsets": offsets})
        return current

    def transition_geometry(self, transition_id: str) -> TransitionGeometry | None:
        model = self.editor.model
        transition = model.find_transition(transition_id)
        if transition is None:
            return None
        states = {s.id: s for s in self.live_states()}
        from_state = states.get(transition.from_state_id)
        to_state = states.get(transition.to_state_id)
        if from_state is None or to_state is None:
            return None
        layout = self.live_layout()
        return compute_transition_geometry(
            transition,
            from_state,
            to_state,
            layout.for_transition(transition_id) if layout else None,
            model.gates_for(transition_id),
            self.settings.elbow_turn_offset,
        )

    def scene(self) -> list[TransitionGeometry]:
        return compute_scene(
            self.live_states(),
            self.editor.model.transitions,
            self.editor.model.gates,
            self.live_layout(),
            self.settings.elbow_turn_offset,
        )
