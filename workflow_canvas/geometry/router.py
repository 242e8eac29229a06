"""Turn states, transitions and visual overrides into renderable connectors."""

import logging
from collections.abc import Iterable, Mapping

from pydantic import BaseModel

from workflow_canvas.constants import ELBOW_TURN_OFFSET
from workflow_canvas.geometry.box_edges import (
    closest_point_on_box_along_ray,
    point_from_edge_position,
)
from workflow_canvas.geometry.elbow import generate_elbow_path
from workflow_canvas.geometry.paths import (
    generate_spline_path,
    get_point_on_spline,
    point_along_polyline,
)
from workflow_canvas.models.geometry import EdgePosition, ElbowHandle, Point, PointWithEdge
from workflow_canvas.models.layout import TransitionOverride, VisualOverride
from workflow_canvas.models.workflow import Gate, PathType, Transition, WorkflowState

logger = logging.getLogger(__name__)


class TransitionGeometry(BaseModel):
    transition_id: str
    path_type: PathType
    start: PointWithEdge
    end: PointWithEdge
    path: str
    handles: list[ElbowHandle] = []
    label_point: Point
    gate_points: dict[str, Point] = {}


def _pinned(state: WorkflowState, anchor: EdgePosition | None) -> PointWithEdge | None:
    if anchor is None:
        return None
    p = point_from_edge_position(state.center, state.size, anchor)
    return PointWithEdge(x=p.x, y=p.y, edge=anchor.edge)


def anchor_points(
    from_state: WorkflowState,
    to_state: WorkflowState,
    override: TransitionOverride,
) -> tuple[PointWithEdge, PointWithEdge]:
    """Connection points on both boxes.

    Stored edge positions win. Otherwise each end ray-casts toward the
    nearest waypoint, or toward the other end's pinned anchor, or toward
    the other box's center.
    """
    start = _pinned(from_state, override.anchors.start)
    end = _pinned(to_state, override.anchors.end)
    waypoints = override.waypoints

    if start is None:
        target = waypoints[0] if waypoints else (end or to_state.center)
        start = closest_point_on_box_along_ray(from_state.center, from_state.size, target)
    if end is None:
        target = waypoints[-1] if waypoints else (start if override.anchors.start else from_state.center)
        end = closest_point_on_box_along_ray(to_state.center, to_state.size, target)
    return start, end


def gate_positions(count: int) -> list[float]:
    return [0.25 + 0.5 * (i + 1) / (count + 1) for i in range(count)]


def compute_transition_geometry(
    transition: Transition,
    from_state: WorkflowState,
    to_state: WorkflowState,
    override: TransitionOverride | None = None,
    gates: Iterable[Gate] = (),
    turn_offset: float = ELBOW_TURN_OFFSET,
) -> TransitionGeometry:
    override = override or TransitionOverride()
    start, end = anchor_points(from_state, to_state, override)
    waypoints = override.waypoints
    ordered_gates = sorted(gates, key=lambda g: g.sort_order)

    if transition.line_path_type == PathType.ELBOW:
        route = generate_elbow_path(start, end, waypoints, turn_offset)
        path, handles = route.path, route.handles

        def sample(t: float) -> Point:
            return point_along_polyline(route.segments, t)
    else:
        path = generate_spline_path(start, waypoints, end)
        handles = []

        def sample(t: float) -> Point:
            return get_point_on_spline(start, waypoints, end, t)

    if override.pinned_label_position is not None:
        label = override.pinned_label_position
    else:
        mid = sample(0.5)
        offset = override.label_offset
        label = Point(x=mid.x + offset.x, y=mid.y + offset.y) if offset else mid

    gate_points = {
        gate.id: sample(t)
        for gate, t in zip(ordered_gates, gate_positions(len(ordered_gates)))
    }

    return TransitionGeometry(
        transition_id=transition.id,
        path_type=transition.line_path_type,
        start=start,
        end=end,
        path=path,
        handles=handles,
        label_point=label,
        gate_points=gate_points,
    )


def compute_scene(
    states: Iterable[WorkflowState],
    transitions: Iterable[Transition],
    gates: Mapping[str, list[Gate]] | None = None,
    layout: VisualOverride | None = None,
    turn_offset: float = ELBOW_TURN_OFFSET,
) -> list[TransitionGeometry]:
    """Geometry for every transition whose endpoints both exist."""
    by_id = {s.id: s for s in states}
    gates = gates or {}
    result: list[TransitionGeometry] = []
    for t in transitions:
        from_state = by_id.get(t.from_state_id)
        to_state = by_id.get(t.to_state_id)
        if from_state is None or to_state is None:
            logger.warning("Skipping transition %s with a missing endpoint", t.id)
            continue
        override = layout.for_transition(t.id) if layout else None
        result.append(compute_transition_geometry(
            t, from_state, to_state, override, gates.get(t.id, []), turn_offset
        ))
    return result
