"""Orthogonal (elbow) connector routing."""

from collections.abc import Sequence

from workflow_canvas.constants import ELBOW_TURN_OFFSET
from workflow_canvas.geometry.box_edges import perpendicular_direction
from workflow_canvas.geometry.paths import fmt
from workflow_canvas.models.geometry import ElbowHandle, ElbowRoute, Point, PointWithEdge


def _turn_point(point: PointWithEdge, turn_offset: float) -> Point:
    if point.edge is None:
        return Point(x=point.x, y=point.y)
    d = perpendicular_direction(point.edge)
    return Point(x=point.x + d.x * turn_offset, y=point.y + d.y * turn_offset)


def _is_horizontal(point: PointWithEdge) -> bool:
    return point.edge is not None and point.edge.is_horizontal


def _dedupe(points: list[Point]) -> list[Point]:
    cleaned: list[Point] = []
    for p in points:
        if not cleaned or p.x != cleaned[-1].x or p.y != cleaned[-1].y:
            cleaned.append(p)
    return cleaned


def _middle_points(
    exit_pt: Point,
    entry_pt: Point,
    exit_horizontal: bool,
    entry_horizontal: bool,
    waypoints: Sequence[Point],
) -> list[Point]:
    pts: list[Point] = []

    if exit_horizontal and entry_horizontal:
        # Vertical segments in the middle, x positions taken from waypoints
        if not waypoints:
            mid_x = (exit_pt.x + entry_pt.x) / 2
            return [Point(x=mid_x, y=exit_pt.y), Point(x=mid_x, y=entry_pt.y)]
        current_y = exit_pt.y
        for i, wp in enumerate(waypoints):
            pts.append(Point(x=wp.x, y=current_y))
            current_y = entry_pt.y if i % 2 == 0 else exit_pt.y
            pts.append(Point(x=wp.x, y=current_y))
        if pts[-1].y != entry_pt.y:
            pts.append(Point(x=waypoints[-1].x, y=entry_pt.y))
        return pts

    if not exit_horizontal and not entry_horizontal:
        if not waypoints:
            mid_y = (exit_pt.y + entry_pt.y) / 2
            return [Point(x=exit_pt.x, y=mid_y), Point(x=entry_pt.x, y=mid_y)]
        current_x = exit_pt.x
        for i, wp in enumerate(waypoints):
            pts.append(Point(x=current_x, y=wp.y))
            current_x = entry_pt.x if i % 2 == 0 else exit_pt.x
            pts.append(Point(x=current_x, y=wp.y))
        if pts[-1].x != entry_pt.x:
            pts.append(Point(x=entry_pt.x, y=waypoints[-1].y))
        return pts

    if exit_horizontal:
        if not waypoints:
            return [Point(x=entry_pt.x, y=exit_pt.y)]
        wp = waypoints[0]
        pts = [Point(x=wp.x, y=exit_pt.y), Point(x=wp.x, y=wp.y)]
        if wp.x != entry_pt.x:
            pts.append(Point(x=entry_pt.x, y=wp.y))
        return pts

    if not waypoints:
        return [Point(x=exit_pt.x, y=entry_pt.y)]
    wp = waypoints[0]
    pts = [Point(x=exit_pt.x, y=wp.y), Point(x=wp.x, y=wp.y)]
    if wp.y != entry_pt.y:
        pts.append(Point(x=wp.x, y=entry_pt.y))
    return pts


def generate_elbow_path(
    start: PointWithEdge,
    end: PointWithEdge,
    waypoints: Sequence[Point] = (),
    turn_offset: float = ELBOW_TURN_OFFSET,
) -> ElbowRoute:
    """Route an orthogonal connector and expose its draggable segment handles.

    Both ends first travel *turn_offset* away from their box edge. The
    middle alternates horizontal and vertical runs; waypoints pin the
    position of the adjustable runs. Which runs are adjustable depends on
    the exit/entry orientation: two horizontal ends leave only vertical
    runs adjustable, two vertical ends only horizontal ones, mixed ends
    both.
    """
    exit_pt = _turn_point(start, turn_offset)
    entry_pt = _turn_point(end, turn_offset)
    exit_horizontal = _is_horizontal(start)
    entry_horizontal = _is_horizontal(end)

    raw = [
        Point(x=start.x, y=start.y),
        exit_pt,
        *_middle_points(exit_pt, entry_pt, exit_horizontal, entry_horizontal, waypoints),
        entry_pt,
        Point(x=end.x, y=end.y),
    ]
    segments = _dedupe(raw)
    path = " ".join(
        f"{'M' if i == 0 else 'L'} {fmt(p.x)} {fmt(p.y)}" for i, p in enumerate(segments)
    )

    if exit_horizontal and entry_horizontal:
        adjustable = "vertical"
    elif not exit_horizontal and not entry_horizontal:
        adjustable = "horizontal"
    else:
        adjustable = "both"

    handles: list[ElbowHandle] = []
    for i in range(1, len(segments) - 2):
        p1, p2 = segments[i], segments[i + 1]
        is_vertical = abs(p1.x - p2.x) < 1
        is_horizontal = abs(p1.y - p2.y) < 1
        if (
            adjustable == "both"
            or (adjustable == "vertical" and is_vertical)
            or (adjustable == "horizontal" and is_horizontal)
        ):
            handles.append(ElbowHandle(
                x=(p1.x + p2.x) / 2,
                y=(p1.y + p2.y) / 2,
                is_vertical=is_vertical,
                segment_index=i,
                waypoint_index=len(handles),
            ))

    return ElbowRoute(path=path, segments=segments, handles=handles, adjustable=adjustable)
