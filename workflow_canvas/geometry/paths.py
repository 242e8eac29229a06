"""Curved connector paths through optional waypoints."""

import math
from collections.abc import Sequence

from workflow_canvas.constants import (
    CURVE_CONTROL_MAX,
    CURVE_CONTROL_MIN,
    CURVE_CONTROL_RATIO,
    STRAIGHT_LENGTH,
    WAYPOINT_CONTROL_MAX,
    WAYPOINT_CONTROL_MIN,
)
from workflow_canvas.geometry.box_edges import perpendicular_direction
from workflow_canvas.models.geometry import Point, PointWithEdge


def fmt(value: float) -> str:
    """Compact SVG number: ``80`` rather than ``80.0``, at most 3 decimals."""
    text = f"{value:.3f}".rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


def _direction(point: Point) -> Point | None:
    edge = getattr(point, "edge", None)
    return perpendicular_direction(edge) if edge is not None else None


def _offset(point: Point, direction: Point, distance: float) -> Point:
    return Point(x=point.x + direction.x * distance, y=point.y + direction.y * distance)


def stub_point(point: Point, length: float = STRAIGHT_LENGTH) -> Point | None:
    """End of the perpendicular stub leaving *point*'s edge, if it has one."""
    direction = _direction(point)
    if direction is None:
        return None
    return _offset(point, direction, length)


def _unit(dx: float, dy: float) -> tuple[float, float]:
    length = math.hypot(dx, dy) or 1.0
    return dx / length, dy / length


def generate_spline_path(
    start: PointWithEdge,
    waypoints: Sequence[Point],
    end: PointWithEdge,
) -> str:
    """SVG path from *start* to *end* leaving and entering boxes perpendicularly."""
    start_dir = _direction(start)
    end_dir = _direction(end)
    start_stub = stub_point(start)
    end_stub = stub_point(end)
    curve_start = start_stub or start
    curve_end = end_stub or end

    parts = [f"M {fmt(start.x)} {fmt(start.y)}"]
    if start_stub is not None:
        parts.append(f"L {fmt(start_stub.x)} {fmt(start_stub.y)}")

    if not waypoints:
        if start_dir is not None and end_dir is not None:
            dist = math.hypot(curve_end.x - curve_start.x, curve_end.y - curve_start.y)
            control = max(CURVE_CONTROL_MIN, min(CURVE_CONTROL_MAX, dist * CURVE_CONTROL_RATIO))
            cp1 = _offset(curve_start, start_dir, control)
            cp2 = _offset(curve_end, end_dir, control)
            parts.append(
                f"C {fmt(cp1.x)} {fmt(cp1.y)} {fmt(cp2.x)} {fmt(cp2.y)} "
                f"{fmt(curve_end.x)} {fmt(curve_end.y)}"
            )
        else:
            parts.append(f"L {fmt(curve_end.x)} {fmt(curve_end.y)}")
    else:
        points = [curve_start, *waypoints, curve_end]
        last = len(points) - 2
        for i in range(len(points) - 1):
            p1, p2 = points[i], points[i + 1]
            seg = math.hypot(p2.x - p1.x, p2.y - p1.y)
            control = max(WAYPOINT_CONTROL_MIN, min(WAYPOINT_CONTROL_MAX, seg * CURVE_CONTROL_RATIO))

            if i == 0 and start_dir is not None:
                cp1 = _offset(p1, start_dir, control)
            else:
                prev = points[i - 1] if i > 0 else p1
                ux, uy = _unit(p2.x - prev.x, p2.y - prev.y)
                cp1 = Point(x=p1.x + ux * control, y=p1.y + uy * control)

            if i == last and end_dir is not None:
                cp2 = _offset(p2, end_dir, control)
            else:
                nxt = points[i + 2] if i < last else p2
                ux, uy = _unit(nxt.x - p1.x, nxt.y - p1.y)
                cp2 = Point(x=p2.x - ux * control, y=p2.y - uy * control)

            parts.append(
                f"C {fmt(cp1.x)} {fmt(cp1.y)} {fmt(cp2.x)} {fmt(cp2.y)} {fmt(p2.x)} {fmt(p2.y)}"
            )

    if end_stub is not None:
        parts.append(f"L {fmt(end.x)} {fmt(end.y)}")
    return " ".join(parts)


def point_along_polyline(points: Sequence[Point], t: float) -> Point:
    """Point at normalized length *t* along a polyline (straight segments)."""
    first, last = points[0], points[-1]
    if t <= 0 or len(points) == 1:
        return Point(x=first.x, y=first.y)
    if t >= 1:
        return Point(x=last.x, y=last.y)

    lengths = [
        math.hypot(b.x - a.x, b.y - a.y) for a, b in zip(points, points[1:])
    ]
    total = sum(lengths)
    if total == 0:
        return Point(x=first.x, y=first.y)

    target = t * total
    walked = 0.0
    for i, length in enumerate(lengths):
        if length > 0 and walked + length >= target:
            progress = (target - walked) / length
            a, b = points[i], points[i + 1]
            return Point(x=a.x + progress * (b.x - a.x), y=a.y + progress * (b.y - a.y))
        walked += length
    return Point(x=last.x, y=last.y)


def get_point_on_spline(
    start: PointWithEdge,
    waypoints: Sequence[Point],
    end: PointWithEdge,
    t: float = 0.5,
) -> Point:
    """Approximate point at *t* along a spline connector, stubs included.

    Used to place labels and gates; the curve itself is not sampled, only
    the points it passes through.
    """
    points: list[Point] = [start]
    start_stub = stub_point(start)
    if start_stub is not None:
        points.append(start_stub)
    points.extend(waypoints)
    end_stub = stub_point(end)
    if end_stub is not None:
        points.append(end_stub)
    points.append(end)
    return point_along_polyline(points, t)


def find_insertion_index(
    waypoints: Sequence[Point],
    start: Point,
    end: Point,
    click: Point,
) -> int:
    """Index at which a waypoint clicked at *click* should be inserted."""
    points = [start, *waypoints, end]
    best_segment = 0
    best_dist = math.inf

    for i in range(len(points) - 1):
        p1, p2 = points[i], points[i + 1]
        dx = p2.x - p1.x
        dy = p2.y - p1.y
        length_sq = dx * dx + dy * dy
        t = 0.0
        if length_sq > 0:
            t = max(0.0, min(1.0, ((click.x - p1.x) * dx + (click.y - p1.y) * dy) / length_sq))
        dist = math.hypot(click.x - (p1.x + t * dx), click.y - (p1.y + t * dy))
        if dist < best_dist:
            best_dist = dist
            best_segment = i

    return best_segment
