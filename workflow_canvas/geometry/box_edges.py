"""Where connectors touch a state box.

All functions are pure and take plain geometry values, so they can be used
without a workflow model. They never raise on degenerate input.
"""

import math

from workflow_canvas.models.geometry import (
    BoxEdgeHit,
    EdgePosition,
    EdgeSide,
    Point,
    PointWithEdge,
    Size,
)

_DIRECTIONS = {
    EdgeSide.LEFT: Point(x=-1, y=0),
    EdgeSide.RIGHT: Point(x=1, y=0),
    EdgeSide.TOP: Point(x=0, y=-1),
    EdgeSide.BOTTOM: Point(x=0, y=1),
}


def _bounds(center: Point, size: Size) -> tuple[float, float, float, float]:
    hw = size.width / 2
    hh = size.height / 2
    return center.x - hw, center.x + hw, center.y - hh, center.y + hh


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _fraction(value: float, low: float, high: float) -> float:
    span = high - low
    if span <= 0:
        return 0.0
    return _clamp((value - low) / span, 0.0, 1.0)


def perpendicular_direction(edge: EdgeSide) -> Point:
    """Unit vector pointing out of the box through *edge*."""
    return _DIRECTIONS[EdgeSide(edge)]


def point_from_edge_position(center: Point, size: Size, edge_position: EdgePosition) -> Point:
    """Absolute coordinates of a stored edge anchor for the box's current geometry."""
    left, right, top, bottom = _bounds(center, size)
    f = edge_position.fraction
    if edge_position.edge == EdgeSide.RIGHT:
        return Point(x=right, y=top + f * (bottom - top))
    if edge_position.edge == EdgeSide.LEFT:
        return Point(x=left, y=top + f * (bottom - top))
    if edge_position.edge == EdgeSide.BOTTOM:
        return Point(x=left + f * (right - left), y=bottom)
    return Point(x=left + f * (right - left), y=top)


def nearest_point_on_box_edge(center: Point, size: Size, point: Point) -> BoxEdgeHit:
    """Closest boundary point of the box to *point*, with its edge fraction.

    Each edge is tried with the free coordinate clamped to the edge span;
    the closest candidate wins (ties go right, left, bottom, top). The
    returned point is rebuilt from the fraction so that
    ``point_from_edge_position`` reproduces it exactly.
    """
    left, right, top, bottom = _bounds(center, size)
    fy = _fraction(point.y, top, bottom)
    fx = _fraction(point.x, left, right)

    best: BoxEdgeHit | None = None
    best_dist = math.inf
    for edge, fraction in (
        (EdgeSide.RIGHT, fy),
        (EdgeSide.LEFT, fy),
        (EdgeSide.BOTTOM, fx),
        (EdgeSide.TOP, fx),
    ):
        edge_position = EdgePosition(edge=edge, fraction=fraction)
        candidate = point_from_edge_position(center, size, edge_position)
        dist = math.hypot(candidate.x - point.x, candidate.y - point.y)
        if dist < best_dist:
            best_dist = dist
            best = BoxEdgeHit(point=candidate, edge=edge, fraction=fraction)
    assert best is not None
    return best


def closest_point_on_box_along_ray(center: Point, size: Size, target: Point) -> PointWithEdge:
    """Default anchor: where the ray from the box center to *target* leaves the box."""
    left, right, top, bottom = _bounds(center, size)
    dx = target.x - center.x
    dy = target.y - center.y

    if dx == 0 and dy == 0:
        return PointWithEdge(x=right, y=center.y, edge=EdgeSide.RIGHT)

    candidates: list[tuple[float, PointWithEdge]] = []

    if dx > 0:
        y = center.y + (right - center.x) / dx * dy
        if top <= y <= bottom:
            candidates.append((math.hypot(right - target.x, y - target.y),
                               PointWithEdge(x=right, y=y, edge=EdgeSide.RIGHT)))
    if dx < 0:
        y = center.y + (left - center.x) / dx * dy
        if top <= y <= bottom:
            candidates.append((math.hypot(left - target.x, y - target.y),
                               PointWithEdge(x=left, y=y, edge=EdgeSide.LEFT)))
    if dy > 0:
        x = center.x + (bottom - center.y) / dy * dx
        if left <= x <= right:
            candidates.append((math.hypot(x - target.x, bottom - target.y),
                               PointWithEdge(x=x, y=bottom, edge=EdgeSide.BOTTOM)))
    if dy < 0:
        x = center.x + (top - center.y) / dy * dx
        if left <= x <= right:
            candidates.append((math.hypot(x - target.x, top - target.y),
                               PointWithEdge(x=x, y=top, edge=EdgeSide.TOP)))

    if candidates:
        return min(candidates, key=lambda c: c[0])[1]

    # Numerically degenerate: pick an edge by angle
    angle = math.atan2(dy, dx)
    if abs(angle) <= math.pi / 4:
        return PointWithEdge(x=right, y=center.y, edge=EdgeSide.RIGHT)
    if abs(angle) >= 3 * math.pi / 4:
        return PointWithEdge(x=left, y=center.y, edge=EdgeSide.LEFT)
    if angle > 0:
        return PointWithEdge(x=center.x, y=bottom, edge=EdgeSide.BOTTOM)
    return PointWithEdge(x=center.x, y=top, edge=EdgeSide.TOP)


def distance_to_box_edge(center: Point, size: Size, point: Point) -> float:
    hit = nearest_point_on_box_edge(center, size, point)
    return math.hypot(hit.point.x - point.x, hit.point.y - point.y)
