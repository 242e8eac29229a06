"""Grid and alignment snapping for dragged state boxes."""

from collections.abc import Iterable

from pydantic import BaseModel

from workflow_canvas.models.geometry import Point, Size
from workflow_canvas.models.layout import SnapSettings


class SnapBox(BaseModel):
    """A sibling box to align against: center plus size."""

    id: str
    center: Point
    size: Size


class AlignmentResult(BaseModel):
    point: Point
    vertical_guide: float | None = None
    horizontal_guide: float | None = None


def snap_to_grid(point: Point, settings: SnapSettings) -> Point:
    if not settings.snap_to_grid:
        return point
    g = settings.grid_size
    return Point(x=round(point.x / g) * g, y=round(point.y / g) * g)


def _axis_lines(center: float, extent: float) -> tuple[float, float, float]:
    half = extent / 2
    return center - half, center, center + half


def _best_axis_snap(
    own: tuple[float, float, float],
    others: Iterable[tuple[float, float, float]],
    threshold: float,
) -> tuple[float, float] | None:
    """Smallest (delta, guide) aligning any of *own* lines to a sibling line."""
    best: tuple[float, float] | None = None
    for lines in others:
        for theirs in lines:
            for mine in own:
                delta = theirs - mine
                if abs(delta) <= threshold and (best is None or abs(delta) < abs(best[0])):
                    best = (delta, theirs)
    return best


def check_alignment(
    moving_id: str,
    center: Point,
    size: Size,
    siblings: Iterable[SnapBox],
    settings: SnapSettings,
) -> AlignmentResult:
    """Align the moving box's edges or center with any sibling's edges or center.

    Each axis snaps independently to the closest line within
    ``alignment_threshold``; the sibling line is returned as a guide.
    """
    if not settings.snap_to_alignment:
        return AlignmentResult(point=center)

    others = [s for s in siblings if s.id != moving_id]
    threshold = settings.alignment_threshold

    x_snap = _best_axis_snap(
        _axis_lines(center.x, size.width),
        (_axis_lines(s.center.x, s.size.width) for s in others),
        threshold,
    )
    y_snap = _best_axis_snap(
        _axis_lines(center.y, size.height),
        (_axis_lines(s.center.y, s.size.height) for s in others),
        threshold,
    )

    x, y = center.x, center.y
    vertical_guide = horizontal_guide = None
    if x_snap is not None:
        x += x_snap[0]
        vertical_guide = x_snap[1]
    if y_snap is not None:
        y += y_snap[0]
        horizontal_guide = y_snap[1]
    return AlignmentResult(
        point=Point(x=x, y=y),
        vertical_guide=vertical_guide,
        horizontal_guide=horizontal_guide,
    )


def apply_snapping(
    moving_id: str,
    raw: Point,
    size: Size,
    siblings: Iterable[SnapBox],
    settings: SnapSettings,
) -> AlignmentResult:
    """Grid first, then alignment; alignment wins where both apply."""
    gridded = snap_to_grid(raw, settings)
    return check_alignment(moving_id, gridded, size, siblings, settings)
