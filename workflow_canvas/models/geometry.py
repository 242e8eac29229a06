from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class EdgeSide(str, Enum):
    LEFT = "left"
    RIGHT = "right"
    TOP = "top"
    BOTTOM = "bottom"

    @property
    def is_horizontal(self) -> bool:
        """True when a connector leaving this edge travels horizontally."""
        return self in (EdgeSide.LEFT, EdgeSide.RIGHT)


class Point(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float
    y: float


class PointWithEdge(Point):
    edge: EdgeSide | None = None


class Size(BaseModel):
    model_config = ConfigDict(frozen=True)

    width: float
    height: float


class EdgePosition(BaseModel):
    """A spot on a box boundary: which edge, and how far along it (0..1)."""

    model_config = ConfigDict(frozen=True)

    edge: EdgeSide
    fraction: float = Field(ge=0.0, le=1.0)


class BoxEdgeHit(BaseModel):
    model_config = ConfigDict(frozen=True)

    point: Point
    edge: EdgeSide
    fraction: float = Field(ge=0.0, le=1.0)

    @property
    def edge_position(self) -> EdgePosition:
        return EdgePosition(edge=self.edge, fraction=self.fraction)

    def with_edge(self) -> PointWithEdge:
        return PointWithEdge(x=self.point.x, y=self.point.y, edge=self.edge)


class ElbowHandle(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    is_vertical: bool
    segment_index: int
    waypoint_index: int

    @property
    def drag_axis(self) -> Literal["x", "y"]:
        # A vertical segment slides sideways, a horizontal one up and down
        return "x" if self.is_vertical else "y"


class ElbowRoute(BaseModel):
    path: str
    segments: list[Point]
    handles: list[ElbowHandle] = []
    adjustable: Literal["vertical", "horizontal", "both"] = "both"
