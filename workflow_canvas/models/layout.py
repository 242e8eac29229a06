from typing import Literal

from pydantic import BaseModel, Field

from workflow_canvas.models.geometry import EdgePosition, Point

Endpoint = Literal["start", "end"]


class SnapSettings(BaseModel):
    snap_to_grid: bool = True
    grid_size: int = Field(default=20, ge=20, le=80)
    snap_to_alignment: bool = True
    alignment_threshold: float = Field(default=10, ge=0)


class EndpointAnchors(BaseModel):
    start: EdgePosition | None = None
    end: EdgePosition | None = None

    def get(self, endpoint: Endpoint) -> EdgePosition | None:
        return self.start if endpoint == "start" else self.end

    @property
    def is_empty(self) -> bool:
        return self.start is None and self.end is None


class TransitionOverride(BaseModel):
    """Visual tweaks for a single transition, as seen by the router."""

    waypoints: list[Point] = []
    label_offset: Point | None = None
    pinned_label_position: Point | None = None
    anchors: EndpointAnchors = EndpointAnchors()


class VisualOverride(BaseModel):
    """Client-local visual layout of one workflow. Never sent to the gateway."""

    workflow_id: str
    waypoints: dict[str, list[Point]] = {}
    label_offsets: dict[str, Point] = {}
    pinned_label_positions: dict[str, Point] = {}
    edge_positions: dict[str, EndpointAnchors] = {}
    snap_settings: SnapSettings = SnapSettings()

    def for_transition(self, transition_id: str) -> TransitionOverride:
        return TransitionOverride(
            waypoints=self.waypoints.get(transition_id, []),
            label_offset=self.label_offsets.get(transition_id),
            pinned_label_position=self.pinned_label_positions.get(transition_id),
            anchors=self.edge_positions.get(transition_id, EndpointAnchors()),
        )

    def transition_ids(self) -> set[str]:
        return (
            set(self.waypoints)
            | set(self.label_offsets)
            | set(self.pinned_label_positions)
            | set(self.edge_positions)
        )
