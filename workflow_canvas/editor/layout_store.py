import json
import logging
from collections.abc import Iterable

from pydantic import ValidationError

from workflow_canvas.constants import LAYOUT_KEY_PREFIX
from workflow_canvas.models.geometry import EdgePosition, Point
from workflow_canvas.models.layout import Endpoint, EndpointAnchors, SnapSettings, VisualOverride
from workflow_canvas.storage.local_store import LocalStore
from workflow_canvas.utils.exceptions import NoActiveWorkflowError

logger = logging.getLogger(__name__)


def storage_key(workflow_id: str) -> str:
    return f"{LAYOUT_KEY_PREFIX}{workflow_id}"


class VisualLayoutStore:
    """Client-local visual overrides for the active workflow.

    Every mutation is written straight back to the local store; nothing
    here touches the persistence gateway or the undo history.
    """

    def __init__(self, storage: LocalStore, default_snap: SnapSettings | None = None) -> None:
        self._storage = storage
        self._default_snap = default_snap or SnapSettings()
        self._current: VisualOverride | None = None

    @property
    def current(self) -> VisualOverride:
        if self._current is None:
            raise NoActiveWorkflowError("No workflow is active in the layout store")
        return self._current

    @property
    def is_active(self) -> bool:
        return self._current is not None

    @property
    def snap_settings(self) -> SnapSettings:
        return self._current.snap_settings if self._current else self._default_snap

    def activate(self, workflow_id: str) -> VisualOverride:
        self._current = self._load(workflow_id)
        return self._current

    def deactivate(self) -> None:
        self._current = None

    def discard(self, workflow_id: str) -> None:
        """Drop the stored layout of a deleted workflow."""
        if self._current is not None and self._current.workflow_id == workflow_id:
            self.deactivate()
        self._storage.delete(storage_key(workflow_id))

    def _load(self, workflow_id: str) -> VisualOverride:
        raw = self._storage.get(storage_key(workflow_id))
        empty = VisualOverride(workflow_id=workflow_id, snap_settings=self._default_snap)
        if raw is None:
            return empty
        try:
            data = json.loads(raw)
            data["workflow_id"] = workflow_id
            return VisualOverride.model_validate(data)
        except (ValueError, ValidationError, TypeError) as e:
            logger.warning("Failed to load visual layout for workflow %s: %s", workflow_id, e)
            return empty

    def _save(self) -> None:
        layout = self.current
        self._storage.set(storage_key(layout.workflow_id), layout.model_dump_json())

    # Waypoints

    def waypoints(self, transition_id: str) -> list[Point]:
        return list(self.current.waypoints.get(transition_id, []))

    def set_waypoints(self, transition_id: str, points: Iterable[Point]) -> None:
        points = list(points)
        if points:
            self.current.waypoints[transition_id] = points
        else:
            self.current.waypoints.pop(transition_id, None)
        self._save()

    def insert_waypoint(self, transition_id: str, index: int, point: Point) -> None:
        points = self.waypoints(transition_id)
        points.insert(index, point)
        self.set_waypoints(transition_id, points)

    def move_waypoint(self, transition_id: str, index: int, point: Point) -> None:
        points = self.waypoints(transition_id)
        if not 0 <= index < len(points):
            raise IndexError(f"Transition {transition_id} has no waypoint {index}")
        points[index] = point
        self.set_waypoints(transition_id, points)

    def remove_waypoint(self, transition_id: str, index: int) -> None:
        points = self.waypoints(transition_id)
        if not 0 <= index < len(points):
            raise IndexError(f"Transition {transition_id} has no waypoint {index}")
        del points[index]
        self.set_waypoints(transition_id, points)

    def clear_waypoints(self, transition_id: str) -> None:
        self.set_waypoints(transition_id, [])

    # Labels

    def label_offset(self, transition_id: str) -> Point:
        return self.current.label_offsets.get(transition_id, Point(x=0, y=0))

    def set_label_offset(self, transition_id: str, offset: Point) -> None:
        if offset.x == 0 and offset.y == 0:
            self.current.label_offsets.pop(transition_id, None)
        else:
            self.current.label_offsets[transition_id] = offset
        self._save()

    def pinned_label_position(self, transition_id: str) -> Point | None:
        return self.current.pinned_label_positions.get(transition_id)

    def pin_label(self, transition_id: str, position: Point) -> None:
        self.current.pinned_label_positions[transition_id] = position
        self._save()

    def unpin_label(self, transition_id: str) -> None:
        self.current.pinned_label_positions.pop(transition_id, None)
        self._save()

    # Edge anchors

    def edge_position(self, transition_id: str, endpoint: Endpoint) -> EdgePosition | None:
        anchors = self.current.edge_positions.get(transition_id)
        return anchors.get(endpoint) if anchors else None

    def set_edge_position(self, transition_id: str, endpoint: Endpoint, position: EdgePosition) -> None:
        anchors = self.current.edge_positions.get(transition_id, EndpointAnchors())
        self.current.edge_positions[transition_id] = anchors.model_copy(update={endpoint: position})
        self._save()

    def clear_edge_position(self, transition_id: str, endpoint: Endpoint) -> None:
        anchors = self.current.edge_positions.get(transition_id)
        if anchors is None:
            return
        anchors = anchors.model_copy(update={endpoint: None})
        if anchors.is_empty:
            del self.current.edge_positions[transition_id]
        else:
            self.current.edge_positions[transition_id] = anchors
        self._save()

    # Snap settings

    def update_snap_settings(self, **changes) -> SnapSettings:
        merged = {**self.current.snap_settings.model_dump(), **changes}
        self.current.snap_settings = SnapSettings.model_validate(merged)
        self._save()
        return self.current.snap_settings

    # Housekeeping

    def prune(self, transition_ids: Iterable[str]) -> set[str]:
        """Drop overrides of transitions not in *transition_ids*; returns the dropped ids."""
        keep = set(transition_ids)
        stale = self.current.transition_ids() - keep
        if not stale:
            return stale
        layout = self.current
        for tid in stale:
            layout.waypoints.pop(tid, None)
            layout.label_offsets.pop(tid, None)
            layout.pinned_label_positions.pop(tid, None)
            layout.edge_positions.pop(tid, None)
        self._save()
        logger.info("Pruned visual overrides of %d removed transitions", len(stale))
        return stale
