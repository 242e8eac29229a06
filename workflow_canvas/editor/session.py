"""The editing session: model, visual layout, history and canvas controller."""

import logging
import uuid
from typing import Any

from workflow_canvas.config.settings import CanvasSettings
from workflow_canvas.constants import PASTE_OFFSET
from workflow_canvas.editor.history_manager import HistoryManager
from workflow_canvas.editor.interaction import CanvasController
from workflow_canvas.editor.layout_store import VisualLayoutStore
from workflow_canvas.editor.workflow_model import WorkflowModel
from workflow_canvas.geometry.router import TransitionGeometry, compute_scene
from workflow_canvas.models.geometry import Point
from workflow_canvas.models.history import (
    ClipboardItem,
    EntitiesImported,
    EntitiesRemoved,
    HistoryEntry,
    StateBox,
    StateClipboard,
    StateCreated,
    StateDeleted,
    StateMoved,
    StateResized,
    StateUpdated,
    TransitionClipboard,
    TransitionCreated,
    TransitionDeleted,
    TransitionRerouted,
    TransitionUpdated,
)
from workflow_canvas.models.workflow import Transition, Workflow, WorkflowState
from workflow_canvas.persistence.notifier import LoggingNotifier, NotificationKind, Notifier
from workflow_canvas.utils.exceptions import (
    EditorPermissionError,
    NoActiveWorkflowError,
    WorkflowCanvasError,
)

logger = logging.getLogger(__name__)


def state_box(state: WorkflowState) -> StateBox:
    return StateBox(
        position_x=state.position_x,
        position_y=state.position_y,
        width=state.width,
        height=state.height,
    )


class WorkflowEditor:
    """Entry point for every structural edit of the active workflow.

    Commands mutate the model and record one history entry each. Visual
    tweaks go to ``layout`` directly and are never part of undo.
    """

    def __init__(
        self,
        model: WorkflowModel,
        layout: VisualLayoutStore,
        history: HistoryManager | None = None,
        notifier: Notifier | None = None,
        settings: CanvasSettings | None = None,
        can_edit: bool = True,
    ) -> None:
        self.model = model
        self.layout = layout
        self.settings = settings or CanvasSettings()
        self.history = history or HistoryManager(self.settings.max_history)
        self.notifier = notifier or LoggingNotifier()
        self.can_edit = can_edit
        self.clipboard: ClipboardItem | None = None
        # (kind, id) of an entity that was just created and should be opened for editing
        self.pending_edit: tuple[str, str] | None = None
        self.controller = CanvasController(self, self.settings)

    # ── Workflow selection ──────────────────────────────────────────

    def load(self, org_id: str) -> Workflow | None:
        """Load an organization's workflows and select the default one."""
        workflows = self.model.load_workflows(org_id)
        if not workflows:
            return None
        default = next((w for w in workflows if w.is_default), workflows[0])
        return self.select_workflow(default.id)

    def select_workflow(self, workflow_id: str) -> Workflow:
        workflow = self.model.select_workflow(workflow_id)
        self.layout.activate(workflow_id)
        if self.model.last_load_ok:
            self.layout.prune(t.id for t in self.model.transitions)
        self.history.clear()
        self.pending_edit = None
        self.controller.reset(workflow.canvas_config)
        if self.model.states:
            self.controller.center_on(self.model.states)
        return workflow

    def open(self, workflow_id: str) -> Workflow:
        """Select a workflow without knowing its organization up front."""
        self.model.open_workflow(workflow_id)
        return self.select_workflow(workflow_id)

    def delete_workflow(self, workflow_id: str) -> None:
        self._require_edit()
        active = self.model.workflow is not None and self.model.workflow.id == workflow_id
        self.model.delete_workflow(workflow_id)
        self.layout.discard(workflow_id)
        if active:
            self.history.clear()
            self.pending_edit = None
            self.controller.reset()

    def save_viewport(self) -> Workflow:
        workflow = self._active_workflow()
        cfg = self.controller.canvas_config()
        return self.model.update_workflow(workflow.id, canvas_config=cfg)

    def _active_workflow(self) -> Workflow:
        if self.model.workflow is None:
            raise NoActiveWorkflowError("No workflow selected")
        return self.model.workflow

    def _require_edit(self) -> None:
        if not self.can_edit:
            raise EditorPermissionError("This session is read-only")

    # ── State commands ──────────────────────────────────────────────

    def add_state(self, **fields: Any) -> WorkflowState:
        self._require_edit()
        fields.setdefault("width", self.settings.default_state_width)
        fields.setdefault("height", self.settings.default_state_height)
        state = self.model.add_state(**fields)
        self.history.push(StateCreated(state=state))
        self.pending_edit = ("state", state.id)
        return state

    def delete_state(self, state_id: str) -> tuple[WorkflowState, list[Transition]]:
        self._require_edit()
        state, removed = self.model.remove_state(state_id)
        self.history.push(StateDeleted(state=state, transitions=removed))
        self.controller.forget(state_id)
        return state, removed

    def move_state(self, state_id: str, new: Point, old: Point | None = None) -> WorkflowState:
        self._require_edit()
        state = self.model.get_state(state_id)
        old = old or state.center
        if state.position_x != new.x or state.position_y != new.y:
            self.model.update_state(state_id, position_x=new.x, position_y=new.y)
        if old != new:
            self.history.push(StateMoved(state_id=state_id, old=old, new=new))
        return self.model.get_state(state_id)

    def resize_state(self, state_id: str, new: StateBox, old: StateBox | None = None) -> WorkflowState:
        self._require_edit()
        state = self.model.get_state(state_id)
        old = old or state_box(state)
        new = new.model_copy(update={
            "width": max(self.settings.min_state_width, new.width),
            "height": max(self.settings.min_state_height, new.height),
        })
        if new != state_box(state):
            self.model.update_state(state_id, **new.model_dump())
        if new != old:
            self.history.push(StateResized(state_id=state_id, old=old, new=new))
        return self.model.get_state(state_id)

    def update_state(self, state_id: str, **changes: Any) -> WorkflowState:
        self._require_edit()
        before, after = self.model.update_state(state_id, **changes)
        if before != after:
            self.history.push(StateUpdated(state_id=state_id, before=before, after=after))
        return self.model.get_state(state_id)

    # ── Transition commands ─────────────────────────────────────────

    def add_transition(self, from_state_id: str, to_state_id: str, **fields: Any) -> Transition:
        self._require_edit()
        transition = self.model.add_transition(from_state_id, to_state_id, **fields)
        self.history.push(TransitionCreated(transition=transition))
        self.pending_edit = ("transition", transition.id)
        return transition

    def delete_transition(self, transition_id: str) -> Transition:
        self._require_edit()
        transition = self.model.remove_transition(transition_id)
        self.history.push(TransitionDeleted(transition=transition))
        self.controller.forget(transition_id)
        return transition

    def reroute_transition(
        self,
        transition_id: str,
        from_state_id: str | None = None,
        to_state_id: str | None = None,
    ) -> Transition:
        self._require_edit()
        current = self.model.get_transition(transition_id)
        new_from = from_state_id or current.from_state_id
        new_to = to_state_id or current.to_state_id
        if (new_from, new_to) == (current.from_state_id, current.to_state_id):
            return current
        self.model.update_transition(transition_id, from_state_id=new_from, to_state_id=new_to)
        self.history.push(TransitionRerouted(
            transition_id=transition_id,
            old_from=current.from_state_id,
            old_to=current.to_state_id,
            new_from=new_from,
            new_to=new_to,
        ))
        return self.model.get_transition(transition_id)

    def update_transition(self, transition_id: str, **changes: Any) -> Transition:
        self._require_edit()
        before, after = self.model.update_transition(transition_id, **changes)
        if before != after:
            self.history.push(TransitionUpdated(transition_id=transition_id, before=before, after=after))
        return self.model.get_transition(transition_id)

    def add_entities(
        self,
        states: list[WorkflowState],
        transitions: list[Transition],
    ) -> None:
        """Insert ready-built states and transitions as one undoable step."""
        self._require_edit()
        for state in states:
            self.model.insert_state(state)
        for transition in transitions:
            self.model.insert_transition(transition)
        self.history.push(EntitiesImported(states=states, transitions=transitions))
        self.pending_edit = None

    # ── Undo / redo ─────────────────────────────────────────────────

    def undo(self) -> HistoryEntry | None:
        if not self.can_edit:
            return None
        try:
            entry = self.history.undo(self._apply)
        except WorkflowCanvasError as e:
            logger.error("Undo failed: %s", e)
            self.notifier.notify(NotificationKind.ERROR, "Undo failed")
            return None
        if entry is not None:
            self.notifier.notify(NotificationKind.SUCCESS, f"Undo: {entry.kind.replace('_', ' ')}")
        return entry

    def redo(self) -> HistoryEntry | None:
        if not self.can_edit:
            return None
        try:
            entry = self.history.redo(self._apply)
        except WorkflowCanvasError as e:
            logger.error("Redo failed: %s", e)
            self.notifier.notify(NotificationKind.ERROR, "Redo failed")
            return None
        if entry is not None:
            self.notifier.notify(NotificationKind.SUCCESS, f"Redo: {entry.kind.replace('_', ' ')}")
        return entry

    def _apply(self, entry: HistoryEntry) -> None:
        model = self.model
        if isinstance(entry, StateCreated):
            model.insert_state(entry.state)
            for t in entry.transitions:
                model.insert_transition(t)
        elif isinstance(entry, StateDeleted):
            model.remove_state(entry.state.id)
            self.controller.forget(entry.state.id)
        elif isinstance(entry, StateMoved):
            model.update_state(entry.state_id, position_x=entry.new.x, position_y=entry.new.y)
        elif isinstance(entry, StateResized):
            model.update_state(entry.state_id, **entry.new.model_dump())
        elif isinstance(entry, StateUpdated):
            model.update_state(entry.state_id, **entry.after)
        elif isinstance(entry, TransitionCreated):
            model.insert_transition(entry.transition)
        elif isinstance(entry, TransitionDeleted):
            model.remove_transition(entry.transition.id)
            self.controller.forget(entry.transition.id)
        elif isinstance(entry, TransitionRerouted):
            model.update_transition(
                entry.transition_id, from_state_id=entry.new_from, to_state_id=entry.new_to
            )
        elif isinstance(entry, TransitionUpdated):
            model.update_transition(entry.transition_id, **entry.after)
        elif isinstance(entry, EntitiesImported):
            for state in entry.states:
                model.insert_state(state)
            for transition in entry.transitions:
                model.insert_transition(transition)
        elif isinstance(entry, EntitiesRemoved):
            for transition in entry.transitions:
                model.remove_transition(transition.id)
                self.controller.forget(transition.id)
            for state in entry.states:
                model.remove_state(state.id)
                self.controller.forget(state.id)
        else:
            raise TypeError(f"Unknown history entry: {type(entry).__name__}")

    # ── Clipboard ───────────────────────────────────────────────────

    def copy_state(self, state_id: str) -> ClipboardItem:
        self.clipboard = StateClipboard(data=self.model.get_state(state_id))
        return self.clipboard

    def copy_transition(self, transition_id: str) -> ClipboardItem:
        self.clipboard = TransitionClipboard(data=self.model.get_transition(transition_id))
        return self.clipboard

    def copy_selection(self) -> ClipboardItem | None:
        if self.controller.selected_state_id:
            return self.copy_state(self.controller.selected_state_id)
        if self.controller.selected_transition_id:
            return self.copy_transition(self.controller.selected_transition_id)
        return None

    def paste(self) -> WorkflowState | Transition | None:
        self._require_edit()
        item = self.clipboard
        if item is None:
            return None
        workflow = self._active_workflow()

        if isinstance(item, StateClipboard):
            source = item.data
            state = source.model_copy(update={
                "id": str(uuid.uuid4()),
                "workflow_id": workflow.id,
                "name": self.model.unique_state_name(f"{source.name} (copy)"),
                "label": f"{source.label} (copy)" if source.label else source.label,
                "position_x": source.position_x + PASTE_OFFSET,
                "position_y": source.position_y + PASTE_OFFSET,
                "sort_order": len(self.model.states),
            })
            self.model.insert_state(state)
            self.history.push(StateCreated(state=state))
            return state

        source = item.data
        fields = source.model_dump(exclude={"id", "workflow_id", "from_state_id", "to_state_id"})
        return self.add_transition(source.from_state_id, source.to_state_id, **fields)

    # ── Rendering ───────────────────────────────────────────────────

    def scene(self) -> list[TransitionGeometry]:
        """Connector geometry for the committed model and layout."""
        layout = self.layout.current if self.layout.is_active else None
        return compute_scene(
            self.model.states,
            self.model.transitions,
            self.model.gates,
            layout,
            self.settings.elbow_turn_offset,
        )
