"""Undoable structural edits and the clipboard, as discriminated unions."""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field

from workflow_canvas.models.geometry import Point
from workflow_canvas.models.workflow import Transition, WorkflowState


class StateBox(BaseModel):
    """Position and dimensions of a state, captured around a resize."""

    position_x: float
    position_y: float
    width: float
    height: float


class StateCreated(BaseModel):
    kind: Literal["state_create"] = "state_create"
    state: WorkflowState
    transitions: list[Transition] = []


class StateDeleted(BaseModel):
    kind: Literal["state_delete"] = "state_delete"
    state: WorkflowState
    transitions: list[Transition] = []  # removed along with the state


class StateMoved(BaseModel):
    kind: Literal["state_move"] = "state_move"
    state_id: str
    old: Point
    new: Point


class StateResized(BaseModel):
    kind: Literal["state_resize"] = "state_resize"
    state_id: str
    old: StateBox
    new: StateBox


class StateUpdated(BaseModel):
    kind: Literal["state_update"] = "state_update"
    state_id: str
    before: dict[str, Any]
    after: dict[str, Any]


class TransitionCreated(BaseModel):
    kind: Literal["transition_create"] = "transition_create"
    transition: Transition


class TransitionDeleted(BaseModel):
    kind: Literal["transition_delete"] = "transition_delete"
    transition: Transition


class TransitionRerouted(BaseModel):
    kind: Literal["transition_reroute"] = "transition_reroute"
    transition_id: str
    old_from: str
    old_to: str
    new_from: str
    new_to: str


class TransitionUpdated(BaseModel):
    kind: Literal["transition_update"] = "transition_update"
    transition_id: str
    before: dict[str, Any]
    after: dict[str, Any]


class EntitiesImported(BaseModel):
    kind: Literal["import"] = "import"
    states: list[WorkflowState]
    transitions: list[Transition] = []


class EntitiesRemoved(BaseModel):
    kind: Literal["import_undo"] = "import_undo"
    states: list[WorkflowState]
    transitions: list[Transition] = []


HistoryEntry = Annotated[
    StateCreated
    | StateDeleted
    | StateMoved
    | StateResized
    | StateUpdated
    | TransitionCreated
    | TransitionDeleted
    | TransitionRerouted
    | TransitionUpdated
    | EntitiesImported
    | EntitiesRemoved,
    Field(discriminator="kind"),
]


def invert(entry: HistoryEntry) -> HistoryEntry:
    """Return the entry that undoes *entry*."""
    if isinstance(entry, StateCreated):
        return StateDeleted(state=entry.state, transitions=entry.transitions)
    if isinstance(entry, StateDeleted):
        return StateCreated(state=entry.state, transitions=entry.transitions)
    if isinstance(entry, StateMoved):
        return StateMoved(state_id=entry.state_id, old=entry.new, new=entry.old)
    if isinstance(entry, StateResized):
        return StateResized(state_id=entry.state_id, old=entry.new, new=entry.old)
    if isinstance(entry, StateUpdated):
        return StateUpdated(state_id=entry.state_id, before=entry.after, after=entry.before)
    if isinstance(entry, TransitionCreated):
        return TransitionDeleted(transition=entry.transition)
    if isinstance(entry, TransitionDeleted):
        return TransitionCreated(transition=entry.transition)
    if isinstance(entry, TransitionRerouted):
        return TransitionRerouted(
            transition_id=entry.transition_id,
            old_from=entry.new_from,
            old_to=entry.new_to,
            new_from=entry.old_from,
            new_to=entry.old_to,
        )
    if isinstance(entry, TransitionUpdated):
        return TransitionUpdated(
            transition_id=entry.transition_id, before=entry.after, after=entry.before
        )
    if isinstance(entry, EntitiesImported):
        return EntitiesRemoved(states=entry.states, transitions=entry.transitions)
    if isinstance(entry, EntitiesRemoved):
        return EntitiesImported(states=entry.states, transitions=entry.transitions)
    raise TypeError(f"Unknown history entry: {type(entry).__name__}")


class StateClipboard(BaseModel):
    kind: Literal["state"] = "state"
    data: WorkflowState


class TransitionClipboard(BaseModel):
    kind: Literal["transition"] = "transition"
    data: Transition


ClipboardItem = Annotated[
    StateClipboard | TransitionClipboard,
    Field(discriminator="kind"),
]
