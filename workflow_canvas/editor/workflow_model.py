import logging
import threading
import uuid
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any

from workflow_canvas.graph.validator import validate_transition
from workflow_canvas.models.workflow import Gate, StateType, Transition, Workflow, WorkflowState
from workflow_canvas.persistence.gateway import GatewayError, GatewayResult, PersistenceGateway
from workflow_canvas.persistence.notifier import LoggingNotifier, NotificationKind, Notifier
from workflow_canvas.utils.exceptions import (
    NoActiveWorkflowError,
    UnknownEntityError,
    WorkflowValidationError,
)

logger = logging.getLogger(__name__)

DEFAULT_STATE_NAME = "New State"
DEFAULT_TRANSITION_NAME = "New Transition"


def _new_id() -> str:
    return str(uuid.uuid4())


class WorkflowModel:
    """Logical workflow entities of the selected workflow.

    Local state is updated optimistically; gateway writes run in order on a
    single background worker. A failed write is reported through the
    notifier and kept in ``failed_writes`` but never rolled back; call
    ``reload()`` to resync with the database.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        notifier: Notifier | None = None,
        background: bool = True,
    ) -> None:
        self._gateway = gateway
        self._notifier = notifier or LoggingNotifier()
        self._executor = (
            ThreadPoolExecutor(max_workers=1, thread_name_prefix="gateway-writer")
            if background else None
        )
        self._pending: list[Future] = []
        self._pending_lock = threading.Lock()
        self.failed_writes: list[GatewayError] = []
        self.last_load_ok = True

        self.workflows: list[Workflow] = []
        self.workflow: Workflow | None = None
        self._states: dict[str, WorkflowState] = {}
        self._transitions: dict[str, Transition] = {}
        self._gates: dict[str, list[Gate]] = {}

    # ── Persistence plumbing ────────────────────────────────────────

    def _submit(self, operation: str, call: Callable[..., GatewayResult], *args: Any) -> None:
        if self._executor is None:
            self._write(operation, call, *args)
            return
        future = self._executor.submit(self._write, operation, call, *args)
        with self._pending_lock:
            self._pending = [f for f in self._pending if not f.done()]
            self._pending.append(future)

    def _write(self, operation: str, call: Callable[..., GatewayResult], *args: Any) -> None:
        result = call(*args)
        if not result.ok:
            logger.error("Gateway write %s failed: %s", operation, result.message)
            self.failed_writes.append(result)
            self._notifier.notify(NotificationKind.ERROR, f"Failed to save changes ({operation})")

    def flush(self, timeout: float | None = None) -> None:
        """Block until every queued gateway write has finished."""
        with self._pending_lock:
            pending = list(self._pending)
        if pending:
            wait(pending, timeout=timeout)

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)

    def _read(self, result: GatewayResult, what: str) -> list:
        if result.ok:
            return list(result.value)
        self.last_load_ok = False
        logger.error("Failed to load %s: %s", what, result.message)
        self._notifier.notify(NotificationKind.ERROR, f"Failed to load {what}")
        return []

    # ── Workflows ───────────────────────────────────────────────────

    def load_workflows(self, org_id: str) -> list[Workflow]:
        self.workflows = self._read(self._gateway.list_workflows(org_id), "workflows")
        self.workflows.sort(key=lambda w: (not w.is_default, w.name))
        return self.workflows

    def get_workflow(self, workflow_id: str) -> Workflow:
        for w in self.workflows:
            if w.id == workflow_id:
                return w
        raise UnknownEntityError(f"Workflow '{workflow_id}' not found")

    def select_workflow(self, workflow_id: str) -> Workflow:
        workflow = self.get_workflow(workflow_id)
        self.workflow = workflow
        self.last_load_ok = True
        states = self._read(self._gateway.get_states(workflow_id), "workflow states")
        transitions = self._read(self._gateway.get_transitions(workflow_id), "workflow transitions")
        self._states = {s.id: s for s in sorted(states, key=lambda s: s.sort_order)}
        self._transitions = {t.id: t for t in transitions}
        self._gates = {}
        if self._transitions:
            gates = self._read(self._gateway.get_gates(list(self._transitions)), "transition gates")
            for gate in sorted(gates, key=lambda g: g.sort_order):
                self._gates.setdefault(gate.transition_id, []).append(gate)
        return workflow

    def open_workflow(self, workflow_id: str) -> Workflow:
        """Select a workflow by id alone, loading its organization's list first."""
        result = self._gateway.get_workflow(workflow_id)
        if not result.ok:
            logger.error("Failed to load workflow %s: %s", workflow_id, result.message)
            raise UnknownEntityError(f"Workflow '{workflow_id}' not found")
        self.load_workflows(result.value.org_id)
        if all(w.id != workflow_id for w in self.workflows):
            self.workflows.append(result.value)
        return self.select_workflow(workflow_id)

    def reload(self) -> Workflow | None:
        """Re-read the selected workflow from the gateway, discarding local drift."""
        self.flush()
        if self.workflow is None:
            return None
        org_id = self.workflow.org_id
        workflow_id = self.workflow.id
        self.load_workflows(org_id)
        try:
            return self.select_workflow(workflow_id)
        except UnknownEntityError:
            self.workflow = None
            self._states, self._transitions, self._gates = {}, {}, {}
            return None

    def create_workflow(self, org_id: str, name: str, description: str = "") -> Workflow:
        has_default = any(w.is_default for w in self.workflows if w.org_id == org_id)
        workflow = Workflow(
            id=_new_id(), org_id=org_id, name=name, description=description,
            is_default=not has_default,
        )
        self.workflows.append(workflow)
        self._submit("create_workflow", self._gateway.create_workflow, workflow)
        return workflow

    def update_workflow(self, workflow_id: str, **changes: Any) -> Workflow:
        current = self.get_workflow(workflow_id)
        updated = Workflow.model_validate({**current.model_dump(), **changes})
        self._replace_workflow(updated)
        self._submit("update_workflow", self._gateway.update_workflow, updated)
        return updated

    def set_default_workflow(self, workflow_id: str) -> Workflow:
        target = self.get_workflow(workflow_id)
        for w in list(self.workflows):
            if w.org_id != target.org_id:
                continue
            should_be_default = w.id == workflow_id
            if w.is_default != should_be_default:
                self.update_workflow(w.id, is_default=should_be_default)
        return self.get_workflow(workflow_id)

    def delete_workflow(self, workflow_id: str) -> None:
        self.get_workflow(workflow_id)
        self.workflows = [w for w in self.workflows if w.id != workflow_id]
        if self.workflow is not None and self.workflow.id == workflow_id:
            self.workflow = None
            self._states, self._transitions, self._gates = {}, {}, {}
        self._submit("delete_workflow", self._gateway.delete_workflow, workflow_id)

    def _replace_workflow(self, workflow: Workflow) -> None:
        self.workflows = [workflow if w.id == workflow.id else w for w in self.workflows]
        if self.workflow is not None and self.workflow.id == workflow.id:
            self.workflow = workflow

    def _require_workflow(self) -> Workflow:
        if self.workflow is None:
            raise NoActiveWorkflowError("No workflow selected")
        return self.workflow

    # ── Lookups ─────────────────────────────────────────────────────

    @property
    def states(self) -> list[WorkflowState]:
        return list(self._states.values())

    @property
    def transitions(self) -> list[Transition]:
        return list(self._transitions.values())

    @property
    def gates(self) -> dict[str, list[Gate]]:
        return {tid: list(g) for tid, g in self._gates.items()}

    def get_state(self, state_id: str) -> WorkflowState:
        try:
            return self._states[state_id]
        except KeyError:
            raise UnknownEntityError(f"State '{state_id}' not found") from None

    def find_state(self, state_id: str) -> WorkflowState | None:
        return self._states.get(state_id)

    def get_transition(self, transition_id: str) -> Transition:
        try:
            return self._transitions[transition_id]
        except KeyError:
            raise UnknownEntityError(f"Transition '{transition_id}' not found") from None

    def find_transition(self, transition_id: str) -> Transition | None:
        return self._transitions.get(transition_id)

    def transitions_for_state(self, state_id: str) -> list[Transition]:
        return [t for t in self._transitions.values() if t.touches(state_id)]

    def gates_for(self, transition_id: str) -> list[Gate]:
        return list(self._gates.get(transition_id, []))

    def initial_state(self) -> WorkflowState | None:
        """The start state if one exists, else the state with the lowest sort order."""
        candidates = [s for s in self._states.values() if s.state_type != StateType.END]
        if not candidates:
            return None
        return min(candidates, key=lambda s: (s.state_type != StateType.START, s.sort_order))

    def unique_state_name(self, base: str = DEFAULT_STATE_NAME) -> str:
        names = {s.name for s in self._states.values()}
        if base not in names:
            return base
        n = 2
        while f"{base} {n}" in names:
            n += 1
        return f"{base} {n}"

    # ── States ──────────────────────────────────────────────────────

    def add_state(self, **fields: Any) -> WorkflowState:
        workflow = self._require_workflow()
        count = len(self._states)
        name = fields.pop("name", None) or self.unique_state_name()
        defaults: dict[str, Any] = {
            "id": _new_id(),
            "workflow_id": workflow.id,
            "name": name,
            "label": name,
            "position_x": 250 + count * 50,
            "position_y": 200,
            "sort_order": count,
        }
        state = WorkflowState.model_validate({**defaults, **fields})
        return self.insert_state(state)

    def insert_state(self, state: WorkflowState) -> WorkflowState:
        workflow = self._require_workflow()
        if state.workflow_id != workflow.id:
            raise WorkflowValidationError(f"State {state.id} belongs to another workflow")
        if state.id in self._states:
            raise WorkflowValidationError(f"State {state.id} already exists")
        self._check_name_free(state.name, state.id)
        self._states[state.id] = state
        self._submit("create_state", self._gateway.create_state, state)
        return state

    def update_state(self, state_id: str, **changes: Any) -> tuple[dict[str, Any], dict[str, Any]]:
        """Apply *changes*; returns the (before, after) values of the changed fields."""
        current = self.get_state(state_id)
        changes.pop("id", None)
        changes.pop("workflow_id", None)
        if "name" in changes:
            self._check_name_free(changes["name"], state_id)
        updated = WorkflowState.model_validate({**current.model_dump(), **changes})
        before = {k: getattr(current, k) for k in changes}
        after = {k: getattr(updated, k) for k in changes}
        self._states[state_id] = updated
        self._submit("update_state", self._gateway.update_state, updated)
        return before, after

    def remove_state(self, state_id: str) -> tuple[WorkflowState, list[Transition]]:
        """Delete a state and every transition touching it."""
        state = self.get_state(state_id)
        removed = self.transitions_for_state(state_id)
        for t in removed:
            self.remove_transition(t.id)
        del self._states[state_id]
        self._submit("delete_state", self._gateway.delete_state, state_id)
        return state, removed

    def _check_name_free(self, name: str, state_id: str) -> None:
        for s in self._states.values():
            if s.name == name and s.id != state_id:
                raise WorkflowValidationError(f"Duplicate state name: {name}")

    # ── Transitions ─────────────────────────────────────────────────

    def add_transition(self, from_state_id: str, to_state_id: str, **fields: Any) -> Transition:
        workflow = self._require_workflow()
        transition = Transition.model_validate({
            "name": DEFAULT_TRANSITION_NAME,
            **fields,
            "id": fields.get("id") or _new_id(),
            "workflow_id": workflow.id,
            "from_state_id": from_state_id,
            "to_state_id": to_state_id,
        })
        return self.insert_transition(transition)

    def insert_transition(self, transition: Transition) -> Transition:
        workflow = self._require_workflow()
        if transition.workflow_id != workflow.id:
            raise WorkflowValidationError(f"Transition {transition.id} belongs to another workflow")
        if transition.id in self._transitions:
            raise WorkflowValidationError(f"Transition {transition.id} already exists")
        validate_transition(transition, self._states.values())
        self._transitions[transition.id] = transition
        self._submit("create_transition", self._gateway.create_transition, transition)
        return transition

    def update_transition(self, transition_id: str, **changes: Any) -> tuple[dict[str, Any], dict[str, Any]]:
        current = self.get_transition(transition_id)
        changes.pop("id", None)
        changes.pop("workflow_id", None)
        updated = Transition.model_validate({**current.model_dump(), **changes})
        if "from_state_id" in changes or "to_state_id" in changes:
            validate_transition(updated, self._states.values())
        before = {k: getattr(current, k) for k in changes}
        after = {k: getattr(updated, k) for k in changes}
        self._transitions[transition_id] = updated
        self._submit("update_transition", self._gateway.update_transition, updated)
        return before, after

    def remove_transition(self, transition_id: str) -> Transition:
        transition = self.get_transition(transition_id)
        del self._transitions[transition_id]
        self._gates.pop(transition_id, None)
        self._submit("delete_transition", self._gateway.delete_transition, transition_id)
        return transition
