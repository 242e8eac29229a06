import json
import logging
import os
import threading
from pathlib import Path
from typing import Callable, TypeVar

from pydantic import BaseModel, ValidationError

from workflow_canvas.models.workflow import Gate, Transition, Workflow, WorkflowState
from workflow_canvas.persistence.gateway import GatewayResult, failure, success

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class JsonStore:
    """Directory-backed workflow database implementing ``PersistenceGateway``.

    One JSON file per entity under ``workflows/``, ``states/``,
    ``transitions/`` and ``gates/``.
    """

    def __init__(self, base_dir: str | Path | None = None):
        if base_dir is None:
            base_dir = os.environ.get("WFC_DATA_DIR", "data")
        self._base = Path(base_dir)
        self._workflows_dir = self._base / "workflows"
        self._states_dir = self._base / "states"
        self._transitions_dir = self._base / "transitions"
        self._gates_dir = self._base / "gates"
        for d in (self._workflows_dir, self._states_dir, self._transitions_dir, self._gates_dir):
            d.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _atomic_write(self, path: Path, data: dict) -> None:
        tmp = path.with_suffix(".tmp")
        tmp.write_text(json.dumps(data, indent=2, default=str))
        os.replace(tmp, path)

    def _save(self, directory: Path, entity_id: str, entity: BaseModel) -> None:
        with self._lock:
            self._atomic_write(directory / f"{entity_id}.json", entity.model_dump(mode="json"))

    def _load_all(self, directory: Path, model: type[M]) -> list[M]:
        results = []
        for p in sorted(directory.glob("*.json")):
            results.append(model.model_validate(json.loads(p.read_text())))
        return results

    def _remove(self, directory: Path, entity_id: str) -> bool:
        path = directory / f"{entity_id}.json"
        with self._lock:
            if not path.exists():
                return False
            path.unlink()
            return True

    def _guard(self, operation: str, fn: Callable[[], object]) -> GatewayResult:
        try:
            return success(fn())
        except (OSError, ValueError, ValidationError, KeyError) as e:
            logger.error("JsonStore %s failed: %s", operation, e)
            return failure(operation, str(e))

    # Workflows

    def list_workflows(self, org_id: str) -> GatewayResult:
        def run():
            workflows = [
                w for w in self._load_all(self._workflows_dir, Workflow)
                if w.org_id == org_id and w.is_active
            ]
            return sorted(workflows, key=lambda w: (not w.is_default, w.name))

        return self._guard("list_workflows", run)

    def get_workflow(self, workflow_id: str) -> GatewayResult:
        def run():
            path = self._workflows_dir / f"{workflow_id}.json"
            if not path.exists():
                raise KeyError(f"Workflow '{workflow_id}' not found")
            return Workflow.model_validate(json.loads(path.read_text()))

        return self._guard("get_workflow", run)

    def create_workflow(self, workflow: Workflow) -> GatewayResult:
        def run():
            self._save(self._workflows_dir, workflow.id, workflow)
            return workflow

        return self._guard("create_workflow", run)

    def update_workflow(self, workflow: Workflow) -> GatewayResult:
        def run():
            if not (self._workflows_dir / f"{workflow.id}.json").exists():
                raise KeyError(f"Workflow '{workflow.id}' not found")
            self._save(self._workflows_dir, workflow.id, workflow)
            return workflow

        return self._guard("update_workflow", run)

    def delete_workflow(self, workflow_id: str) -> GatewayResult:
        def run():
            for t in self._load_all(self._transitions_dir, Transition):
                if t.workflow_id == workflow_id:
                    self._delete_transition_files(t.id)
            for s in self._load_all(self._states_dir, WorkflowState):
                if s.workflow_id == workflow_id:
                    self._remove(self._states_dir, s.id)
            if not self._remove(self._workflows_dir, workflow_id):
                raise KeyError(f"Workflow '{workflow_id}' not found")

        return self._guard("delete_workflow", run)

    # States

    def get_states(self, workflow_id: str) -> GatewayResult:
        def run():
            states = [
                s for s in self._load_all(self._states_dir, WorkflowState)
                if s.workflow_id == workflow_id
            ]
            return sorted(states, key=lambda s: s.sort_order)

        return self._guard("get_states", run)

    def create_state(self, state: WorkflowState) -> GatewayResult:
        def run():
            self._save(self._states_dir, state.id, state)
            return state

        return self._guard("create_state", run)

    def update_state(self, state: WorkflowState) -> GatewayResult:
        def run():
            if not (self._states_dir / f"{state.id}.json").exists():
                raise KeyError(f"State '{state.id}' not found")
            self._save(self._states_dir, state.id, state)
            return state

        return self._guard("update_state", run)

    def delete_state(self, state_id: str) -> GatewayResult:
        def run():
            for t in self._load_all(self._transitions_dir, Transition):
                if t.touches(state_id):
                    self._delete_transition_files(t.id)
            if not self._remove(self._states_dir, state_id):
                raise KeyError(f"State '{state_id}' not found")

        return self._guard("delete_state", run)

    # Transitions

    def get_transitions(self, workflow_id: str) -> GatewayResult:
        def run():
            return [
                t for t in self._load_all(self._transitions_dir, Transition)
                if t.workflow_id == workflow_id
            ]

        return self._guard("get_transitions", run)

    def create_transition(self, transition: Transition) -> GatewayResult:
        def run():
            for end_id in (transition.from_state_id, transition.to_state_id):
                if not (self._states_dir / f"{end_id}.json").exists():
                    raise KeyError(f"State '{end_id}' not found")
            self._save(self._transitions_dir, transition.id, transition)
            return transition

        return self._guard("create_transition", run)

    def update_transition(self, transition: Transition) -> GatewayResult:
        def run():
            if not (self._transitions_dir / f"{transition.id}.json").exists():
                raise KeyError(f"Transition '{transition.id}' not found")
            self._save(self._transitions_dir, transition.id, transition)
            return transition

        return self._guard("update_transition", run)

    def delete_transition(self, transition_id: str) -> GatewayResult:
        def run():
            if not self._delete_transition_files(transition_id):
                raise KeyError(f"Transition '{transition_id}' not found")

        return self._guard("delete_transition", run)

    def _delete_transition_files(self, transition_id: str) -> bool:
        for g in self._load_all(self._gates_dir, Gate):
            if g.transition_id == transition_id:
                self._remove(self._gates_dir, g.id)
        return self._remove(self._transitions_dir, transition_id)

    # Gates

    def get_gates(self, transition_ids: list[str]) -> GatewayResult:
        def run():
            wanted = set(transition_ids)
            gates = [
                g for g in self._load_all(self._gates_dir, Gate)
                if g.transition_id in wanted
            ]
            return sorted(gates, key=lambda g: g.sort_order)

        return self._guard("get_gates", run)

    def save_gate(self, gate: Gate) -> GatewayResult:
        def run():
            self._save(self._gates_dir, gate.id, gate)
            return gate

        return self._guard("save_gate", run)
