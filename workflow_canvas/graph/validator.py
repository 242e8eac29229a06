from collections.abc import Iterable

from workflow_canvas.models.workflow import Transition, WorkflowState
from workflow_canvas.utils.exceptions import WorkflowValidationError


def validate(
    workflow_id: str,
    states: Iterable[WorkflowState],
    transitions: Iterable[Transition],
) -> None:
    states = list(states)
    transitions = list(transitions)
    _check_states_belong(workflow_id, states)
    _check_unique_state_names(states)
    for t in transitions:
        validate_transition(t, states)


def validate_transition(transition: Transition, states: Iterable[WorkflowState]) -> None:
    by_id = {s.id: s for s in states}
    for end_id in (transition.from_state_id, transition.to_state_id):
        state = by_id.get(end_id)
        if state is None:
            raise WorkflowValidationError(
                f"Transition {transition.id} references unknown state: {end_id}"
            )
        if state.workflow_id != transition.workflow_id:
            raise WorkflowValidationError(
                f"Transition {transition.id} references state {end_id} of another workflow"
            )
    if transition.from_state_id == transition.to_state_id:
        raise WorkflowValidationError(
            f"Transition {transition.id} starts and ends at the same state"
        )


def _check_states_belong(workflow_id: str, states: list[WorkflowState]) -> None:
    for s in states:
        if s.workflow_id != workflow_id:
            raise WorkflowValidationError(
                f"State {s.id} belongs to workflow {s.workflow_id}, not {workflow_id}"
            )


def _check_unique_state_names(states: list[WorkflowState]) -> None:
    seen: set[str] = set()
    for s in states:
        if s.name in seen:
            raise WorkflowValidationError(f"Duplicate state name: {s.name}")
        seen.add(s.name)
