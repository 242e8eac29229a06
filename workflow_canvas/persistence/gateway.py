"""Typed boundary to the authoritative workflow database.

Gateways never raise for I/O problems; every call returns either a
``GatewaySuccess`` carrying the value or a ``GatewayError`` describing
what failed, so callers handle both outcomes explicitly.
"""

from typing import Generic, Literal, Protocol, TypeVar

from pydantic import BaseModel

from workflow_canvas.models.workflow import Gate, Transition, Workflow, WorkflowState

T = TypeVar("T")


class GatewaySuccess(BaseModel, Generic[T]):
    ok: Literal[True] = True
    value: T


class GatewayError(BaseModel):
    ok: Literal[False] = False
    operation: str
    message: str

    def __str__(self) -> str:
        return f"{self.operation} failed: {self.message}"


GatewayResult = GatewaySuccess | GatewayError


def success(value: T) -> GatewaySuccess[T]:
    return GatewaySuccess(value=value)


def failure(operation: str, message: str) -> GatewayError:
    return GatewayError(operation=operation, message=message)


class PersistenceGateway(Protocol):
    def list_workflows(self, org_id: str) -> GatewayResult: ...

    def get_workflow(self, workflow_id: str) -> GatewayResult: ...

    def get_states(self, workflow_id: str) -> GatewayResult: ...

    def get_transitions(self, workflow_id: str) -> GatewayResult: ...

    def get_gates(self, transition_ids: list[str]) -> GatewayResult: ...

    def create_workflow(self, workflow: Workflow) -> GatewayResult: ...

    def update_workflow(self, workflow: Workflow) -> GatewayResult: ...

    def delete_workflow(self, workflow_id: str) -> GatewayResult: ...

    def create_state(self, state: WorkflowState) -> GatewayResult: ...

    def update_state(self, state: WorkflowState) -> GatewayResult: ...

    def delete_state(self, state_id: str) -> GatewayResult: ...

    def create_transition(self, transition: Transition) -> GatewayResult: ...

    def update_transition(self, transition: Transition) -> GatewayResult: ...

    def delete_transition(self, transition_id: str) -> GatewayResult: ...
