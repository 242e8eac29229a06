"""``PersistenceGateway`` over a PostgREST-style HTTP API."""

import logging
from typing import Any

import requests
from pydantic import BaseModel, ValidationError

from workflow_canvas.models.workflow import Gate, Transition, Workflow, WorkflowState
from workflow_canvas.persistence.gateway import GatewayResult, failure, success

logger = logging.getLogger(__name__)

WORKFLOWS_TABLE = "workflow_templates"
STATES_TABLE = "workflow_states"
TRANSITIONS_TABLE = "workflow_transitions"
GATES_TABLE = "workflow_gates"


class RestGateway:
    def __init__(self, base_url: str, api_key: str = "", timeout: float = 30):
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout

    # ── HTTP plumbing ───────────────────────────────────────────────

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Prefer": "return=representation"}
        if self._api_key:
            headers["apikey"] = self._api_key
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _request(
        self,
        operation: str,
        method: str,
        table: str,
        params: dict[str, str] | None = None,
        body: Any = None,
    ) -> tuple[Any, str | None]:
        """Returns (json_or_none, error_message_or_none)."""
        url = f"{self._base_url}/{table}"
        kwargs: dict[str, Any] = {"headers": self._headers(), "timeout": self._timeout}
        if params:
            kwargs["params"] = params
        if body is not None:
            kwargs["json"] = body
        try:
            resp = requests.request(method, url, **kwargs)
        except requests.RequestException as e:
            logger.error("%s: HTTP request failed: %s", operation, e)
            return None, f"HTTP request failed: {e}"

        if resp.status_code >= 400:
            logger.error("%s: HTTP %s: %s", operation, resp.status_code, resp.text)
            return None, f"HTTP {resp.status_code}: {resp.text}"

        if not resp.content:
            return None, None
        try:
            return resp.json(), None
        except ValueError:
            return None, "Response was not JSON"

    def _fetch_list(
        self, operation: str, table: str, model: type[BaseModel], params: dict[str, str]
    ) -> GatewayResult:
        data, error = self._request(operation, "GET", table, params=params)
        if error:
            return failure(operation, error)
        try:
            return success([model.model_validate(row) for row in data or []])
        except ValidationError as e:
            return failure(operation, f"Malformed row: {e}")

    def _write(
        self, operation: str, method: str, table: str, entity: BaseModel, params: dict[str, str] | None = None
    ) -> GatewayResult:
        data, error = self._request(
            operation, method, table, params=params, body=entity.model_dump(mode="json")
        )
        if error:
            return failure(operation, error)
        # Prefer the server's representation when it returns one
        if isinstance(data, list) and data:
            try:
                return success(type(entity).model_validate(data[0]))
            except ValidationError as e:
                return failure(operation, f"Malformed row: {e}")
        return success(entity)

    def _delete(self, operation: str, table: str, entity_id: str) -> GatewayResult:
        _, error = self._request(operation, "DELETE", table, params={"id": f"eq.{entity_id}"})
        if error:
            return failure(operation, error)
        return success(None)

    # ── Reads ───────────────────────────────────────────────────────

    def list_workflows(self, org_id: str) -> GatewayResult:
        return self._fetch_list("list_workflows", WORKFLOWS_TABLE, Workflow, {
            "org_id": f"eq.{org_id}",
            "is_active": "eq.true",
            "order": "is_default.desc,name.asc",
        })

    def get_workflow(self, workflow_id: str) -> GatewayResult:
        result = self._fetch_list("get_workflow", WORKFLOWS_TABLE, Workflow, {
            "id": f"eq.{workflow_id}",
        })
        if not result.ok:
            return result
        if not result.value:
            return failure("get_workflow", f"Workflow '{workflow_id}' not found")
        return success(result.value[0])

    def get_states(self, workflow_id: str) -> GatewayResult:
        return self._fetch_list("get_states", STATES_TABLE, WorkflowState, {
            "workflow_id": f"eq.{workflow_id}",
            "order": "sort_order.asc",
        })

    def get_transitions(self, workflow_id: str) -> GatewayResult:
        return self._fetch_list("get_transitions", TRANSITIONS_TABLE, Transition, {
            "workflow_id": f"eq.{workflow_id}",
        })

    def get_gates(self, transition_ids: list[str]) -> GatewayResult:
        if not transition_ids:
            return success([])
        return self._fetch_list("get_gates", GATES_TABLE, Gate, {
            "transition_id": f"in.({','.join(transition_ids)})",
            "order": "sort_order.asc",
        })

    # ── Writes ──────────────────────────────────────────────────────

    def create_workflow(self, workflow: Workflow) -> GatewayResult:
        return self._write("create_workflow", "POST", WORKFLOWS_TABLE, workflow)

    def update_workflow(self, workflow: Workflow) -> GatewayResult:
        return self._write("update_workflow", "PATCH", WORKFLOWS_TABLE, workflow,
                           params={"id": f"eq.{workflow.id}"})

    def delete_workflow(self, workflow_id: str) -> GatewayResult:
        return self._delete("delete_workflow", WORKFLOWS_TABLE, workflow_id)

    def create_state(self, state: WorkflowState) -> GatewayResult:
        return self._write("create_state", "POST", STATES_TABLE, state)

    def update_state(self, state: WorkflowState) -> GatewayResult:
        return self._write("update_state", "PATCH", STATES_TABLE, state,
                           params={"id": f"eq.{state.id}"})

    def delete_state(self, state_id: str) -> GatewayResult:
        return self._delete("delete_state", STATES_TABLE, state_id)

    def create_transition(self, transition: Transition) -> GatewayResult:
        return self._write("create_transition", "POST", TRANSITIONS_TABLE, transition)

    def update_transition(self, transition: Transition) -> GatewayResult:
        return self._write("update_transition", "PATCH", TRANSITIONS_TABLE, transition,
                           params={"id": f"eq.{transition.id}"})

    def delete_transition(self, transition_id: str) -> GatewayResult:
        return self._delete("delete_transition", TRANSITIONS_TABLE, transition_id)
