"""Workflow export to, and import from, the portable JSON document."""

import logging
import re
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, NoReturn

from pydantic import ValidationError

from workflow_canvas.models.transfer import (
    ExportDocument,
    ExportedState,
    ExportedTransition,
    ExportedWorkflow,
)
from workflow_canvas.models.workflow import Transition, Workflow, WorkflowState
from workflow_canvas.persistence.notifier import NotificationKind
from workflow_canvas.utils.exceptions import NoActiveWorkflowError, WorkflowImportError

if TYPE_CHECKING:
    from workflow_canvas.editor.session import WorkflowEditor

logger = logging.getLogger(__name__)


def export_workflow(
    workflow: Workflow,
    states: list[WorkflowState],
    transitions: list[Transition],
) -> ExportDocument:
    names = {s.id: s.name for s in states}
    exported_transitions = []
    for t in transitions:
        if t.from_state_id not in names or t.to_state_id not in names:
            logger.warning("Not exporting transition %s with a missing endpoint", t.id)
            continue
        exported_transitions.append(ExportedTransition(
            from_state=names[t.from_state_id],
            to_state=names[t.to_state_id],
            name=t.name,
            description=t.description,
            line_style=t.line_style,
            line_path_type=t.line_path_type,
            line_arrow_head=t.line_arrow_head,
            line_thickness=t.line_thickness,
            line_color=t.line_color,
        ))

    return ExportDocument(
        exported_at=datetime.now(timezone.utc).isoformat(),
        workflow=ExportedWorkflow(
            name=workflow.name,
            description=workflow.description,
            canvas_config=workflow.canvas_config,
        ),
        states=[
            ExportedState.model_validate(s.model_dump(include=set(ExportedState.model_fields)))
            for s in sorted(states, key=lambda s: s.sort_order)
        ],
        transitions=exported_transitions,
    )


def export_filename(workflow: Workflow) -> str:
    slug = re.sub(r"\s+", "-", workflow.name.lower())
    return f"workflow-{slug}.json"


def check_document(document: ExportDocument, existing_names: set[str]) -> list[str]:
    """Every reason the document cannot be imported; empty when it can."""
    problems: list[str] = []
    seen: set[str] = set()
    for state in document.states:
        if not state.name.strip():
            problems.append("State name must not be empty")
            continue
        if state.name in seen:
            problems.append(f"Duplicate state name '{state.name}'")
        elif state.name in existing_names:
            problems.append(f"State '{state.name}' already exists in the workflow")
        seen.add(state.name)

    for i, t in enumerate(document.transitions):
        label = t.name or f"#{i + 1}"
        if t.from_state not in seen:
            problems.append(f"Transition {label}: unknown from_state '{t.from_state}'")
        if t.to_state not in seen:
            problems.append(f"Transition {label}: unknown to_state '{t.to_state}'")
        if t.from_state == t.to_state:
            problems.append(f"Transition {label}: from_state and to_state are the same")
        if not 1 <= t.line_thickness <= 6:
            problems.append(f"Transition {label}: line_thickness must be between 1 and 6")
    return problems


def import_workflow(
    editor: "WorkflowEditor",
    document: ExportDocument | dict[str, Any],
) -> tuple[list[WorkflowState], list[Transition]]:
    """Add the document's states and transitions to the editor's active workflow.

    The document is checked as a whole before anything is created; if any
    problem is found nothing is added and ``WorkflowImportError`` is raised.
    """
    if isinstance(document, dict):
        try:
            document = ExportDocument.model_validate(document)
        except ValidationError as e:
            problems = [
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            ]
            _reject(editor, problems)

    existing = {s.name for s in editor.model.states}
    problems = check_document(document, existing)
    if problems:
        _reject(editor, problems)

    workflow = editor.model.workflow
    if workflow is None:
        raise NoActiveWorkflowError("No workflow selected")
    settings = editor.settings
    ids: dict[str, str] = {}
    created_states = []
    for s in document.states:
        state = WorkflowState(
            **s.model_dump(),
            id=str(uuid.uuid4()),
            workflow_id=workflow.id,
            width=settings.default_state_width,
            height=settings.default_state_height,
        )
        ids[s.name] = state.id
        created_states.append(state)

    created_transitions = [
        Transition(
            **t.model_dump(exclude={"from_state", "to_state"}),
            id=str(uuid.uuid4()),
            workflow_id=workflow.id,
            from_state_id=ids[t.from_state],
            to_state_id=ids[t.to_state],
        )
        for t in document.transitions
    ]
    editor.add_entities(created_states, created_transitions)

    logger.info(
        "Imported %d states and %d transitions",
        len(created_states), len(created_transitions),
    )
    editor.notifier.notify(
        NotificationKind.SUCCESS,
        f"Imported {len(created_states)} states and {len(created_transitions)} transitions",
    )
    return created_states, created_transitions


def _reject(editor: "WorkflowEditor", problems: list[str]) -> NoReturn:
    logger.warning("Import rejected: %s", "; ".join(problems))
    editor.notifier.notify(NotificationKind.ERROR, f"Import failed: {problems[0]}")
    raise WorkflowImportError(problems)
