import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse

from workflow_canvas.editor.factory import build_editor
from workflow_canvas.editor.session import WorkflowEditor
from workflow_canvas.persistence.notifier import NotificationKind, RecordingNotifier
from workflow_canvas.transfer.export_import import export_filename, export_workflow, import_workflow
from workflow_canvas.utils.exceptions import UnknownEntityError, WorkflowImportError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def _open_editor(request: Request, workflow_id: str) -> WorkflowEditor:
    editor = build_editor(
        request.app.state.settings,
        gateway=request.app.state.gateway,
        notifier=RecordingNotifier(),
        background=False,
    )
    try:
        editor.open(workflow_id)
    except UnknownEntityError:
        raise HTTPException(404, f"Workflow '{workflow_id}' not found")
    if not editor.model.last_load_ok:
        raise HTTPException(502, f"Failed to load workflow '{workflow_id}'")
    return editor


# --- Workflows ---

@router.get("/workflows")
def list_workflows(org_id: str, request: Request):
    result = request.app.state.gateway.list_workflows(org_id)
    if not result.ok:
        raise HTTPException(502, str(result))
    return [w.model_dump(mode="json") for w in result.value]


@router.get("/workflows/{workflow_id}")
def get_workflow(workflow_id: str, request: Request):
    editor = _open_editor(request, workflow_id)
    model = editor.model
    return {
        "workflow": model.workflow.model_dump(mode="json"),
        "states": [s.model_dump(mode="json") for s in model.states],
        "transitions": [t.model_dump(mode="json") for t in model.transitions],
        "gates": [g.model_dump(mode="json") for gates in model.gates.values() for g in gates],
    }


@router.get("/workflows/{workflow_id}/scene")
def get_scene(workflow_id: str, request: Request):
    editor = _open_editor(request, workflow_id)
    return [g.model_dump(mode="json") for g in editor.scene()]


# --- Transfer ---

@router.get("/workflows/{workflow_id}/export")
def export(workflow_id: str, request: Request):
    editor = _open_editor(request, workflow_id)
    model = editor.model
    document = export_workflow(model.workflow, model.states, model.transitions)
    filename = export_filename(model.workflow)
    return JSONResponse(
        document.to_json(),
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/workflows/{workflow_id}/import")
def import_document(workflow_id: str, document: dict[str, Any], request: Request):
    editor = _open_editor(request, workflow_id)
    try:
        states, transitions = import_workflow(editor, document)
    except WorkflowImportError as e:
        return JSONResponse({"problems": e.problems}, status_code=400)

    failed = editor.model.failed_writes
    if failed:
        logger.error("Import into %s left %d unsaved writes", workflow_id, len(failed))
        raise HTTPException(502, [str(f) for f in failed])
    return {
        "states": len(states),
        "transitions": len(transitions),
        "messages": editor.notifier.of_kind(NotificationKind.SUCCESS),
    }
