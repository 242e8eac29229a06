from workflow_canvas.config.settings import Settings
from workflow_canvas.editor.layout_store import VisualLayoutStore
from workflow_canvas.editor.session import WorkflowEditor
from workflow_canvas.editor.workflow_model import WorkflowModel
from workflow_canvas.persistence.gateway import PersistenceGateway
from workflow_canvas.persistence.notifier import Notifier
from workflow_canvas.storage.json_store import JsonStore
from workflow_canvas.storage.local_store import FileLocalStore, LocalStore
from workflow_canvas.storage.rest_gateway import RestGateway


def build_gateway(settings: Settings) -> PersistenceGateway:
    if settings.gateway.backend == "rest":
        return RestGateway(
            settings.gateway.base_url,
            api_key=settings.gateway.api_key,
            timeout=settings.gateway.timeout,
        )
    return JsonStore(settings.storage.data_dir)


def build_editor(
    settings: Settings,
    gateway: PersistenceGateway | None = None,
    local_store: LocalStore | None = None,
    notifier: Notifier | None = None,
    background: bool = True,
    can_edit: bool = True,
) -> WorkflowEditor:
    """Wire a complete editing session from settings."""
    gateway = gateway or build_gateway(settings)
    local_store = local_store or FileLocalStore(settings.storage.layout_dir)
    model = WorkflowModel(gateway, notifier=notifier, background=background)
    layout = VisualLayoutStore(local_store, default_snap=settings.canvas.snap)
    return WorkflowEditor(
        model,
        layout,
        notifier=notifier,
        settings=settings.canvas,
        can_edit=can_edit,
    )
