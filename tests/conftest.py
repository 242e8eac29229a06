import pytest

from workflow_canvas.editor.layout_store import VisualLayoutStore
from workflow_canvas.editor.session import WorkflowEditor
from workflow_canvas.editor.workflow_model import WorkflowModel
from workflow_canvas.models.workflow import Workflow
from workflow_canvas.persistence.notifier import RecordingNotifier
from workflow_canvas.storage.json_store import JsonStore
from workflow_canvas.storage.local_store import MemoryLocalStore


@pytest.fixture
def store(tmp_path):
    return JsonStore(tmp_path / "db")


@pytest.fixture
def workflow(store):
    wf = Workflow(id="wf1", org_id="org1", name="Release Process", is_default=True)
    store.create_workflow(wf)
    return wf


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def local_store():
    return MemoryLocalStore()


@pytest.fixture
def editor(store, workflow, local_store, notifier):
    model = WorkflowModel(store, notifier=notifier, background=False)
    ed = WorkflowEditor(model, VisualLayoutStore(local_store), notifier=notifier)
    ed.load("org1")
    return ed


@pytest.fixture
def two_states(editor):
    """States A at (0, 0) and B at (300, 0), both 160x60."""
    a = editor.add_state(name="A", position_x=0, position_y=0)
    b = editor.add_state(name="B", position_x=300, position_y=0)
    editor.history.clear()
    return a, b
