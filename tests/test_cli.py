import json
import sys

import pytest

from workflow_canvas.cli import main
from workflow_canvas.models.workflow import Transition, Workflow, WorkflowState
from workflow_canvas.storage.json_store import JsonStore


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    store = JsonStore(tmp_path / "db")
    store.create_workflow(Workflow(id="wf1", org_id="org1", name="Release Process", is_default=True))
    store.create_state(WorkflowState(id="s1", workflow_id="wf1", name="Draft"))
    store.create_state(WorkflowState(id="s2", workflow_id="wf1", name="Review", position_x=300))
    store.create_transition(
        Transition(id="t1", workflow_id="wf1", from_state_id="s1", to_state_id="s2")
    )
    monkeypatch.setenv("WFC_CONFIG_FILE", str(tmp_path / "nonexistent.yaml"))
    monkeypatch.setenv("WFC_DATA_DIR", str(tmp_path / "db"))
    monkeypatch.setenv("WFC_LAYOUT_DIR", str(tmp_path / "layout"))
    return tmp_path


def run(monkeypatch, *args):
    monkeypatch.setattr(sys, "argv", ["wfc", *args])
    main()


def test_list(data_dir, monkeypatch, capsys):
    run(monkeypatch, "list", "--org-id", "org1")
    assert "* wf1  Release Process" in capsys.readouterr().out


def test_check(data_dir, monkeypatch, capsys):
    run(monkeypatch, "check", "wf1")
    assert capsys.readouterr().out.strip() == "OK: 2 states, 1 transitions"


def test_export_then_import(data_dir, monkeypatch, capsys):
    output = data_dir / "out.json"
    run(monkeypatch, "export", "wf1", "-o", str(output))
    document = json.loads(output.read_text())
    assert [s["name"] for s in document["states"]] == ["Draft", "Review"]

    JsonStore(data_dir / "db").create_workflow(Workflow(id="wf2", org_id="org1", name="Copy"))
    run(monkeypatch, "import", str(output), "--workflow-id", "wf2")
    assert "Imported 2 states and 1 transitions" in capsys.readouterr().out


def test_rejected_import_exits(data_dir, monkeypatch, capsys):
    output = data_dir / "out.json"
    run(monkeypatch, "export", "wf1", "-o", str(output))
    with pytest.raises(SystemExit):
        run(monkeypatch, "import", str(output), "--workflow-id", "wf1")
    assert "already exists" in capsys.readouterr().err


def test_unknown_workflow_exits(data_dir, monkeypatch):
    with pytest.raises(SystemExit):
        run(monkeypatch, "render", "missing")


def test_no_command_prints_help(data_dir, monkeypatch):
    with pytest.raises(SystemExit):
        run(monkeypatch)
