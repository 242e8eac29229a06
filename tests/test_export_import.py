import pytest

from workflow_canvas.models.transfer import ExportDocument
from workflow_canvas.models.workflow import LineStyle, PathType, Transition, Workflow, WorkflowState
from workflow_canvas.persistence.notifier import NotificationKind
from workflow_canvas.transfer.export_import import (
    check_document,
    export_filename,
    export_workflow,
    import_workflow,
)
from workflow_canvas.utils.exceptions import WorkflowImportError


def release_document():
    return {
        "version": "1.0",
        "exportedAt": "2026-01-01T00:00:00+00:00",
        "workflow": {"name": "Release"},
        "states": [
            {"name": "Draft", "position_x": 0, "position_y": 0},
            {"name": "Review", "position_x": 300, "position_y": 0, "color": "#F59E0B"},
            {"name": "Released", "position_x": 600, "position_y": 0},
        ],
        "transitions": [
            {"from_state": "Draft", "to_state": "Review", "name": "Submit"},
            {
                "from_state": "Review",
                "to_state": "Released",
                "name": "Approve",
                "line_style": "dashed",
                "line_path_type": "elbow",
            },
        ],
    }


def test_export_references_states_by_name(editor, two_states):
    a, b = two_states
    editor.add_transition(a.id, b.id, name="Go", line_style=LineStyle.DOTTED)
    document = export_workflow(editor.model.workflow, editor.model.states, editor.model.transitions)

    assert [s.name for s in document.states] == ["A", "B"]
    [t] = document.transitions
    assert (t.from_state, t.to_state, t.name) == ("A", "B", "Go")

    data = document.to_json()
    assert data["version"] == "1.0"
    assert data["exportedAt"]
    assert data["workflow"]["name"] == "Release Process"
    assert data["transitions"][0]["line_style"] == "dotted"
    assert "id" not in data["states"][0]


def test_export_orders_states_and_skips_dangling_transitions():
    wf = Workflow(id="w", org_id="o", name="W")
    late = WorkflowState(id="s1", workflow_id="w", name="Late", sort_order=2)
    early = WorkflowState(id="s2", workflow_id="w", name="Early", sort_order=1)
    dangling = Transition(id="t1", workflow_id="w", from_state_id="s1", to_state_id="gone")

    document = export_workflow(wf, [late, early], [dangling])
    assert [s.name for s in document.states] == ["Early", "Late"]
    assert document.transitions == []


def test_export_filename():
    wf = Workflow(id="w", org_id="o", name="Document  Release Process")
    assert export_filename(wf) == "workflow-document-release-process.json"


def test_import_creates_states_and_transitions(editor, notifier, store):
    states, transitions = import_workflow(editor, release_document())

    assert [s.name for s in states] == ["Draft", "Review", "Released"]
    by_name = {s.name: s.id for s in editor.model.states}
    submit, approve = transitions
    assert (submit.from_state_id, submit.to_state_id) == (by_name["Draft"], by_name["Review"])
    assert approve.line_style == LineStyle.DASHED
    assert approve.line_path_type == PathType.ELBOW
    assert editor.model.get_state(by_name["Review"]).color == "#F59E0B"
    assert editor.pending_edit is None

    assert len(store.get_states("wf1").value) == 3
    assert notifier.of_kind(NotificationKind.SUCCESS) == ["Imported 3 states and 2 transitions"]


def test_import_after_export_reproduces_structure(editor, two_states, store):
    a, b = two_states
    editor.add_transition(a.id, b.id, name="Go")
    document = export_workflow(editor.model.workflow, editor.model.states, editor.model.transitions)

    other = Workflow(id="wf2", org_id="org1", name="Copy")
    store.create_workflow(other)
    editor.load("org1")
    editor.select_workflow("wf2")
    import_workflow(editor, document.to_json())

    names = {s.id: s.name for s in editor.model.states}
    assert sorted(names.values()) == ["A", "B"]
    [t] = editor.model.transitions
    assert (names[t.from_state_id], names[t.to_state_id], t.name) == ("A", "B", "Go")


def test_import_is_one_undoable_step(editor, notifier, store):
    import_workflow(editor, release_document())
    [entry] = editor.history.undo_entries
    assert entry.kind == "import"

    editor.undo()
    assert editor.model.states == []
    assert editor.model.transitions == []
    assert store.get_states("wf1").value == []
    assert notifier.of_kind(NotificationKind.SUCCESS)[-1] == "Undo: import"

    editor.redo()
    assert sorted(s.name for s in editor.model.states) == ["Draft", "Released", "Review"]
    assert len(store.get_transitions("wf1").value) == 2


def test_large_import_keeps_earlier_history(editor):
    editor.add_state(name="Existing", position_x=-300, position_y=0)
    document = {
        "workflow": {"name": "Big"},
        "states": [{"name": f"S{n}"} for n in range(60)],
    }
    import_workflow(editor, document)
    assert len(editor.history.undo_entries) == 2

    editor.undo()
    editor.undo()
    assert editor.model.states == []


@pytest.mark.parametrize("mutate, message", [
    (lambda d: d["states"].append({"name": "Draft"}), "Duplicate state name 'Draft'"),
    (
        lambda d: d["transitions"].append({"from_state": "Draft", "to_state": "Nowhere"}),
        "unknown to_state 'Nowhere'",
    ),
    (
        lambda d: d["transitions"].append({"from_state": "Draft", "to_state": "Draft"}),
        "from_state and to_state are the same",
    ),
    (
        lambda d: d["transitions"][0].update(line_thickness=9),
        "line_thickness must be between 1 and 6",
    ),
])
def test_invalid_document_creates_nothing(editor, notifier, mutate, message):
    document = release_document()
    mutate(document)

    with pytest.raises(WorkflowImportError) as exc:
        import_workflow(editor, document)

    assert any(message in p for p in exc.value.problems)
    assert editor.model.states == []
    assert editor.model.transitions == []
    [error] = notifier.of_kind(NotificationKind.ERROR)
    assert error.startswith("Import failed: ")


def test_import_rejects_existing_names(editor, two_states):
    document = release_document()
    document["states"][0]["name"] = "A"
    document["transitions"][0]["from_state"] = "A"
    with pytest.raises(WorkflowImportError) as exc:
        import_workflow(editor, document)
    assert exc.value.problems == ["State 'A' already exists in the workflow"]
    assert len(editor.model.states) == 2


def test_malformed_document_rejected(editor):
    with pytest.raises(WorkflowImportError) as exc:
        import_workflow(editor, {"states": []})
    assert exc.value.problems[0].startswith("workflow:")


def test_check_document_accepts_valid_document():
    document = ExportDocument.model_validate(release_document())
    assert check_document(document, set()) == []


@pytest.mark.parametrize("blank", ["", "   "])
def test_blank_state_name_rejects_whole_import(editor, notifier, store, blank):
    document = {
        "workflow": {"name": "X"},
        "states": [{"name": blank}, {"name": "New State"}],
        "transitions": [],
    }
    with pytest.raises(WorkflowImportError) as exc:
        import_workflow(editor, document)

    assert exc.value.problems == ["State name must not be empty"]
    assert editor.model.states == []
    assert store.get_states("wf1").value == []
    assert len(notifier.of_kind(NotificationKind.ERROR)) == 1


def test_imported_states_keep_their_exact_names(editor):
    document = release_document()
    document["states"].append({"name": "New State", "position_x": 900})
    states, _ = import_workflow(editor, document)
    assert [s.name for s in states] == ["Draft", "Review", "Released", "New State"]
