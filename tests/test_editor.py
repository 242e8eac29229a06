import pytest

from workflow_canvas.constants import MAX_HISTORY
from workflow_canvas.editor.layout_store import VisualLayoutStore
from workflow_canvas.editor.session import WorkflowEditor
from workflow_canvas.editor.workflow_model import WorkflowModel
from workflow_canvas.models.geometry import Point
from workflow_canvas.models.history import StateBox, StateDeleted
from workflow_canvas.models.workflow import CanvasConfig, LineStyle, WorkflowState
from workflow_canvas.persistence.notifier import NotificationKind
from workflow_canvas.utils.exceptions import EditorPermissionError, UnknownEntityError


def test_add_state_is_undoable(editor):
    state = editor.add_state(name="Draft")
    assert editor.pending_edit == ("state", state.id)
    assert (state.width, state.height) == (160, 60)

    editor.undo()
    assert editor.model.states == []
    editor.redo()
    assert editor.model.get_state(state.id).name == "Draft"


def test_delete_state_cascades_in_one_entry(editor):
    a = editor.add_state(name="A")
    b = editor.add_state(name="B")
    c = editor.add_state(name="C")
    t1 = editor.add_transition(a.id, b.id)
    t2 = editor.add_transition(b.id, c.id)
    t3 = editor.add_transition(a.id, c.id)
    editor.history.clear()

    _, removed = editor.delete_state(b.id)
    assert {t.id for t in removed} == {t1.id, t2.id}
    assert [t.id for t in editor.model.transitions] == [t3.id]
    assert len(editor.history.undo_entries) == 1
    assert isinstance(editor.history.undo_entries[0], StateDeleted)

    editor.undo()
    assert editor.model.get_state(b.id).name == "B"
    assert {t.id for t in editor.model.transitions} == {t1.id, t2.id, t3.id}

    editor.redo()
    assert editor.model.find_state(b.id) is None
    assert [t.id for t in editor.model.transitions] == [t3.id]


def test_undo_restores_deleted_state_in_storage(editor, store):
    a = editor.add_state(name="A")
    b = editor.add_state(name="B")
    t = editor.add_transition(a.id, b.id)
    editor.delete_state(a.id)
    assert store.get_transitions("wf1").value == []

    editor.undo()
    assert [x.id for x in store.get_transitions("wf1").value] == [t.id]


def test_move_state_round_trip(editor, two_states):
    a, _ = two_states
    editor.move_state(a.id, Point(x=0, y=200))
    assert editor.model.get_state(a.id).center == Point(x=0, y=200)
    editor.undo()
    assert editor.model.get_state(a.id).center == Point(x=0, y=0)
    editor.redo()
    assert editor.model.get_state(a.id).center == Point(x=0, y=200)


def test_move_to_same_position_records_nothing(editor, two_states):
    a, _ = two_states
    editor.move_state(a.id, Point(x=0, y=0))
    assert not editor.history.can_undo


def test_resize_state_clamps_and_undoes(editor, two_states):
    a, _ = two_states
    editor.resize_state(a.id, StateBox(position_x=0, position_y=0, width=10, height=500))
    state = editor.model.get_state(a.id)
    assert (state.width, state.height) == (80, 500)
    editor.undo()
    state = editor.model.get_state(a.id)
    assert (state.width, state.height) == (160, 60)


def test_update_state_undo(editor, two_states):
    a, _ = two_states
    editor.update_state(a.id, name="Approved", color="#00FF00")
    editor.undo()
    state = editor.model.get_state(a.id)
    assert (state.name, state.color) == ("A", "#6B7280")


def test_reroute_and_update_transition_undo(editor, two_states):
    a, b = two_states
    c = editor.add_state(name="C", position_x=0, position_y=300)
    t = editor.add_transition(a.id, b.id)

    editor.reroute_transition(t.id, to_state_id=c.id)
    assert editor.model.get_transition(t.id).to_state_id == c.id
    editor.update_transition(t.id, line_style=LineStyle.DASHED, line_thickness=4)

    editor.undo()
    assert editor.model.get_transition(t.id).line_style == LineStyle.SOLID
    editor.undo()
    assert editor.model.get_transition(t.id).to_state_id == b.id
    editor.redo()
    assert editor.model.get_transition(t.id).to_state_id == c.id


def test_reroute_to_same_endpoints_records_nothing(editor, two_states):
    a, b = two_states
    t = editor.add_transition(a.id, b.id)
    editor.history.clear()
    editor.reroute_transition(t.id, to_state_id=b.id)
    assert not editor.history.can_undo


def test_delete_transition_keeps_layout_for_undo(editor, two_states):
    a, b = two_states
    t = editor.add_transition(a.id, b.id)
    editor.layout.set_waypoints(t.id, [Point(x=150, y=-50)])

    editor.delete_transition(t.id)
    assert editor.scene() == []
    editor.undo()
    scene = editor.scene()
    assert len(scene) == 1
    assert " 150 -50 " in scene[0].path


def test_selecting_workflow_prunes_stale_layout(editor, two_states):
    a, b = two_states
    t = editor.add_transition(a.id, b.id)
    editor.layout.set_waypoints(t.id, [Point(x=1, y=1)])
    editor.layout.set_waypoints("deleted-elsewhere", [Point(x=2, y=2)])

    editor.select_workflow("wf1")
    assert editor.layout.current.transition_ids() == {t.id}
    assert not editor.history.can_undo


def test_copy_paste_state(editor, two_states):
    a, _ = two_states
    editor.controller.select_state(a.id)
    editor.copy_selection()
    pasted = editor.paste()
    assert pasted.id != a.id
    assert pasted.name == "A (copy)"
    assert (pasted.position_x, pasted.position_y) == (40, 40)

    again = editor.paste()
    assert again.name == "A (copy) 2"
    editor.undo()
    assert editor.model.find_state(again.id) is None


def test_copy_paste_transition(editor, two_states):
    a, b = two_states
    t = editor.add_transition(a.id, b.id, name="Submit", line_thickness=3)
    editor.copy_transition(t.id)
    pasted = editor.paste()
    assert pasted.id != t.id
    assert (pasted.name, pasted.line_thickness) == ("Submit", 3)
    assert (pasted.from_state_id, pasted.to_state_id) == (a.id, b.id)


def test_paste_with_empty_clipboard(editor):
    assert editor.paste() is None


def test_read_only_session_rejects_commands(store, workflow, local_store):
    model = WorkflowModel(store, background=False)
    editor = WorkflowEditor(model, VisualLayoutStore(local_store), can_edit=False)
    editor.load("org1")
    with pytest.raises(EditorPermissionError):
        editor.add_state(name="Draft")
    assert editor.undo() is None


def test_unknown_ids_raise(editor):
    with pytest.raises(UnknownEntityError):
        editor.delete_state("missing")
    with pytest.raises(UnknownEntityError):
        editor.update_transition("missing", name="x")


def test_undo_notifies(editor, notifier):
    editor.add_state(name="Draft")
    editor.undo()
    assert notifier.of_kind(NotificationKind.SUCCESS) == ["Undo: state create"]


def test_failed_undo_is_reported(editor, notifier):
    state = editor.add_state(name="Draft")
    # Remove the state behind the editor's back so the inverse cannot apply
    editor.model.remove_state(state.id)
    assert editor.undo() is None
    assert notifier.of_kind(NotificationKind.ERROR) == ["Undo failed"]
    assert editor.history.can_undo


def test_save_viewport(editor, store):
    editor.controller.zoom_in()
    editor.save_viewport()
    assert store.get_workflow("wf1").value.canvas_config.zoom == pytest.approx(1.1)


def test_delete_active_workflow(editor, local_store, two_states):
    a, b = two_states
    t = editor.add_transition(a.id, b.id)
    editor.layout.set_waypoints(t.id, [Point(x=150, y=-50)])

    editor.delete_workflow("wf1")

    assert editor.model.workflow is None
    assert not editor.layout.is_active
    assert local_store.get("workflow-visual-wf1") is None
    assert not editor.history.can_undo
    assert editor.scene() == []


def test_undo_past_history_cap_stops_at_oldest_kept_entry(editor, two_states):
    a, _ = two_states
    for n in range(1, MAX_HISTORY + 2):
        editor.move_state(a.id, Point(x=n, y=0))

    for _ in range(MAX_HISTORY):
        assert editor.undo() is not None
    assert editor.model.get_state(a.id).center == Point(x=1, y=0)

    assert editor.undo() is None
    assert editor.undo() is None
    assert editor.model.get_state(a.id).center == Point(x=1, y=0)


def test_undoing_every_edit_restores_initial_model(editor, two_states):
    a, b = two_states
    initial = editor.model.states

    editor.move_state(a.id, Point(x=40, y=40))
    editor.update_state(b.id, name="Review", color="#F59E0B")
    t = editor.add_transition(a.id, b.id)
    editor.update_transition(t.id, line_style=LineStyle.DASHED)
    editor.resize_state(b.id, StateBox(position_x=300, position_y=0, width=240, height=80))
    editor.delete_state(a.id)
    edits = len(editor.history.undo_entries)
    assert edits == 6

    for _ in range(edits):
        editor.undo()
    assert sorted(editor.model.states, key=lambda s: s.id) == sorted(initial, key=lambda s: s.id)
    assert editor.model.transitions == []
    assert not editor.history.can_undo


def test_selecting_workflow_centers_view_on_states(editor, store, workflow):
    store.create_state(WorkflowState(id="s1", workflow_id="wf1", name="A", position_x=0, position_y=0))
    store.create_state(WorkflowState(id="s2", workflow_id="wf1", name="B", position_x=300, position_y=100))
    store.update_workflow(workflow.model_copy(update={
        "canvas_config": CanvasConfig(zoom=2.0, pan_x=5, pan_y=7),
    }))

    editor.load("org1")
    assert editor.controller.zoom == 2.0
    # Content center (150, 50) lands in the middle of an 800x600 viewport
    assert editor.controller.pan == Point(x=100, y=200)
    assert editor.controller.to_screen(Point(x=150, y=50)) == Point(x=400, y=300)


def test_selecting_empty_workflow_uses_stored_pan(editor, store, workflow):
    store.update_workflow(workflow.model_copy(update={
        "canvas_config": CanvasConfig(zoom=1.0, pan_x=5, pan_y=7),
    }))
    editor.load("org1")
    assert editor.controller.pan == Point(x=5, y=7)
