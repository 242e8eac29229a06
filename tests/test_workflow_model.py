import pytest

from workflow_canvas.editor.workflow_model import WorkflowModel
from workflow_canvas.models.workflow import StateType, Workflow
from workflow_canvas.persistence.gateway import failure
from workflow_canvas.persistence.notifier import NotificationKind, RecordingNotifier
from workflow_canvas.utils.exceptions import (
    NoActiveWorkflowError,
    UnknownEntityError,
    WorkflowValidationError,
)


@pytest.fixture
def model(store, workflow, notifier):
    m = WorkflowModel(store, notifier=notifier, background=False)
    m.load_workflows("org1")
    m.select_workflow("wf1")
    return m


class FailingWrites:
    """Delegates reads to a real store and fails every state update."""

    def __init__(self, store):
        self._store = store

    def __getattr__(self, name):
        return getattr(self._store, name)

    def update_state(self, state):
        return failure("update_state", "connection reset")


def test_add_state_defaults(model):
    first = model.add_state()
    second = model.add_state()
    assert first.name == "New State"
    assert second.name == "New State 2"
    assert (first.position_x, first.position_y) == (250, 200)
    assert (second.position_x, second.position_y) == (300, 200)
    assert second.sort_order == 1


def test_writes_reach_the_gateway(model, store):
    state = model.add_state(name="Draft")
    assert [s.id for s in store.get_states("wf1").value] == [state.id]


def test_duplicate_state_name_rejected(model):
    model.add_state(name="Draft")
    with pytest.raises(WorkflowValidationError):
        model.add_state(name="Draft")
    other = model.add_state(name="Review")
    with pytest.raises(WorkflowValidationError):
        model.update_state(other.id, name="Draft")


def test_self_transition_rejected(model):
    s = model.add_state(name="Draft")
    with pytest.raises(WorkflowValidationError):
        model.add_transition(s.id, s.id)
    assert model.transitions == []


def test_transition_to_unknown_state_rejected(model):
    s = model.add_state(name="Draft")
    with pytest.raises(WorkflowValidationError):
        model.add_transition(s.id, "missing")


def test_update_state_reports_before_and_after(model):
    s = model.add_state(name="Draft")
    before, after = model.update_state(s.id, name="Review", color="#FF0000")
    assert before == {"name": "Draft", "color": "#6B7280"}
    assert after == {"name": "Review", "color": "#FF0000"}


def test_remove_state_cascades(model, store):
    a = model.add_state(name="A")
    b = model.add_state(name="B")
    c = model.add_state(name="C")
    t1 = model.add_transition(a.id, b.id)
    t2 = model.add_transition(b.id, c.id)
    model.add_transition(a.id, c.id)

    state, removed = model.remove_state(b.id)
    assert state.id == b.id
    assert {t.id for t in removed} == {t1.id, t2.id}
    assert [t.from_state_id for t in model.transitions] == [a.id]
    assert len(store.get_transitions("wf1").value) == 1


def test_unknown_ids_raise(model):
    with pytest.raises(UnknownEntityError):
        model.get_state("nope")
    with pytest.raises(UnknownEntityError):
        model.remove_transition("nope")
    assert model.find_state("nope") is None


def test_mutation_without_workflow_raises(store, workflow):
    m = WorkflowModel(store, background=False)
    with pytest.raises(NoActiveWorkflowError):
        m.add_state()


def test_initial_state_prefers_start_then_sort_order(model):
    model.add_state(name="Draft")
    model.add_state(name="Released", state_type=StateType.END, sort_order=-1)
    start = model.add_state(name="Begin", state_type=StateType.START, sort_order=5)
    assert model.initial_state().id == start.id


def test_failed_write_is_reported_not_rolled_back(store, workflow):
    notifier = RecordingNotifier()
    m = WorkflowModel(FailingWrites(store), notifier=notifier, background=False)
    m.load_workflows("org1")
    m.select_workflow("wf1")
    s = m.add_state(name="Draft")

    m.update_state(s.id, name="Review")

    assert m.get_state(s.id).name == "Review"
    assert len(m.failed_writes) == 1
    assert m.failed_writes[0].operation == "update_state"
    assert notifier.of_kind(NotificationKind.ERROR) == ["Failed to save changes (update_state)"]

    m.reload()
    assert m.get_state(s.id).name == "Draft"


def test_background_writes_complete_after_flush(store, workflow):
    m = WorkflowModel(store, background=True)
    m.load_workflows("org1")
    m.select_workflow("wf1")
    for n in range(5):
        m.add_state(name=f"S{n}")
    m.flush(timeout=5)
    assert len(store.get_states("wf1").value) == 5
    m.close()


def test_failed_load_marks_model(store, workflow, notifier):
    class BrokenReads(FailingWrites):
        def get_transitions(self, workflow_id):
            return failure("get_transitions", "timeout")

    m = WorkflowModel(BrokenReads(store), notifier=notifier, background=False)
    m.load_workflows("org1")
    m.select_workflow("wf1")
    assert not m.last_load_ok
    assert m.transitions == []
    assert "Failed to load workflow transitions" in notifier.of_kind(NotificationKind.ERROR)


def test_first_workflow_in_org_becomes_default(store):
    m = WorkflowModel(store, background=False)
    first = m.create_workflow("org9", "First")
    second = m.create_workflow("org9", "Second")
    assert first.is_default and not second.is_default

    m.set_default_workflow(second.id)
    assert [w.is_default for w in m.workflows] == [False, True]
    assert store.get_workflow(second.id).value.is_default


def test_load_workflows_orders_default_first(store):
    store.create_workflow(Workflow(id="w1", org_id="o", name="Alpha"))
    store.create_workflow(Workflow(id="w2", org_id="o", name="Zulu", is_default=True))
    store.create_workflow(Workflow(id="w3", org_id="o", name="Beta"))
    m = WorkflowModel(store, background=False)
    assert [w.id for w in m.load_workflows("o")] == ["w2", "w1", "w3"]


def test_open_workflow_by_id(store, workflow):
    m = WorkflowModel(store, background=False)
    assert m.open_workflow("wf1").id == "wf1"
    assert [w.id for w in m.workflows] == ["wf1"]
    with pytest.raises(UnknownEntityError):
        m.open_workflow("missing")


def test_delete_workflow_clears_selection(model, store):
    model.add_state(name="Draft")
    model.delete_workflow("wf1")
    assert model.workflow is None
    assert model.states == []
    assert not store.list_workflows("org1").value
