"""
Workflow: Document release process.

Graph:
    Draft ──Submit──→ In Review ──Approve──→ Released
                        │   ▲
                  Reject│   │Resubmit
                        ▼   │
                      Rework

Builds the lifecycle in a throwaway JSON store, drags one state the way a
pointer would, bends the rework loop with a waypoint, then prints the
computed connector geometry and the portable export document.
"""

import json
import logging
import tempfile

from workflow_canvas.config.settings import Settings, StorageSettings
from workflow_canvas.editor.factory import build_editor
from workflow_canvas.editor.interaction import StateTarget
from workflow_canvas.models.geometry import Point
from workflow_canvas.models.workflow import LineStyle, PathType, StateType
from workflow_canvas.transfer.export_import import export_filename, export_workflow


def build_workflow(editor):
    workflow = editor.model.create_workflow("acme", "Document Release Process")
    editor.select_workflow(workflow.id)

    draft = editor.add_state(name="Draft", state_type=StateType.START, position_x=0, position_y=0)
    review = editor.add_state(name="In Review", color="#F59E0B", position_x=300, position_y=0)
    rework = editor.add_state(name="Rework", color="#EF4444", position_x=300, position_y=200)
    released = editor.add_state(
        name="Released", state_type=StateType.END, color="#10B981", position_x=600, position_y=0,
    )

    editor.add_transition(draft.id, review.id, name="Submit")
    editor.add_transition(review.id, released.id, name="Approve", line_path_type=PathType.ELBOW)
    editor.add_transition(review.id, rework.id, name="Reject", line_style=LineStyle.DASHED)
    resubmit = editor.add_transition(rework.id, review.id, name="Resubmit")
    return resubmit


def main():
    with tempfile.TemporaryDirectory() as tmp:
        settings = Settings(storage=StorageSettings(data_dir=f"{tmp}/db", layout_dir=f"{tmp}/layout"))
        editor = build_editor(settings, background=False)
        resubmit = build_workflow(editor)

        # Drag "Released" down a little; snapping lines it up on the grid
        released = next(s for s in editor.model.states if s.name == "Released")
        canvas = editor.controller
        canvas.pointer_down(Point(x=600, y=0), StateTarget(state_id=released.id))
        canvas.pointer_move(Point(x=612, y=47))
        canvas.pointer_up(Point(x=612, y=47))

        # Pull the rework loop out to the left
        editor.layout.set_waypoints(resubmit.id, [Point(x=180, y=100)])

        print("=== Scene ===")
        names = {t.id: t.name for t in editor.model.transitions}
        for geometry in editor.scene():
            print(f"{names[geometry.transition_id]:>10}: {geometry.path}")

        model = editor.model
        document = export_workflow(model.workflow, model.states, model.transitions)
        print(f"\n=== {export_filename(model.workflow)} ===")
        print(json.dumps(document.to_json(), indent=2))

        editor.undo()
        print(f"\nAfter undo, Released is back at {model.get_state(released.id).center}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    main()
