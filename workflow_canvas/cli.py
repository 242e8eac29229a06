import argparse
import json
import logging
import sys

from workflow_canvas.config.settings import Settings, load_settings
from workflow_canvas.editor.factory import build_editor, build_gateway
from workflow_canvas.graph.validator import validate
from workflow_canvas.transfer.export_import import export_filename, export_workflow, import_workflow
from workflow_canvas.utils.exceptions import (
    UnknownEntityError,
    WorkflowImportError,
    WorkflowValidationError,
)


def _open(settings: Settings, workflow_id: str, can_edit: bool = False):
    editor = build_editor(settings, background=False, can_edit=can_edit)
    try:
        editor.open(workflow_id)
    except UnknownEntityError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    return editor


def cmd_serve(args, settings: Settings):
    import uvicorn

    from workflow_canvas.api.app import create_app

    app = create_app(settings=settings)
    uvicorn.run(app, host=args.host, port=args.port)


def cmd_list(args, settings: Settings):
    result = build_gateway(settings).list_workflows(args.org_id)
    if not result.ok:
        print(f"Error: {result}", file=sys.stderr)
        sys.exit(1)
    for w in result.value:
        marker = "*" if w.is_default else " "
        print(f"{marker} {w.id}  {w.name}")


def cmd_export(args, settings: Settings):
    editor = _open(settings, args.workflow_id)
    model = editor.model
    document = export_workflow(model.workflow, model.states, model.transitions)
    output = args.output or export_filename(model.workflow)
    with open(output, "w") as f:
        json.dump(document.to_json(), f, indent=2)
    print(f"Exported {len(document.states)} states and {len(document.transitions)} transitions to {output}")


def cmd_import(args, settings: Settings):
    editor = _open(settings, args.workflow_id, can_edit=True)
    with open(args.file) as f:
        data = json.load(f)
    try:
        states, transitions = import_workflow(editor, data)
    except WorkflowImportError as e:
        print("Import rejected:", file=sys.stderr)
        for problem in e.problems:
            print(f"  - {problem}", file=sys.stderr)
        sys.exit(1)
    failed = editor.model.failed_writes
    if failed:
        for f in failed:
            print(f"Error: {f}", file=sys.stderr)
        sys.exit(1)
    print(f"Imported {len(states)} states and {len(transitions)} transitions")


def cmd_render(args, settings: Settings):
    editor = _open(settings, args.workflow_id)
    print(json.dumps([g.model_dump(mode="json") for g in editor.scene()], indent=2))


def cmd_check(args, settings: Settings):
    editor = _open(settings, args.workflow_id)
    model = editor.model
    try:
        validate(model.workflow.id, model.states, model.transitions)
    except WorkflowValidationError as e:
        print(f"Invalid: {e}", file=sys.stderr)
        sys.exit(1)
    print(f"OK: {len(model.states)} states, {len(model.transitions)} transitions")


def main():
    parser = argparse.ArgumentParser(prog="wfc", description="Workflow Canvas")
    parser.add_argument("--config", default=None, help="Path to a YAML config file")
    sub = parser.add_subparsers(dest="command")

    serve_p = sub.add_parser("serve", help="Start the web server")
    serve_p.add_argument("--host", default="127.0.0.1")
    serve_p.add_argument("--port", type=int, default=8000)

    list_p = sub.add_parser("list", help="List an organization's workflows")
    list_p.add_argument("--org-id", required=True)

    export_p = sub.add_parser("export", help="Export a workflow to JSON")
    export_p.add_argument("workflow_id")
    export_p.add_argument("-o", "--output", default=None)

    import_p = sub.add_parser("import", help="Import states and transitions from JSON")
    import_p.add_argument("file", help="Path to an exported workflow JSON file")
    import_p.add_argument("--workflow-id", required=True)

    render_p = sub.add_parser("render", help="Print computed connector geometry as JSON")
    render_p.add_argument("workflow_id")

    check_p = sub.add_parser("check", help="Validate a stored workflow")
    check_p.add_argument("workflow_id")

    args = parser.parse_args()
    settings = load_settings(args.config)
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    commands = {
        "serve": cmd_serve,
        "list": cmd_list,
        "export": cmd_export,
        "import": cmd_import,
        "render": cmd_render,
        "check": cmd_check,
    }
    command = commands.get(args.command)
    if command is None:
        parser.print_help()
        sys.exit(1)
    command(args, settings)


if __name__ == "__main__":
    main()
