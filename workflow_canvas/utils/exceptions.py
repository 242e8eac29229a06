class WorkflowCanvasError(Exception):
    """Base class for all workflow_canvas errors."""


class WorkflowValidationError(WorkflowCanvasError):
    pass


class WorkflowImportError(WorkflowCanvasError):
    def __init__(self, problems: list[str]):
        self.problems = problems
        super().__init__("Import rejected: " + "; ".join(problems))


class EditorPermissionError(WorkflowCanvasError):
    pass


class NoActiveWorkflowError(WorkflowCanvasError):
    pass


class UnknownEntityError(WorkflowCanvasError, KeyError):
    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""
