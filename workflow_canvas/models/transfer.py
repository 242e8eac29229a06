"""Portable export document. Transitions reference states by name."""

from pydantic import BaseModel, ConfigDict, Field

from workflow_canvas.constants import EXPORT_VERSION
from workflow_canvas.models.workflow import ArrowHead, CanvasConfig, LineStyle, PathType


class ExportedWorkflow(BaseModel):
    name: str
    description: str = ""
    canvas_config: CanvasConfig = CanvasConfig()


class ExportedState(BaseModel):
    name: str
    label: str = ""
    description: str = ""
    color: str = "#6B7280"
    icon: str = "circle"
    position_x: float = 0.0
    position_y: float = 0.0
    is_editable: bool = True
    requires_checkout: bool = True
    sort_order: int = 0


class ExportedTransition(BaseModel):
    from_state: str
    to_state: str
    name: str = ""
    description: str = ""
    line_style: LineStyle = LineStyle.SOLID
    line_path_type: PathType = PathType.CURVED
    line_arrow_head: ArrowHead = ArrowHead.END
    line_thickness: int = 2
    line_color: str | None = None


class ExportDocument(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    version: str = EXPORT_VERSION
    exported_at: str = Field(default="", alias="exportedAt")
    workflow: ExportedWorkflow
    states: list[ExportedState] = []
    transitions: list[ExportedTransition] = []

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
