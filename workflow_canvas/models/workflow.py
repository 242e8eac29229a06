from enum import Enum

from pydantic import BaseModel, Field

from workflow_canvas.constants import DEFAULT_STATE_HEIGHT, DEFAULT_STATE_WIDTH
from workflow_canvas.models.geometry import Point, Size


class StateType(str, Enum):
    STATE = "state"
    START = "start"
    END = "end"


class StateShape(str, Enum):
    RECTANGLE = "rectangle"
    ROUNDED = "rounded"
    PILL = "pill"
    DIAMOND = "diamond"


class LineStyle(str, Enum):
    SOLID = "solid"
    DASHED = "dashed"
    DOTTED = "dotted"


class PathType(str, Enum):
    CURVED = "curved"
    ELBOW = "elbow"


class ArrowHead(str, Enum):
    END = "end"
    START = "start"
    BOTH = "both"
    NONE = "none"


class CanvasConfig(BaseModel):
    zoom: float = 1.0
    pan_x: float = 0.0
    pan_y: float = 0.0


class Workflow(BaseModel):
    id: str
    org_id: str
    name: str
    description: str = ""
    is_default: bool = False
    is_active: bool = True
    canvas_config: CanvasConfig = CanvasConfig()


class WorkflowState(BaseModel):
    id: str
    workflow_id: str
    name: str
    label: str = ""
    description: str = ""
    state_type: StateType = StateType.STATE
    shape: StateShape = StateShape.RECTANGLE
    color: str = "#6B7280"
    icon: str = "circle"
    position_x: float = 0.0  # box center
    position_y: float = 0.0
    width: float = DEFAULT_STATE_WIDTH
    height: float = DEFAULT_STATE_HEIGHT
    is_editable: bool = True
    requires_checkout: bool = True
    auto_increment_revision: bool = False
    sort_order: int = 0

    @property
    def center(self) -> Point:
        return Point(x=self.position_x, y=self.position_y)

    @property
    def size(self) -> Size:
        return Size(width=self.width, height=self.height)

    def contains(self, point: Point, margin: float = 0.0) -> bool:
        hw = self.width / 2 + margin
        hh = self.height / 2 + margin
        return (
            abs(point.x - self.position_x) <= hw
            and abs(point.y - self.position_y) <= hh
        )


class Transition(BaseModel):
    id: str
    workflow_id: str
    from_state_id: str
    to_state_id: str
    name: str = ""
    description: str = ""
    line_style: LineStyle = LineStyle.SOLID
    line_path_type: PathType = PathType.CURVED
    line_arrow_head: ArrowHead = ArrowHead.END
    line_thickness: int = Field(default=2, ge=1, le=6)
    line_color: str | None = None

    def touches(self, state_id: str) -> bool:
        return state_id in (self.from_state_id, self.to_state_id)


class Gate(BaseModel):
    id: str
    transition_id: str
    name: str
    description: str = ""
    gate_type: str = "approval"
    sort_order: int = 0
