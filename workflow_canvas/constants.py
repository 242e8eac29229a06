"""Canvas and geometry constants shared by the editor and the router."""

DEFAULT_STATE_WIDTH = 160
DEFAULT_STATE_HEIGHT = 60
MIN_STATE_WIDTH = 80
MIN_STATE_HEIGHT = 40

# Length of the perpendicular stub a connector travels before curving
STRAIGHT_LENGTH = 20
ELBOW_TURN_OFFSET = 30

# Control point distances for spline segments
CURVE_CONTROL_RATIO = 0.35
CURVE_CONTROL_MIN = 20
CURVE_CONTROL_MAX = 50
WAYPOINT_CONTROL_MIN = 15
WAYPOINT_CONTROL_MAX = 150

DRAG_THRESHOLD = 5
EDGE_SNAP_DISTANCE = 12
PASTE_OFFSET = 40

MAX_HISTORY = 50

MIN_ZOOM = 0.25
MAX_ZOOM = 3.0
ZOOM_STEP = 1.1

# Assumed viewport size when centering a workflow on open
VIEWPORT_WIDTH = 800
VIEWPORT_HEIGHT = 600

LAYOUT_KEY_PREFIX = "workflow-visual-"
EXPORT_VERSION = "1.0"
