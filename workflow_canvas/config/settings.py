"""Configuration loading: YAML file -> env vars -> Pydantic defaults."""

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel

from workflow_canvas import constants
from workflow_canvas.models.layout import SnapSettings


class CanvasSettings(BaseModel):
    elbow_turn_offset: float = constants.ELBOW_TURN_OFFSET
    drag_threshold: float = constants.DRAG_THRESHOLD
    edge_snap_distance: float = constants.EDGE_SNAP_DISTANCE
    max_history: int = constants.MAX_HISTORY
    default_state_width: float = constants.DEFAULT_STATE_WIDTH
    default_state_height: float = constants.DEFAULT_STATE_HEIGHT
    min_state_width: float = constants.MIN_STATE_WIDTH
    min_state_height: float = constants.MIN_STATE_HEIGHT
    min_zoom: float = constants.MIN_ZOOM
    max_zoom: float = constants.MAX_ZOOM
    viewport_width: float = constants.VIEWPORT_WIDTH
    viewport_height: float = constants.VIEWPORT_HEIGHT
    snap: SnapSettings = SnapSettings()


class StorageSettings(BaseModel):
    data_dir: str = "data"
    layout_dir: str = "data/layout"


class GatewaySettings(BaseModel):
    backend: Literal["json", "rest"] = "json"
    base_url: str = ""
    api_key: str = ""
    timeout: float = 30


class Settings(BaseModel):
    canvas: CanvasSettings = CanvasSettings()
    storage: StorageSettings = StorageSettings()
    gateway: GatewaySettings = GatewaySettings()
    log_level: str = "INFO"


# env var -> (section, field, type); section None means top level
_ENV_MAP: dict[str, tuple[str | None, str, type]] = {
    "WFC_LOG_LEVEL": (None, "log_level", str),
    "WFC_DATA_DIR": ("storage", "data_dir", str),
    "WFC_LAYOUT_DIR": ("storage", "layout_dir", str),
    "WFC_GATEWAY_BACKEND": ("gateway", "backend", str),
    "WFC_GATEWAY_URL": ("gateway", "base_url", str),
    "WFC_GATEWAY_API_KEY": ("gateway", "api_key", str),
    "WFC_GATEWAY_TIMEOUT": ("gateway", "timeout", float),
    "WFC_MAX_HISTORY": ("canvas", "max_history", int),
    "WFC_DRAG_THRESHOLD": ("canvas", "drag_threshold", float),
}


def load_settings(config_path: str | None = None) -> Settings:
    """Load settings: YAML file -> env var overrides -> Pydantic defaults."""
    yaml_data: dict = {}

    # 1. Resolve config file path
    path = _resolve_config_path(config_path)
    if path and path.is_file():
        with open(path) as f:
            yaml_data = yaml.safe_load(f) or {}

    # 2. Override with env vars, section by section
    merged: dict = dict(yaml_data)
    for env_key, (section, field_name, field_type) in _ENV_MAP.items():
        val = os.environ.get(env_key)
        if val is None:
            continue
        if section is None:
            merged[field_name] = field_type(val)
        else:
            merged.setdefault(section, {})
            merged[section] = {**merged[section], field_name: field_type(val)}

    # 3. Validate (missing fields fall back to defaults)
    return Settings.model_validate(merged)


def _resolve_config_path(explicit_path: str | None) -> Path | None:
    if explicit_path:
        return Path(explicit_path)

    env_path = os.environ.get("WFC_CONFIG_FILE")
    if env_path:
        return Path(env_path)

    pkg_dir = Path(__file__).parent
    default = pkg_dir / "config.yaml"
    if default.is_file():
        return default

    return None
