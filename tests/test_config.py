"""Tests for config/settings.py."""

import pytest
import yaml

from workflow_canvas.config.settings import load_settings

ENV_KEYS = (
    "WFC_CONFIG_FILE", "WFC_LOG_LEVEL", "WFC_DATA_DIR", "WFC_LAYOUT_DIR",
    "WFC_GATEWAY_BACKEND", "WFC_GATEWAY_URL", "WFC_GATEWAY_API_KEY",
    "WFC_GATEWAY_TIMEOUT", "WFC_MAX_HISTORY", "WFC_DRAG_THRESHOLD",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults_when_no_file_or_env(tmp_path):
    """Default settings when no config file or env vars exist."""
    settings = load_settings(config_path=str(tmp_path / "nonexistent.yaml"))
    assert settings.log_level == "INFO"
    assert settings.gateway.backend == "json"
    assert settings.storage.data_dir == "data"
    assert settings.canvas.max_history == 50
    assert settings.canvas.drag_threshold == 5
    assert settings.canvas.edge_snap_distance == 12
    assert (settings.canvas.min_zoom, settings.canvas.max_zoom) == (0.25, 3.0)
    assert settings.canvas.snap.grid_size == 20


def test_yaml_file_overrides_defaults(tmp_path):
    """YAML config file values override Pydantic defaults."""
    config_file = tmp_path / "config.yaml"
    config_file.write_text(yaml.dump({
        "gateway": {"backend": "rest", "base_url": "http://db.test"},
        "canvas": {"elbow_turn_offset": 40, "snap": {"grid_size": 40}},
    }))

    settings = load_settings(config_path=str(config_file))
    assert settings.gateway.backend == "rest"
    assert settings.gateway.base_url == "http://db.test"
    assert settings.canvas.elbow_turn_offset == 40
    assert settings.canvas.snap.grid_size == 40
    # Unset fields keep defaults
    assert settings.gateway.timeout == 30
    assert settings.canvas.snap.snap_to_grid is True


def test_env_vars_override_yaml(tmp_path, monkeypatch):
    """Env vars take priority over YAML file values."""
    config_file = tmp_path / "config.yaml"
    config_file.write_text(yaml.dump({
        "gateway": {"backend": "rest", "base_url": "http://yaml.test", "api_key": "from-yaml"},
    }))
    monkeypatch.setenv("WFC_GATEWAY_API_KEY", "from-env")
    monkeypatch.setenv("WFC_GATEWAY_TIMEOUT", "5")
    monkeypatch.setenv("WFC_MAX_HISTORY", "10")

    settings = load_settings(config_path=str(config_file))
    # Env vars win
    assert settings.gateway.api_key == "from-env"
    assert settings.gateway.timeout == 5.0
    assert settings.canvas.max_history == 10
    # YAML still applies where env not set
    assert settings.gateway.base_url == "http://yaml.test"


def test_env_var_config_file_path(tmp_path, monkeypatch):
    """WFC_CONFIG_FILE env var points to config file."""
    config_file = tmp_path / "custom.yaml"
    config_file.write_text(yaml.dump({"log_level": "DEBUG"}))
    monkeypatch.setenv("WFC_CONFIG_FILE", str(config_file))

    settings = load_settings()
    assert settings.log_level == "DEBUG"


def test_empty_yaml_file(tmp_path):
    """An empty config file falls back to defaults."""
    config_file = tmp_path / "config.yaml"
    config_file.write_text("")
    settings = load_settings(config_path=str(config_file))
    assert settings.gateway.backend == "json"


def test_storage_dirs_from_env(tmp_path, monkeypatch):
    monkeypatch.setenv("WFC_DATA_DIR", str(tmp_path / "db"))
    monkeypatch.setenv("WFC_LAYOUT_DIR", str(tmp_path / "layout"))
    settings = load_settings(config_path=str(tmp_path / "nonexistent.yaml"))
    assert settings.storage.data_dir == str(tmp_path / "db")
    assert settings.storage.layout_dir == str(tmp_path / "layout")
