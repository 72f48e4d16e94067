# tests/shell/test_config_manager.py
import pytest
import json
from pathlib import Path

from formpiper_shell.core.managers.config_manager import ConfigManager
from formpiper_shell.core.handlers.config_handler import handle_config
from formpiper_shell.core.context.shell_context import ShellContext
from formpiper_shell.core.utils.path_utils import PathUtils

# A small, predictable configuration for the tests
MOCK_SETTINGS_CONTENT = {
    "debug": {
        "level": "WARNING"
    },
    "engine": {
        "debounce_ms": 500,
        "max_retries": 3,
        "live_updates": True
    },
    "scanner": {
        "container_patterns": ["[data-form]", ".form-wrapper"]
    }
}


@pytest.fixture
def config_env(tmp_path, monkeypatch):
    """
    An isolated environment for the ConfigManager:
    - a temporary package root with its own settings.json;
    - PathUtils patched to point at it.
    """
    package_root = tmp_path / "formpiper_shell"
    package_root.mkdir()
    settings_file = package_root / "settings.json"
    settings_file.write_text(json.dumps(MOCK_SETTINGS_CONTENT))

    monkeypatch.setattr(PathUtils, 'get_shell_package_root', lambda: package_root)

    # The singleton may already be loaded from the real settings.json
    config_manager_instance = ConfigManager()
    config_manager_instance.reset()

    return config_manager_instance, ShellContext()


# --- ConfigManager ---

def test_config_manager_load(config_env):
    manager, _ = config_env
    config = manager.get_all()
    assert config["debug"]["level"] == "WARNING"
    assert config["engine"]["debounce_ms"] == 500


def test_config_manager_get_nested(config_env):
    manager, _ = config_env
    assert manager.get_nested("engine.max_retries") == 3
    assert manager.get_nested("non.existent.key", "default") == "default"


def test_config_manager_set_nested(config_env):
    """Changes are made in memory; an existing value fixes the type."""
    manager, _ = config_env

    manager.set_nested("debug.level", "INFO")
    assert manager.get_nested("debug.level") == "INFO"

    manager.set_nested("new_feature.enabled", "True")
    assert manager.get_nested("new_feature.enabled") == "True"

    manager.set_nested("engine.debounce_ms", "250")
    assert manager.get_nested("engine.debounce_ms") == 250
    assert isinstance(manager.get_nested("engine.debounce_ms"), int)


@pytest.mark.parametrize("raw, expected", [("false", False), ("OFF", False), ("yes", True), ("1", True)])
def test_config_manager_parses_booleans(config_env, raw, expected):
    manager, _ = config_env
    assert manager.set_nested("engine.live_updates", raw)
    assert manager.get_nested("engine.live_updates") is expected


def test_config_manager_unparseable_boolean_is_kept_as_string(config_env):
    manager, _ = config_env
    manager.set_nested("engine.live_updates", "maybe")
    assert manager.get_nested("engine.live_updates") == "maybe"


def test_config_manager_splits_lists(config_env):
    manager, _ = config_env
    manager.set_nested("scanner.container_patterns", ".a, .b ,")
    assert manager.get_nested("scanner.container_patterns") == [".a", ".b"]


def test_config_manager_refuses_to_overwrite_section(config_env):
    manager, _ = config_env
    assert manager.set_nested("engine", "flat") is False
    assert manager.get_nested("engine.max_retries") == 3


def test_config_manager_reset(config_env):
    manager, _ = config_env

    manager.set_nested("debug.level", "DEBUG")
    assert manager.get_nested("debug.level") == "DEBUG"

    manager.reset()

    assert manager.get_nested("debug.level") == "WARNING"


def test_config_manager_missing_file(config_env, monkeypatch, tmp_path):
    manager, _ = config_env
    monkeypatch.setattr(PathUtils, 'get_shell_package_root', lambda: tmp_path / "nowhere")
    manager.reset()
    assert manager.get_all() == {}


# --- 'config' command handler ---

def test_handle_config_list(config_env, capsys):
    _, ctx = config_env
    assert handle_config(["list"], ctx) == 0
    captured = capsys.readouterr()

    output_json = json.loads(captured.out)
    assert output_json["engine"]["max_retries"] == 3


def test_handle_config_get(config_env, capsys):
    _, ctx = config_env
    assert handle_config(["get", "engine.max_retries"], ctx) == 0
    assert capsys.readouterr().out.strip() == "3"
    assert handle_config(["get", "engine.nope"], ctx) == 1


def test_handle_config_set(config_env, capsys):
    _, ctx = config_env
    assert handle_config(["set", "engine.max_retries", "5"], ctx) == 0
    captured = capsys.readouterr()

    assert "Config updated: engine.max_retries = 5" in captured.out

    manager = config_env[0]
    assert manager.get_nested("engine.max_retries") == 5


def test_handle_config_set_section_fails(config_env, capsys):
    _, ctx = config_env
    assert handle_config(["set", "engine", "x"], ctx) == 1
    assert "Failed to set config value" in capsys.readouterr().out


def test_handle_config_reset(config_env, capsys):
    manager, ctx = config_env

    handle_config(["set", "debug.level", "CRITICAL"], ctx)
    assert manager.get_nested("debug.level") == "CRITICAL"

    handle_config(["reset"], ctx)
    captured = capsys.readouterr()

    assert "Configuration has been reset" in captured.out
    assert manager.get_nested("debug.level") == "WARNING"


def test_handle_config_without_args_prints_help(config_env, capsys):
    _, ctx = config_env
    assert handle_config([], ctx) == 1
    assert "config list" in capsys.readouterr().out
