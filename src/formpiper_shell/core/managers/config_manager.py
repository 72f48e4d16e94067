# src/formpiper_shell/core/managers/config_manager.py
import json
import logging
from typing import Any, Dict, Optional

from formpiper_shell.core.utils.path_utils import PathUtils

logger = logging.getLogger(__name__)

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _cast_like(original: Any, value: Any) -> Any:
    """Casts `value` to the type of `original`; bools are parsed, not truthiness-tested."""
    if isinstance(original, bool):
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
        raise ValueError(f"not a boolean: {value!r}")
    if isinstance(original, list) and isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return type(original)(value)


class ConfigManager:
    """
    Singleton holding the shell configuration.
    Loaded from settings.json in the package root; changes stay in memory.
    """
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(ConfigManager, cls).__new__(cls)
            cls._instance._initialize()
        return cls._instance

    def _initialize(self):
        self._config: Dict[str, Any] = {}
        self.reset()
        logger.debug("ConfigManager initialized.")

    def get_all(self) -> Dict[str, Any]:
        return self._config

    def get_nested(self, key_path: str, default: Optional[Any] = None) -> Any:
        """Dotted lookup, e.g. 'engine.debounce_ms'."""
        value = self._config
        for key in key_path.split('.'):
            if isinstance(value, dict):
                value = value.get(key)
            else:
                return default
        return value if value is not None else default

    def set_nested(self, key_path: str, value: Any) -> bool:
        """
        Sets a dotted key in memory. An existing value fixes the type of the new one,
        so `config set engine.max_retries 5` stores an int.
        """
        keys = key_path.split('.')
        d = self._config
        for key in keys[:-1]:
            d = d.setdefault(key, {})
            if not isinstance(d, dict):
                logger.error("Cannot set value: '%s' is not a dictionary.", key)
                return False

        original_value = d.get(keys[-1])
        if isinstance(original_value, dict):
            logger.error("Cannot overwrite section '%s' with a scalar.", key_path)
            return False
        if original_value is not None:
            try:
                value = _cast_like(original_value, value)
            except (ValueError, TypeError):
                logger.warning(
                    "Could not cast new value for '%s' to type %s. Storing as string.",
                    key_path, type(original_value).__name__
                )

        d[keys[-1]] = value
        logger.info("Configuration updated: %s = %s", key_path, value)
        return True

    def reset(self):
        """Reloads the configuration from settings.json."""
        config_path = PathUtils.get_shell_package_root() / "settings.json"
        if not config_path.exists():
            logger.warning("settings.json not found at %s. Using empty config.", config_path)
            self._config = {}
            return
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                self._config = json.load(f)
            logger.info("Configuration has been (re)loaded from settings.json.")
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Failed to load settings.json: %s", e, exc_info=True)
            self._config = {}


config_manager = ConfigManager()
