# src/formpiper_shell/core/discovery.py
import importlib.util
import logging
from typing import Any, Dict, Tuple

from formpiper_shell.core.utils.path_utils import PathUtils

logger = logging.getLogger(__name__)

BASE_MODULE_PATH = "formpiper_shell.core.handlers"


def discover_handlers() -> Tuple[Dict[str, Any], Dict[str, Any], Dict[str, str]]:
    """
    Loads every `*_handler.py` under the handlers directory and collects:
    `handle_<name>` functions, the module's COMMAND_HIERARCHY, and
    `<name>_help_text` strings. A module that fails to import is logged and skipped.
    """
    handlers: Dict[str, Any] = {}
    hierarchies: Dict[str, Any] = {}
    help_texts: Dict[str, str] = {}

    handlers_dir = PathUtils.get_handlers_dir()
    logger.debug("Scanning for handlers in: '%s'", handlers_dir)
    if not handlers_dir.is_dir():
        logger.warning("Handlers directory not found, skipping: %s", handlers_dir)
        return handlers, hierarchies, help_texts

    for file_path in sorted(handlers_dir.glob("**/*_handler.py")):
        parts = list(file_path.relative_to(handlers_dir).with_suffix("").parts)
        module_name = ".".join([BASE_MODULE_PATH] + parts)
        try:
            spec = importlib.util.spec_from_file_location(module_name, file_path)
            if not spec or not spec.loader:
                raise ImportError(f"Could not create spec for {file_path}")
            module = importlib.util.module_from_spec(spec)
            spec.loader.exec_module(module)
        except Exception as e:
            logger.error("Failed to load handler module %s: %s", file_path.name, e, exc_info=True)
            continue

        hierarchy = getattr(module, "COMMAND_HIERARCHY", None)
        for attr_name in dir(module):
            obj = getattr(module, attr_name)
            if attr_name.startswith("handle_") and callable(obj):
                command_name = attr_name[len("handle_"):]
                handlers[command_name] = obj
                if hierarchy is not None:
                    hierarchies[command_name] = hierarchy
                logger.debug("Discovered command '%s'", command_name)
            elif attr_name.endswith("_help_text") and isinstance(obj, str):
                help_texts[attr_name[:-len("_help_text")]] = obj

    return handlers, hierarchies, help_texts
