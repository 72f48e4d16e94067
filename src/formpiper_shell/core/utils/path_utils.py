# src/formpiper_shell/core/utils/path_utils.py
import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class PathUtils:
    """
    Central place for the paths the shell needs: its own package directory
    (settings.json, handlers) and the user's history file.
    """

    @staticmethod
    def get_shell_package_root() -> Path:
        """Directory of the formpiper_shell package, wherever it is installed."""
        return Path(__file__).resolve().parents[2]

    @staticmethod
    def get_handlers_dir() -> Path:
        return PathUtils.get_shell_package_root() / "core" / "handlers"

    @staticmethod
    def get_shell_history_file(configured: Optional[str] = None) -> Path:
        """
        Returns the shell history file. A configured path may use '~';
        the default is ~/.formpiper_shell_history.
        """
        if configured:
            return Path(configured).expanduser()
        return Path.home() / ".formpiper_shell_history"

    @staticmethod
    def expand_inputs(patterns) -> list:
        """
        Expands file arguments for `page load`. Directories yield their *.html
        and *.htm files; glob patterns are resolved relative to the cwd.
        Unmatched arguments are kept so the loader can report them.
        """
        resolved = []
        for raw in patterns:
            path = Path(raw).expanduser()
            if path.is_dir():
                resolved.extend(sorted(p for p in path.iterdir() if p.suffix.lower() in (".html", ".htm")))
            elif any(ch in raw for ch in "*?["):
                matches = sorted(Path().glob(raw))
                if not matches:
                    logger.warning("Pattern '%s' matched no files.", raw)
                resolved.extend(matches)
            else:
                resolved.append(path)
        return resolved
