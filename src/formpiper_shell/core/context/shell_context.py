# src/formpiper_shell/core/context/shell_context.py
import logging
from collections import OrderedDict
from typing import Any, Optional, TYPE_CHECKING

from formpiper_shell.core.managers.config_manager import config_manager

if TYPE_CHECKING:
    from formengine.controllers.compat_controller import CompatibilityBridge

logger = logging.getLogger(__name__)


class ShellContext:
    """
    Session variables plus the pages loaded in this session.
    Each page is a CompatibilityBridge over its own LiveDocument; one page is active.
    """

    def __init__(self):
        self._vars = {}
        self.config = config_manager
        self.pages: "OrderedDict[str, CompatibilityBridge]" = OrderedDict()
        self.active_page: Optional[str] = None
        self.next_prompt_buffer: Optional[str] = None
        self.prompt_session: Optional[Any] = None
        self.last_table = None

    @property
    def bridge(self) -> Optional["CompatibilityBridge"]:
        """The active page's bridge, or None when nothing is loaded."""
        if self.active_page is None:
            return None
        return self.pages.get(self.active_page)

    def add_page(self, name: str, bridge: "CompatibilityBridge") -> None:
        old = self.pages.get(name)
        if old is not None and old is not bridge:
            old.destroy()
        self.pages[name] = bridge
        self.use_page(name)

    def use_page(self, name: Optional[str]) -> bool:
        """Activates a loaded page and exports @{page.*}. None deactivates."""
        if name is not None and name not in self.pages:
            return False
        self.active_page = name
        if name is None:
            for k in [k for k in self._vars if k.startswith("page.")]:
                del self._vars[k]
        else:
            self.export_page_variables()
        return True

    def close_page(self, name: str) -> bool:
        bridge = self.pages.pop(name, None)
        if bridge is None:
            return False
        bridge.destroy()
        if self.active_page == name:
            self.use_page(next(reversed(self.pages), None) if self.pages else None)
        return True

    def export_page_variables(self) -> None:
        """Exposes the active page as @{page.name}, @{page.mode}, @{page.forms}."""
        bridge = self.bridge
        if bridge is None:
            return
        self.set("page.name", self.active_page)
        self.set("page.source", bridge.doc.source or "")
        self.set("page.mode", bridge.mode)
        self.set("page.forms", str(len(bridge.get_forms_data())))

    def set(self, key: str, value: str) -> None:
        self._vars[key] = value

    def get(self, key: str) -> Optional[str]:
        return self._vars.get(key)

    def __repr__(self) -> str:
        return f"<ShellContext active_page={self.active_page} pages={len(self.pages)} vars_count={len(self._vars)}>"
