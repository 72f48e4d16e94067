# src/formpiper_shell/core/services/page_service.py
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from tqdm.auto import tqdm

from formengine.controllers.compat_controller import CompatibilityBridge, FallbackPolicy
from formengine.dom.document import LiveDocument
from formengine.exceptions import DocumentLoadError
from formengine.model import EngineOptions
from formpiper_shell.core.managers.config_manager import config_manager

logger = logging.getLogger(__name__)


class PageService:
    """Loads HTML files into LiveDocuments and wraps each in a CompatibilityBridge configured from settings."""

    def __init__(self, config=None):
        self.config = config or config_manager

    def policy(self, force_basic: bool = False) -> FallbackPolicy:
        mode = str(self.config.get_nested("engine.mode", "enhanced")).lower()
        return FallbackPolicy(
            use_enhanced=not force_basic and mode != "basic",
            fallback_to_basic=bool(self.config.get_nested("engine.fallback_to_basic", True)),
        )

    def build(self, doc: LiveDocument, force_basic: bool = False) -> CompatibilityBridge:
        return CompatibilityBridge(
            doc,
            EngineOptions.from_config(self.config),
            policy=self.policy(force_basic),
        )

    @staticmethod
    def page_name(path: Path, taken: Iterable[str]) -> str:
        """File stem, suffixed -2, -3... when already in use."""
        taken = set(taken)
        base = path.stem or "page"
        name, n = base, 2
        while name in taken:
            name = f"{base}-{n}"
            n += 1
        return name

    def load_many(
            self,
            paths: List[Path],
            taken: Iterable[str] = (),
            force_basic: bool = False,
            show_progress: bool = True,
    ) -> Tuple[List[Tuple[str, CompatibilityBridge]], List[Tuple[Path, str]]]:
        """
        Loads and scans each path. Returns (loaded, failed); a file that cannot be
        read or scanned lands in `failed` with its error and does not stop the rest.
        """
        loaded: List[Tuple[str, CompatibilityBridge]] = []
        failed: List[Tuple[Path, str]] = []
        names = set(taken)

        iterator = paths
        if show_progress and len(paths) > 1:
            iterator = tqdm(paths, desc="Loading pages", unit="page", leave=False)

        for path in iterator:
            try:
                doc = LiveDocument.from_file(path)
                bridge = self.build(doc, force_basic=force_basic)
                bridge.refresh()
            except DocumentLoadError as e:
                logger.warning("Skipping %s: %s", path, e)
                failed.append((path, str(e)))
                continue
            except Exception as e:
                logger.error("Could not scan %s: %s", path, e, exc_info=True)
                failed.append((path, str(e)))
                continue
            name = self.page_name(path, names)
            names.add(name)
            loaded.append((name, bridge))
        return loaded, failed

    def load_html(self, html: str, source: Optional[str] = None, force_basic: bool = False) -> CompatibilityBridge:
        bridge = self.build(LiveDocument.from_html(html, source=source), force_basic=force_basic)
        bridge.refresh()
        return bridge
