# src/formengine/dom/registry.py
import importlib
import logging
import pkgutil
from typing import Dict, List, Optional

from .core import CanonicalType, ControlDefinition

logger = logging.getLogger(__name__)


class ControlRegistry:
    """
    Dispatch table from CanonicalType to its ControlDefinition.

    Definitions are discovered from the 'formengine.dom.controls' package:
    every module there exports a `DEFINITION` covering one family of types.
    The table is immutable once loaded and shared by all engine instances.
    """

    _handlers: Dict[CanonicalType, ControlDefinition] = {}
    _loaded: bool = False

    @classmethod
    def discover(cls) -> None:
        if cls._loaded:
            return

        import formengine.dom.controls as controls_pkg

        for _, name, _ in pkgutil.iter_modules(controls_pkg.__path__):
            full_name = f"formengine.dom.controls.{name}"
            try:
                module = importlib.import_module(full_name)
            except Exception as e:
                logger.error("Error loading control module %s: %s", name, e)
                continue

            defn = getattr(module, "DEFINITION", None)
            if not isinstance(defn, ControlDefinition):
                continue
            for canonical in defn.types:
                if canonical in cls._handlers:
                    logger.warning(
                        "Type '%s' claimed by both %s and %s; keeping the first.",
                        canonical.value, cls._handlers[canonical].family, defn.family
                    )
                    continue
                cls._handlers[canonical] = defn
            logger.debug("Control family loaded: %s", defn.family)

        missing = cls.missing_types()
        if missing:
            logger.error("No control handler for: %s", ", ".join(t.value for t in missing))
        cls._loaded = True

    @classmethod
    def missing_types(cls) -> List[CanonicalType]:
        """Canonical types without a handler; empty when dispatch is exhaustive."""
        return [t for t in CanonicalType if t not in cls._handlers]

    @classmethod
    def get(cls, canonical: CanonicalType) -> Optional[ControlDefinition]:
        cls.discover()
        return cls._handlers.get(canonical)

    @classmethod
    def families(cls) -> List[str]:
        cls.discover()
        return sorted({d.family for d in cls._handlers.values()})
