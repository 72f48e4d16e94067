# src/formengine/validation/registry.py
import importlib
import logging
import pkgutil
from typing import Dict

from .core import Validator

logger = logging.getLogger(__name__)


class ValidatorCatalog:
    """
    Built-in validators, discovered from 'formengine.validation.validators'.

    Each module there exports a `DEFINITION` (a Validator). The catalog is
    read-only; every ValidationEngine copies it into its own registry, so
    validators added at runtime never leak between engines.
    """

    _builtins: Dict[str, Validator] = {}
    _loaded: bool = False

    @classmethod
    def discover(cls) -> None:
        if cls._loaded:
            return

        import formengine.validation.validators as validators_pkg

        for _, name, _ in pkgutil.iter_modules(validators_pkg.__path__):
            full_name = f"formengine.validation.validators.{name}"
            try:
                module = importlib.import_module(full_name)
            except Exception as e:
                logger.error("Error loading validator module %s: %s", name, e)
                continue
            defn = getattr(module, "DEFINITION", None)
            if isinstance(defn, Validator):
                cls._builtins[defn.name] = defn
                logger.debug("Validator loaded: %s", defn.name)

        cls._loaded = True

    @classmethod
    def builtins(cls) -> Dict[str, Validator]:
        cls.discover()
        return dict(cls._builtins)
