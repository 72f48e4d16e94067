# src/formengine/controllers/compat_controller.py
import logging
from typing import Any, Callable, Dict, List, Optional, Union

from formengine.controllers.basic_controller import BasicFormsController
from formengine.controllers.forms_backend import FormsBackend
from formengine.engine import FormEngine
from formengine.exceptions import CollaboratorMissingError, FormNotFoundError
from formengine.model import (
    ApplicationResult,
    EngineOptions,
    FillWarning,
    FormValidationResult,
    HighlightOptions,
    ValidateOptions,
)
from formengine.utils.events import EventEmitter
from formengine.validation.engine import ValidationEngine

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE = "Fell back to basic form application due to enhanced controller error"


class FallbackPolicy:
    """Decides whether a failure of the full engine is retried against the basic extractor."""

    def __init__(self, use_enhanced: bool = True, fallback_to_basic: bool = True):
        self.use_enhanced = use_enhanced
        self.fallback_to_basic = fallback_to_basic

    def is_usable(self, engine: Optional[FormsBackend]) -> bool:
        if not self.use_enhanced or engine is None:
            return False
        return callable(getattr(engine, "refresh", None)) and getattr(engine, "model", None) is not None

    def should_fallback(self, error: Exception) -> bool:
        return self.fallback_to_basic


class CompatibilityBridge:
    """
    One stable interface over two implementations: the full FormEngine and
    the BasicFormsController. The full engine is used when it constructed and
    passes the capability check; otherwise, and on apply failures, the basic
    extractor takes over.
    """

    def __init__(
            self,
            doc,
            options: Optional[EngineOptions] = None,
            policy: Optional[FallbackPolicy] = None,
            validation_enabled: bool = True,
            engine_factory: Optional[Callable[..., FormsBackend]] = None,
    ):
        self.doc = doc
        self.options = options or EngineOptions()
        self.policy = policy or FallbackPolicy()
        self.events = EventEmitter()

        # Construction failures of the basic extractor propagate.
        self.basic = BasicFormsController(doc)

        self.enhanced: Optional[FormsBackend] = None
        if self.policy.use_enhanced:
            try:
                self.enhanced = (engine_factory or FormEngine)(doc, self.options)
            except Exception as e:
                logger.warning("Full engine unavailable, using basic extractor only: %s", e)
                self.enhanced = None

        self.validator = (
            ValidationEngine(doc, accessibility_mode=self.options.accessibility_mode) if validation_enabled else None
        )
        self.active: FormsBackend = self.determine_active()
        self._forward_events()

    def determine_active(self) -> FormsBackend:
        if self.policy.is_usable(self.enhanced):
            logger.debug("Using the full engine.")
            return self.enhanced
        logger.debug("Using the basic extractor.")
        return self.basic

    def _forward_events(self) -> None:
        on = getattr(self.enhanced, "on", None)
        if not callable(on):
            return
        on("forms_updated", lambda payload: self.events.emit("forms_updated", payload))
        on("values_applied", lambda payload: self.events.emit("values_applied", payload))

    @property
    def mode(self) -> str:
        return self.active.mode

    @property
    def is_enhanced(self) -> bool:
        return self.active is not self.basic

    def enable_enhanced_mode(self) -> bool:
        if self.policy.is_usable(self.enhanced):
            self.active = self.enhanced
            return True
        return False

    def enable_basic_mode(self) -> None:
        self.active = self.basic

    # --- Interface ---

    def get_forms_data(self) -> List[Any]:
        return self.active.get_forms_data()

    def get_form(self, form_id: str) -> Optional[Any]:
        return self.active.get_form(form_id)

    async def apply_values(self, values: Dict[str, Any], options: Optional[Any] = None) -> ApplicationResult:
        try:
            if self.is_enhanced:
                result = await self.active.smart_fill_forms(values, options)
            else:
                result = await self.basic.apply_values(values, options)
            result.mode = self.active.mode
            return result
        except Exception as e:
            if not (self.is_enhanced and self.policy.should_fallback(e)):
                raise
            logger.warning("Full engine failed to apply values, retrying with basic extractor: %s", e)
            self.basic.refresh()
            result = await self.basic.apply_values(values)
            result.fallback_used = True
            result.warnings.append(FillWarning(identifier="*", message=FALLBACK_MESSAGE, details=[str(e)]))
            return result

    def highlight(self, targets: Union[str, List[str]], options: Optional[HighlightOptions] = None) -> int:
        if isinstance(targets, str):
            targets = [targets]
        return self.active.highlight(targets, options)

    def remove_highlight(self) -> int:
        removed = self.active.remove_highlight()
        if self.enhanced is not None and self.active is not self.enhanced:
            removed += self.enhanced.remove_highlight()
        return removed

    def refresh(self) -> Any:
        try:
            return self.active.refresh()
        except Exception as e:
            if self.active is self.basic:
                raise
            logger.error("Refresh failed on the full engine, refreshing basic extractor: %s", e)
            return self.basic.refresh()

    async def validate_forms(self, target: str, options: Optional[ValidateOptions] = None) -> FormValidationResult:
        if self.is_enhanced:
            return await self.active.validate_form(target, options)
        if self.validator is None:
            raise CollaboratorMissingError("Validation engine not initialized.")

        item = self.basic.get_form(target)
        if item is None:
            raise FormNotFoundError(target)
        tags = self.basic.elements_for(item)
        return await self.validator.validate_form(target, tags[:1], options)

    def controller_info(self) -> Dict[str, Any]:
        return {
            "mode": self.mode,
            "enhanced_available": self.enhanced is not None,
            "fallback_to_basic": self.policy.fallback_to_basic,
            "forms_count": len(self.get_forms_data()),
            "is_kintone_page": self.basic.is_kintone_page(),
        }

    def destroy(self) -> None:
        self.remove_highlight()
        destroy = getattr(self.enhanced, "destroy", None)
        if callable(destroy):
            destroy()
