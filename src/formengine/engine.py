# src/formengine/engine.py
import logging
from typing import Any, Callable, Dict, List, Optional, Union

from bs4 import Tag

from formengine.controllers.fill_controller import FillOrchestrator
from formengine.controllers.forms_backend import FormsBackend
from formengine.dom.core import CanonicalType
from formengine.exceptions import CollaboratorMissingError, EngineConstructionError, FormEngineError, FormNotFoundError
from formengine.managers.semantic_model import SemanticModel
from formengine.model import (
    ApplicationResult,
    ApplyOptions,
    ElementDescriptor,
    EngineOptions,
    ExtractionSnapshot,
    FormDescriptor,
    FormValidationResult,
    HighlightOptions,
    HistoryEntry,
    Statistics,
    ValidateOptions,
    ValidationResult,
)
from formengine.services.annotation import HighlightService
from formengine.utils.events import EventEmitter
from formengine.validation.engine import ValidationEngine

logger = logging.getLogger(__name__)


class FormEngine(FormsBackend):
    """
    Owns one document's SemanticModel, ValidationEngine, FillOrchestrator and
    highlight set. Everything mutable lives on the instance.
    """

    mode = "enhanced"

    def __init__(self, doc, options: Optional[EngineOptions] = None):
        if doc is None:
            raise CollaboratorMissingError("FormEngine needs a LiveDocument.")
        self.doc = doc
        self.options = options or EngineOptions()
        try:
            self.model = SemanticModel(doc, self.options)
            self.validator = ValidationEngine(doc, accessibility_mode=self.options.accessibility_mode)
            self.highlighter = HighlightService(doc)
            self.filler = FillOrchestrator(doc, self.model, self.validator, self.options, self.highlighter)
        except Exception as e:
            raise EngineConstructionError(f"Could not build the form engine: {e}") from e

        self.events = EventEmitter()
        self.model.on("forms_updated", lambda payload: self.events.emit("forms_updated", payload))
        self.filler.events.on("values_applied", lambda payload: self.events.emit("values_applied", payload))

    def on(self, event: str, callback: Callable[[Any], None]) -> Callable[[], None]:
        return self.events.on(event, callback)

    # --- Model ---

    def scan(self, root: Optional[Tag] = None) -> ExtractionSnapshot:
        return self.model.extract_all_forms(root)

    def refresh(self) -> ExtractionSnapshot:
        return self.scan()

    def flush(self) -> bool:
        return self.model.flush()

    @property
    def snapshot(self) -> ExtractionSnapshot:
        return self.model.snapshot

    def get_forms_data(self) -> List[FormDescriptor]:
        return self.model.get_forms_data()

    def get_form(self, form_id: str) -> Optional[FormDescriptor]:
        return self.model.get_form(form_id)

    def find_elements(self, **criteria: Any) -> List[ElementDescriptor]:
        return self.model.find_elements(**criteria)

    def find_element(self, identifier: str) -> Optional[Tag]:
        return self.model.find_element(identifier)

    def get_element_descriptor(self, identifier: str) -> Optional[ElementDescriptor]:
        return self.model.get_element_descriptor(identifier)

    def get_statistics(self) -> Statistics:
        return self.model.get_statistics()

    def get_extraction_history(self) -> List[HistoryEntry]:
        return self.model.get_extraction_history()

    # --- Filling ---

    async def apply_values(self, values: Dict[str, Any], options: Optional[ApplyOptions] = None) -> ApplicationResult:
        return await self.filler.apply_values(values, options)

    async def smart_fill_forms(self, values: Dict[str, Any],
                               options: Optional[ApplyOptions] = None) -> ApplicationResult:
        return await self.filler.smart_fill_forms(values, options)

    # --- Validation ---

    def _resolve(self, target: Union[str, Tag]) -> Tag:
        if isinstance(target, Tag):
            return target
        tag = self.model.find_element(target)
        if tag is None:
            raise FormEngineError(f"Element '{target}' not found.")
        return tag

    async def validate_element(self, target: Union[str, Tag],
                               options: Optional[ValidateOptions] = None) -> ValidationResult:
        return await self.validator.validate_element(self._resolve(target), options)

    async def validate_form(self, form_id: str, options: Optional[ValidateOptions] = None) -> FormValidationResult:
        form = self.model.get_form(form_id)
        if form is None:
            raise FormNotFoundError(form_id)
        tags = [t for t in (self.model.find_element(el.id) for el in form.elements) if t is not None]
        return await self.validator.validate_form(form_id, tags, options)

    # --- Highlight ---

    def _highlight_targets(self, identifier: str) -> List[Tag]:
        form = self.model.get_form(identifier)
        descriptors = form.elements if form is not None else [self.model.get_element_descriptor(identifier)]
        tags: List[Tag] = []
        for descriptor in descriptors:
            if descriptor is None:
                found = self.model.find_element(identifier)
                if found is not None:
                    tags.append(found)
                continue
            tag = self.model.find_element(descriptor.id)
            if tag is None:
                continue
            if descriptor.type == CanonicalType.RADIO:
                tags.extend(self.doc.radio_group(tag))
            elif descriptor.type == CanonicalType.CHECKBOX and descriptor.group:
                tags.extend(self.doc.checkbox_group(tag))
            else:
                tags.append(tag)
        return tags

    def highlight(self, targets: Union[str, List[str]], options: Optional[HighlightOptions] = None) -> int:
        if isinstance(targets, str):
            targets = [targets]
        tags: List[Tag] = []
        for target in targets:
            tags.extend(self._highlight_targets(target))
        return self.highlighter.highlight(tags, options)

    def remove_highlight(self) -> int:
        return self.highlighter.remove_all()

    def destroy(self) -> None:
        self.remove_highlight()
        self.model.destroy()
        logger.debug("Form engine destroyed.")
