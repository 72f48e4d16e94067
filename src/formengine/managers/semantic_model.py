# src/formengine/managers/semantic_model.py
import logging
from collections import deque
from typing import Any, Callable, Deque, Dict, List, Optional

from bs4 import Tag

from formengine.controllers.scan_controller import DocumentScanner, is_control
from formengine.dom.document import MutationObserver, MutationRecord
from formengine.dom.selectors import attr_text
from formengine.model import (
    ElementDescriptor,
    EngineOptions,
    ExtractionSnapshot,
    FormDescriptor,
    HistoryEntry,
    Statistics,
)
from formengine.utils.debounce import DebounceScheduler
from formengine.utils.events import EventEmitter

logger = logging.getLogger(__name__)

WATCHED_ATTRIBUTES = ["type", "name", "id", "class", "required", "disabled", "readonly"]


def _touches_controls(node: Tag) -> bool:
    if not isinstance(node, Tag):
        return False
    return is_control(node) or node.find(is_control) is not None


class SemanticModel:
    """
    The canonical, queryable view of a document's forms.

    Holds the current ExtractionSnapshot plus a bounded extraction history.
    Snapshots are replaced wholesale; readers never observe a half-built one.
    With live updates on, qualifying mutations are debounced into a single
    re-extraction.
    """

    def __init__(self, doc, options: Optional[EngineOptions] = None, scanner: Optional[DocumentScanner] = None):
        self.doc = doc
        self.options = options or EngineOptions()
        self.scanner = scanner or DocumentScanner(doc, self.options.scan)
        self.events = EventEmitter()
        self._snapshot: Optional[ExtractionSnapshot] = None
        self._history: Deque[HistoryEntry] = deque(maxlen=self.options.history_limit)
        self.debounce = DebounceScheduler(self._rescan, delay=self.options.debounce_ms / 1000)
        self._observer: Optional[MutationObserver] = None
        if self.options.live_updates:
            self.start_observing()

    # --- Extraction ---

    def extract_all_forms(self, root: Optional[Tag] = None) -> ExtractionSnapshot:
        snapshot = self.scanner.scan(root)
        self._snapshot = snapshot
        self._history.append(HistoryEntry(
            timestamp=snapshot.timestamp,
            forms_count=len(snapshot.forms),
            elements_count=snapshot.statistics.total_elements,
            extraction_time=snapshot.extraction_time,
        ))
        self.events.emit("forms_updated", {
            "forms": snapshot.forms,
            "statistics": snapshot.statistics,
            "timestamp": snapshot.timestamp,
        })
        return snapshot

    @property
    def snapshot(self) -> ExtractionSnapshot:
        if self._snapshot is None:
            self.extract_all_forms()
        return self._snapshot

    def _rescan(self) -> None:
        logger.debug("Re-extracting after document mutations.")
        self.extract_all_forms()

    # --- Live updates ---

    def start_observing(self) -> None:
        if self._observer is not None:
            return
        self._observer = MutationObserver(self.doc, self._on_mutations)
        self._observer.observe(
            self.doc.body,
            child_list=True,
            attributes=True,
            subtree=True,
            attribute_filter=WATCHED_ATTRIBUTES,
        )

    def _on_mutations(self, records: List[MutationRecord]) -> None:
        for record in records:
            if self._qualifies(record):
                self.debounce.trigger()
                return

    @staticmethod
    def _qualifies(record: MutationRecord) -> bool:
        if record.kind == "childList":
            return any(_touches_controls(node) for node in record.added + record.removed)
        return _touches_controls(record.target)

    def flush(self) -> bool:
        """Runs a pending debounced re-extraction now."""
        return self.debounce.flush()

    def destroy(self) -> None:
        if self._observer is not None:
            self._observer.disconnect()
            self._observer = None
        self.debounce.cancel()

    def on(self, event: str, callback: Callable[[Any], None]) -> Callable[[], None]:
        return self.events.on(event, callback)

    # --- Queries ---

    def get_forms_data(self) -> List[FormDescriptor]:
        return list(self.snapshot.forms)

    def get_form(self, form_id: str) -> Optional[FormDescriptor]:
        return next((f for f in self.snapshot.forms if f.id == form_id), None)

    def get_all_elements(self) -> List[ElementDescriptor]:
        return self.snapshot.all_elements()

    def get_statistics(self) -> Statistics:
        return self.snapshot.statistics

    def get_extraction_history(self) -> List[HistoryEntry]:
        return list(self._history)

    def find_elements(self, **criteria: Any) -> List[ElementDescriptor]:
        """
        AND-combined filter over all element descriptors.

        Criteria: type, tag_name, label (substring, any case), name, required,
        has_validation, has_accessibility, has_custom_data, value (membership
        for list values), class_name (substring), predicate (callable).
        """
        results = []
        for el in self.get_all_elements():
            if "type" in criteria and el.type != criteria["type"]:
                continue
            if "tag_name" in criteria and el.tag_name != criteria["tag_name"]:
                continue
            if "label" in criteria and str(criteria["label"]).lower() not in el.label.lower():
                continue
            if "name" in criteria and el.name != criteria["name"]:
                continue
            if "required" in criteria and el.required != bool(criteria["required"]):
                continue
            if "has_validation" in criteria and el.has_validation != bool(criteria["has_validation"]):
                continue
            if "has_accessibility" in criteria and el.has_accessibility != bool(criteria["has_accessibility"]):
                continue
            if "has_custom_data" in criteria and bool(el.custom) != bool(criteria["has_custom_data"]):
                continue
            if "value" in criteria:
                wanted = criteria["value"]
                if isinstance(el.value, list):
                    if wanted not in el.value:
                        continue
                elif el.value != wanted:
                    continue
            if "class_name" in criteria and str(criteria["class_name"]) not in el.class_name:
                continue
            predicate = criteria.get("predicate")
            if predicate is not None and not predicate(el):
                continue
            results.append(el)
        return results

    def get_element_descriptor(self, identifier: str) -> Optional[ElementDescriptor]:
        elements = self.get_all_elements()
        for matcher in (
                lambda el: el.id == identifier,
                lambda el: el.name == identifier,
                lambda el: el.selector == identifier,
        ):
            found = next((el for el in elements if matcher(el)), None)
            if found is not None:
                return found
        return None

    def find_element(self, identifier: str) -> Optional[Tag]:
        """Live node for an identifier: id, name, CSS selector, data-id, then aria-label."""
        if not identifier:
            return None
        found = self.doc.get_element_by_id(identifier)
        if found is not None:
            return found

        descriptor = next((el for el in self.get_all_elements() if el.id == identifier), None)
        if descriptor is not None and descriptor.selector:
            found = self._select(descriptor.selector)
            if found is not None:
                return found

        found = self.doc.soup.find(lambda t: is_control(t) and attr_text(t, "name") == identifier)
        if found is not None:
            return found

        found = self._select(identifier)
        if found is not None:
            return found

        found = self.doc.soup.find(attrs={"data-id": identifier})
        if found is not None:
            return found
        return self.doc.soup.find(attrs={"aria-label": identifier})

    def _select(self, selector: str) -> Optional[Tag]:
        try:
            return self.doc.select_one(selector)
        except Exception as e:
            logger.debug("Not a usable selector %r: %s", selector, e)
            return None

    def stats_summary(self) -> Dict[str, Any]:
        stats = self.get_statistics()
        return {
            "forms": stats.total_forms,
            "elements": stats.total_elements,
            "complexity": stats.complexity_score,
            "extractions": len(self._history),
        }
