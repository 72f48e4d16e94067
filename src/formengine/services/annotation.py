# src/formengine/services/annotation.py
import html
import logging
from typing import Dict, List, Optional, Tuple

from bs4 import Tag

from formengine.dom.selectors import attr_text
from formengine.model import HighlightOptions, ValidationResult

logger = logging.getLogger(__name__)

VALIDATION_STYLE_ID = "form-validation-styles"
PULSE_STYLE_ID = "form-highlight-pulse-animation"
PULSE_CLASS = "form-highlight-pulse"
STATE_CLASSES = ("validation-error", "validation-warning", "validation-success")

VALIDATION_CSS = """
.validation-error { border-color: #e53e3e; box-shadow: 0 0 0 1px #e53e3e; }
.validation-warning { border-color: #dd6b20; box-shadow: 0 0 0 1px #dd6b20; }
.validation-success { border-color: #38a169; box-shadow: 0 0 0 1px #38a169; }
.validation-error-container { margin-top: 0.5rem; }
.validation-errors { list-style: none; margin: 0; padding: 0; }
.validation-error.severity-warning { color: #dd6b20; }
.validation-error.severity-info { color: #3182ce; }
"""

PULSE_CSS = """
@keyframes formHighlightPulse {
  0% { box-shadow: 0 0 0 0 rgba(59, 130, 246, 0.4); }
  70% { box-shadow: 0 0 0 10px rgba(59, 130, 246, 0); }
  100% { box-shadow: 0 0 0 0 rgba(59, 130, 246, 0); }
}
.form-highlight-pulse { animation: formHighlightPulse 2s infinite; }
"""


def _ensure_style_block(doc, style_id: str, css: str) -> None:
    if doc.get_element_by_id(style_id) is not None:
        return
    host = doc.soup.head or doc.body
    doc.append_html(host, f'<style id="{style_id}">{css}</style>')


class ErrorAnnotator:
    """Renders validation errors next to a control and keeps its ARIA state in sync."""

    def __init__(self, doc):
        self.doc = doc
        self._containers: Dict[int, Tuple[Tag, Tag]] = {}

    def _anchor(self, tag: Tag) -> Tag:
        for css_class in ("form-group", "field"):
            if css_class in self.doc.class_list(tag):
                return tag
            found = tag.find_parent(class_=css_class)
            if found is not None:
                return found
        parent = tag.parent
        if isinstance(parent, Tag) and parent.name not in ("[document]", "body", "html"):
            return parent
        return tag

    def show(self, tag: Tag, result: ValidationResult) -> Optional[Tag]:
        self.clear(tag)
        if not result.errors:
            return None
        error_id = f"{attr_text(tag, 'id') or 'field'}-errors"
        items = "".join(
            f'<li class="validation-error severity-{issue.severity or "error"}">{html.escape(issue.message)}</li>'
            for issue in result.errors
        )
        markup = (
            f'<div class="validation-error-container" id="{html.escape(error_id)}">'
            f'<ul class="validation-errors">{items}</ul></div>'
        )
        added = self.doc.insert_after(self._anchor(tag), markup)
        container = added[0] if added else None

        self.doc.set_attribute(tag, "aria-describedby", error_id)
        self.doc.set_attribute(tag, "aria-invalid", "true")
        self.doc.remove_class(tag, *STATE_CLASSES)
        self.doc.add_class(tag, "validation-error")
        _ensure_style_block(self.doc, VALIDATION_STYLE_ID, VALIDATION_CSS)

        if container is not None:
            self._containers[id(tag)] = (tag, container)
        logger.debug("Rendered %d error(s) for #%s", len(result.errors), error_id)
        return container

    def clear(self, tag: Tag) -> None:
        entry = self._containers.pop(id(tag), None)
        if entry is not None and entry[0] is tag:
            self.doc.remove(entry[1])
        self.doc.remove_attribute(tag, "aria-describedby")
        self.doc.remove_attribute(tag, "aria-invalid")
        self.doc.remove_class(tag, *STATE_CLASSES)

    def clear_all(self) -> int:
        tags = [tag for tag, _ in self._containers.values()]
        for tag in tags:
            self.clear(tag)
        return len(tags)

    def container_for(self, tag: Tag) -> Optional[Tag]:
        entry = self._containers.get(id(tag))
        return entry[1] if entry is not None and entry[0] is tag else None


class HighlightService:
    """
    Applies temporary visual emphasis to controls and restores their original
    inline style afterwards. The set of highlighted elements is owned by the
    engine that created the service.
    """

    def __init__(self, doc):
        self.doc = doc
        self._highlighted: List[Tuple[Tag, Optional[str]]] = []

    @property
    def highlighted(self) -> List[Tag]:
        return [tag for tag, _ in self._highlighted]

    @staticmethod
    def style_for(options: HighlightOptions) -> str:
        color = options.color
        if options.style == "border":
            return f"border: 2px solid {color}"
        if options.style == "shadow":
            return f"box-shadow: 0 0 0 3px {color}"
        if options.style == "background":
            tint = f"{color}33" if color.startswith("#") and len(color) == 7 else color
            return f"background-color: {tint}"
        return f"outline: 2px solid {color}; outline-offset: 2px"

    def highlight(self, tags: List[Tag], options: Optional[HighlightOptions] = None) -> int:
        options = options or HighlightOptions()
        if options.animation == "pulse":
            _ensure_style_block(self.doc, PULSE_STYLE_ID, PULSE_CSS)
        declaration = self.style_for(options)
        count = 0
        for tag in tags:
            if any(tag is seen for seen, _ in self._highlighted):
                continue
            original = tag.get("style")
            merged = f"{original.rstrip().rstrip(';')}; {declaration}" if original else declaration
            self.doc.set_attribute(tag, "style", merged)
            if options.animation == "pulse":
                self.doc.add_class(tag, PULSE_CLASS)
            self._highlighted.append((tag, original))
            count += 1
        logger.debug("Highlighted %d element(s) with style '%s'.", count, options.style)
        return count

    def remove_all(self) -> int:
        restored = 0
        for tag, original in self._highlighted:
            if original is None:
                self.doc.remove_attribute(tag, "style")
            else:
                self.doc.set_attribute(tag, "style", original)
            self.doc.remove_class(tag, PULSE_CLASS)
            restored += 1
        self._highlighted = []
        return restored
