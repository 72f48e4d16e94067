# src/formengine/dom/document.py
from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from bs4 import BeautifulSoup, Tag

from formengine.dom.style import ComputedStyle, StyleResolver
from formengine.exceptions import DocumentLoadError

logger = logging.getLogger(__name__)

CHECKABLE_TYPES = ("checkbox", "radio")


def _toggle_attr(tag: Tag, name: str, present: bool) -> None:
    if present:
        tag[name] = ""
    elif tag.has_attr(name):
        del tag[name]


class MutationRecord:
    """A single change to the document tree, in the shape of a DOM MutationRecord."""

    def __init__(
            self,
            kind: str,
            target: Tag,
            attribute_name: Optional[str] = None,
            old_value: Optional[str] = None,
            added: Optional[List[Tag]] = None,
            removed: Optional[List[Tag]] = None,
    ):
        self.kind = kind  # "childList" | "attributes"
        self.target = target
        self.attribute_name = attribute_name
        self.old_value = old_value
        self.added = added or []
        self.removed = removed or []

    def __repr__(self) -> str:
        return f"<MutationRecord {self.kind} target={self.target.name} attr={self.attribute_name}>"


class MutationObserver:
    """
    Receives MutationRecords from a LiveDocument.

    Records are delivered synchronously, one per change; consumers that need
    batching put a debounce in front of their callback.
    """

    def __init__(self, document: "LiveDocument", callback: Callable[[List[MutationRecord]], None]):
        self.document = document
        self.callback = callback
        self.target: Optional[Tag] = None
        self.child_list = True
        self.attributes = True
        self.subtree = True
        self.attribute_filter: Optional[set] = None
        self.connected = False

    def observe(
            self,
            target: Optional[Tag] = None,
            *,
            child_list: bool = True,
            attributes: bool = True,
            subtree: bool = True,
            attribute_filter: Optional[Iterable[str]] = None,
    ) -> None:
        self.target = target if target is not None else self.document.body
        self.child_list = child_list
        self.attributes = attributes
        self.subtree = subtree
        self.attribute_filter = set(attribute_filter) if attribute_filter else None
        if not self.connected:
            self.document._observers.append(self)
            self.connected = True

    def disconnect(self) -> None:
        if self.connected:
            self.document._observers.remove(self)
            self.connected = False

    def _wants(self, record: MutationRecord) -> bool:
        if record.kind == "childList" and not self.child_list:
            return False
        if record.kind == "attributes":
            if not self.attributes:
                return False
            if self.attribute_filter and record.attribute_name not in self.attribute_filter:
                return False
        if self.target is None or record.target is self.target:
            return True
        if not self.subtree:
            return False
        return any(parent is self.target for parent in record.target.parents)


class ControlState:
    """Runtime state of a form control, kept apart from its markup attributes."""

    def __init__(self, node: Tag):
        self.node = node
        self.value: Optional[str] = None
        self.checked: Optional[bool] = None
        self.selected: Optional[bool] = None
        self.files: List[Dict[str, Any]] = []
        self.custom_error: str = ""
        self.dirty = False


class LiveDocument:
    """
    A mutable HTML document with browser-like control state and mutation notifications.

    The tree itself is a BeautifulSoup tree. Structural and attribute changes
    must go through the mutation methods on this class so observers are told
    about them. Control values (the equivalent of DOM IDL properties such as
    `value`, `checked` and `selected`) live in a side table keyed by node
    identity and are initialised lazily from the markup.
    """

    def __init__(self, soup: BeautifulSoup, source: Optional[str] = None):
        self.soup = soup
        self.source = source
        self.styles = StyleResolver(soup)
        self._state: Dict[int, ControlState] = {}
        self._observers: List[MutationObserver] = []
        self._listeners: Dict[str, List[Callable[[Tag, str], None]]] = {}
        self.event_log: List[Dict[str, Any]] = []

    # --- Construction ---

    @classmethod
    def from_html(cls, html: str, source: Optional[str] = None) -> "LiveDocument":
        if html is None:
            raise DocumentLoadError("No HTML provided.")
        return cls(BeautifulSoup(html, "html.parser"), source=source)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "LiveDocument":
        file_path = Path(path)
        try:
            html = file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise DocumentLoadError(f"Could not read {file_path}: {e}") from e
        logger.info("Loaded document from %s (%d bytes).", file_path, len(html))
        return cls.from_html(html, source=str(file_path))

    # --- Queries ---

    @property
    def body(self) -> Union[Tag, BeautifulSoup]:
        return self.soup.body or self.soup

    @property
    def title(self) -> str:
        return self.soup.title.get_text(strip=True) if self.soup.title else ""

    def select(self, selector: str, root: Optional[Tag] = None) -> List[Tag]:
        return (root or self.soup).select(selector)

    def select_one(self, selector: str, root: Optional[Tag] = None) -> Optional[Tag]:
        return (root or self.soup).select_one(selector)

    def get_element_by_id(self, element_id: str) -> Optional[Tag]:
        if not element_id:
            return None
        return self.soup.find(attrs={"id": element_id})

    def is_attached(self, tag: Tag) -> bool:
        return any(parent is self.soup for parent in tag.parents)

    def computed_style(self, tag: Tag) -> ComputedStyle:
        return self.styles.computed_style(tag)

    def text_content(self, tag: Tag) -> str:
        return tag.get_text()

    def inner_html(self, tag: Tag) -> str:
        return "".join(str(child) for child in tag.contents)

    def serialize(self) -> str:
        """Markup of a copy of the tree with the current control state written back as attributes."""
        clone = copy.copy(self.soup)
        names = ["input", "textarea", "option"]
        for original, twin in zip(self.soup.find_all(names), clone.find_all(names)):
            st = self._state.get(id(original))
            if st is None or st.node is not original:
                continue
            if original.name == "option":
                if st.selected is not None:
                    _toggle_attr(twin, "selected", st.selected)
            elif original.name == "textarea":
                if st.value is not None:
                    twin.string = st.value
            elif self.input_type(original) in CHECKABLE_TYPES:
                if st.checked is not None:
                    _toggle_attr(twin, "checked", st.checked)
            elif st.value is not None and self.input_type(original) != "file":
                twin["value"] = st.value
        return str(clone)

    # --- Control state ---

    def state(self, tag: Tag) -> ControlState:
        key = id(tag)
        st = self._state.get(key)
        if st is None or st.node is not tag:
            st = ControlState(tag)
            self._state[key] = st
        return st

    def input_type(self, tag: Tag) -> str:
        return str(tag.get("type", "text") or "text").lower()

    def value(self, tag: Tag) -> str:
        """Current value of a control, as the DOM `value` property would report it."""
        if tag.name == "select":
            selected = self.selected_options(tag)
            return self.option_value(selected[0]) if selected else ""
        if tag.name == "option":
            return self.option_value(tag)
        st = self.state(tag)
        if st.value is not None:
            return st.value
        if tag.name == "textarea":
            return tag.get_text()
        if tag.name == "input" and self.input_type(tag) in CHECKABLE_TYPES:
            return str(tag.get("value", "on"))
        return str(tag.get("value", ""))

    def default_value(self, tag: Tag) -> str:
        if tag.name == "textarea":
            return tag.get_text()
        return str(tag.get("value", ""))

    def set_value(self, tag: Tag, value: Any) -> None:
        if tag.name == "select":
            wanted = str(value)
            for option in self.options(tag):
                self.state(option).selected = self.option_value(option) == wanted
            return
        st = self.state(tag)
        st.value = "" if value is None else str(value)
        st.dirty = True

    def is_checked(self, tag: Tag) -> bool:
        st = self.state(tag)
        if st.checked is None:
            return tag.has_attr("checked")
        return st.checked

    def set_checked(self, tag: Tag, checked: bool) -> None:
        """Sets checkedness; checking a radio unchecks the rest of its group."""
        self.state(tag).checked = bool(checked)
        if checked and self.input_type(tag) == "radio" and tag.get("name"):
            for other in self.radio_group(tag):
                if other is not tag:
                    self.state(other).checked = False

    def _named_group(self, tag: Tag, kind: str) -> List[Tag]:
        name = tag.get("name")
        if not name:
            return [tag]
        scope = tag.find_parent("form") or self.soup
        return [
            el for el in scope.find_all("input", attrs={"name": name})
            if self.input_type(el) == kind
        ]

    def radio_group(self, tag: Tag) -> List[Tag]:
        return self._named_group(tag, "radio")

    def checkbox_group(self, tag: Tag) -> List[Tag]:
        return self._named_group(tag, "checkbox")

    def options(self, select: Tag) -> List[Tag]:
        return select.find_all("option")

    def option_value(self, option: Tag) -> str:
        if option.has_attr("value"):
            return str(option["value"])
        return option.get_text(strip=True)

    def is_selected(self, option: Tag) -> bool:
        st = self.state(option)
        if st.selected is not None:
            return st.selected
        return option.has_attr("selected")

    def set_selected(self, option: Tag, selected: bool) -> None:
        select = option.find_parent("select")
        if selected and select is not None and not select.has_attr("multiple"):
            for other in self.options(select):
                self.state(other).selected = False
        self.state(option).selected = bool(selected)

    def selected_options(self, select: Tag) -> List[Tag]:
        options = self.options(select)
        chosen = [o for o in options if self.is_selected(o)]
        if select.has_attr("multiple"):
            return chosen
        if chosen:
            # Single selects report the last explicitly selected option.
            return [chosen[-1]]
        # Display selectedness: a single select with no choice shows its first enabled option.
        for option in options:
            if not option.has_attr("disabled"):
                return [option]
        return []

    def files(self, tag: Tag) -> List[Dict[str, Any]]:
        return list(self.state(tag).files)

    def set_files(self, tag: Tag, files: List[Dict[str, Any]]) -> None:
        """Simulates a user picking files; only metadata is stored."""
        self.state(tag).files = [dict(f) for f in files]

    def custom_error(self, tag: Tag) -> str:
        return self.state(tag).custom_error

    def set_custom_validity(self, tag: Tag, message: str) -> None:
        self.state(tag).custom_error = message or ""

    # --- Events ---

    def add_event_listener(self, event_type: str, callback: Callable[[Tag, str], None]) -> None:
        self._listeners.setdefault(event_type, []).append(callback)

    def dispatch_event(self, tag: Tag, event_type: str) -> None:
        self.event_log.append({"type": event_type, "target": tag})
        for callback in self._listeners.get(event_type, []):
            callback(tag, event_type)

    # --- Mutations ---

    def _emit(self, record: MutationRecord) -> None:
        self.styles.invalidate()
        for observer in list(self._observers):
            if observer._wants(record):
                observer.callback([record])

    def set_attribute(self, tag: Tag, name: str, value: Any) -> None:
        old = tag.get(name)
        if isinstance(old, list):
            old = " ".join(old)
        tag[name] = value
        self._emit(MutationRecord("attributes", tag, attribute_name=name, old_value=old))

    def remove_attribute(self, tag: Tag, name: str) -> None:
        if not tag.has_attr(name):
            return
        old = tag.get(name)
        if isinstance(old, list):
            old = " ".join(old)
        del tag[name]
        self._emit(MutationRecord("attributes", tag, attribute_name=name, old_value=old))

    def class_list(self, tag: Tag) -> List[str]:
        classes = tag.get("class", [])
        if isinstance(classes, str):
            classes = classes.split()
        return list(classes)

    def add_class(self, tag: Tag, *names: str) -> None:
        classes = self.class_list(tag)
        missing = [n for n in names if n not in classes]
        if missing:
            self.set_attribute(tag, "class", classes + missing)

    def remove_class(self, tag: Tag, *names: str) -> None:
        classes = self.class_list(tag)
        kept = [c for c in classes if c not in names]
        if len(kept) == len(classes):
            return
        if kept:
            self.set_attribute(tag, "class", kept)
        else:
            self.remove_attribute(tag, "class")

    def _fragment(self, html: str) -> List[Tag]:
        fragment = BeautifulSoup(html, "html.parser")
        return [node.extract() for node in list(fragment.contents)]

    def append_html(self, parent: Tag, html: str) -> List[Tag]:
        nodes = self._fragment(html)
        for node in nodes:
            parent.append(node)
        added = [n for n in nodes if isinstance(n, Tag)]
        self._emit(MutationRecord("childList", parent, added=added))
        return added

    def append_child(self, parent: Tag, node: Tag) -> Tag:
        parent.append(node)
        self._emit(MutationRecord("childList", parent, added=[node]))
        return node

    def insert_after(self, reference: Tag, html: str) -> List[Tag]:
        nodes = self._fragment(html)
        anchor = reference
        for node in nodes:
            anchor.insert_after(node)
            anchor = node
        added = [n for n in nodes if isinstance(n, Tag)]
        parent = reference.parent
        self._emit(MutationRecord("childList", parent, added=added))
        return added

    def remove(self, tag: Tag) -> None:
        parent = tag.parent
        tag.extract()
        if parent is not None:
            self._emit(MutationRecord("childList", parent, removed=[tag]))

    def set_text(self, tag: Tag, text: str) -> None:
        removed = [c for c in tag.contents if isinstance(c, Tag)]
        tag.clear()
        tag.append(text)
        self._emit(MutationRecord("childList", tag, removed=removed))

    def set_inner_html(self, tag: Tag, html: str) -> None:
        removed = [c for c in tag.contents if isinstance(c, Tag)]
        tag.clear()
        nodes = self._fragment(html)
        for node in nodes:
            tag.append(node)
        added = [n for n in nodes if isinstance(n, Tag)]
        self._emit(MutationRecord("childList", tag, added=added, removed=removed))
