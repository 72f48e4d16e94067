# src/formengine/dom/core.py
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from bs4 import Tag


class CanonicalType(str, Enum):
    """Normalized semantic type of an interactive surface."""
    TEXT = "text"
    PASSWORD = "password"
    EMAIL = "email"
    URL = "url"
    TEL = "tel"
    SEARCH = "search"
    HIDDEN = "hidden"
    TEXTAREA = "textarea"
    NUMBER = "number"
    RANGE = "range"
    DATE = "date"
    TIME = "time"
    DATETIME_LOCAL = "datetime-local"
    MONTH = "month"
    WEEK = "week"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    FILE = "file"
    COLOR = "color"
    IMAGE = "image"
    BUTTON = "button"
    SUBMIT = "submit"
    RESET = "reset"
    SELECT = "select"
    SELECT_MULTIPLE = "select-multiple"
    CONTENTEDITABLE = "contenteditable"
    TEXTBOX = "textbox"
    COMBOBOX = "combobox"
    LISTBOX = "listbox"
    SLIDER = "slider"
    SPINBUTTON = "spinbutton"
    METER = "meter"
    PROGRESS = "progress"
    OUTPUT = "output"


INPUT_TYPES = {
    t.value: t for t in (
        CanonicalType.TEXT, CanonicalType.PASSWORD, CanonicalType.EMAIL, CanonicalType.URL,
        CanonicalType.TEL, CanonicalType.SEARCH, CanonicalType.NUMBER, CanonicalType.RANGE,
        CanonicalType.DATE, CanonicalType.TIME, CanonicalType.DATETIME_LOCAL, CanonicalType.MONTH,
        CanonicalType.WEEK, CanonicalType.CHECKBOX, CanonicalType.RADIO, CanonicalType.FILE,
        CanonicalType.HIDDEN, CanonicalType.COLOR, CanonicalType.IMAGE, CanonicalType.BUTTON,
        CanonicalType.SUBMIT, CanonicalType.RESET,
    )
}

ROLE_TYPES = {
    "textbox": CanonicalType.TEXTBOX,
    "combobox": CanonicalType.COMBOBOX,
    "listbox": CanonicalType.LISTBOX,
    "slider": CanonicalType.SLIDER,
    "spinbutton": CanonicalType.SPINBUTTON,
}

TAG_TYPES = {
    "textarea": CanonicalType.TEXTAREA,
    "button": CanonicalType.BUTTON,
    "meter": CanonicalType.METER,
    "progress": CanonicalType.PROGRESS,
    "output": CanonicalType.OUTPUT,
}

TEXT_FAMILY = frozenset({
    CanonicalType.TEXT, CanonicalType.PASSWORD, CanonicalType.EMAIL, CanonicalType.URL,
    CanonicalType.TEL, CanonicalType.SEARCH, CanonicalType.HIDDEN, CanonicalType.TEXTAREA,
})

DATE_FAMILY = frozenset({
    CanonicalType.DATE, CanonicalType.TIME, CanonicalType.DATETIME_LOCAL,
    CanonicalType.MONTH, CanonicalType.WEEK,
})


def is_editable_region(tag: Tag) -> bool:
    return tag.has_attr("contenteditable") and str(tag.get("contenteditable")).lower() != "false"


def classify(tag: Tag) -> Optional[CanonicalType]:
    """
    Maps a tag to its CanonicalType.

    Unknown input types fall back to TEXT. Returns None for tags that are not
    interactive surfaces at all.
    """
    name = tag.name
    if name == "input":
        raw = str(tag.get("type", "text") or "text").lower()
        return INPUT_TYPES.get(raw, CanonicalType.TEXT)
    if name == "select":
        return CanonicalType.SELECT_MULTIPLE if tag.has_attr("multiple") else CanonicalType.SELECT
    if is_editable_region(tag):
        return CanonicalType.CONTENTEDITABLE
    role = str(tag.get("role", "")).lower()
    if role in ROLE_TYPES:
        return ROLE_TYPES[role]
    return TAG_TYPES.get(name)


class ApplyRejected(Exception):
    """Raised by a control writer when a value cannot be applied; carries a user-facing reason."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class ControlDefinition:
    """
    Binds a family of canonical types to the functions that read, write and
    describe them.

    reader(doc, tag) -> value as exposed in the element descriptor
    writer(doc, tag, value) -> name of the method used; raises ApplyRejected
    describer(doc, tag) -> type specific descriptor fields
    """

    def __init__(
            self,
            family: str,
            types: List[CanonicalType],
            reader: Callable[[Any, Tag], Any],
            writer: Callable[[Any, Tag, Any], str],
            describer: Optional[Callable[[Any, Tag], Dict[str, Any]]] = None,
    ):
        self.family = family
        self.types = list(types)
        self.reader = reader
        self.writer = writer
        self.describer = describer or (lambda doc, tag: {})

    def __repr__(self) -> str:
        return f"<ControlDefinition {self.family} types={[t.value for t in self.types]}>"
