import re
from typing import Any

from bs4 import Tag

from ..core import ApplyRejected, CanonicalType, ControlDefinition

HEX_COLOR = re.compile(r"^#[0-9A-F]{6}$", re.IGNORECASE)


def read_color(doc, tag: Tag) -> str:
    # Browsers sanitize an empty or invalid color to black.
    value = doc.value(tag)
    return value.lower() if HEX_COLOR.match(value) else "#000000"


def write_color(doc, tag: Tag, value: Any) -> str:
    text = str(value).strip() if value is not None else ""
    if not HEX_COLOR.match(text):
        raise ApplyRejected("Invalid color format (expected #RRGGBB)")
    doc.set_value(tag, text.lower())
    return "setValue"


DEFINITION = ControlDefinition(
    family="color",
    types=[CanonicalType.COLOR],
    reader=read_color,
    writer=write_color,
)
