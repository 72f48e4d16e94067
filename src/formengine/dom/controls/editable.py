from typing import Any, Dict

from bs4 import Tag

from ..core import CanonicalType, ControlDefinition


def read_editable(doc, tag: Tag) -> Dict[str, str]:
    return {"text_content": doc.text_content(tag), "html": doc.inner_html(tag)}


def write_editable(doc, tag: Tag, value: Any) -> str:
    """Plain values replace the text; a mapping with an 'html' key replaces the markup."""
    if isinstance(value, dict) and "html" in value:
        doc.set_inner_html(tag, str(value["html"]))
        return "setInnerHTML"
    doc.set_text(tag, "" if value is None else str(value))
    return "setTextContent"


DEFINITION = ControlDefinition(
    family="editable",
    types=[CanonicalType.CONTENTEDITABLE],
    reader=read_editable,
    writer=write_editable,
)
