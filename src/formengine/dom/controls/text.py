from typing import Any, Dict

from bs4 import Tag

from ..core import ControlDefinition, TEXT_FAMILY


def read_text(doc, tag: Tag) -> str:
    return doc.value(tag)


def write_text(doc, tag: Tag, value: Any) -> str:
    doc.set_value(tag, "" if value is None else str(value))
    return "setValue"


def describe_text(doc, tag: Tag) -> Dict[str, Any]:
    if tag.name != "textarea":
        return {}
    return {
        "rows": _int_or_none(tag.get("rows")),
        "cols": _int_or_none(tag.get("cols")),
        "wrap": tag.get("wrap", "soft"),
    }


def _int_or_none(value: Any):
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


DEFINITION = ControlDefinition(
    family="text",
    types=sorted(TEXT_FAMILY, key=lambda t: t.value),
    reader=read_text,
    writer=write_text,
    describer=describe_text,
)
