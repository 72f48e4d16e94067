from typing import Any, Dict

from bs4 import Tag

from ..core import ApplyRejected, CanonicalType, ControlDefinition, classify
from ..selectors import attr_text
from ...utils.formatting import to_number

BUTTON_TYPES = (CanonicalType.BUTTON, CanonicalType.SUBMIT, CanonicalType.RESET, CanonicalType.IMAGE)
GAUGE_TYPES = (CanonicalType.METER, CanonicalType.PROGRESS)


def read_action(doc, tag: Tag) -> Any:
    if tag.name in ("meter", "progress"):
        number = to_number(tag.get("value"))
        return number if number is not None else ""
    if tag.name == "output":
        return tag.get_text(strip=True)
    if tag.name == "button":
        return str(tag.get("value", ""))
    return doc.value(tag)


def write_action(doc, tag: Tag, value: Any) -> str:
    canonical = classify(tag)
    if canonical in GAUGE_TYPES:
        number = to_number(value)
        if number is None:
            raise ApplyRejected("Invalid number value")
        doc.set_attribute(tag, "value", str(value))
        return "setValue"
    if canonical == CanonicalType.OUTPUT:
        doc.set_text(tag, "" if value is None else str(value))
        return "setTextContent"
    raise ApplyRejected("Buttons do not accept values")


def describe_action(doc, tag: Tag) -> Dict[str, Any]:
    if tag.name in ("meter", "progress"):
        return {"min": tag.get("min"), "max": tag.get("max"), "as_number": to_number(tag.get("value"))}
    if tag.name == "output":
        return {"for": attr_text(tag, "for")}
    return {"button_text": tag.get_text(strip=True) or tag.get("value", "")}


DEFINITION = ControlDefinition(
    family="action",
    types=list(BUTTON_TYPES) + list(GAUGE_TYPES) + [CanonicalType.OUTPUT],
    reader=read_action,
    writer=write_action,
    describer=describe_action,
)
