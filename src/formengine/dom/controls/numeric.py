from typing import Any, Dict

from bs4 import Tag

from ..core import ApplyRejected, CanonicalType, ControlDefinition
from ...utils.formatting import to_number


def read_number(doc, tag: Tag) -> Any:
    raw = doc.value(tag)
    number = to_number(raw)
    # A zero or unparseable number reports the raw string, as valueAsNumber || value would.
    return number if number else raw


def write_number(doc, tag: Tag, value: Any) -> str:
    if isinstance(value, bool):
        raise ApplyRejected("Invalid number value")
    number = to_number(value)
    if number is None:
        raise ApplyRejected("Invalid number value")
    doc.set_value(tag, _render(number) if not isinstance(value, str) else value.strip())
    return "setValue"


def describe_number(doc, tag: Tag) -> Dict[str, Any]:
    return {
        "min": tag.get("min"),
        "max": tag.get("max"),
        "step": tag.get("step"),
        "as_number": to_number(doc.value(tag)),
    }


def _render(number: float) -> str:
    return str(int(number)) if number == int(number) else repr(number)


DEFINITION = ControlDefinition(
    family="numeric",
    types=[CanonicalType.NUMBER, CanonicalType.RANGE],
    reader=read_number,
    writer=write_number,
    describer=describe_number,
)
