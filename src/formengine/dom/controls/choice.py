from typing import Any, Dict, Optional

from bs4 import Tag

from ..core import ApplyRejected, CanonicalType, ControlDefinition

TRUE_WORDS = {"true", "on", "yes", "1", "checked", "y"}
FALSE_WORDS = {"false", "off", "no", "0", "", "unchecked", "n"}


def read_choice(doc, tag: Tag) -> Optional[str]:
    return doc.value(tag) if doc.is_checked(tag) else None


def _as_flag(doc, tag: Tag, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (list, tuple, set)):
        return doc.value(tag) in {str(v) for v in value}
    if isinstance(value, (int, float)):
        return bool(value)
    text = str(value).strip().lower()
    if text in TRUE_WORDS:
        return True
    if text in FALSE_WORDS:
        return False
    return str(value) == doc.value(tag)


def write_choice(doc, tag: Tag, value: Any) -> str:
    if doc.input_type(tag) == "checkbox":
        doc.set_checked(tag, _as_flag(doc, tag, value))
        return "setChecked"

    if isinstance(value, bool):
        doc.set_checked(tag, value)
        return "setRadioChecked"

    wanted = str(value)
    if doc.value(tag) == wanted:
        doc.set_checked(tag, True)
        return "setRadioChecked"
    for member in doc.radio_group(tag):
        if doc.value(member) == wanted:
            doc.set_checked(member, True)
            return "setRadioGroupValue"
    raise ApplyRejected("Radio value not found in group")


def describe_choice(doc, tag: Tag) -> Dict[str, Any]:
    data: Dict[str, Any] = {"checked": doc.is_checked(tag), "group": None}
    name = tag.get("name")
    if not name:
        return data
    kind = doc.input_type(tag)
    members = doc.radio_group(tag) if kind == "radio" else doc.checkbox_group(tag)
    data["group"] = {
        "name": name,
        "type": kind,
        "count": len(members),
        "members": [
            {"value": doc.value(m), "checked": doc.is_checked(m), "label": ""} for m in members
        ],
    }
    return data


DEFINITION = ControlDefinition(
    family="choice",
    types=[CanonicalType.CHECKBOX, CanonicalType.RADIO],
    reader=read_choice,
    writer=write_choice,
    describer=describe_choice,
)
