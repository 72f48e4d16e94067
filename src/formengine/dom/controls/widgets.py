from typing import Any, Dict, List

from bs4 import Tag

from ..core import ApplyRejected, CanonicalType, ControlDefinition, ROLE_TYPES
from ...utils.formatting import to_number

RANGE_ROLES = ("slider", "spinbutton")


def _role(tag: Tag) -> str:
    return str(tag.get("role", "")).lower()


def _listbox_options(tag: Tag) -> List[Tag]:
    return tag.find_all(attrs={"role": "option"})


def _option_value(option: Tag) -> str:
    return str(option.get("data-value") or option.get_text(strip=True))


def read_widget(doc, tag: Tag) -> Any:
    role = _role(tag)
    if role in RANGE_ROLES:
        now = tag.get("aria-valuenow")
        number = to_number(now)
        return number if number is not None else (now or "")
    if role == "listbox":
        return [
            _option_value(o) for o in _listbox_options(tag)
            if str(o.get("aria-selected", "")).lower() == "true"
        ]
    return tag.get_text(strip=True)


def write_widget(doc, tag: Tag, value: Any) -> str:
    role = _role(tag)
    if role in RANGE_ROLES:
        number = to_number(value)
        if number is None or isinstance(value, bool):
            raise ApplyRejected("Invalid number value")
        low = to_number(tag.get("aria-valuemin"))
        high = to_number(tag.get("aria-valuemax"))
        if (low is not None and number < low) or (high is not None and number > high):
            raise ApplyRejected("Value outside the widget's allowed range")
        text = str(int(number)) if number == int(number) else str(number)
        doc.set_attribute(tag, "aria-valuenow", text)
        return "setAriaValue"

    if role == "listbox":
        values = value if isinstance(value, (list, tuple, set)) else [value]
        wanted = {str(v) for v in values}
        options = _listbox_options(tag)
        if not any(_option_value(o) in wanted for o in options):
            raise ApplyRejected("Option not found in listbox")
        for option in options:
            doc.set_attribute(option, "aria-selected", "true" if _option_value(option) in wanted else "false")
        return "setAriaSelected"

    doc.set_text(tag, "" if value is None else str(value))
    return "setTextContent"


def describe_widget(doc, tag: Tag) -> Dict[str, Any]:
    role = _role(tag)
    if role in RANGE_ROLES:
        return {
            "min": tag.get("aria-valuemin"),
            "max": tag.get("aria-valuemax"),
            "as_number": to_number(tag.get("aria-valuenow")),
        }
    if role == "listbox":
        return {
            "options": [
                {
                    "index": i,
                    "value": _option_value(o),
                    "text": o.get_text(strip=True),
                    "selected": str(o.get("aria-selected", "")).lower() == "true",
                }
                for i, o in enumerate(_listbox_options(tag))
            ],
            "multiple": str(tag.get("aria-multiselectable", "")).lower() == "true",
        }
    return {}


DEFINITION = ControlDefinition(
    family="aria-widget",
    types=list(ROLE_TYPES.values()),
    reader=read_widget,
    writer=write_widget,
    describer=describe_widget,
)
