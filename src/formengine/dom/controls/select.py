from typing import Any, Dict, List

from bs4 import Tag

from ..core import ApplyRejected, CanonicalType, ControlDefinition


def read_select(doc, tag: Tag) -> Any:
    selected = doc.selected_options(tag)
    if tag.has_attr("multiple"):
        return [doc.option_value(o) for o in selected]
    return doc.option_value(selected[0]) if selected else ""


def _match(doc, options: List[Tag], wanted: str) -> List[Tag]:
    by_value = [o for o in options if doc.option_value(o) == wanted]
    if by_value:
        return by_value
    lowered = wanted.strip().lower()
    return [o for o in options if o.get_text(strip=True).lower() == lowered]


def write_select(doc, tag: Tag, value: Any) -> str:
    options = doc.options(tag)
    if tag.has_attr("multiple"):
        values = value if isinstance(value, (list, tuple, set)) else [value]
        wanted = {str(v) for v in values}
        texts = {str(v).strip().lower() for v in values}
        for option in options:
            hit = doc.option_value(option) in wanted or option.get_text(strip=True).lower() in texts
            doc.set_selected(option, hit)
        return "setMultipleSelect"

    if isinstance(value, (list, tuple)):
        value = value[0] if value else ""
    matches = _match(doc, options, str(value))
    if not matches:
        raise ApplyRejected(f"Option '{value}' not found in select")
    doc.set_selected(matches[0], True)
    return "setValue"


def describe_select(doc, tag: Tag) -> Dict[str, Any]:
    options = []
    for index, option in enumerate(doc.options(tag)):
        parent = option.parent
        options.append({
            "index": index,
            "value": doc.option_value(option),
            "text": option.get_text(strip=True),
            "label": option.get("label") or option.get_text(strip=True),
            "selected": doc.is_selected(option),
            "disabled": option.has_attr("disabled"),
            "group": parent.get("label") if parent is not None and parent.name == "optgroup" else None,
        })
    chosen = {id(o) for o in doc.selected_options(tag)}
    selected = [
        {"value": doc.option_value(o), "text": o.get_text(strip=True), "index": i}
        for i, o in enumerate(doc.options(tag)) if id(o) in chosen
    ]
    optgroups = [
        {
            "label": group.get("label", ""),
            "disabled": group.has_attr("disabled"),
            "options": [doc.option_value(o) for o in group.find_all("option")],
        }
        for group in tag.find_all("optgroup")
    ]
    return {
        "options": options,
        "selected_options": selected,
        "optgroups": optgroups,
        "multiple": tag.has_attr("multiple"),
    }


DEFINITION = ControlDefinition(
    family="select",
    types=[CanonicalType.SELECT, CanonicalType.SELECT_MULTIPLE],
    reader=read_select,
    writer=write_select,
    describer=describe_select,
)
