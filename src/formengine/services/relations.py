# src/formengine/services/relations.py
from typing import Dict, List, Optional

from bs4 import Tag

from formengine.dom.selectors import attr_text, unique_selector
from formengine.model import ElementContext, ValidationConstraints
from formengine.services.labels import clean_text
from formengine.validation.html5 import compute_validity, validation_message

VALIDATOR_PREFIX = "data-validate-"


def _int_attr(tag: Tag, name: str) -> Optional[int]:
    raw = attr_text(tag, name).strip()
    return int(raw) if raw.lstrip("-").isdigit() else None


def _optional(tag: Tag, name: str) -> Optional[str]:
    return attr_text(tag, name) if tag.has_attr(name) else None


def element_context(tag: Tag) -> ElementContext:
    """Enclosing fieldset, form, labelled section and role=group of a control."""
    fieldset = tag.find_parent("fieldset")
    form = tag.find_parent("form")
    section = tag.find_parent("section")
    group = tag.find_parent(attrs={"role": "group"})

    fieldset_info = None
    if fieldset is not None:
        legend = fieldset.find("legend")
        fieldset_info = {
            "legend": clean_text(legend),
            "disabled": fieldset.has_attr("disabled"),
            "selector": unique_selector(fieldset),
        }
    form_info = None
    if form is not None:
        form_info = {
            "action": attr_text(form, "action"),
            "method": attr_text(form, "method", "get").lower() or "get",
            "name": attr_text(form, "name") or attr_text(form, "id"),
        }
    return ElementContext(
        fieldset=fieldset_info,
        form=form_info,
        section=attr_text(section, "aria-label") if section is not None else None,
        group=attr_text(group, "aria-label") if group is not None else None,
    )


def dependencies(doc, tag: Tag) -> List[Dict[str, str]]:
    """Elements that control this one (aria-controls) or that it describes (aria-describedby)."""
    own_id = attr_text(tag, "id")
    if not own_id:
        return []
    found: List[Dict[str, str]] = []
    for other in doc.soup.find_all(attrs={"aria-controls": True}):
        if own_id in attr_text(other, "aria-controls").split():
            found.append({"relationship": "controls", "selector": unique_selector(other)})
    for other in doc.soup.find_all(attrs={"aria-describedby": True}):
        if other is not tag and own_id in attr_text(other, "aria-describedby").split():
            found.append({"relationship": "describes", "selector": unique_selector(other)})
    return found


def custom_data(tag: Tag) -> Dict[str, str]:
    """data-* attributes that are not validator declarations."""
    return {
        name: attr_text(tag, name) for name in tag.attrs
        if name.startswith("data-") and not name.startswith(VALIDATOR_PREFIX)
    }


def inline_events(tag: Tag) -> List[str]:
    return [name[2:] for name in tag.attrs if name.startswith("on") and len(name) > 2]


def custom_rules(tag: Tag) -> List[Dict[str, str]]:
    return [
        {"type": name[len(VALIDATOR_PREFIX):], "value": attr_text(tag, name)}
        for name in tag.attrs if name.startswith(VALIDATOR_PREFIX)
    ]


def extract_constraints(doc, tag: Tag) -> ValidationConstraints:
    return ValidationConstraints(
        required=tag.has_attr("required"),
        pattern=_optional(tag, "pattern"),
        min=_optional(tag, "min"),
        max=_optional(tag, "max"),
        min_length=_int_attr(tag, "minlength"),
        max_length=_int_attr(tag, "maxlength"),
        step=_optional(tag, "step"),
        accept=_optional(tag, "accept"),
        multiple=tag.has_attr("multiple"),
        validity=compute_validity(doc, tag),
        validation_message=validation_message(doc, tag),
        custom_rules=custom_rules(tag),
    )
