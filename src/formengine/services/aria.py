# src/formengine/services/aria.py
from typing import Dict, List, Optional

from bs4 import Tag

from formengine.dom.selectors import attr_text
from formengine.model import AccessibilityInfo
from formengine.services.labels import LabelResolver, clean_text

LANDMARK_ROLES = ("main", "navigation", "banner", "contentinfo", "complementary", "form")
SCREEN_READER_CLASSES = ".sr-only, .screen-reader-text, .visually-hidden"
FOCUSABLE_TAGS = ("input", "select", "textarea", "button")


def tab_index(tag: Tag) -> Optional[int]:
    """Effective tabIndex: the attribute when numeric, 0 for natively focusable tags, else -1."""
    raw = attr_text(tag, "tabindex")
    if raw:
        try:
            return int(raw)
        except ValueError:
            pass
    if tag.name in FOCUSABLE_TAGS or tag.has_attr("contenteditable"):
        return 0
    return -1


def is_disabled(tag: Tag) -> bool:
    """Disabled by attribute, aria-disabled, or an enclosing disabled fieldset (outside its legend)."""
    if tag.has_attr("disabled") or attr_text(tag, "aria-disabled").lower() == "true":
        return True
    for fieldset in tag.find_parents("fieldset"):
        if fieldset.has_attr("disabled"):
            legend = fieldset.find("legend", recursive=False)
            if legend is None or not any(p is legend for p in tag.parents):
                return True
    return False


def landmarks(tag: Tag) -> List[Dict[str, str]]:
    found = []
    for ancestor in tag.parents:
        if not isinstance(ancestor, Tag) or ancestor.name in ("body", "[document]"):
            break
        role = attr_text(ancestor, "role").lower()
        if role in LANDMARK_ROLES:
            found.append({"role": role, "label": attr_text(ancestor, "aria-label")})
    return found


def screen_reader_text(tag: Tag) -> str:
    """Visually hidden helper text inside the control or, for inputs, inside its wrapping label."""
    scope = tag
    if tag.name in ("input", "select", "textarea"):
        scope = tag.find_parent("label") or tag
    found = scope.select_one(SCREEN_READER_CLASSES)
    return clean_text(found)


def describing_elements(doc, tag: Tag) -> List[str]:
    texts = []
    for ref in attr_text(tag, "aria-describedby").split():
        target = doc.get_element_by_id(ref)
        if target is not None:
            texts.append(clean_text(target))
    return texts


def extract_accessibility(doc, tag: Tag, labels: LabelResolver) -> AccessibilityInfo:
    expanded = attr_text(tag, "aria-expanded").lower()
    associated = labels.associated_labels(tag)
    labelled = labels.aria_labelledby(tag)
    if labelled:
        associated.append(labelled)
    index = tab_index(tag)
    return AccessibilityInfo(
        label=attr_text(tag, "aria-label"),
        labelled_by=attr_text(tag, "aria-labelledby"),
        described_by=attr_text(tag, "aria-describedby"),
        required=attr_text(tag, "aria-required").lower() == "true",
        invalid=attr_text(tag, "aria-invalid").lower() == "true",
        expanded=None if not expanded else expanded == "true",
        hidden=attr_text(tag, "aria-hidden").lower() == "true",
        role=attr_text(tag, "role"),
        title=attr_text(tag, "title"),
        tab_index=index,
        access_key=attr_text(tag, "accesskey"),
        associated_labels=associated,
        describing_elements=describing_elements(doc, tag),
        landmarks=landmarks(tag),
        keyboard_navigable=index != -1 and not is_disabled(tag),
        screen_reader_text=screen_reader_text(tag),
    )


def has_accessible_name(doc, tag: Tag, labels: LabelResolver) -> bool:
    """Accessible name from aria-label, aria-labelledby or an associated <label>."""
    return bool(labels.aria_label(tag) or labels.aria_labelledby(tag) or labels.associated_labels(tag))
