# src/formengine/dom/selectors.py
from typing import Any, Dict, List, Optional

from bs4 import NavigableString, Tag
from bs4.element import Comment

from formengine.utils.formatting import hash36


def attr_text(tag: Tag, name: str, default: str = "") -> str:
    """Attribute value as a plain string; bs4 returns lists for multi-valued attributes."""
    value = tag.get(name)
    if value is None:
        return default
    if isinstance(value, list):
        return " ".join(value)
    return str(value)


def class_name(tag: Tag) -> str:
    return attr_text(tag, "class")


def all_attributes(tag: Tag) -> Dict[str, str]:
    return {name: attr_text(tag, name) for name in tag.attrs}


def dataset(tag: Tag) -> Dict[str, str]:
    """data-* attributes keyed like DOMStringMap (data-max-size -> maxSize)."""
    out: Dict[str, str] = {}
    for name in tag.attrs:
        if not name.startswith("data-"):
            continue
        head, *rest = name[5:].split("-")
        key = head + "".join(part.capitalize() for part in rest)
        out[key] = attr_text(tag, name)
    return out


def direct_text_nodes(tag: Tag) -> List[str]:
    return [
        str(child).strip() for child in tag.children
        if isinstance(child, NavigableString) and not isinstance(child, Comment) and str(child).strip()
    ]


def previous_element_sibling(tag: Tag) -> Optional[Tag]:
    sibling = tag.previous_sibling
    while sibling is not None and not isinstance(sibling, Tag):
        sibling = sibling.previous_sibling
    return sibling


def unique_selector(tag: Tag) -> str:
    """
    Builds a CSS path for an element.

    '#id' when the element has an id; otherwise tag.class:nth-of-type(n)
    segments up to the nearest ancestor with an id (anchored on it) or body.
    """
    own_id = attr_text(tag, "id")
    if own_id:
        return f"#{own_id}"

    path: List[str] = []
    current: Optional[Tag] = tag
    while isinstance(current, Tag) and current.name != "[document]":
        segment = current.name
        classes = current.get("class") or []
        if classes:
            segment += "." + ".".join(classes)
        parent = current.parent
        if isinstance(parent, Tag):
            same = [c for c in parent.find_all(current.name, recursive=False)]
            if len(same) > 1:
                index = next(i for i, c in enumerate(same, 1) if c is current)
                segment += f":nth-of-type({index})"
        path.insert(0, segment)

        if parent is None or not isinstance(parent, Tag) or parent.name == "[document]":
            break
        parent_id = attr_text(parent, "id")
        if parent_id:
            path.insert(0, f"#{parent_id}")
            break
        if parent.name == "body":
            path.insert(0, "body")
            break
        current = parent
    return " > ".join(path)


def element_id(tag: Tag) -> str:
    """Stable identifier: native id, else name_<name>, else element_<hash of selector path>."""
    own_id = attr_text(tag, "id")
    if own_id:
        return own_id
    name = attr_text(tag, "name")
    if name:
        return f"name_{name}"
    return f"element_{hash36(unique_selector(tag))}"


def document_position(tag: Tag, order: Dict[int, int]) -> Dict[str, Any]:
    depth = sum(1 for p in tag.parents if isinstance(p, Tag) and p.name != "[document]")
    return {"index": order.get(id(tag), -1), "depth": depth}
