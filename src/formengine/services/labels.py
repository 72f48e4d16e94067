# src/formengine/services/labels.py
import copy
import logging
import re
from typing import List, Optional, Tuple

from bs4 import Tag

from formengine.dom.selectors import attr_text, direct_text_nodes, previous_element_sibling

logger = logging.getLogger(__name__)

CONTROL_TAGS = ("input", "select", "textarea", "button")
_FIELD_ID = re.compile(r"(\d+)_(\d+)")


def clean_text(tag: Optional[Tag]) -> str:
    if tag is None:
        return ""
    return " ".join(tag.get_text(" ", strip=True).split())


def _class_contains(tag: Tag, fragment: str) -> bool:
    return fragment in attr_text(tag, "class")


class LabelResolver:
    """
    Resolves the human-readable label of a control through an ordered cascade
    of strategies; the first non-empty answer wins.

    `FULL_CASCADE` is what the DocumentScanner uses. `BASIC_CASCADE` is the
    legacy order used by the minimal extractor: explicit <label> first, then
    sibling text, then the container heuristics.
    """

    def __init__(self, doc):
        self.doc = doc

    # --- Strategies ---

    def aria_label(self, tag: Tag) -> str:
        return attr_text(tag, "aria-label").strip()

    def aria_labelledby(self, tag: Tag) -> str:
        texts = [clean_text(self.doc.get_element_by_id(ref)) for ref in attr_text(tag, "aria-labelledby").split()]
        return " ".join(t for t in texts if t)

    def label_for(self, tag: Tag) -> str:
        own_id = attr_text(tag, "id")
        if not own_id:
            return ""
        return clean_text(self.doc.soup.find("label", attrs={"for": own_id}))

    def associated_labels(self, tag: Tag) -> List[str]:
        """Texts of every <label> bound to the control, by `for` or by nesting."""
        labels: List[str] = []
        own_id = attr_text(tag, "id")
        if own_id:
            labels.extend(
                clean_text(lbl) for lbl in self.doc.soup.find_all("label", attrs={"for": own_id})
            )
        wrapping = self.wrapping_label(tag)
        if wrapping:
            labels.append(wrapping)
        return [lbl for lbl in labels if lbl]

    def wrapping_label(self, tag: Tag) -> str:
        parent = tag.find_parent("label")
        if parent is None:
            return ""
        clone = copy.copy(parent)
        for control in clone.find_all(list(CONTROL_TAGS)):
            control.decompose()
        return clean_text(clone)

    def gaia_container(self, tag: Tag) -> str:
        """Kintone layouts: walk up to ten levels looking for a gaia/field- container."""
        current: Optional[Tag] = tag
        depth = 0
        while isinstance(current, Tag) and current.name != "[document]" and depth < 10:
            if _class_contains(current, "control-gaia") or _class_contains(current, "field-"):
                span = current.select_one(".control-label-text-gaia")
                if span is not None:
                    return clean_text(span)
                label_div = current.select_one('[class*="label-"]')
                if label_div is not None:
                    inner = label_div.find("span")
                    return clean_text(inner if inner is not None else label_div)
            current = current.parent
            depth += 1
        return ""

    def _owns_only(self, container: Tag, tag: Tag) -> bool:
        """True when every control in `container` is `tag` or a member of its name group."""
        name = attr_text(tag, "name")
        for control in container.find_all(["input", "select", "textarea"]):
            if control is tag:
                continue
            if name and attr_text(control, "name") == name:
                continue
            if self.doc.input_type(control) == "hidden" and control.name == "input":
                continue
            return False
        return True

    def parent_container(self, tag: Tag) -> str:
        parent = tag.parent
        depth = 0
        while isinstance(parent, Tag) and parent.name not in ("[document]", "body") and depth < 3:
            # Stop before climbing into a container shared with other fields.
            if not self._owns_only(parent, tag):
                break
            found = parent.select_one(
                'div[class*="label"], div[class*="title"], div[class*="heading"], span[class*="label"]'
            )
            if found is None:
                found = parent.find(["h1", "h2", "h3", "h4", "h5", "h6", "legend"])
            if found is not None:
                text = clean_text(found)
                if text:
                    return text
            parent = parent.parent
            depth += 1
        return ""

    def container_heuristics(self, tag: Tag) -> str:
        return self.gaia_container(tag) or self.parent_container(tag)

    def nearby_text(self, tag: Tag) -> str:
        sibling = previous_element_sibling(tag)
        if sibling is not None and sibling.name not in CONTROL_TAGS:
            text = clean_text(sibling)
            if text:
                return text
        parent = tag.parent
        if isinstance(parent, Tag):
            texts = direct_text_nodes(parent)
            if texts:
                return " ".join(texts[-1].split())
        return ""

    def previous_sibling_text(self, tag: Tag) -> str:
        sibling = previous_element_sibling(tag)
        if sibling is not None and sibling.name not in CONTROL_TAGS:
            return clean_text(sibling)
        return ""

    def table_header(self, tag: Tag) -> str:
        cell = tag.find_parent(["td", "th"])
        if cell is None:
            return ""
        table = cell.find_parent("table")
        row = cell.parent
        if table is None or not isinstance(row, Tag):
            return ""
        cells = row.find_all(["td", "th"], recursive=False)
        index = next((i for i, c in enumerate(cells) if c is cell), -1)
        header_row = table.find("tr")
        if header_row is None or header_row is row or index < 0:
            return ""
        header_cells = header_row.find_all(["td", "th"], recursive=False)
        if index < len(header_cells):
            return clean_text(header_cells[index])
        return ""

    def field_id_reference(self, tag: Tag) -> str:
        m = _FIELD_ID.search(attr_text(tag, "id"))
        if not m:
            return ""
        field = m.group(2)
        for found in self.doc.select(f".label-{field}, .field-{field} .control-label-text-gaia"):
            text = clean_text(found)
            if text:
                return text
        return ""

    def placeholder(self, tag: Tag) -> str:
        return attr_text(tag, "placeholder").strip()

    def title(self, tag: Tag) -> str:
        return attr_text(tag, "title").strip()

    def name_or_id(self, tag: Tag) -> str:
        return attr_text(tag, "name") or attr_text(tag, "id")

    # --- Cascades ---

    FULL_CASCADE: Tuple[str, ...] = (
        "aria_label",
        "aria_labelledby",
        "label_for",
        "wrapping_label",
        "container_heuristics",
        "nearby_text",
        "table_header",
        "field_id_reference",
        "placeholder",
        "title",
        "name_or_id",
    )

    BASIC_CASCADE: Tuple[str, ...] = (
        "label_for",
        "wrapping_label",
        "previous_sibling_text",
        "gaia_container",
        "parent_container",
        "aria_label",
        "aria_labelledby",
        "table_header",
        "field_id_reference",
        "placeholder",
        "name_or_id",
    )

    def resolve(self, tag: Tag, cascade: Optional[Tuple[str, ...]] = None) -> str:
        for strategy in cascade or self.FULL_CASCADE:
            try:
                text = getattr(self, strategy)(tag)
            except Exception as e:
                logger.debug("Label strategy %s failed on <%s>: %s", strategy, tag.name, e)
                continue
            if text:
                return text
        return ""

    def resolve_basic(self, tag: Tag) -> str:
        return self.resolve(tag, self.BASIC_CASCADE)
