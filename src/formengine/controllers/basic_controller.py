# src/formengine/controllers/basic_controller.py
import logging
import re
import time
from collections import OrderedDict
from typing import Any, Dict, List, Optional

from bs4 import Tag

from formengine.controllers.forms_backend import FormsBackend
from formengine.dom.selectors import attr_text
from formengine.model import (
    ApplicationResult,
    BasicFormItem,
    FillFailure,
    FillSuccess,
    HighlightOptions,
)
from formengine.services.annotation import HighlightService
from formengine.services.labels import LabelResolver

logger = logging.getLogger(__name__)

KINTONE_FIELD = re.compile(r"field-(\d+)")
KINTONE_MARKERS = (".layout-gaia", ".gaia-argoui-app-view")


class BasicFormsController(FormsBackend):
    """
    Minimal extractor: a flat list of visible input/select/textarea elements,
    with radio and checkbox sets merged by name. Kept as the fallback when the
    full engine is unavailable or fails.
    """

    mode = "basic"

    def __init__(self, doc):
        if doc is None:
            raise ValueError("BasicFormsController needs a document.")
        self.doc = doc
        self.labels = LabelResolver(doc)
        self.highlighter = HighlightService(doc)
        self.forms: "OrderedDict[str, BasicFormItem]" = OrderedDict()
        self.collect_forms()

    def is_kintone_page(self) -> bool:
        return any(self.doc.select_one(marker) is not None for marker in KINTONE_MARKERS)

    def _visible(self, tag: Tag) -> bool:
        if tag.name == "input" and self.doc.input_type(tag) == "hidden":
            return False
        return self.doc.computed_style(tag).rendered

    @staticmethod
    def _kintone_field_id(tag: Tag) -> str:
        container = tag.find_parent(class_=KINTONE_FIELD)
        if container is None:
            return ""
        m = KINTONE_FIELD.search(attr_text(container, "class"))
        return m.group(1) if m else ""

    def collect_forms(self) -> List[BasicFormItem]:
        groups: "OrderedDict[str, BasicFormItem]" = OrderedDict()
        singles: "OrderedDict[str, BasicFormItem]" = OrderedDict()

        for index, tag in enumerate(self.doc.soup.find_all(["input", "select", "textarea"])):
            if not self._visible(tag):
                continue
            kind = self.doc.input_type(tag) if tag.name == "input" else tag.name
            label = self.labels.resolve_basic(tag)

            if kind in ("radio", "checkbox"):
                key = attr_text(tag, "name") or attr_text(tag, "id") or f"group-{index}"
                group = groups.get(key)
                if group is None:
                    group = BasicFormItem(
                        id=key, tag_name="input-group", type=kind,
                        name=attr_text(tag, "name") or attr_text(tag, "id"),
                    )
                    groups[key] = group
                if not group.label:
                    group.label = label
                group.options.append({
                    "value": self.doc.value(tag),
                    "label": label or self.doc.value(tag),
                    "checked": self.doc.is_checked(tag),
                })
                continue

            if tag.name == "select":
                kind = "select-multiple" if tag.has_attr("multiple") else "select"
            item = BasicFormItem(
                id=attr_text(tag, "id") or attr_text(tag, "name") or f"form-element-{index}",
                tag_name=tag.name,
                type=kind,
                name=attr_text(tag, "name"),
                label=label,
                placeholder=attr_text(tag, "placeholder"),
                required=tag.has_attr("required"),
                kintone_field_id=self._kintone_field_id(tag),
            )
            if tag.name == "select":
                item.options = [
                    {
                        "value": self.doc.option_value(o),
                        "label": o.get_text(strip=True),
                        "selected": self.doc.is_selected(o),
                    }
                    for o in self.doc.options(tag)
                ]
            else:
                item.value = self.doc.value(tag)
            singles[item.id] = item

        self.forms = OrderedDict(list(singles.items()) + list(groups.items()))
        logger.debug("Collected %d visible form items/groups.", len(self.forms))
        return list(self.forms.values())

    # --- FormsBackend ---

    def get_forms_data(self) -> List[BasicFormItem]:
        return list(self.forms.values())

    def get_form(self, form_id: str) -> Optional[BasicFormItem]:
        return self.forms.get(form_id)

    def refresh(self) -> List[BasicFormItem]:
        return self.collect_forms()

    def elements_for(self, item: BasicFormItem) -> List[Tag]:
        if item.tag_name == "input-group":
            return [
                el for el in self.doc.soup.find_all("input", attrs={"name": item.name})
                if self.doc.input_type(el) == item.type
            ] or [t for t in [self.doc.get_element_by_id(item.id)] if t is not None]
        found = self.doc.get_element_by_id(item.id)
        if found is None:
            found = self.doc.soup.find(["input", "select", "textarea"], attrs={"name": item.id})
        if found is None and item.id.startswith("form-element-"):
            all_controls = self.doc.soup.find_all(["input", "select", "textarea"])
            index = int(item.id.rsplit("-", 1)[1])
            found = all_controls[index] if index < len(all_controls) else None
        return [found] if found is not None else []

    def _write(self, item: BasicFormItem, tags: List[Tag], value: Any) -> None:
        if item.type == "file":
            raise ValueError("File inputs cannot be set programmatically for security reasons")
        if item.tag_name == "input-group":
            wanted = {str(v) for v in value} if isinstance(value, (list, tuple, set)) else {str(value)}
            for tag in tags:
                self.doc.set_checked(tag, self.doc.value(tag) in wanted)
        elif item.type == "select-multiple":
            wanted = {str(v) for v in value} if isinstance(value, (list, tuple, set)) else {str(value)}
            for option in self.doc.options(tags[0]):
                self.doc.set_selected(option, self.doc.option_value(option) in wanted)
        else:
            self.doc.set_value(tags[0], value)
        for tag in tags:
            self.doc.dispatch_event(tag, "input")
            self.doc.dispatch_event(tag, "change")

    async def apply_values(self, values: Dict[str, Any], options: Optional[Any] = None) -> ApplicationResult:
        started = time.perf_counter()
        result = ApplicationResult(total_attempted=len(values), mode=self.mode)
        for identifier, value in values.items():
            item = self.get_form(identifier)
            tags = self.elements_for(item) if item is not None else []
            if not tags:
                result.failed.append(FillFailure(identifier=identifier, value=value, reason="Element not found"))
                continue
            try:
                self._write(item, tags, value)
            except ValueError as e:
                result.failed.append(FillFailure(
                    identifier=identifier, value=value, reason=str(e), element_id=item.id,
                ))
                continue
            result.success.append(FillSuccess(
                identifier=identifier, element_id=item.id, value=value, method="basic", events=["input", "change"],
            ))
        result.execution_time = (time.perf_counter() - started) * 1000
        return result

    def highlight(self, targets: List[str], options: Optional[HighlightOptions] = None) -> int:
        self.highlighter.remove_all()
        tags: List[Tag] = []
        for target in targets:
            item = self.get_form(target)
            if item is None:
                logger.debug("Highlight target %s not found.", target)
                continue
            tags.extend(self.elements_for(item))
        return self.highlighter.highlight(tags, options)

    def remove_highlight(self) -> int:
        return self.highlighter.remove_all()

    # --- Queries ---

    def find_forms_by_label(self, text: str, exact: bool = False) -> List[BasicFormItem]:
        needle = text.lower()
        return [
            item for item in self.forms.values()
            if (item.label.lower() == needle if exact else needle in item.label.lower())
        ]

    def find_required_forms(self) -> List[BasicFormItem]:
        return [item for item in self.forms.values() if item.required]

    def get_form_values(self) -> Dict[str, Any]:
        values: Dict[str, Any] = {}
        for item in self.forms.values():
            if item.tag_name == "input-group":
                checked = [o["value"] for o in item.options if o["checked"]]
                values[item.id] = checked if item.type == "checkbox" else (checked[0] if checked else None)
            elif item.type.startswith("select"):
                selected = [o["value"] for o in item.options if o["selected"]]
                values[item.id] = selected if item.type == "select-multiple" else (selected[0] if selected else "")
            else:
                values[item.id] = item.value
        return values
