# src/formengine/controllers/scan_controller.py
import logging
import time
from typing import Any, Dict, List, Optional, Tuple

from bs4 import Tag

from formengine.dom.core import CanonicalType, ROLE_TYPES, classify, is_editable_region
from formengine.dom.registry import ControlRegistry
from formengine.dom.selectors import (
    all_attributes,
    attr_text,
    class_name,
    dataset,
    document_position,
    element_id,
    unique_selector,
)
from formengine.model import (
    ElementDescriptor,
    ExtractionSnapshot,
    FormDescriptor,
    ScanOptions,
    ValidationRuleDescriptor,
)
from formengine.services.aria import extract_accessibility, has_accessible_name, is_disabled
from formengine.services.grouping import FieldGroupingService
from formengine.services.labels import LabelResolver
from formengine.services.metadata import MetadataService
from formengine.services.relations import (
    custom_data,
    dependencies,
    element_context,
    extract_constraints,
    inline_events,
)
from formengine.services.statistics import compute_statistics
from formengine.utils.formatting import file_metadata, hash36

logger = logging.getLogger(__name__)

CONTROL_TAGS = ("input", "select", "textarea", "button", "meter", "progress", "output")
EXCLUDED_ANCESTORS = ("script", "style", "noscript")
NOT_CONTAINERS = CONTROL_TAGS + ("label", "option", "optgroup", "datalist", "html", "body")
TYPE_VALIDATORS = (CanonicalType.EMAIL, CanonicalType.URL, CanonicalType.FILE)
STANDALONE_ID = "standalone-elements"
DESCRIPTOR_FIELDS = set(ElementDescriptor.model_fields)


def is_control(tag: Tag) -> bool:
    if tag.name in CONTROL_TAGS:
        return True
    if is_editable_region(tag):
        return True
    return str(tag.get("role", "")).lower() in ROLE_TYPES


class DocumentScanner:
    """
    Builds an ExtractionSnapshot from a LiveDocument.

    Scanning is synchronous and side-effect free: it reads the tree and the
    control state but never mutates either.
    """

    def __init__(self, doc, options: Optional[ScanOptions] = None):
        self.doc = doc
        self.options = options or ScanOptions()
        self.labels = LabelResolver(doc)
        self.grouping = FieldGroupingService()
        ControlRegistry.discover()

    # --- Discovery ---

    def _excluded(self, tag: Tag) -> bool:
        for parent in tag.parents:
            if not isinstance(parent, Tag):
                continue
            if parent.name in EXCLUDED_ANCESTORS:
                return True
            if parent.name == "template":
                if not (parent.has_attr("shadowrootmode") and self.options.include_shadow_dom):
                    return True
        return False

    def find_controls(self, root: Tag) -> List[Tag]:
        """Every control under root, once each, in document order."""
        return [tag for tag in root.find_all(is_control) if not self._excluded(tag)]

    def find_containers(self, root: Tag, controls: List[Tag]) -> List[Tag]:
        """
        Real forms first, then form-like elements matched by the container
        patterns. A candidate is kept when it holds controls and is not nested
        inside an already chosen container.
        """
        order = {id(tag): i for i, tag in enumerate(root.find_all(True))}
        control_ids = {id(c) for c in controls}

        def holds_controls(candidate: Tag) -> bool:
            return any(id(t) in control_ids for t in candidate.find_all(True))

        chosen: List[Tag] = [
            form for form in root.find_all("form")
            if not self._excluded(form) and holds_controls(form)
        ]

        candidates: Dict[int, Tag] = {}
        for pattern in self.options.container_patterns:
            try:
                matches = self.doc.select(pattern, root)
            except Exception as e:
                logger.warning("Skipping container pattern %r: %s", pattern, e)
                continue
            for tag in matches:
                candidates.setdefault(id(tag), tag)

        for candidate in sorted(candidates.values(), key=lambda t: order.get(id(t), 0)):
            if candidate.name in NOT_CONTAINERS or self._excluded(candidate):
                continue
            if any(candidate is c for c in chosen):
                continue
            if any(parent is c for parent in candidate.parents for c in chosen):
                continue
            if holds_controls(candidate):
                chosen.append(candidate)

        chosen.sort(key=lambda t: order.get(id(t), 0))
        return chosen

    def _owner(self, control: Tag, containers: List[Tag]) -> Optional[Tag]:
        """The innermost chosen container around a control."""
        container_ids = {id(c): c for c in containers}
        for parent in control.parents:
            found = container_ids.get(id(parent))
            if found is not None and found is parent:
                return found
        return None

    def should_include(self, tag: Tag) -> bool:
        if self._excluded(tag):
            return False
        if tag.name == "input" and self.doc.input_type(tag) == "hidden":
            return self.options.include_hidden
        if not self.doc.computed_style(tag).rendered:
            return False
        if is_disabled(tag) and not self.options.include_disabled:
            return False
        return True

    # --- Extraction ---

    def _default_value(self, tag: Tag, canonical: CanonicalType) -> Any:
        if canonical in (CanonicalType.CHECKBOX, CanonicalType.RADIO):
            return tag.has_attr("checked")
        if canonical in (CanonicalType.SELECT, CanonicalType.SELECT_MULTIPLE):
            defaults = [self.doc.option_value(o) for o in self.doc.options(tag) if o.has_attr("selected")]
            return defaults if canonical == CanonicalType.SELECT_MULTIPLE else (defaults[-1] if defaults else "")
        if tag.name in ("input", "textarea"):
            return self.doc.default_value(tag)
        return None

    def extract_element(self, tag: Tag, form_id: str, order: Dict[int, int]) -> ElementDescriptor:
        canonical = classify(tag)
        definition = ControlRegistry.get(canonical)
        if definition is None:
            raise LookupError(f"No control handler for type '{canonical}'")

        style = self.doc.computed_style(tag)
        described = definition.describer(self.doc, tag)
        typed = {k: v for k, v in described.items() if k in DESCRIPTOR_FIELDS}
        extra = {k: v for k, v in described.items() if k not in DESCRIPTOR_FIELDS}
        if canonical == CanonicalType.FILE and not self.options.extract_file_metadata:
            typed["files"] = [file_metadata(f, extended=False) for f in self.doc.files(tag)]

        descriptor = ElementDescriptor(
            id=element_id(tag),
            tag_name=tag.name,
            type=canonical,
            name=attr_text(tag, "name"),
            form_id=form_id,
            value=definition.reader(self.doc, tag),
            default_value=self._default_value(tag, canonical),
            label=self.labels.resolve(tag),
            placeholder=attr_text(tag, "placeholder"),
            class_name=class_name(tag),
            dataset=dataset(tag),
            attributes=all_attributes(tag),
            selector=unique_selector(tag),
            position=document_position(tag, order),
            dimensions={"width": style.width, "height": style.height},
            visibility={
                "visible": style.rendered,
                "display": style.display,
                "visibility": style.visibility,
                "opacity": style.opacity,
            },
            disabled=is_disabled(tag),
            readonly=tag.has_attr("readonly"),
            extra=extra,
            validation=extract_constraints(self.doc, tag) if self.options.include_validation else None,
            accessibility=(
                extract_accessibility(self.doc, tag, self.labels) if self.options.include_accessibility else None
            ),
            custom=custom_data(tag) if self.options.extract_custom_data else {},
            context=element_context(tag),
            dependencies=dependencies(self.doc, tag),
            events=inline_events(tag),
            **typed,
        )
        return descriptor

    def _merge_choice_groups(self, tags: List[Tag]) -> Tuple[List[Tag], Dict[int, List[Tag]]]:
        """Keeps the first member of each named radio/checkbox set and remembers the rest."""
        kept: List[Tag] = []
        members: Dict[int, List[Tag]] = {}
        leaders: Dict[Tuple[str, str], Tag] = {}
        for tag in tags:
            canonical = classify(tag)
            name = attr_text(tag, "name")
            if canonical not in (CanonicalType.RADIO, CanonicalType.CHECKBOX) or not name:
                kept.append(tag)
                continue
            key = (canonical.value, name)
            leader = leaders.get(key)
            if leader is None:
                leaders[key] = tag
                members[id(tag)] = [tag]
                kept.append(tag)
            else:
                members[id(leader)].append(tag)
        return kept, members

    def _apply_group(self, descriptor: ElementDescriptor, group_members: List[Tag]) -> ElementDescriptor:
        checked = [m for m in group_members if self.doc.is_checked(m)]
        group = dict(descriptor.group or {})
        group["count"] = len(group_members)
        group["members"] = [
            {
                "value": self.doc.value(m),
                "checked": self.doc.is_checked(m),
                "label": self.labels.resolve(m, LabelResolver.BASIC_CASCADE),
            }
            for m in group_members
        ]
        if descriptor.type == CanonicalType.RADIO:
            value: Any = self.doc.value(checked[0]) if checked else None
        else:
            value = [self.doc.value(m) for m in checked] if len(group_members) > 1 else descriptor.value
        return descriptor.model_copy(update={
            "group": group,
            "checked": bool(checked),
            "value": value,
        })

    def _extract_elements(self, tags: List[Tag], form_id: str, order: Dict[int, int],
                          seen_ids: Dict[str, int]) -> List[ElementDescriptor]:
        members: Dict[int, List[Tag]] = {}
        if self.options.group_related_elements:
            tags, members = self._merge_choice_groups(tags)

        elements: List[ElementDescriptor] = []
        for tag in tags:
            try:
                descriptor = self.extract_element(tag, form_id, order)
                if id(tag) in members:
                    descriptor = self._apply_group(descriptor, members[id(tag)])
            except Exception as e:
                logger.warning("Dropping <%s> %s from %s: %s", tag.name, element_id(tag), form_id, e)
                continue
            elements.append(self._unique(descriptor, seen_ids))
        return elements

    @staticmethod
    def _unique(descriptor: ElementDescriptor, seen_ids: Dict[str, int]) -> ElementDescriptor:
        base = descriptor.id
        count = seen_ids.get(base, 0) + 1
        seen_ids[base] = count
        if count == 1:
            return descriptor
        candidate = f"{base}-{count}"
        while candidate in seen_ids:
            count += 1
            candidate = f"{base}-{count}"
        seen_ids[base] = count
        seen_ids[candidate] = 1
        return descriptor.model_copy(update={"id": candidate})

    def _container_id(self, container: Tag, seen_ids: Dict[str, int]) -> str:
        base = attr_text(container, "id") or attr_text(container, "name")
        if not base:
            base = f"form_{hash36(unique_selector(container))}"
        count = seen_ids.get(base, 0) + 1
        seen_ids[base] = count
        return base if count == 1 else f"{base}-{count}"

    def _structure(self, container: Optional[Tag], elements: List[ElementDescriptor]) -> Dict[str, Any]:
        has_submit = any(e.type == CanonicalType.SUBMIT for e in elements) or any(
            e.tag_name == "button" and e.attributes.get("type", "submit").lower() == "submit" for e in elements
        )
        structure = {
            "element_count": len(elements),
            "required_count": sum(1 for e in elements if e.required),
            "has_submit_button": has_submit,
            "fieldset_count": 0,
            "section_count": 0,
            "multi_step": False,
        }
        if container is not None:
            structure["fieldset_count"] = len(container.find_all("fieldset"))
            structure["section_count"] = len(container.find_all("section"))
            structure["multi_step"] = bool(
                self.doc.select('[class*="step" i], [data-step]', container)
            )
        return structure

    def _accessibility_summary(self, container: Optional[Tag], tags: List[Tag],
                               elements: List[ElementDescriptor]) -> Dict[str, Any]:
        by_id = {e.selector: e.id for e in elements}
        unlabeled = [
            by_id.get(unique_selector(tag), element_id(tag)) for tag in tags
            if classify(tag) not in (CanonicalType.HIDDEN, CanonicalType.SUBMIT, CanonicalType.RESET,
                                     CanonicalType.BUTTON, CanonicalType.IMAGE)
            and not has_accessible_name(self.doc, tag, self.labels)
        ]
        return {
            "role": attr_text(container, "role") if container is not None else "",
            "aria_label": attr_text(container, "aria-label") if container is not None else "",
            "labelled_elements": len(tags) - len(unlabeled),
            "unlabeled_elements": unlabeled,
        }

    def _form_descriptor(self, container: Optional[Tag], form_id: str, tags: List[Tag],
                         elements: List[ElementDescriptor]) -> FormDescriptor:
        if container is None:
            return FormDescriptor(
                id=form_id,
                type="standalone",
                elements=elements,
                structure=self._structure(None, elements),
                accessibility=self._accessibility_summary(None, tags, elements),
            )
        return FormDescriptor(
            id=form_id,
            type=container.name,
            name=attr_text(container, "name") or attr_text(container, "id"),
            selector=unique_selector(container),
            action=attr_text(container, "action"),
            method=(attr_text(container, "method") or "get").lower(),
            enctype=attr_text(container, "enctype"),
            target=attr_text(container, "target"),
            autocomplete=attr_text(container, "autocomplete"),
            novalidate=container.has_attr("novalidate"),
            accept_charset=attr_text(container, "accept-charset"),
            elements=elements,
            structure=self._structure(container, elements),
            accessibility=self._accessibility_summary(container, tags, elements),
        )

    @staticmethod
    def validation_rules(forms: List[FormDescriptor]) -> List[ValidationRuleDescriptor]:
        rules = []
        for form in forms:
            for element in form.elements:
                if element.validation is None:
                    continue
                validators = [element.type.value] if element.type in TYPE_VALIDATORS else []
                validators.extend(r["type"] for r in element.validation.custom_rules if r["type"] not in validators)
                if not (element.validation.has_constraints or validators):
                    continue
                rules.append(ValidationRuleDescriptor(
                    id=f"rule-{element.id}",
                    element_id=element.id,
                    form_id=form.id,
                    constraints=element.validation,
                    validators=validators,
                ))
        return rules

    # --- Entry point ---

    def scan(self, root: Optional[Tag] = None) -> ExtractionSnapshot:
        started = time.perf_counter()
        root = root if root is not None else self.doc.body
        order = {id(tag): i for i, tag in enumerate(root.find_all(True))}

        controls = self.find_controls(root)
        containers = self.find_containers(root, controls)

        # 1. Assign every control to its innermost container, once.
        assigned: Dict[int, List[Tag]] = {id(c): [] for c in containers}
        standalone: List[Tag] = []
        for control in controls:
            if not self.should_include(control):
                continue
            owner = self._owner(control, containers)
            if owner is None:
                standalone.append(control)
            else:
                assigned[id(owner)].append(control)

        # 2. Extract per container.
        forms: List[FormDescriptor] = []
        seen_element_ids: Dict[str, int] = {}
        seen_form_ids: Dict[str, int] = {STANDALONE_ID: 1}
        for container in containers:
            tags = assigned[id(container)]
            if not tags:
                continue
            form_id = self._container_id(container, seen_form_ids)
            elements = self._extract_elements(tags, form_id, order, seen_element_ids)
            forms.append(self._form_descriptor(container, form_id, tags, elements))

        if standalone:
            elements = self._extract_elements(standalone, STANDALONE_ID, order, seen_element_ids)
            forms.append(self._form_descriptor(None, STANDALONE_ID, standalone, elements))

        # 3. Document-wide derived data.
        snapshot = ExtractionSnapshot(
            timestamp=time.time(),
            metadata=MetadataService(self.doc).extract(),
            forms=forms,
            field_groups=self.grouping.build(forms) if self.options.group_related_elements else [],
            validation_rules=self.validation_rules(forms) if self.options.include_validation else [],
            statistics=compute_statistics(forms),
            extraction_time=(time.perf_counter() - started) * 1000,
        )
        logger.info(
            "Scan complete: %d forms, %d elements in %.1f ms.",
            snapshot.statistics.total_forms, snapshot.statistics.total_elements, snapshot.extraction_time
        )
        return snapshot
