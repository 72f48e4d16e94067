# src/formengine/services/grouping.py
import logging
import re
from collections import OrderedDict
from typing import Dict, List

from formengine.dom.core import CanonicalType
from formengine.model import ElementDescriptor, FieldGroup, FormDescriptor

logger = logging.getLogger(__name__)

SEMANTIC_KEYWORDS: Dict[str, tuple] = {
    "address": ("address", "street", "city", "state", "zip", "postal", "country", "province"),
    "contact": ("email", "phone", "tel", "mobile", "fax", "contact"),
    "name": ("firstname", "lastname", "fullname", "first name", "last name", "full name",
             "surname", "given", "family", "fname", "lname"),
    "payment": ("card", "credit", "cvv", "cvc", "expiry", "expiration", "billing", "payment"),
    "credentials": ("password", "username", "login", "passcode", "user name"),
}

# user[email], user.email, user_email, user-email -> "user"
NAME_PREFIX = re.compile(r"^([A-Za-z][A-Za-z0-9]*)(?:\[[^\]]*\]|[._-][^._\[-].*)$")


def _haystack(element: ElementDescriptor) -> str:
    return "|".join([element.name, element.id, element.label]).lower().replace(" ", "")


class FieldGroupingService:
    """
    Derives the non-exclusive field groups of a snapshot.

    An element may belong to a fieldset group, a radio/checkbox group, a
    name-pattern group and several semantic groups at the same time.
    """

    def build(self, forms: List[FormDescriptor]) -> List[FieldGroup]:
        groups: List[FieldGroup] = []
        for form in forms:
            groups.extend(self._fieldset_groups(form))
            groups.extend(self._choice_groups(form))
            groups.extend(self._name_pattern_groups(form))
            groups.extend(self._semantic_groups(form))
        logger.debug("Built %d field groups across %d forms.", len(groups), len(forms))
        return groups

    def _fieldset_groups(self, form: FormDescriptor) -> List[FieldGroup]:
        buckets: "OrderedDict[str, List[ElementDescriptor]]" = OrderedDict()
        for element in form.elements:
            fieldset = element.context.fieldset
            if not fieldset:
                continue
            buckets.setdefault(fieldset.get("selector") or fieldset.get("legend", ""), []).append(element)
        return [
            FieldGroup(
                id=f"{form.id}-fieldset-{index}",
                kind="fieldset",
                label=members[0].context.fieldset.get("legend", ""),
                form_id=form.id,
                element_ids=[m.id for m in members],
            )
            for index, members in enumerate(buckets.values(), 1)
        ]

    def _choice_groups(self, form: FormDescriptor) -> List[FieldGroup]:
        out = []
        buckets: "OrderedDict[tuple, List[ElementDescriptor]]" = OrderedDict()
        for element in form.elements:
            if element.type not in (CanonicalType.RADIO, CanonicalType.CHECKBOX) or not element.name:
                continue
            buckets.setdefault((element.type.value, element.name), []).append(element)
        for (kind, name), members in buckets.items():
            merged = members[0].group or {}
            # Merged descriptors stand for the whole set; otherwise at least two members.
            if len(members) < 2 and merged.get("count", 1) < 2:
                continue
            out.append(FieldGroup(
                id=f"{form.id}-{kind}-{name}",
                kind=kind,
                label=members[0].label,
                form_id=form.id,
                element_ids=[m.id for m in members],
            ))
        return out

    def _name_pattern_groups(self, form: FormDescriptor) -> List[FieldGroup]:
        buckets: "OrderedDict[str, List[str]]" = OrderedDict()
        for element in form.elements:
            m = NAME_PREFIX.match(element.name or "")
            if m:
                buckets.setdefault(m.group(1), []).append(element.id)
        return [
            FieldGroup(
                id=f"{form.id}-pattern-{prefix}",
                kind="name-pattern",
                label=prefix,
                form_id=form.id,
                element_ids=ids,
            )
            for prefix, ids in buckets.items() if len(ids) >= 2
        ]

    def _semantic_groups(self, form: FormDescriptor) -> List[FieldGroup]:
        out = []
        for kind, keywords in SEMANTIC_KEYWORDS.items():
            ids = [
                el.id for el in form.elements
                if any(keyword.replace(" ", "") in _haystack(el) for keyword in keywords)
            ]
            if ids:
                out.append(FieldGroup(
                    id=f"{form.id}-semantic-{kind}",
                    kind="semantic",
                    label=kind,
                    form_id=form.id,
                    element_ids=ids,
                ))
        return out
