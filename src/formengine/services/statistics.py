# src/formengine/services/statistics.py
from collections import Counter
from typing import List

from formengine.model import FormDescriptor, Statistics


def complexity_score(elements: int, distinct_types: int, validated: int, accessible: int, custom: int) -> int:
    return min(100, 2 * elements + 5 * distinct_types + 3 * validated + 2 * accessible + custom)


def compute_statistics(forms: List[FormDescriptor]) -> Statistics:
    """Counts over every element of every container in a snapshot."""
    elements = [el for form in forms for el in form.elements]
    by_type = Counter(el.type.value for el in elements)
    by_tag = Counter(el.tag_name for el in elements)
    validated = sum(1 for el in elements if el.has_validation)
    accessible = sum(1 for el in elements if el.has_accessibility)
    custom = sum(1 for el in elements if el.custom)
    with_events = sum(1 for el in elements if el.events)

    return Statistics(
        total_forms=len(forms),
        total_elements=len(elements),
        by_type=dict(by_type),
        by_tag=dict(by_tag),
        has_validation=validated,
        has_accessibility=accessible,
        has_custom_data=custom,
        has_events=with_events,
        complexity_score=complexity_score(len(elements), len(by_type), validated, accessible, custom),
    )
