# src/formengine/services/matching.py
import re
from typing import Any, Dict, Iterable, List, Tuple

from formengine.model import ElementDescriptor

_NON_WORD = re.compile(r"[^a-z0-9]+")


def _compact(text: str) -> str:
    return _NON_WORD.sub("", text.lower())


def match_score(query: str, element: ElementDescriptor) -> int:
    """
    Scores how well `query` identifies `element`.

    100: exact id or name. 80: the label contains the query (any case).
    60: the label occurs inside the query, or the two match once spacing and
    punctuation are ignored. 40: the name contains the query. 0: no match.
    """
    if not query:
        return 0
    if element.id == query or (element.name and element.name == query):
        return 100
    query_lower = query.lower()
    label_lower = (element.label or "").lower()
    if label_lower and query_lower in label_lower:
        return 80
    if label_lower:
        compact_query, compact_label = _compact(query), _compact(label_lower)
        if label_lower in query_lower or (compact_query and compact_query in compact_label):
            return 60
    if element.name and query_lower in element.name.lower():
        return 40
    return 0


class FuzzyMatcher:
    """Pure scoring over a snapshot's elements; holds no document state."""

    def __init__(self, elements: Iterable[ElementDescriptor]):
        self.elements = list(elements)

    def rank(self, query: str) -> List[Tuple[int, ElementDescriptor]]:
        """Positive matches, best first; ties keep document order."""
        scored = [(match_score(query, el), el) for el in self.elements]
        ranked = [(score, el) for score, el in scored if score > 0]
        ranked.sort(key=lambda pair: pair[0], reverse=True)
        return ranked

    def best(self, query: str) -> Tuple[int, Any]:
        ranked = self.rank(query)
        return ranked[0] if ranked else (0, None)

    def suggestions(self, query: str, limit: int = 3) -> List[Dict[str, Any]]:
        """Nearest elements for a failed lookup, falling back to shared characters."""
        ranked = self.rank(query)
        if not ranked:
            query_chars = set(_compact(query))
            overlap = []
            for el in self.elements:
                candidate = _compact(el.label or el.name or el.id)
                shared = len(query_chars & set(candidate))
                if shared:
                    overlap.append((shared, el))
            overlap.sort(key=lambda pair: pair[0], reverse=True)
            return [
                {"id": el.id, "name": el.name, "label": el.label, "score": 0}
                for _, el in overlap[:limit]
            ]
        return [
            {"id": el.id, "name": el.name, "label": el.label, "score": score}
            for score, el in ranked[:limit]
        ]
