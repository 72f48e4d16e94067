# src/formengine/validation/core.py
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from bs4 import Tag

from formengine.dom.core import CanonicalType, classify
from formengine.dom.selectors import attr_text
from formengine.model import ValidatorOutcome

OutcomeLike = Union[ValidatorOutcome, Dict[str, Any], bool]
ValidateFn = Callable[[Any, "FieldContext"], Union[OutcomeLike, Awaitable[OutcomeLike]]]


class FieldContext:
    """What a validator may inspect about the field it validates."""

    def __init__(self, doc, tag: Tag):
        self.doc = doc
        self.tag = tag

    @property
    def canonical_type(self) -> Optional[CanonicalType]:
        return classify(self.tag)

    @property
    def id(self) -> str:
        return attr_text(self.tag, "id")

    @property
    def name(self) -> str:
        return attr_text(self.tag, "name")

    @property
    def value(self) -> str:
        return self.doc.value(self.tag)

    @property
    def required(self) -> bool:
        return self.tag.has_attr("required")

    @property
    def files(self) -> List[Dict[str, Any]]:
        return self.doc.files(self.tag)

    def get(self, attribute: str, default: Optional[str] = None) -> Optional[str]:
        if not self.tag.has_attr(attribute):
            return default
        return attr_text(self.tag, attribute)

    def has(self, attribute: str) -> bool:
        return self.tag.has_attr(attribute)

    def find_field(self, reference: str) -> Optional[Tag]:
        """Looks up another control by id, then by name."""
        found = self.doc.get_element_by_id(reference)
        if found is None:
            found = self.doc.soup.find(attrs={"name": reference})
        return found


class Validator:
    """
    A named validation function with an execution priority (lower runs first).

    `validate(value, field)` returns a ValidatorOutcome, a dict with the same
    keys, or a bare bool. When `is_async` is set it returns an awaitable.
    """

    def __init__(
            self,
            name: str,
            validate: ValidateFn,
            priority: int = 1,
            is_async: bool = False,
            message: str = "",
    ):
        self.name = name
        self.validate = validate
        self.priority = priority
        self.is_async = is_async
        self.message = message

    def __repr__(self) -> str:
        return f"<Validator {self.name} p={self.priority}{' async' if self.is_async else ''}>"


class CustomRule(Validator):
    """A validator bound to one field id; falls back to its own message on failure."""

    def __init__(self, name: str = "custom", validate: ValidateFn = None, message: str = "Validation failed",
                 priority: int = 1, is_async: bool = False):
        super().__init__(name, validate, priority=priority, is_async=is_async, message=message)


def to_outcome(raw: OutcomeLike, fallback_message: str = "") -> ValidatorOutcome:
    if isinstance(raw, ValidatorOutcome):
        outcome = raw
    elif isinstance(raw, dict):
        outcome = ValidatorOutcome(
            valid=bool(raw.get("valid", False)),
            message=raw.get("message") or "",
            severity=raw.get("severity") or "error",
        )
    else:
        outcome = ValidatorOutcome(valid=bool(raw))
    if not outcome.valid and not outcome.message and fallback_message:
        outcome = outcome.model_copy(update={"message": fallback_message})
    return outcome
