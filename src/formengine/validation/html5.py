# src/formengine/validation/html5.py
import logging
import re
from typing import Any, Dict, List, Optional

from bs4 import Tag

from formengine.dom.controls.temporal import parse_temporal
from formengine.dom.core import CanonicalType, DATE_FAMILY, classify
from formengine.dom.selectors import attr_text
from formengine.model import ValidationIssue
from formengine.services.aria import is_disabled
from formengine.utils.formatting import to_number
from formengine.validation.validators.email import EMAIL_PATTERN
from formengine.validation.validators.url import is_absolute_url

logger = logging.getLogger(__name__)

VALIDITY_FLAGS = (
    "value_missing", "type_mismatch", "pattern_mismatch", "too_long", "too_short",
    "range_overflow", "range_underflow", "step_mismatch", "bad_input", "custom_error",
)

# flag -> (constraint key used for message overrides, default message template)
MESSAGES = {
    "value_missing": ("required", "This field is required"),
    "type_mismatch": ("type", "Please enter a valid {type}"),
    "pattern_mismatch": ("pattern", "Please match the requested format"),
    "too_long": ("maxlength", "Maximum length is {maxlength} characters"),
    "too_short": ("minlength", "Minimum length is {minlength} characters"),
    "range_overflow": ("max", "Maximum value is {max}"),
    "range_underflow": ("min", "Minimum value is {min}"),
    "step_mismatch": ("step", "Please enter a valid value"),
    "bad_input": ("input", "Please enter a valid value"),
}

PATTERN_TYPES = {
    CanonicalType.TEXT, CanonicalType.SEARCH, CanonicalType.URL,
    CanonicalType.TEL, CanonicalType.EMAIL, CanonicalType.PASSWORD,
}
LENGTH_TYPES = PATTERN_TYPES | {CanonicalType.TEXTAREA}
RANGE_TYPES = {CanonicalType.NUMBER, CanonicalType.RANGE} | set(DATE_FAMILY)
BARRED_TYPES = {
    CanonicalType.HIDDEN, CanonicalType.BUTTON, CanonicalType.RESET, CanonicalType.SUBMIT,
    CanonicalType.IMAGE,
}
READONLY_EXEMPT = {CanonicalType.CHECKBOX, CanonicalType.RADIO, CanonicalType.FILE, CanonicalType.COLOR,
                   CanonicalType.SELECT, CanonicalType.SELECT_MULTIPLE}


def will_validate(doc, tag: Tag) -> bool:
    """Whether the element is a candidate for native constraint validation."""
    if tag.name not in ("input", "select", "textarea"):
        return False
    canonical = classify(tag)
    if canonical in BARRED_TYPES:
        return False
    if is_disabled(tag):
        return False
    if tag.has_attr("readonly") and canonical not in READONLY_EXEMPT:
        return False
    return tag.find_parent("datalist") is None


def _as_comparable(canonical: CanonicalType, text: str) -> Optional[float]:
    if canonical in DATE_FAMILY:
        parsed = parse_temporal(canonical, text)
        return parsed.timestamp() if parsed is not None else None
    return to_number(text)


def _value_missing(doc, tag: Tag, canonical: CanonicalType, value: str) -> bool:
    if not tag.has_attr("required"):
        return False
    if canonical == CanonicalType.CHECKBOX:
        return not doc.is_checked(tag)
    if canonical == CanonicalType.RADIO:
        return not any(doc.is_checked(m) for m in doc.radio_group(tag))
    if canonical == CanonicalType.FILE:
        return not doc.files(tag)
    if canonical in (CanonicalType.SELECT, CanonicalType.SELECT_MULTIPLE):
        selected = doc.selected_options(tag)
        return not any(doc.option_value(o) for o in selected)
    return value == ""


def _type_mismatch(tag: Tag, canonical: CanonicalType, value: str) -> bool:
    if not value:
        return False
    if canonical == CanonicalType.EMAIL:
        parts = [p.strip() for p in value.split(",")] if tag.has_attr("multiple") else [value]
        return not all(EMAIL_PATTERN.match(p) for p in parts)
    if canonical == CanonicalType.URL:
        return not is_absolute_url(value)
    return False


def _pattern_mismatch(tag: Tag, canonical: CanonicalType, value: str) -> bool:
    pattern = attr_text(tag, "pattern")
    if not pattern or not value or canonical not in PATTERN_TYPES:
        return False
    try:
        return re.fullmatch(f"(?:{pattern})", value) is None
    except re.error as e:
        logger.debug("Ignoring invalid pattern %r: %s", pattern, e)
        return False


def _step_mismatch(tag: Tag, canonical: CanonicalType, number: float) -> bool:
    if canonical not in (CanonicalType.NUMBER, CanonicalType.RANGE):
        return False
    step_attr = attr_text(tag, "step").strip().lower()
    if step_attr == "any":
        return False
    step = to_number(step_attr) if step_attr else 1.0
    if not step or step <= 0:
        step = 1.0
    base = to_number(attr_text(tag, "min")) or 0.0
    quotient = (number - base) / step
    return abs(quotient - round(quotient)) > 1e-9


def compute_validity(doc, tag: Tag) -> Dict[str, bool]:
    """
    Native validity flags for a control, in the shape of the DOM ValidityState.

    Length limits are only enforced on values that were changed after load,
    as browsers do.
    """
    flags = {flag: False for flag in VALIDITY_FLAGS}
    if not will_validate(doc, tag):
        flags["valid"] = True
        return flags

    canonical = classify(tag)
    value = doc.value(tag)
    flags["value_missing"] = _value_missing(doc, tag, canonical, value)
    flags["type_mismatch"] = _type_mismatch(tag, canonical, value)
    flags["pattern_mismatch"] = _pattern_mismatch(tag, canonical, value)

    if canonical in LENGTH_TYPES and value and doc.state(tag).dirty:
        max_length = to_number(attr_text(tag, "maxlength"))
        min_length = to_number(attr_text(tag, "minlength"))
        flags["too_long"] = max_length is not None and len(value) > max_length
        flags["too_short"] = min_length is not None and len(value) < min_length

    if canonical in RANGE_TYPES and value:
        comparable = _as_comparable(canonical, value)
        if comparable is None:
            flags["bad_input"] = True
        else:
            low = _as_comparable(canonical, attr_text(tag, "min")) if tag.has_attr("min") else None
            high = _as_comparable(canonical, attr_text(tag, "max")) if tag.has_attr("max") else None
            flags["range_underflow"] = low is not None and comparable < low
            flags["range_overflow"] = high is not None and comparable > high
            flags["step_mismatch"] = _step_mismatch(tag, canonical, comparable)

    flags["custom_error"] = bool(doc.custom_error(tag))
    flags["valid"] = not any(flags[f] for f in VALIDITY_FLAGS)
    return flags


def custom_message(tag: Tag, constraint: str, overrides: Dict[str, str]) -> Optional[str]:
    attribute = f"data-{constraint}-message"
    if tag.has_attr(attribute):
        return attr_text(tag, attribute)
    return overrides.get(constraint)


def validity_issues(doc, tag: Tag, flags: Dict[str, Any], overrides: Dict[str, str]) -> List[ValidationIssue]:
    """Turns failed validity flags into html5 issues with default or overridden messages."""
    issues: List[ValidationIssue] = []
    if flags.get("valid", True):
        return issues
    canonical = classify(tag)
    substitutions = {
        "type": canonical.value if canonical else tag.name,
        "maxlength": attr_text(tag, "maxlength"),
        "minlength": attr_text(tag, "minlength"),
        "max": attr_text(tag, "max"),
        "min": attr_text(tag, "min"),
    }
    for flag, (constraint, template) in MESSAGES.items():
        if not flags.get(flag):
            continue
        message = custom_message(tag, constraint, overrides) or template.format(**substitutions)
        issues.append(ValidationIssue(type="html5", constraint=constraint, message=message))
    if flags.get("custom_error"):
        issues.append(ValidationIssue(type="html5", constraint="custom", message=doc.custom_error(tag)))
    return issues


def validation_message(doc, tag: Tag) -> str:
    issues = validity_issues(doc, tag, compute_validity(doc, tag), {})
    return issues[0].message if issues else ""
