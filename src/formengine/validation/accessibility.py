# src/formengine/validation/accessibility.py
from typing import List, Optional

from bs4 import Tag

from formengine.dom.selectors import attr_text
from formengine.model import AccessibilityIssue, ValidationResult
from formengine.services.aria import has_accessible_name, tab_index
from formengine.services.labels import LabelResolver


def check_accessibility(
        doc,
        tag: Tag,
        labels: LabelResolver,
        previous: Optional[ValidationResult] = None,
) -> List[AccessibilityIssue]:
    """
    WCAG-oriented checks for one control.

    `previous` is the element's last cached validation result; a field that
    was invalid last time must carry aria-invalid="true".
    """
    issues: List[AccessibilityIssue] = []
    is_hidden_input = tag.name == "input" and doc.input_type(tag) == "hidden"

    if not has_accessible_name(doc, tag, labels):
        issues.append(AccessibilityIssue(
            type="label",
            message="Element should have an accessible label",
            severity="warning",
            wcag="1.3.1",
        ))

    if tag.has_attr("required") and not tag.has_attr("aria-required"):
        issues.append(AccessibilityIssue(
            type="required-indication",
            message='Required fields should have aria-required="true"',
            severity="warning",
            wcag="3.3.2",
        ))

    if previous is not None and previous.errors and attr_text(tag, "aria-invalid") != "true":
        issues.append(AccessibilityIssue(
            type="error-indication",
            message='Invalid fields should have aria-invalid="true"',
            severity="error",
            wcag="3.3.1",
        ))

    if tab_index(tag) == -1 and not is_hidden_input:
        issues.append(AccessibilityIssue(
            type="keyboard-access",
            message="Form elements should be keyboard accessible",
            severity="error",
            wcag="2.1.1",
        ))

    return issues
