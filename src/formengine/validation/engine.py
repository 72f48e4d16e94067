# src/formengine/validation/engine.py
import inspect
import logging
from typing import Dict, Iterable, List, Optional

from bs4 import Tag

from formengine.dom.core import classify
from formengine.dom.selectors import element_id
from formengine.model import (
    FormValidationResult,
    ValidateOptions,
    ValidationIssue,
    ValidationResult,
)
from formengine.services.annotation import ErrorAnnotator
from formengine.services.labels import LabelResolver
from formengine.validation.accessibility import check_accessibility
from formengine.validation.core import CustomRule, FieldContext, ValidateFn, Validator, to_outcome
from formengine.validation.html5 import compute_validity, validity_issues
from formengine.validation.registry import ValidatorCatalog

logger = logging.getLogger(__name__)

DATA_VALIDATE_PREFIX = "data-validate-"


def score_result(result: ValidationResult) -> int:
    """100 - 20 per error - 5 per warning; +10 for an error-free result with no accessibility issues."""
    score = 100 - 20 * len(result.errors) - 5 * len(result.warnings)
    if not result.errors and not result.accessibility_issues:
        score += 10
    return max(0, min(100, score))


class ValidationEngine:
    """
    Runs native, registered, custom-rule and accessibility checks for controls
    of one LiveDocument.

    The validator registry starts as a copy of the built-in catalog; validators
    and rules added here stay local to this engine.
    """

    def __init__(self, doc, accessibility_mode: bool = True):
        self.doc = doc
        self.accessibility_mode = accessibility_mode
        self.labels = LabelResolver(doc)
        self.annotator = ErrorAnnotator(doc)
        self.validators: Dict[str, Validator] = ValidatorCatalog.builtins()
        self.custom_rules: Dict[str, List[CustomRule]] = {}
        self.cache: Dict[str, ValidationResult] = {}

    # --- Registry ---

    def add_validator(self, name: str, validate: ValidateFn, priority: int = 1,
                      is_async: bool = False, message: str = "") -> Validator:
        validator = Validator(name, validate, priority=priority, is_async=is_async, message=message)
        self.validators[name] = validator
        logger.debug("Validator registered: %s", name)
        return validator

    def add_custom_rule(self, field_id: str, validate: ValidateFn, message: str = "Validation failed",
                        name: str = "custom", priority: int = 1, is_async: bool = False) -> CustomRule:
        rule = CustomRule(name, validate, message=message, priority=priority, is_async=is_async)
        self.custom_rules.setdefault(field_id, []).append(rule)
        return rule

    def validators_for(self, tag: Tag) -> List[Validator]:
        """Validators chosen by canonical type and data-validate-<name> attributes, by priority."""
        names: List[str] = []
        canonical = classify(tag)
        if canonical is not None and canonical.value in self.validators:
            names.append(canonical.value)
        for attribute in tag.attrs:
            if attribute.startswith(DATA_VALIDATE_PREFIX):
                name = attribute[len(DATA_VALIDATE_PREFIX):]
                if name in self.validators and name not in names:
                    names.append(name)
                elif name not in self.validators:
                    logger.debug("Unknown validator '%s' requested by %s", name, element_id(tag))
        return sorted((self.validators[n] for n in names), key=lambda v: v.priority)

    # --- Validation ---

    @staticmethod
    async def _invoke(validator: Validator, value, field: FieldContext):
        raw = validator.validate(value, field)
        if validator.is_async or inspect.isawaitable(raw):
            raw = await raw
        return raw

    async def validate_element(self, tag: Tag, options: Optional[ValidateOptions] = None) -> ValidationResult:
        options = options or ValidateOptions()
        key = element_id(tag)
        previous = self.cache.get(key)
        result = ValidationResult(element_id=key)
        field = FieldContext(self.doc, tag)
        value = self.doc.value(tag)

        flags = compute_validity(self.doc, tag)
        result.html5_validity = flags
        result.errors.extend(validity_issues(self.doc, tag, flags, options.custom_error_messages))

        for validator in self.validators_for(tag):
            try:
                outcome = to_outcome(await self._invoke(validator, value, field), validator.message)
            except Exception as e:
                logger.warning("Validator '%s' failed on %s: %s", validator.name, key, e)
                result.warnings.append(ValidationIssue(
                    type="validation_error", validator=validator.name,
                    message=f"Validation error: {e}", severity="warning",
                ))
                continue
            result.custom_results.append({
                "validator": validator.name, "valid": outcome.valid,
                "message": outcome.message, "severity": outcome.severity,
            })
            if not outcome.valid:
                result.errors.append(ValidationIssue(
                    type="custom", validator=validator.name,
                    message=outcome.message or "Invalid value", severity=outcome.severity or "error",
                ))
            elif outcome.severity not in ("", "error"):
                result.info.append(ValidationIssue(
                    type="custom", validator=validator.name,
                    message=f"{validator.name}: {outcome.severity}", severity="info",
                ))

        for rule in sorted(self.custom_rules.get(key, []), key=lambda r: r.priority):
            try:
                outcome = to_outcome(await self._invoke(rule, value, field), rule.message)
            except Exception as e:
                logger.warning("Custom rule '%s' failed on %s: %s", rule.name, key, e)
                result.warnings.append(ValidationIssue(
                    type="rule_error", rule=rule.name, message=f"Rule error: {e}", severity="warning",
                ))
                continue
            if not outcome.valid:
                result.errors.append(ValidationIssue(
                    type="rule", rule=rule.name, message=outcome.message or rule.message,
                    severity=outcome.severity or "error",
                ))

        if options.accessibility and self.accessibility_mode:
            issues = check_accessibility(self.doc, tag, self.labels, previous)
            result.accessibility_issues = issues
            for issue in issues:
                entry = ValidationIssue(
                    type="accessibility", constraint=issue.type, message=issue.message,
                    severity=issue.severity, wcag_criterion=issue.wcag,
                )
                (result.errors if issue.severity == "error" else result.warnings).append(entry)

        result.valid = not result.errors
        result.score = score_result(result)
        self.cache[key] = result

        if options.show_errors:
            if result.valid:
                self.annotator.clear(tag)
            else:
                self.annotator.show(tag, result)

        logger.debug("Validated %s: valid=%s score=%d", key, result.valid, result.score)
        return result

    async def validate_form(self, form_id: str, tags: Iterable[Tag],
                            options: Optional[ValidateOptions] = None) -> FormValidationResult:
        results: Dict[str, ValidationResult] = {}
        for tag in tags:
            result = await self.validate_element(tag, options)
            results[result.element_id] = result
        scores = [r.score for r in results.values()]
        return FormValidationResult(
            form_id=form_id,
            valid=all(r.valid for r in results.values()),
            results=results,
            score=sum(scores) / len(scores) if scores else 100.0,
        )

    def clear_annotations(self, tag: Optional[Tag] = None) -> int:
        """Removes the annotation of one element, or of every annotated element."""
        if tag is None:
            return self.annotator.clear_all()
        self.annotator.clear(tag)
        return 1

    def cached(self, identifier: str) -> Optional[ValidationResult]:
        return self.cache.get(identifier)

    def clear_cache(self) -> None:
        self.cache.clear()
