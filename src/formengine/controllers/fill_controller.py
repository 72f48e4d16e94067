# src/formengine/controllers/fill_controller.py
import asyncio
import logging
import time
from typing import Any, Dict, List, Optional, Set, Tuple

from bs4 import Tag

from formengine.dom.core import ApplyRejected, CanonicalType, classify
from formengine.dom.registry import ControlRegistry
from formengine.dom.selectors import element_id
from formengine.managers.semantic_model import SemanticModel
from formengine.model import (
    ApplicationResult,
    ApplyOptions,
    CompletionReport,
    EngineOptions,
    FillFailure,
    FillSuccess,
    FillWarning,
    HighlightOptions,
    SmartFillOptions,
    ValidateOptions,
)
from formengine.services.annotation import HighlightService
from formengine.services.aria import is_disabled
from formengine.services.matching import FuzzyMatcher
from formengine.utils.events import EventEmitter
from formengine.validation.engine import ValidationEngine

logger = logging.getLogger(__name__)

ERROR_HIGHLIGHT = HighlightOptions(color="#ef4444", style="border", animation=None)


class FillOrchestrator:
    """
    Applies identifier -> value maps to the live document.

    Resolution goes through the SemanticModel first and falls back to fuzzy
    matching over the current snapshot. Nothing here raises for a bad entry:
    every problem ends up in `failed` or `warnings` of the ApplicationResult.
    """

    def __init__(
            self,
            doc,
            model: SemanticModel,
            validator: ValidationEngine,
            options: Optional[EngineOptions] = None,
            highlighter: Optional[HighlightService] = None,
    ):
        self.doc = doc
        self.model = model
        self.validator = validator
        self.options = options or EngineOptions()
        self.highlighter = highlighter
        self.events = EventEmitter()
        ControlRegistry.discover()

    # --- Resolution ---

    def resolve(self, identifier: str, matcher: FuzzyMatcher):
        """Returns (tag, match_score); match_score is None for a direct hit."""
        tag = self.model.find_element(identifier)
        if tag is not None:
            return tag, None
        score, best = matcher.best(identifier)
        if best is None:
            return None, None
        tag = self.model.find_element(best.id)
        logger.debug("Fuzzy matched '%s' to %s (score %d).", identifier, best.id, score)
        return tag, score

    def skip_reason(self, tag: Tag, options: ApplyOptions) -> Optional[str]:
        if options.skip_disabled and is_disabled(tag):
            return "Element is disabled"
        if options.skip_readonly and tag.has_attr("readonly"):
            return "Element is read-only"
        if options.skip_hidden:
            if tag.name == "input" and self.doc.input_type(tag) == "hidden":
                return "Element is hidden"
            if not self.doc.computed_style(tag).rendered:
                return "Element is hidden"
        return None

    # --- Application ---

    def write(self, tag: Tag, value: Any) -> Dict[str, Any]:
        """Dispatches on the canonical type; raises ApplyRejected for invalid values."""
        canonical = classify(tag)
        definition = ControlRegistry.get(canonical) if canonical is not None else None
        if definition is None:
            raise ApplyRejected(f"Unsupported element <{tag.name}>")

        if canonical == CanonicalType.CHECKBOX and isinstance(value, (list, tuple, set)) and tag.get("name"):
            members = self.doc.checkbox_group(tag)
            previous = [self.doc.value(m) for m in members if self.doc.is_checked(m)]
            for member in members:
                definition.writer(self.doc, member, value)
            return {"previous_value": previous, "method": "setCheckboxGroup"}

        previous = definition.reader(self.doc, tag)
        method = definition.writer(self.doc, tag, value)
        return {"previous_value": previous, "method": method}

    def _dispatch_events(self, tag: Tag, options: ApplyOptions) -> List[str]:
        fired: List[str] = []
        if options.force_focus:
            fired.append("focus")
        if options.trigger_events:
            fired.extend(["input", "change"])
        if options.force_focus:
            fired.append("blur")
        for event_type in fired:
            self.doc.dispatch_event(tag, event_type)
        return fired

    async def _apply_entry(
            self,
            identifier: str,
            value: Any,
            tag: Optional[Tag],
            match_score: Optional[int],
            options: ApplyOptions,
            result: ApplicationResult,
    ) -> Optional[FillSuccess]:
        if tag is None:
            result.failed.append(FillFailure(
                identifier=identifier,
                value=value,
                reason="Element not found",
                suggestions=FuzzyMatcher(self.model.get_all_elements()).suggestions(identifier),
            ))
            return None

        target_id = element_id(tag)
        reason = self.skip_reason(tag, options)
        if reason:
            result.warnings.append(FillWarning(
                identifier=identifier, element_id=target_id, message=f"Skipped: {reason}",
            ))
            return None

        try:
            applied = self.write(tag, value)
        except ApplyRejected as e:
            result.failed.append(FillFailure(
                identifier=identifier, value=value, reason=e.reason, element_id=target_id,
            ))
            return None
        except Exception as e:
            logger.warning("Applying '%s' to %s failed: %s", identifier, target_id, e)
            result.failed.append(FillFailure(
                identifier=identifier, value=value, reason=str(e), element_id=target_id,
            ))
            return None

        success = FillSuccess(
            identifier=identifier,
            element_id=target_id,
            value=value,
            previous_value=applied["previous_value"],
            method=applied["method"],
            events=self._dispatch_events(tag, options),
            match_score=match_score,
        )
        result.success.append(success)

        if options.validate_values and self.options.validate_on_apply:
            validation = await self.validator.validate_element(tag, ValidateOptions(show_errors=False))
            result.validation_results[validation.element_id] = validation
            if not validation.valid:
                result.warnings.append(FillWarning(
                    identifier=identifier,
                    element_id=target_id,
                    message="Validation failed",
                    details=[issue.message for issue in validation.errors],
                ))
        return success

    async def apply_values(self, values: Dict[str, Any], options: Optional[ApplyOptions] = None) -> ApplicationResult:
        options = options or ApplyOptions()
        started = time.perf_counter()
        result = ApplicationResult(total_attempted=len(values))
        matcher = FuzzyMatcher(self.model.get_all_elements())

        for identifier, value in values.items():
            tag, score = self.resolve(identifier, matcher)
            await self._apply_entry(identifier, value, tag, score, options, result)

        result.execution_time = (time.perf_counter() - started) * 1000
        logger.info("Applied %d/%d values.", len(result.success), result.total_attempted)
        return result

    # --- Smart fill ---

    def preprocess(self, values: Dict[str, Any]) -> Tuple[Dict[str, Any], Dict[str, str]]:
        """
        Rewrites identifiers that do not resolve directly to their best fuzzy
        match. Returns the rewritten values and a map back to the caller's keys.
        """
        matcher = FuzzyMatcher(self.model.get_all_elements())
        processed: Dict[str, Any] = {}
        origins: Dict[str, str] = {}
        for key, value in values.items():
            if self.model.find_element(key) is None:
                score, best = matcher.best(key)
                if best is not None and best.id not in processed:
                    logger.debug("Smart match: '%s' -> %s (%d)", key, best.id, score)
                    processed[best.id] = value
                    origins[best.id] = key
                    continue
            processed[key] = value
        return processed, origins

    @staticmethod
    def _restore_identifiers(result: ApplicationResult, origins: Dict[str, str]) -> None:
        for entry in list(result.success) + list(result.failed) + list(result.warnings):
            entry.identifier = origins.get(entry.identifier, entry.identifier)

    async def smart_fill_forms(self, values: Dict[str, Any],
                               options: Optional[ApplyOptions] = None) -> ApplicationResult:
        if not isinstance(options, SmartFillOptions):
            # Plain ApplyOptions keep their fields; retry settings come from the engine.
            base = options.model_dump() if options is not None else {}
            options = SmartFillOptions(
                max_retries=self.options.max_retries,
                retry_delay=self.options.retry_delay_ms / 1000,
                **base,
            )
        started = time.perf_counter()
        processed, origins = self.preprocess(values) if options.smart_matching else (dict(values), {})
        result = await self.apply_values(processed, options)
        self._restore_identifiers(result, origins)

        retried = 0
        if options.retry_failed and result.failed:
            retried = await self._retry_failed(result, options)

        if options.highlight_errors and self.highlighter is not None:
            failed_tags = [self.model.find_element(f.element_id) for f in result.failed if f.element_id]
            self.highlighter.highlight([t for t in failed_tags if t is not None], ERROR_HIGHLIGHT)

        succeeded = len(result.success)
        result.completion_report = CompletionReport(
            total_attempted=result.total_attempted,
            succeeded=succeeded,
            failed=len(result.failed),
            warnings=len(result.warnings),
            retried=retried,
            recovered=len(result.retry_results),
            success_rate=round(100.0 * succeeded / result.total_attempted, 1) if result.total_attempted else 0.0,
        )
        result.execution_time = (time.perf_counter() - started) * 1000
        self.events.emit("values_applied", result)
        return result

    async def _retry_failed(self, result: ApplicationResult, options: SmartFillOptions) -> int:
        """
        Bounded retry: each round tries every still-failed entry against its
        next-best fuzzy candidate that was not tried before.
        """
        matcher = FuzzyMatcher(self.model.get_all_elements())
        tried: Dict[str, Set[str]] = {
            f.identifier: {f.element_id} if f.element_id else set() for f in result.failed
        }
        attempts = 0

        for round_number in range(1, options.max_retries + 1):
            if not result.failed:
                break
            if round_number > 1 and options.retry_delay > 0:
                await asyncio.sleep(options.retry_delay)

            still_failed: List[FillFailure] = []
            progressed = False
            for failure in result.failed:
                candidates = [
                    (score, el) for score, el in matcher.rank(failure.identifier)
                    if el.id not in tried[failure.identifier]
                ]
                if not candidates:
                    still_failed.append(failure)
                    continue
                score, candidate = candidates[0]
                tried[failure.identifier].add(candidate.id)
                attempts += 1
                progressed = True

                round_result = ApplicationResult()
                success = await self._apply_entry(
                    failure.identifier, failure.value, self.model.find_element(candidate.id), score,
                    options, round_result,
                )
                result.warnings.extend(round_result.warnings)
                result.validation_results.update(round_result.validation_results)
                if success is not None:
                    result.success.append(success)
                    result.retry_results.append(success)
                    logger.info("Retry %d recovered '%s' via %s.", round_number, failure.identifier, candidate.id)
                else:
                    still_failed.append(failure)
            result.failed = still_failed
            if not progressed:
                break
        return attempts
