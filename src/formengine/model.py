# src/formengine/model.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from formengine.dom.core import CanonicalType


# --- Options ---

DEFAULT_CONTAINER_PATTERNS = [
    '[class*="form" i]',
    '[id*="form" i]',
    '[role="form"]',
    "[data-form]",
    ".form-container",
    ".form-wrapper",
]


class ScanOptions(BaseModel):
    """Switches for what the DocumentScanner collects."""
    include_hidden: bool = False
    include_disabled: bool = False
    extract_file_metadata: bool = True
    include_validation: bool = True
    include_accessibility: bool = True
    include_shadow_dom: bool = True
    extract_custom_data: bool = True
    group_related_elements: bool = True
    detect_dynamic_forms: bool = True
    container_patterns: List[str] = Field(default_factory=lambda: list(DEFAULT_CONTAINER_PATTERNS))


class ValidateOptions(BaseModel):
    accessibility: bool = True
    show_errors: bool = True
    custom_error_messages: Dict[str, str] = Field(default_factory=dict)


class ApplyOptions(BaseModel):
    validate_values: bool = Field(default=True, alias="validate")
    trigger_events: bool = True
    skip_readonly: bool = True
    skip_disabled: bool = True
    skip_hidden: bool = True
    force_focus: bool = False

    model_config = ConfigDict(populate_by_name=True)


class SmartFillOptions(ApplyOptions):
    smart_matching: bool = True
    retry_failed: bool = True
    max_retries: int = 3
    retry_delay: float = 0.0
    highlight_errors: bool = True


class HighlightOptions(BaseModel):
    color: str = "#3b82f6"
    style: str = "outline"  # outline | border | shadow | background
    animation: Optional[str] = "pulse"


class EngineOptions(BaseModel):
    """Engine-wide settings; the shell builds these from settings.json."""
    scan: ScanOptions = Field(default_factory=ScanOptions)
    debounce_ms: int = 500
    history_limit: int = 10
    live_updates: bool = True
    validate_on_apply: bool = True
    accessibility_mode: bool = True
    max_retries: int = 3
    retry_delay_ms: int = 0

    @classmethod
    def from_config(cls, config: Any) -> "EngineOptions":
        """Builds options from any object exposing get_nested(key, default)."""
        scan_values = {
            name: config.get_nested(f"scanner.{name}", field.default)
            for name, field in ScanOptions.model_fields.items()
            if name != "container_patterns"
        }
        patterns = config.get_nested("scanner.container_patterns", None)
        if patterns:
            scan_values["container_patterns"] = list(patterns)
        return cls(
            scan=ScanOptions(**scan_values),
            debounce_ms=config.get_nested("engine.debounce_ms", 500),
            history_limit=config.get_nested("engine.history_limit", 10),
            live_updates=config.get_nested("engine.live_updates", True),
            validate_on_apply=config.get_nested("engine.validate_on_apply", True),
            accessibility_mode=config.get_nested("engine.accessibility_mode", True),
            max_retries=config.get_nested("engine.max_retries", 3),
            retry_delay_ms=config.get_nested("engine.retry_delay_ms", 0),
        )


# --- Extraction ---

class ValidationConstraints(BaseModel):
    required: bool = False
    pattern: Optional[str] = None
    min: Optional[str] = None
    max: Optional[str] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    step: Optional[str] = None
    accept: Optional[str] = None
    multiple: bool = False
    validity: Dict[str, bool] = Field(default_factory=dict)
    validation_message: str = ""
    custom_rules: List[Dict[str, str]] = Field(default_factory=list)

    @property
    def has_constraints(self) -> bool:
        return bool(
            self.required or self.pattern or self.min is not None or self.max is not None
            or self.min_length is not None or self.max_length is not None or self.custom_rules
        )


class AccessibilityInfo(BaseModel):
    label: str = ""
    labelled_by: str = ""
    described_by: str = ""
    required: bool = False
    invalid: bool = False
    expanded: Optional[bool] = None
    hidden: bool = False
    role: str = ""
    title: str = ""
    tab_index: Optional[int] = None
    access_key: str = ""
    associated_labels: List[str] = Field(default_factory=list)
    describing_elements: List[str] = Field(default_factory=list)
    landmarks: List[Dict[str, str]] = Field(default_factory=list)
    keyboard_navigable: bool = True
    screen_reader_text: str = ""

    @property
    def has_aria(self) -> bool:
        return bool(self.label or self.labelled_by or self.described_by or self.role)


class ElementContext(BaseModel):
    fieldset: Optional[Dict[str, Any]] = None
    form: Optional[Dict[str, Any]] = None
    section: Optional[str] = None
    group: Optional[str] = None


class ElementDescriptor(BaseModel):
    """Structured record for one interactive surface. Holds no live node reference."""
    id: str
    tag_name: str
    type: CanonicalType
    name: str = ""
    form_id: str = ""
    value: Any = None
    default_value: Any = None
    label: str = ""
    placeholder: str = ""
    class_name: str = ""
    dataset: Dict[str, str] = Field(default_factory=dict)
    attributes: Dict[str, str] = Field(default_factory=dict)
    selector: str = ""
    position: Dict[str, int] = Field(default_factory=dict)
    dimensions: Dict[str, Optional[str]] = Field(default_factory=dict)
    visibility: Dict[str, Any] = Field(default_factory=dict)
    disabled: bool = False
    readonly: bool = False

    # type specific
    checked: Optional[bool] = None
    group: Optional[Dict[str, Any]] = None
    options: Optional[List[Dict[str, Any]]] = None
    selected_options: Optional[List[Dict[str, Any]]] = None
    optgroups: Optional[List[Dict[str, Any]]] = None
    multiple: Optional[bool] = None
    files: Optional[List[Dict[str, Any]]] = None
    accept: Optional[str] = None
    min: Optional[str] = None
    max: Optional[str] = None
    step: Optional[str] = None
    as_number: Optional[float] = None
    rows: Optional[int] = None
    cols: Optional[int] = None
    wrap: Optional[str] = None
    extra: Dict[str, Any] = Field(default_factory=dict)

    validation: Optional[ValidationConstraints] = None
    accessibility: Optional[AccessibilityInfo] = None
    custom: Dict[str, str] = Field(default_factory=dict)
    context: ElementContext = Field(default_factory=ElementContext)
    dependencies: List[Dict[str, str]] = Field(default_factory=list)
    events: List[str] = Field(default_factory=list)

    @property
    def has_validation(self) -> bool:
        return self.validation is not None and self.validation.has_constraints

    @property
    def has_accessibility(self) -> bool:
        return self.accessibility is not None and self.accessibility.has_aria

    @property
    def required(self) -> bool:
        return self.validation is not None and self.validation.required


class FormDescriptor(BaseModel):
    id: str
    type: str
    name: str = ""
    selector: str = ""
    action: str = ""
    method: str = "get"
    enctype: str = ""
    target: str = ""
    autocomplete: str = ""
    novalidate: bool = False
    accept_charset: str = ""
    elements: List[ElementDescriptor] = Field(default_factory=list)
    structure: Dict[str, Any] = Field(default_factory=dict)
    accessibility: Dict[str, Any] = Field(default_factory=dict)


class FieldGroup(BaseModel):
    id: str
    kind: str  # fieldset | radio | checkbox | name-pattern | semantic
    label: str = ""
    form_id: str = ""
    element_ids: List[str] = Field(default_factory=list)


class ValidationRuleDescriptor(BaseModel):
    id: str
    element_id: str
    form_id: str
    constraints: ValidationConstraints
    validators: List[str] = Field(default_factory=list)


class DocumentMetadata(BaseModel):
    source: str = ""
    title: str = ""
    charset: str = ""
    language: str = ""
    viewport: str = ""
    frameworks: List[str] = Field(default_factory=list)
    form_libraries: List[str] = Field(default_factory=list)
    has_shadow_dom: bool = False
    has_custom_elements: bool = False


class Statistics(BaseModel):
    total_forms: int = 0
    total_elements: int = 0
    by_type: Dict[str, int] = Field(default_factory=dict)
    by_tag: Dict[str, int] = Field(default_factory=dict)
    has_validation: int = 0
    has_accessibility: int = 0
    has_custom_data: int = 0
    has_events: int = 0
    complexity_score: int = 0


class ExtractionSnapshot(BaseModel):
    """One complete scan result. Replaced wholesale, never edited in place."""
    model_config = ConfigDict(frozen=True)

    timestamp: float
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)
    forms: List[FormDescriptor] = Field(default_factory=list)
    field_groups: List[FieldGroup] = Field(default_factory=list)
    validation_rules: List[ValidationRuleDescriptor] = Field(default_factory=list)
    statistics: Statistics = Field(default_factory=Statistics)
    extraction_time: float = 0.0

    def all_elements(self) -> List[ElementDescriptor]:
        return [el for form in self.forms for el in form.elements]


class HistoryEntry(BaseModel):
    timestamp: float
    forms_count: int
    elements_count: int
    extraction_time: float


class BasicFormItem(BaseModel):
    """Flat record produced by the minimal extractor; radio/checkbox sets become one 'input-group'."""
    id: str
    tag_name: str
    type: str
    name: str = ""
    label: str = ""
    placeholder: str = ""
    required: bool = False
    kintone_field_id: str = ""
    value: Any = None
    options: List[Dict[str, Any]] = Field(default_factory=list)


# --- Validation ---

class ValidationIssue(BaseModel):
    type: str  # html5 | custom | rule | accessibility | validation_error | rule_error
    message: str
    constraint: Optional[str] = None
    validator: Optional[str] = None
    rule: Optional[str] = None
    severity: str = "error"
    wcag_criterion: Optional[str] = None


class AccessibilityIssue(BaseModel):
    type: str
    message: str
    severity: str
    wcag: str


class ValidatorOutcome(BaseModel):
    valid: bool
    message: str = ""
    severity: str = "error"


class ValidationResult(BaseModel):
    element_id: str
    valid: bool = True
    errors: List[ValidationIssue] = Field(default_factory=list)
    warnings: List[ValidationIssue] = Field(default_factory=list)
    info: List[ValidationIssue] = Field(default_factory=list)
    html5_validity: Dict[str, bool] = Field(default_factory=dict)
    custom_results: List[Dict[str, Any]] = Field(default_factory=list)
    accessibility_issues: List[AccessibilityIssue] = Field(default_factory=list)
    score: int = 100


class FormValidationResult(BaseModel):
    form_id: str
    valid: bool
    results: Dict[str, ValidationResult] = Field(default_factory=dict)
    score: float = 100.0


# --- Application ---

class FillSuccess(BaseModel):
    identifier: str
    element_id: str
    value: Any = None
    previous_value: Any = None
    method: str = ""
    events: List[str] = Field(default_factory=list)
    match_score: Optional[int] = None


class FillFailure(BaseModel):
    identifier: str
    value: Any = None
    reason: str
    element_id: Optional[str] = None
    suggestions: List[Dict[str, Any]] = Field(default_factory=list)


class FillWarning(BaseModel):
    identifier: str
    message: str
    element_id: Optional[str] = None
    details: List[str] = Field(default_factory=list)


class CompletionReport(BaseModel):
    total_attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    warnings: int = 0
    retried: int = 0
    recovered: int = 0
    success_rate: float = 0.0


class ApplicationResult(BaseModel):
    success: List[FillSuccess] = Field(default_factory=list)
    failed: List[FillFailure] = Field(default_factory=list)
    warnings: List[FillWarning] = Field(default_factory=list)
    validation_results: Dict[str, ValidationResult] = Field(default_factory=dict)
    total_attempted: int = 0
    execution_time: float = 0.0
    retry_results: List[FillSuccess] = Field(default_factory=list)
    completion_report: Optional[CompletionReport] = None
    fallback_used: bool = False
    mode: str = "enhanced"
