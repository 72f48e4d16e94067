from ..core import Validator
from ...model import ValidatorOutcome


def validate_confirmation(value, field) -> ValidatorOutcome:
    reference = field.get("data-confirm-field")
    if not reference:
        return ValidatorOutcome(valid=True)
    original = field.find_field(reference)
    if original is None:
        return ValidatorOutcome(valid=False, message="Original field not found")
    return ValidatorOutcome(
        valid=str(value) == field.doc.value(original),
        message="Values do not match",
    )


DEFINITION = Validator("confirmation", validate_confirmation, priority=2)
