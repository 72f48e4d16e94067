from ..core import Validator
from ...model import ValidatorOutcome
from ...utils.formatting import to_number


def validate_numeric_range(value, field) -> ValidatorOutcome:
    if value in (None, ""):
        return ValidatorOutcome(valid=True)
    number = to_number(value)
    if number is None:
        return ValidatorOutcome(valid=False, message="Please enter a valid number")

    low = field.get("data-min") or field.get("min")
    high = field.get("data-max") or field.get("max")
    if low and to_number(low) is not None and number < to_number(low):
        return ValidatorOutcome(valid=False, message=f"Value must be at least {low}")
    if high and to_number(high) is not None and number > to_number(high):
        return ValidatorOutcome(valid=False, message=f"Value must be no more than {high}")
    return ValidatorOutcome(valid=True)


DEFINITION = Validator("numeric-range", validate_numeric_range, priority=1)
