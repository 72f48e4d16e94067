import re

from ..core import Validator
from ...model import ValidatorOutcome


def luhn_check(number: str) -> bool:
    total = 0
    for i, ch in enumerate(reversed(number)):
        digit = int(ch)
        if i % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


def validate_creditcard(value, field) -> ValidatorOutcome:
    if not value:
        return ValidatorOutcome(valid=True)
    cleaned = re.sub(r"\s", "", str(value))
    if not cleaned.isdigit():
        return ValidatorOutcome(valid=False, message="Credit card must contain only numbers")
    valid = luhn_check(cleaned)
    return ValidatorOutcome(valid=valid, message="" if valid else "Please enter a valid credit card number")


DEFINITION = Validator("creditcard", validate_creditcard, priority=1)
