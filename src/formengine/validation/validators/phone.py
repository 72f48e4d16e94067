import re

from ..core import Validator
from ...model import ValidatorOutcome

PHONE_PATTERN = re.compile(r"^[+]?[1-9]\d{0,15}$")
_SEPARATORS = re.compile(r"[\s\-().]")


def validate_phone(value, field) -> ValidatorOutcome:
    if not value:
        return ValidatorOutcome(valid=True)
    cleaned = _SEPARATORS.sub("", str(value))
    return ValidatorOutcome(
        valid=PHONE_PATTERN.match(cleaned) is not None,
        message="Please enter a valid phone number",
    )


DEFINITION = Validator("phone", validate_phone, priority=1)
