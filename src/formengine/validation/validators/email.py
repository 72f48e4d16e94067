import re

from ..core import Validator
from ...model import ValidatorOutcome

EMAIL_PATTERN = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)


def validate_email(value, field) -> ValidatorOutcome:
    if not value:
        return ValidatorOutcome(valid=True)
    return ValidatorOutcome(
        valid=EMAIL_PATTERN.match(str(value)) is not None,
        message="Please enter a valid email address",
    )


DEFINITION = Validator("email", validate_email, priority=1)
