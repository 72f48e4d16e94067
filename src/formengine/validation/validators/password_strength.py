import re

from ..core import Validator
from ...model import ValidatorOutcome

SPECIAL = re.compile(r"[!@#$%^&*(),.?\":{}|<>]")


def password_strength(password: str) -> str:
    """Grades a password as weak, medium or strong on a six point scale."""
    points = sum([
        len(password) >= 8,
        len(password) >= 12,
        bool(re.search(r"[a-z]", password)),
        bool(re.search(r"[A-Z]", password)),
        bool(re.search(r"\d", password)),
        bool(SPECIAL.search(password)),
    ])
    if points <= 2:
        return "weak"
    if points <= 4:
        return "medium"
    return "strong"


def validate_password(value, field) -> ValidatorOutcome:
    if not value:
        return ValidatorOutcome(valid=True)
    value = str(value)
    try:
        min_length = int(field.get("data-min-length") or 8)
    except ValueError:
        min_length = 8

    missing = []
    if len(value) < min_length:
        missing.append(f"at least {min_length} characters")
    if field.has("data-require-uppercase") and not re.search(r"[A-Z]", value):
        missing.append("uppercase letter")
    if field.has("data-require-lowercase") and not re.search(r"[a-z]", value):
        missing.append("lowercase letter")
    if field.has("data-require-numbers") and not re.search(r"\d", value):
        missing.append("number")
    if field.has("data-require-special") and not SPECIAL.search(value):
        missing.append("special character")

    return ValidatorOutcome(
        valid=not missing,
        message=f"Password must contain {', '.join(missing)}" if missing else "",
        severity=password_strength(value),
    )


DEFINITION = Validator("password-strength", validate_password, priority=2)
