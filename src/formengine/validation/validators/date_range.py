import datetime as dt
from typing import Optional

from ..core import Validator
from ...model import ValidatorOutcome


def parse_date(text: str) -> Optional[dt.datetime]:
    text = (text or "").strip()
    for fmt in ("%Y-%m-%d", "%Y-%m-%dT%H:%M", "%Y-%m-%dT%H:%M:%S", "%Y-%m", "%m/%d/%Y"):
        try:
            return dt.datetime.strptime(text, fmt)
        except ValueError:
            continue
    try:
        return dt.datetime.fromisoformat(text)
    except ValueError:
        return None


def validate_date_range(value, field) -> ValidatorOutcome:
    if not value:
        return ValidatorOutcome(valid=True)
    entered = parse_date(str(value))
    if entered is None:
        return ValidatorOutcome(valid=False, message="Please enter a valid date")

    min_date = field.get("data-min-date")
    max_date = field.get("data-max-date")
    lower = parse_date(min_date) if min_date else None
    upper = parse_date(max_date) if max_date else None
    if lower is not None and entered < lower:
        return ValidatorOutcome(valid=False, message=f"Date must be after {min_date}")
    if upper is not None and entered > upper:
        return ValidatorOutcome(valid=False, message=f"Date must be before {max_date}")
    return ValidatorOutcome(valid=True)


DEFINITION = Validator("date-range", validate_date_range, priority=1)
