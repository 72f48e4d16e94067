from urllib.parse import urlparse

from ..core import Validator
from ...model import ValidatorOutcome


def is_absolute_url(value: str) -> bool:
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    if not parsed.scheme or " " in value:
        return False
    # Hierarchical schemes need a host; opaque ones (mailto:, tel:) only a body.
    if parsed.scheme in ("http", "https", "ftp", "ws", "wss"):
        return bool(parsed.netloc)
    return bool(parsed.netloc or parsed.path)


def validate_url(value, field) -> ValidatorOutcome:
    if not value:
        return ValidatorOutcome(valid=True)
    if is_absolute_url(str(value)):
        return ValidatorOutcome(valid=True)
    return ValidatorOutcome(valid=False, message="Please enter a valid URL")


DEFINITION = Validator("url", validate_url, priority=1)
