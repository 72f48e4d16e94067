from ..core import Validator
from ...model import ValidatorOutcome
from ...utils.formatting import parse_file_size


def validate_files(value, field) -> ValidatorOutcome:
    files = field.files
    if not files:
        if field.required:
            return ValidatorOutcome(valid=False, message="Please select a file")
        return ValidatorOutcome(valid=True)

    max_size = field.get("data-max-size")
    allowed_types = field.get("data-allowed-types")
    max_files = field.get("data-max-files")
    problems = []

    if max_files and max_files.isdigit() and len(files) > int(max_files):
        problems.append(f"maximum {max_files} files allowed")

    max_bytes = parse_file_size(max_size) if max_size else None
    allowed = [t.strip() for t in allowed_types.split(",") if t.strip()] if allowed_types else []
    for entry in files:
        name = str(entry.get("name", ""))
        if max_bytes is not None and int(entry.get("size", 0) or 0) > max_bytes:
            problems.append(f"{name} exceeds maximum size of {max_size}")
        if allowed and entry.get("type") not in allowed and not any(name.endswith(a) for a in allowed):
            problems.append(f"{name} is not an allowed file type")

    return ValidatorOutcome(valid=not problems, message="; ".join(problems))


DEFINITION = Validator("file", validate_files, priority=1)
