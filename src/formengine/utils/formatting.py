# src/formengine/utils/formatting.py
import math
import re
from typing import Any, Dict, Optional

_SIZE_UNITS = ["Bytes", "KB", "MB", "GB"]
_SIZE_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(B|KB|MB|GB)?\s*$", re.IGNORECASE)
_SIZE_MULTIPLIERS = {"B": 1, "KB": 1024, "MB": 1024 ** 2, "GB": 1024 ** 3}
_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def format_file_size(size: int) -> str:
    """Formats a byte count as '1.5 KB' style text."""
    if not size:
        return "0 Bytes"
    i = min(int(math.floor(math.log(size, 1024))), len(_SIZE_UNITS) - 1)
    value = round(size / math.pow(1024, i), 2)
    if value == int(value):
        value = int(value)
    return f"{value} {_SIZE_UNITS[i]}"


def parse_file_size(text: Any) -> Optional[int]:
    """Parses '2MB', '512 KB' or a plain byte count; returns None when unparseable."""
    if text is None:
        return None
    m = _SIZE_PATTERN.match(str(text))
    if not m:
        return None
    unit = (m.group(2) or "B").upper()
    return int(float(m.group(1)) * _SIZE_MULTIPLIERS[unit])


def hash36(text: str) -> str:
    """32-bit rolling string hash (h*31 + c) rendered in base 36; stable across runs."""
    h = 0
    for ch in text:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    h = abs(h)
    if h == 0:
        return "0"
    digits = []
    while h:
        h, rem = divmod(h, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def file_metadata(entry: Dict[str, Any], extended: bool = True) -> Dict[str, Any]:
    """Normalizes a picked-file record into the metadata exposed by descriptors."""
    name = str(entry.get("name", ""))
    mime = str(entry.get("type", ""))
    size = int(entry.get("size", 0) or 0)
    data: Dict[str, Any] = {
        "name": name,
        "size": size,
        "type": mime,
        "last_modified": entry.get("last_modified", entry.get("lastModified", 0)),
    }
    if not extended:
        return data
    data.update({
        "extension": name.rsplit(".", 1)[-1].lower() if "." in name else "",
        "size_formatted": format_file_size(size),
        "is_image": mime.startswith("image/"),
        "is_video": mime.startswith("video/"),
        "is_audio": mime.startswith("audio/"),
        "is_pdf": mime == "application/pdf",
    })
    return data


def to_number(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number
