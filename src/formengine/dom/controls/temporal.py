import datetime as dt
import re
from typing import Any, Dict, Optional

from bs4 import Tag

from ..core import ApplyRejected, CanonicalType, ControlDefinition

_EPOCH = dt.datetime(1970, 1, 1)

FORMATS = {
    CanonicalType.DATE: re.compile(r"^\d{4}-\d{2}-\d{2}$"),
    CanonicalType.TIME: re.compile(r"^\d{2}:\d{2}(:\d{2}(\.\d{1,3})?)?$"),
    CanonicalType.DATETIME_LOCAL: re.compile(r"^\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}(:\d{2}(\.\d{1,3})?)?$"),
    CanonicalType.MONTH: re.compile(r"^\d{4}-\d{2}$"),
    CanonicalType.WEEK: re.compile(r"^\d{4}-W\d{2}$"),
}


def _canonical(tag: Tag) -> CanonicalType:
    return CanonicalType(str(tag.get("type", "date")).lower())


def parse_temporal(kind: CanonicalType, text: str) -> Optional[dt.datetime]:
    """Parses an HTML date/time string into a naive datetime, or None when malformed."""
    if not text or not FORMATS[kind].match(text):
        return None
    try:
        if kind == CanonicalType.DATE:
            return dt.datetime.strptime(text, "%Y-%m-%d")
        if kind == CanonicalType.MONTH:
            return dt.datetime.strptime(text, "%Y-%m")
        if kind == CanonicalType.WEEK:
            year, week = text.split("-W")
            return dt.datetime.fromisocalendar(int(year), int(week), 1)
        if kind == CanonicalType.TIME:
            t = dt.time.fromisoformat(text)
            return dt.datetime.combine(_EPOCH.date(), t)
        return dt.datetime.fromisoformat(text.replace(" ", "T"))
    except ValueError:
        return None


def format_temporal(kind: CanonicalType, value: Any) -> Optional[str]:
    if isinstance(value, dt.datetime):
        stamp = value
    elif isinstance(value, dt.date):
        stamp = dt.datetime(value.year, value.month, value.day)
    elif isinstance(value, dt.time):
        if kind != CanonicalType.TIME:
            return None
        return value.strftime("%H:%M:%S" if value.second else "%H:%M")
    else:
        return None

    if kind == CanonicalType.DATE:
        return stamp.strftime("%Y-%m-%d")
    if kind == CanonicalType.MONTH:
        return stamp.strftime("%Y-%m")
    if kind == CanonicalType.WEEK:
        year, week, _ = stamp.isocalendar()
        return f"{year:04d}-W{week:02d}"
    if kind == CanonicalType.TIME:
        return stamp.strftime("%H:%M")
    return stamp.strftime("%Y-%m-%dT%H:%M")


def read_temporal(doc, tag: Tag) -> Dict[str, Any]:
    kind = _canonical(tag)
    raw = doc.value(tag)
    parsed = parse_temporal(kind, raw)
    as_date = None
    as_number = None
    if parsed is not None:
        if kind != CanonicalType.DATETIME_LOCAL:
            as_date = parsed.isoformat()
        as_number = (parsed - _EPOCH).total_seconds() * 1000
    return {"value": raw, "as_date": as_date, "as_number": as_number}


def write_temporal(doc, tag: Tag, value: Any) -> str:
    kind = _canonical(tag)
    formatted = format_temporal(kind, value)
    if formatted is not None:
        doc.set_value(tag, formatted)
        return "setValueAsDate"
    if isinstance(value, str) and parse_temporal(kind, value.strip()) is not None:
        doc.set_value(tag, value.strip())
        return "setValue"
    raise ApplyRejected("Invalid date/time value")


def describe_temporal(doc, tag: Tag) -> Dict[str, Any]:
    value = read_temporal(doc, tag)
    return {
        "min": tag.get("min"),
        "max": tag.get("max"),
        "step": tag.get("step"),
        "as_number": value["as_number"],
    }


DEFINITION = ControlDefinition(
    family="temporal",
    types=list(FORMATS.keys()),
    reader=read_temporal,
    writer=write_temporal,
    describer=describe_temporal,
)
