from typing import Any, Dict, List

from bs4 import Tag

from ..core import ApplyRejected, CanonicalType, ControlDefinition
from ...utils.formatting import file_metadata

SECURITY_REASON = "File inputs cannot be set programmatically for security reasons"


def read_files(doc, tag: Tag) -> List[Dict[str, Any]]:
    return [file_metadata(f, extended=False) for f in doc.files(tag)]


def write_files(doc, tag: Tag, value: Any) -> str:
    raise ApplyRejected(SECURITY_REASON)


def describe_files(doc, tag: Tag) -> Dict[str, Any]:
    return {
        "files": [file_metadata(f) for f in doc.files(tag)],
        "accept": tag.get("accept", ""),
        "multiple": tag.has_attr("multiple"),
    }


DEFINITION = ControlDefinition(
    family="file",
    types=[CanonicalType.FILE],
    reader=read_files,
    writer=write_files,
    describer=describe_files,
)
