# src/formpiper_shell/core/parser.py
from __future__ import annotations

import re
import shlex
from typing import List, Optional, Tuple

Segment = Tuple[str, List[str], Optional[str]]

OPERATORS: set[str] = {"&&", "||", ";", "|"}
# @{name} anywhere in a token
VAR_PATTERN = re.compile(r"@\{([^}]+)\}")
# @{name}=value as the first token of a segment
SET_SHORTHAND = re.compile(r"^@\{([^}=]+)\}=(.*)$")
# @{name} alone as the first token of a segment
GET_SHORTHAND = re.compile(r"^@\{([A-Za-z_][\w\.]*)\}$")


def _tokenize(line: str) -> List[str]:
    try:
        return shlex.split(line, posix=True)
    except ValueError:
        # unbalanced quotes
        return line.split()


def parse_command_line(line: str) -> List[Segment]:
    """
    Splits a shell line into (command, args, operator_before) segments.

    `fill @{form}=x` keeps its arguments untouched; only a leading
    `@{name}=value` or `@{name}` token is rewritten into `set`/`get`.
    """
    tokens = _tokenize((line or "").strip())
    segments: List[Segment] = []
    name: Optional[str] = None
    args: List[str] = []
    pending_op: Optional[str] = None

    for tok in tokens:
        if tok in OPERATORS:
            if name is not None:
                segments.append((name, args, pending_op))
            name, args, pending_op = None, [], tok
            continue

        if name is not None:
            args.append(tok)
        elif SET_SHORTHAND.match(tok):
            name, args = "set", [tok]
        elif GET_SHORTHAND.fullmatch(tok):
            name, args = "get", [tok]
        else:
            name = tok

    if name is not None:
        segments.append((name, args, pending_op))
    return segments
