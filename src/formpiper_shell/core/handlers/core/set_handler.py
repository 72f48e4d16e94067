# src/formpiper_shell/core/handlers/core/set_handler.py
from typing import List, Optional

from formpiper_shell.core.context.shell_context import ShellContext
from formpiper_shell.core.parser import SET_SHORTHAND


def handle_set(args: List[str], ctx: ShellContext, _stdin: Optional[str] = None) -> int:
    """Stores a session variable: `set @{name}=value` or the `@{name}=value` shorthand."""
    m = SET_SHORTHAND.match(" ".join(args)) if args else None
    if not m:
        print("Usage: set @{name}=value")
        return 1

    key, value = m.group(1).strip(), m.group(2).strip()
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        value = value[1:-1]
    ctx.set(key, value)
    return 0
