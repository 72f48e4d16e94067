# src/formpiper_shell/core/handlers/core/get_handler.py
from typing import List, Optional

from formpiper_shell.core import core as shell_core
from formpiper_shell.core.context.shell_context import ShellContext
from formpiper_shell.core.parser import GET_SHORTHAND


def handle_get(args: List[str], ctx: ShellContext, _stdin: Optional[str] = None) -> int:
    """Prints a variable: `get @{name}` or the `@{name}` shorthand, including @{page.*} and @{config.*}."""
    if not args:
        print("Usage: get @{name}")
        return 1

    token = args[0].strip()
    m = GET_SHORTHAND.match(token)
    if not m:
        print(f"Invalid variable format: {token}. Must be in the format @{{name}}.")
        return 1

    key = m.group(1)
    val = shell_core.XNGINE.resolve_var(key, ctx)
    if val is None:
        print(f"Error: Variable '@{{{key}}}' not found in context.")
        return 1
    print(val)
    return 0
