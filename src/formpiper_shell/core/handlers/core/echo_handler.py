# src/formpiper_shell/core/handlers/core/echo_handler.py
from typing import List, Optional

from formpiper_shell.core.context.shell_context import ShellContext


def handle_echo(args: List[str], _ctx: ShellContext, stdin: Optional[str] = None) -> int:
    """
    Prints its arguments, or the piped stdin when there are none.
    `--code N` sets the exit code, which makes `&&`/`||` chains testable.
    """
    words: List[str] = []
    exit_code = 0
    i = 0
    while i < len(args):
        if args[i] == "--code" and i + 1 < len(args) and args[i + 1].lstrip("-").isdigit():
            exit_code = int(args[i + 1])
            i += 2
            continue
        words.append(args[i])
        i += 1

    print(" ".join(words) if words else (stdin or "").rstrip("\n"))
    return exit_code
