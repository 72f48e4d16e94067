# src/formpiper_shell/core/handlers/core/quit_handler.py
from formpiper_shell.core.context.shell_context import ShellContext


def handle_quit(_args, ctx: ShellContext, _stdin=None) -> int:
    """Unloads all pages and signals the shell to stop."""
    for name in list(ctx.pages):
        ctx.close_page(name)
    return 130
