# src/formpiper_shell/core/core.py
from __future__ import annotations

import logging

from formpiper_shell.core.command_registry import CommandRegistry
from formpiper_shell.core.context.shell_context import ShellContext
from formpiper_shell.core.parser import VAR_PATTERN, parse_command_line
from formpiper_shell.core.xngine import ExecuteEngine

logger = logging.getLogger(__name__)


def _maybe_expand_args(name: str, args: list[str], ctx: ShellContext) -> list[str]:
    # get takes @{name} literally
    if name == "get":
        return list(args)
    return [XNGINE.expand_context_vars(a, ctx) for a in args]


def _post_refresh(ctx: ShellContext) -> None:
    """Keeps @{page.*} in step with the active page after every command."""
    if ctx.bridge is not None:
        ctx.export_page_variables()


XNGINE = ExecuteEngine(
    command_registry=CommandRegistry,
    var_pattern=VAR_PATTERN,
    maybe_expand_args=_maybe_expand_args,
    post_refresh=_post_refresh,
    logger=logger,
)

execute_sequence = XNGINE.execute_sequence
expand_context_vars = XNGINE.expand_context_vars

__all__ = ["execute_sequence", "expand_context_vars", "parse_command_line"]
