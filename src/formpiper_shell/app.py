# src/formpiper_shell/app.py
from __future__ import annotations

import asyncio
import logging
import shlex
import sys

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer
from prompt_toolkit.document import Document
from prompt_toolkit.history import FileHistory

from formpiper_shell.core.command_registry import COMMAND_HIERARCHY, register_all_commands
from formpiper_shell.core.context.shell_context import ShellContext
from formpiper_shell.core.core import execute_sequence, parse_command_line
from formpiper_shell.core.loop_runner import ensure_background_loop, stop_background_loop
from formpiper_shell.core.managers.completion_manager import CompletionManager
from formpiper_shell.core.managers.config_manager import config_manager
from formpiper_shell.core.utils.configure_logging import configure_logger
from formpiper_shell.core.utils.path_utils import PathUtils

configure_logger(
    config_manager.get_nested("debug.level", "WARNING"),
    config_manager.get_nested("debug.module_levels", {}),
    config_manager.get_nested("debug.silenced", {}),
)
logger = logging.getLogger(__name__)


def _setup_windows_event_loop_if_needed() -> None:
    if not sys.platform.startswith("win"):
        return
    try:
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
        logger.info("Using WindowsSelectorEventLoopPolicy for asyncio on Windows.")
    except AttributeError as exc:  # pragma: no cover
        logger.warning("Could not set WindowsSelectorEventLoopPolicy: %s", exc)


class PromptToolkitCompleter(Completer):
    """Adapter from CompletionManager to prompt_toolkit's Completer."""

    def __init__(self, manager: CompletionManager):
        self.manager = manager

    def get_completions(self, document: Document, complete_event):
        yield from self.manager.generate_completions(document)


def run_line(line: str, ctx: ShellContext) -> int:
    commands = parse_command_line(line)
    if not commands:
        return 0
    return execute_sequence(commands, ctx)


def start_shell(startup_commands: list[str] | None = None) -> None:
    """Starts the FormPiper REPL. `startup_commands` run before the first prompt."""
    _setup_windows_event_loop_if_needed()
    register_all_commands()
    ensure_background_loop()
    logger.debug("Background asyncio event loop is running.")

    ctx = ShellContext()
    print("Welcome to FormPiper Shell 1.0 (type 'help' for commands)")

    for line in startup_commands or []:
        if run_line(line, ctx) == 130:
            stop_background_loop()
            print("Bye!")
            return

    history_path = PathUtils.get_shell_history_file(config_manager.get_nested("shell.history_file"))
    history_path.parent.mkdir(parents=True, exist_ok=True)
    history = FileHistory(str(history_path))
    completion_manager = CompletionManager(ctx, history, COMMAND_HIERARCHY)

    session = PromptSession(
        history=history,
        completer=PromptToolkitCompleter(completion_manager),
        complete_while_typing=True,
    )
    ctx.prompt_session = session
    logger.info("Shell startup; history file at: %s", history_path)

    try:
        while True:
            try:
                default_text = ctx.next_prompt_buffer or ""
                ctx.next_prompt_buffer = None
                prompt = f"FormPiper[{ctx.active_page}]>> " if ctx.active_page else "FormPiper>> "
                line = session.prompt(prompt, default=default_text).strip()
            except (EOFError, KeyboardInterrupt):
                break

            if not line:
                continue
            if run_line(line, ctx) == 130:
                break
    finally:
        for name in list(ctx.pages):
            ctx.close_page(name)
        stop_background_loop()
        print("Bye!")


def main(argv: list[str] | None = None) -> int:
    """
    Entrypoint. Files given on the command line are loaded before the prompt:
    `formpiper signup.html checkout.html`.
    """
    argv = list(sys.argv[1:] if argv is None else argv)
    startup = ["page load " + " ".join(shlex.quote(a) for a in argv)] if argv else []
    start_shell(startup)
    return 0


if __name__ == "__main__":
    sys.exit(main())
