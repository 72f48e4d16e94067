# src/formpiper_shell/core/managers/completion_manager.py
import logging
import re
from typing import Any, Dict, Iterable, List

from prompt_toolkit.completion import Completion
from prompt_toolkit.document import Document
from prompt_toolkit.history import History

from formpiper_shell.core.context.shell_context import ShellContext
from formpiper_shell.core.managers.config_manager import config_manager

logger = logging.getLogger(__name__)

# last operator before the cursor
OPERATOR_PATTERN = re.compile(r"(\s+(?:&&|\|\||;|\|)\s+)")

# (command, subcommand) pairs whose next word is a form id
FORM_ID_SLOTS = {("forms", "show"), ("validate", "form")}
PAGE_SLOTS = {("page", "use"), ("page", "close")}


class CompletionManager:
    """
    Produces completions for the segment after the last operator:
    commands, subcommands, page names, form ids, @{variables} and `!h` history.
    """

    def __init__(self, shell_context: ShellContext, history: History, command_hierarchy: Dict[str, Any]):
        self.ctx = shell_context
        self.history = history
        self.command_hierarchy = command_hierarchy

    def generate_completions(self, document: Document) -> Iterable[Completion]:
        text_before_cursor = document.text_before_cursor

        if text_before_cursor.endswith('!c'):
            yield from self._get_main_command_completions('!c')
            return
        if text_before_cursor.endswith('!h'):
            yield from self._get_history_completions()
            return

        segment_start = 0
        for match in OPERATOR_PATTERN.finditer(text_before_cursor):
            segment_start = match.end()

        relevant_text = text_before_cursor[segment_start:]
        words = relevant_text.lstrip().split()
        word_before_cursor = document.get_word_before_cursor(WORD=True)
        trailing_space = relevant_text.endswith(" ")

        if "@{" in relevant_text and (word_before_cursor.startswith("@{") or document.char_before_cursor == '{'):
            yield from self._get_variable_completions(word_before_cursor)
            return

        # index of the word being completed within the segment
        position = len(words) if trailing_space else max(len(words) - 1, 0)
        partial = "" if trailing_space else (words[-1] if words else "")

        if position == 0:
            yield from self._get_main_command_completions(word_before_cursor)
        elif position == 1:
            entry = self.command_hierarchy.get(words[0])
            if isinstance(entry, dict):
                yield from self._get_sub_command_completions(entry.keys(), partial)
        elif position == 2:
            slot = (words[0], words[1])
            if slot in FORM_ID_SLOTS:
                yield from self._get_value_completions(self._form_ids(), partial, "Form")
            elif slot in PAGE_SLOTS:
                yield from self._get_value_completions(list(self.ctx.pages), partial, "Page")

    def _form_ids(self) -> List[str]:
        bridge = self.ctx.bridge
        if bridge is None:
            return []
        try:
            return [getattr(f, "id", "") for f in bridge.get_forms_data()]
        except Exception as e:
            logger.debug("Form id completion unavailable: %s", e)
            return []

    def _get_main_command_completions(self, word_before_cursor: str) -> Iterable[Completion]:
        is_trigger = word_before_cursor == '!c'
        start_pos = -2 if is_trigger else -len(word_before_cursor)
        for command_name in sorted(self.command_hierarchy):
            if is_trigger or command_name.startswith(word_before_cursor):
                yield Completion(command_name, start_position=start_pos, display_meta="Main Command")

    def _get_history_completions(self) -> Iterable[Completion]:
        max_len = config_manager.get_nested("autocomplete.h_max_len", 5)
        logger.debug("History completion (!h) triggered. Max items: %s", max_len)
        recent, seen = [], set()
        for command in reversed(list(self.history.get_strings())):
            command = command.strip()
            if command and command != '!h' and command not in seen:
                seen.add(command)
                recent.append(command)
                if len(recent) >= max_len:
                    break
        for command in recent:
            yield Completion(command, start_position=-2, display_meta="Command History")

    def _get_variable_completions(self, word_before_cursor: str) -> Iterable[Completion]:
        prefix = word_before_cursor if word_before_cursor.startswith("@{") else ""
        for var_name in sorted(self.ctx._vars):
            suggestion = f"@{{{var_name}}}"
            if suggestion.startswith(prefix):
                yield Completion(suggestion, start_position=-len(prefix), display_meta="Context Variable")

    def _get_sub_command_completions(self, subcommands: Iterable[str], partial: str) -> Iterable[Completion]:
        for sub in sorted(subcommands):
            if sub.startswith(partial):
                yield Completion(sub, start_position=-len(partial))

    def _get_value_completions(self, values: Iterable[str], partial: str, meta: str) -> Iterable[Completion]:
        for value in sorted(v for v in values if v):
            if value.startswith(partial):
                yield Completion(value, start_position=-len(partial), display_meta=meta)
