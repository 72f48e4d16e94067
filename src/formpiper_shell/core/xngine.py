# src/formpiper_shell/core/xngine.py
from __future__ import annotations

import inspect
import io
import logging
import re
import subprocess
from contextlib import redirect_stdout
from typing import Any, Callable, Dict, List, Optional, Pattern, Tuple

from formpiper_shell.core.context.shell_context import ShellContext


class ExecuteEngine:
    """
    Runs parsed command sequences: operator handling (`;`, `&&`, `||`),
    pipelines (`|`, stdout captured into the next stdin) and @{var} expansion.
    After each sequence the loaded pages get a chance to settle.
    """

    def __init__(
            self,
            *,
            command_registry: Dict[str, Callable[..., int]],
            var_pattern: Pattern[str],
            maybe_expand_args: Callable[[str, List[Any], ShellContext], List[str]],
            post_refresh: Callable[[ShellContext], None],
            logger: Optional[logging.Logger] = None,
    ) -> None:
        self._commands = command_registry
        self._VAR_PATTERN = var_pattern
        self._maybe_expand_args = maybe_expand_args
        self._post_refresh = post_refresh
        self._log = logger or logging.getLogger(__name__)

    def expand_context_vars(self, text: str, ctx: ShellContext) -> str:
        """Replaces @{var} with its value; unknown vars and `@{x}=` assignments stay as written."""
        def repl(m: re.Match) -> str:
            end = m.end()
            if end < len(text) and text[end] == '=':
                return m.group(0)
            val = self.resolve_var(m.group(1), ctx)
            return str(val) if val is not None else m.group(0)

        return self._VAR_PATTERN.sub(repl, text)

    def _skip_pipeline(self, commands, i: int) -> int:
        i += 1
        while i < len(commands) and commands[i][2] == "|":
            i += 1
        return i

    def execute_sequence(
            self,
            commands: List[Tuple[str, List[str], Optional[str]]],
            context: Optional[ShellContext] = None
    ) -> int:
        ctx = context or ShellContext()
        if not commands:
            return 0

        last_exit = 0
        i = 0
        n = len(commands)

        try:
            while i < n:
                name, raw_args, op = commands[i]

                if (op == "&&" and last_exit != 0) or (op == "||" and last_exit == 0):
                    i = self._skip_pipeline(commands, i)
                    continue

                segment: List[Tuple[str, List[str]]] = [(name, raw_args)]
                j = i + 1
                while j < n and commands[j][2] == "|":
                    segment.append((commands[j][0], commands[j][1]))
                    j += 1

                stdin: Optional[str] = None
                for k, (seg_name, seg_raw_args) in enumerate(segment):
                    is_last = k == len(segment) - 1
                    seg_args = self._maybe_expand_args(seg_name, seg_raw_args, ctx)
                    handler = self._commands.get(seg_name)

                    if is_last:
                        last_exit = int(self._dispatch(handler, seg_name, seg_args, ctx, stdin))
                    else:
                        buf = io.StringIO()
                        with redirect_stdout(buf):
                            last_exit = int(self._dispatch(handler, seg_name, seg_args, ctx, stdin))
                        stdin = buf.getvalue()

                    self._post_refresh(ctx)
                    if last_exit == 130:
                        return 130
                    if last_exit != 0 and not is_last:
                        break

                i = j
        finally:
            self._settle_pages(ctx)

        return last_exit

    def _settle_pages(self, ctx: ShellContext) -> None:
        """Runs any debounced re-extraction still pending on a loaded page."""
        for name, bridge in list(getattr(ctx, "pages", {}).items()):
            flush = getattr(bridge.active, "flush", None)
            if not callable(flush):
                continue
            try:
                if flush():
                    self._log.debug("Flushed pending re-extraction for page '%s'.", name)
            except Exception as e:
                self._log.error("Re-extraction of page '%s' failed: %s", name, e)

    def _dispatch(self, handler, name: str, args: List[str], ctx: ShellContext, stdin: Optional[str]) -> int:
        if handler is None:
            return self._run_external(name, args, stdin)
        return self._call_handler(handler, args, ctx, stdin)

    def _call_handler(self, handler, args, ctx, stdin) -> int:
        if len(inspect.signature(handler).parameters) >= 3:
            return int(handler(args, ctx, stdin))
        return int(handler(args, ctx))

    def _run_external(self, name, args, stdin) -> int:
        try:
            proc = subprocess.run([name] + args, input=(stdin or ""), text=True, check=False)
            return int(proc.returncode)
        except FileNotFoundError:
            print(f"command not found: {name}")
            return 127

    @staticmethod
    def _resolve_path(root: Any, path: str) -> Optional[Any]:
        """Walks a dotted path over attributes and dict keys."""
        current = root
        for part in [p for p in path.split(".") if p]:
            if current is None:
                return None
            if isinstance(current, dict):
                current = current.get(part)
                continue
            current = getattr(current, part, None)
        return current

    def resolve_var(self, name: str, ctx: ShellContext) -> Optional[Any]:
        """
        Resolves @{name}: session variables first, then dotted paths into
        a session variable, then the roots `page` (active bridge), `config` and `ctx`.
        """
        variables = getattr(ctx, "_vars", {})
        if name in variables:
            return variables[name]

        head, _, tail = name.partition(".")
        if tail and head in variables:
            return self._resolve_path(variables[head], tail)

        roots = {
            "page": getattr(ctx, "bridge", None),
            "config": getattr(ctx, "config", None),
            "ctx": ctx,
        }
        if head in roots:
            if head == "config" and roots["config"] is not None:
                return roots["config"].get_nested(tail) if tail else None
            return self._resolve_path(roots[head], tail)
        return None
