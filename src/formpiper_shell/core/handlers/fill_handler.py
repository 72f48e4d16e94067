# src/formpiper_shell/core/handlers/fill_handler.py
import argparse
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from formengine.model import SmartFillOptions
from formpiper_shell.core.context.shell_context import ShellContext
from formpiper_shell.core.loop_runner import run_on_main_loop
from formpiper_shell.core.services.dataframe_service import DataFrameService

logger = logging.getLogger(__name__)

fill_help_text = """
FILL (active page):
  fill <key>=<value>... [--json '<object>'] [--file <values.json>]
       [--no-retry] [--no-validate] [--no-highlight] [--include-hidden]
                      Apply values. Keys may be ids, names, selectors or label text
                      (fuzzy matched). Repeating a key builds a list, e.g.
                      fill topics=a topics=c for a multi-select or checkbox set.
""".strip()

COMMAND_HIERARCHY = None


def parse_pairs(pairs: List[str]) -> Dict[str, Any]:
    """`k=v` tokens into a dict; a repeated key collects its values into a list."""
    values: Dict[str, Any] = {}
    for pair in pairs:
        if "=" not in pair:
            raise ValueError(f"Expected key=value, got '{pair}'")
        key, value = pair.split("=", 1)
        key = key.strip()
        if not key:
            raise ValueError(f"Missing key in '{pair}'")
        if key in values:
            existing = values[key]
            values[key] = (existing if isinstance(existing, list) else [existing]) + [value]
        else:
            values[key] = value
    return values


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="fill", description="Apply values to the active page's forms.")
    parser.add_argument("pairs", nargs="*", help="key=value pairs")
    parser.add_argument("--json", dest="json_values", default=None)
    parser.add_argument("--file", default=None)
    parser.add_argument("--no-retry", action="store_true")
    parser.add_argument("--no-validate", action="store_true")
    parser.add_argument("--no-highlight", action="store_true")
    parser.add_argument("--include-hidden", action="store_true")
    return parser


def _collect_values(pargs, stdin: Optional[str]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    if pargs.file:
        values.update(json.loads(Path(pargs.file).expanduser().read_text(encoding="utf-8")))
    if pargs.json_values:
        values.update(json.loads(pargs.json_values))
    elif not pargs.pairs and not pargs.file and stdin and stdin.strip():
        values.update(json.loads(stdin))
    values.update(parse_pairs(pargs.pairs))
    return values


def handle_fill(args: List[str], ctx: ShellContext, stdin: Optional[str] = None) -> int:
    parser = _build_parser()
    if not args and not (stdin and stdin.strip()):
        parser.print_help()
        return 0
    try:
        pargs = parser.parse_args(args)
    except SystemExit:
        return 1

    bridge = ctx.bridge
    if bridge is None:
        print("❌ Error: No active page. Use 'page load <file>' first.")
        return 1

    try:
        values = _collect_values(pargs, stdin)
    except (OSError, ValueError) as e:
        # json.JSONDecodeError is a ValueError
        print(f"❌ Error: {e}")
        return 1
    if not values:
        print("❌ Error: Nothing to fill.")
        return 1

    options = SmartFillOptions(
        validate=not pargs.no_validate and ctx.config.get_nested("engine.validate_on_apply", True),
        retry_failed=not pargs.no_retry,
        max_retries=ctx.config.get_nested("engine.max_retries", 3),
        retry_delay=ctx.config.get_nested("engine.retry_delay_ms", 0) / 1000,
        highlight_errors=not pargs.no_highlight,
        skip_hidden=not pargs.include_hidden,
    )

    try:
        result = run_on_main_loop(bridge.apply_values(values, options))
    except Exception as e:
        logger.error("Fill failed: %s", e, exc_info=True)
        print(f"❌ Fill error: {e}")
        return 1

    print(DataFrameService().render(DataFrameService().fill_frame(result), 0))
    report = result.completion_report
    summary = (
        f"{len(result.success)}/{result.total_attempted} applied"
        f"{f', {report.recovered} recovered on retry' if report and report.recovered else ''}"
        f" in {result.execution_time:.1f} ms ({result.mode}"
        f"{', fallback' if result.fallback_used else ''})."
    )
    print(("✅ " if not result.failed else "⚠️  ") + summary)
    return 0 if not result.failed else 1
