# src/formpiper_shell/core/handlers/highlight_handler.py
import argparse
from typing import List, Optional

from formengine.model import HighlightOptions
from formpiper_shell.core.context.shell_context import ShellContext

highlight_help_text = """
HIGHLIGHT (active page):
  highlight <form_id|element...> [--color <css>] [--style outline|border|shadow|background] [--no-pulse]
                      Mark forms or elements in the page's HTML (see 'page save').
  highlight clear     Remove all highlights and restore original styles.
""".strip()

COMMAND_HIERARCHY = {"clear": None}

STYLES = ("outline", "border", "shadow", "background")


def handle_highlight(args: List[str], ctx: ShellContext, _stdin: Optional[str] = None) -> int:
    parser = argparse.ArgumentParser(prog="highlight", description="Highlight forms or elements.")
    parser.add_argument("targets", nargs="+")
    parser.add_argument("--color", default="#3b82f6")
    parser.add_argument("--style", choices=STYLES, default="outline")
    parser.add_argument("--no-pulse", action="store_true")

    if not args:
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

    if pargs.targets == ["clear"]:
        removed = bridge.remove_highlight()
        print(f"✅ Removed {removed} highlight(s).")
        return 0

    options = HighlightOptions(
        color=pargs.color,
        style=pargs.style,
        animation=None if pargs.no_pulse else "pulse",
    )
    count = bridge.highlight(pargs.targets, options)
    if count == 0:
        print(f"❌ Nothing matched: {', '.join(pargs.targets)}")
        return 1
    print(f"✅ Highlighted {count} element(s).")
    return 0
