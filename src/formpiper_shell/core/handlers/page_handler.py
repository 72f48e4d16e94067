# src/formpiper_shell/core/handlers/page_handler.py
import argparse
import logging
from pathlib import Path
from typing import List, Optional

from formpiper_shell.core.context.shell_context import ShellContext
from formpiper_shell.core.services.page_service import PageService
from formpiper_shell.core.utils.path_utils import PathUtils

logger = logging.getLogger(__name__)

page_help_text = """
PAGES:
  page load <file|dir|glob...> [--basic]
                      Load HTML files and scan their forms. The last one becomes active.
                      --basic forces the minimal extractor for these pages.
  page list           Show loaded pages (* marks the active one).
  page use <name>     Make a loaded page active.
  page info           Engine mode, fallback policy and form count of the active page.
  page save <path>    Write the active page's current HTML (after fills) to a file.
  page close <name>   Unload a page.
""".strip()

COMMAND_HIERARCHY = {
    "load": None,
    "list": None,
    "use": None,
    "info": None,
    "save": None,
    "close": None,
}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="page", description="Manage loaded HTML pages.")
    subs = parser.add_subparsers(dest="subcommand")

    p_load = subs.add_parser("load", help="Load HTML files.")
    p_load.add_argument("paths", nargs="+", help="Files, directories or glob patterns.")
    p_load.add_argument("--basic", action="store_true", help="Use the minimal extractor only.")

    subs.add_parser("list", help="List loaded pages.")
    subs.add_parser("info", help="Describe the active page.")

    p_use = subs.add_parser("use", help="Activate a page.")
    p_use.add_argument("name")

    p_save = subs.add_parser("save", help="Save the active page's HTML.")
    p_save.add_argument("path")

    p_close = subs.add_parser("close", help="Unload a page.")
    p_close.add_argument("name")
    return parser


def _load(pargs, ctx: ShellContext) -> int:
    paths = PathUtils.expand_inputs(pargs.paths)
    if not paths:
        print("❌ Error: No files matched.")
        return 1

    loaded, failed = PageService(ctx.config).load_many(paths, taken=ctx.pages.keys(), force_basic=pargs.basic)
    for name, bridge in loaded:
        ctx.add_page(name, bridge)
        print(f"✅ Loaded '{name}' ({bridge.mode}): {len(bridge.get_forms_data())} form(s).")
    for path, error in failed:
        print(f"❌ {path}: {error}")
    return 0 if loaded and not failed else 1


def _list(ctx: ShellContext) -> int:
    if not ctx.pages:
        print("   (No pages loaded; use 'page load <file>')")
        return 0
    for name, bridge in ctx.pages.items():
        marker = "*" if name == ctx.active_page else " "
        print(f" {marker} {name:<24} {bridge.mode:<9} {bridge.doc.source or ''}")
    return 0


def _info(ctx: ShellContext) -> int:
    bridge = ctx.bridge
    if bridge is None:
        print("❌ Error: No active page.")
        return 1
    info = bridge.controller_info()
    print(f"📄 {ctx.active_page}  ({bridge.doc.source or 'inline'})")
    for key, value in info.items():
        print(f"   {key:<20} {value}")
    return 0


def _save(pargs, ctx: ShellContext) -> int:
    bridge = ctx.bridge
    if bridge is None:
        print("❌ Error: No active page.")
        return 1
    target = Path(pargs.path).expanduser()
    try:
        target.write_text(bridge.doc.serialize(), encoding="utf-8")
    except OSError as e:
        logger.error("Saving %s failed: %s", target, e)
        print(f"❌ Error: Could not write {target}: {e}")
        return 1
    print(f"✅ Saved '{ctx.active_page}' to {target}")
    return 0


def handle_page(args: List[str], ctx: ShellContext, _stdin: Optional[str] = None) -> int:
    parser = _build_parser()
    if not args:
        parser.print_help()
        return 0
    try:
        pargs = parser.parse_args(args)
    except SystemExit:
        return 1

    if pargs.subcommand == "load":
        return _load(pargs, ctx)
    if pargs.subcommand == "list":
        return _list(ctx)
    if pargs.subcommand == "info":
        return _info(ctx)
    if pargs.subcommand == "save":
        return _save(pargs, ctx)
    if pargs.subcommand == "use":
        if not ctx.use_page(pargs.name):
            print(f"❌ Error: Page '{pargs.name}' is not loaded.")
            return 1
        print(f"✅ Active page: {pargs.name}")
        return 0
    if pargs.subcommand == "close":
        if not ctx.close_page(pargs.name):
            print(f"❌ Error: Page '{pargs.name}' is not loaded.")
            return 1
        print(f"✅ Closed '{pargs.name}'.")
        return 0

    parser.print_help()
    return 1
