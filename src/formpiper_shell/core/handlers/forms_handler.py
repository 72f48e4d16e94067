# src/formpiper_shell/core/handlers/forms_handler.py
import argparse
import json
import logging
from typing import List, Optional

from formengine.services.matching import FuzzyMatcher
from formpiper_shell.core.context.shell_context import ShellContext
from formpiper_shell.core.services.dataframe_service import DataFrameService

logger = logging.getLogger(__name__)

forms_help_text = """
FORMS (active page):
  forms list [--export <file.csv|file.json>]
                      One row per form (or per item in basic mode).
  forms show <form_id>
                      Full descriptor of one form as JSON.
  forms elements [--form <id>] [--type <t>] [--required] [--export <file>]
                      Element table; filters narrow it down.
  forms find <text>   Which element a fill key would reach, with match scores.
  forms stats         Statistics of the last extraction.
  forms history       Recent extractions (time, forms, elements).
  forms refresh       Re-scan the page now.
""".strip()

COMMAND_HIERARCHY = {
    "list": None,
    "show": None,
    "elements": None,
    "find": None,
    "stats": None,
    "history": None,
    "refresh": None,
}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="forms", description="Inspect extracted forms.")
    subs = parser.add_subparsers(dest="subcommand")

    p_list = subs.add_parser("list")
    p_list.add_argument("--export", default=None)

    p_show = subs.add_parser("show")
    p_show.add_argument("form_id")

    p_el = subs.add_parser("elements")
    p_el.add_argument("--form", default=None)
    p_el.add_argument("--type", default=None)
    p_el.add_argument("--required", action="store_true")
    p_el.add_argument("--export", default=None)

    p_find = subs.add_parser("find")
    p_find.add_argument("text", nargs="+")

    subs.add_parser("stats")
    subs.add_parser("history")
    subs.add_parser("refresh")
    return parser


def _print_table(df, ctx: ShellContext, export: Optional[str]) -> int:
    service = DataFrameService()
    ctx.last_table = df
    print(service.render(df, ctx.config.get_nested("shell.table_rows", 25)))
    if export:
        try:
            path = service.export(df, export)
        except OSError as e:
            print(f"❌ Error: Export failed: {e}")
            return 1
        print(f"✅ Exported {len(df)} rows to {path}")
    return 0


def _elements(pargs, ctx: ShellContext) -> int:
    bridge = ctx.bridge
    forms = bridge.get_forms_data()
    if pargs.form:
        forms = [f for f in forms if f.id == pargs.form]
        if not forms:
            print(f"❌ Error: Form '{pargs.form}' not found.")
            return 1
    df = DataFrameService().elements_frame(forms)
    if pargs.type:
        df = df[df["type"] == pargs.type]
    if pargs.required:
        df = df[df["required"].astype(bool)]
    return _print_table(df, ctx, pargs.export)


def _find(pargs, ctx: ShellContext) -> int:
    bridge = ctx.bridge
    query = " ".join(pargs.text)
    if not bridge.is_enhanced:
        matches = bridge.basic.find_forms_by_label(query)
        for item in matches:
            print(f"   {item.id:<24} {item.label}")
        return 0 if matches else 1

    engine = bridge.active
    elements = engine.model.get_all_elements()
    matcher = FuzzyMatcher(elements)
    ranked = matcher.rank(query)
    if not ranked:
        print(f"🔍 No element matches '{query}'.")
        for hint in matcher.suggestions(query):
            print(f"   did you mean: {hint.get('id')} ({hint.get('label', '')})")
        return 1
    for score, el in ranked[:10]:
        print(f"   {score:>3}  {el.id:<24} {el.label}")
    return 0


def _stats(ctx: ShellContext) -> int:
    bridge = ctx.bridge
    if not bridge.is_enhanced:
        items = bridge.get_forms_data()
        print(f"📊 Basic mode: {len(items)} items, {len(bridge.basic.find_required_forms())} required.")
        return 0
    stats = bridge.active.get_statistics()
    return _print_table(DataFrameService().statistics_frame(stats), ctx, None)


def _history(ctx: ShellContext) -> int:
    bridge = ctx.bridge
    if not bridge.is_enhanced:
        print("   (History is only kept by the full engine)")
        return 0
    for entry in bridge.active.get_extraction_history():
        print(f"   {entry.timestamp:.3f}  forms={entry.forms_count:<3} elements={entry.elements_count:<4} "
              f"{entry.extraction_time:.1f} ms")
    return 0


def handle_forms(args: List[str], ctx: ShellContext, _stdin: Optional[str] = None) -> int:
    parser = _build_parser()
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

    if pargs.subcommand == "list":
        return _print_table(DataFrameService().forms_frame(bridge.get_forms_data()), ctx, pargs.export)
    if pargs.subcommand == "show":
        form = bridge.get_form(pargs.form_id)
        if form is None:
            print(f"❌ Error: Form '{pargs.form_id}' not found.")
            return 1
        print(json.dumps(form.model_dump(mode="json"), indent=2, ensure_ascii=False))
        return 0
    if pargs.subcommand == "elements":
        return _elements(pargs, ctx)
    if pargs.subcommand == "find":
        return _find(pargs, ctx)
    if pargs.subcommand == "stats":
        return _stats(ctx)
    if pargs.subcommand == "history":
        return _history(ctx)
    if pargs.subcommand == "refresh":
        bridge.refresh()
        ctx.export_page_variables()
        print(f"✅ Re-scanned '{ctx.active_page}': {len(bridge.get_forms_data())} form(s).")
        return 0

    parser.print_help()
    return 1
