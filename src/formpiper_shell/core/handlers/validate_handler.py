# src/formpiper_shell/core/handlers/validate_handler.py
import argparse
import logging
from typing import List, Optional

from formengine.exceptions import FormEngineError
from formengine.model import ValidateOptions
from formpiper_shell.core.context.shell_context import ShellContext
from formpiper_shell.core.loop_runner import run_on_main_loop
from formpiper_shell.core.services.dataframe_service import DataFrameService

logger = logging.getLogger(__name__)

validate_help_text = """
VALIDATE (active page):
  validate form <form_id> [--quiet] [--no-a11y]
                      Validate every element of a form; errors are annotated
                      in the page unless --quiet is given.
  validate element <id|name|label> [--quiet] [--no-a11y]
                      Validate one element and list its issues (full engine only).
  validate all [--quiet] [--no-a11y]
                      Validate every form on the page.
  validate clear      Remove error annotations from the page.
""".strip()

COMMAND_HIERARCHY = {"form": None, "element": None, "all": None, "clear": None}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="validate", description="Validate form elements.")
    subs = parser.add_subparsers(dest="subcommand")
    for name in ("form", "element"):
        p = subs.add_parser(name)
        p.add_argument("target", nargs="+")
        p.add_argument("--quiet", action="store_true")
        p.add_argument("--no-a11y", action="store_true")
    p_all = subs.add_parser("all")
    p_all.add_argument("--quiet", action="store_true")
    p_all.add_argument("--no-a11y", action="store_true")
    subs.add_parser("clear")
    return parser


def _options(pargs) -> ValidateOptions:
    return ValidateOptions(accessibility=not pargs.no_a11y, show_errors=not pargs.quiet)


def _report_form(result, ctx: ShellContext) -> None:
    icon = "✅" if result.valid else "❌"
    print(f"{icon} {result.form_id}: score {result.score:.0f}")
    service = DataFrameService()
    print(service.render(service.validation_frame(result), ctx.config.get_nested("shell.table_rows", 25)))


def _element(pargs, ctx: ShellContext) -> int:
    bridge = ctx.bridge
    if not bridge.is_enhanced:
        print("❌ Error: Element validation needs the full engine; use 'validate form'.")
        return 1
    target = " ".join(pargs.target)
    try:
        result = run_on_main_loop(bridge.active.validate_element(target, _options(pargs)))
    except FormEngineError as e:
        print(f"❌ Error: {e}")
        return 1
    print(f"{'✅' if result.valid else '❌'} {result.element_id}: score {result.score}")
    for issue in result.errors:
        print(f"   error    [{issue.type}] {issue.message}")
    for issue in result.warnings:
        print(f"   warning  [{issue.type}] {issue.message}")
    for issue in result.info:
        print(f"   info     [{issue.type}] {issue.message}")
    return 0 if result.valid else 1


def handle_validate(args: List[str], ctx: ShellContext, _stdin: Optional[str] = None) -> int:
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

    if pargs.subcommand == "clear":
        validator = bridge.active.validator if bridge.is_enhanced else bridge.validator
        if validator is not None:
            validator.clear_annotations()
        print("✅ Annotations cleared.")
        return 0

    if pargs.subcommand == "element":
        return _element(pargs, ctx)

    if pargs.subcommand == "form":
        targets = [" ".join(pargs.target)]
    elif pargs.subcommand == "all":
        targets = [form.id for form in bridge.get_forms_data()]
    else:
        parser.print_help()
        return 1

    all_valid = True
    for form_id in targets:
        try:
            result = run_on_main_loop(bridge.validate_forms(form_id, _options(pargs)))
        except FormEngineError as e:
            print(f"❌ Error: {e}")
            return 1
        _report_form(result, ctx)
        all_valid = all_valid and result.valid
    return 0 if all_valid else 1
