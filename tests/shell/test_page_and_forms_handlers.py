# tests/shell/test_page_and_forms_handlers.py
import asyncio
import json

import pytest

from formpiper_shell.core.context.shell_context import ShellContext
from formpiper_shell.core.handlers.forms_handler import handle_forms
from formpiper_shell.core.handlers.page_handler import handle_page
from formpiper_shell.core.managers.config_manager import config_manager
from formpiper_shell.core.services.page_service import PageService

SIGNUP = """
<html><head><title>Sign up</title></head><body>
<form id="signup">
  <label for="email">Email address</label><input id="email" name="email" type="email" required>
  <label for="nick">Nickname</label><input id="nick" name="nick">
</form>
</body></html>
"""


@pytest.fixture
def ctx():
    """A fresh context on the shipped settings.json."""
    config_manager.reset()
    context = ShellContext()
    yield context
    for name in list(context.pages):
        context.close_page(name)


@pytest.fixture
def signup_file(tmp_path):
    path = tmp_path / "signup.html"
    path.write_text(SIGNUP, encoding="utf-8")
    return path


@pytest.fixture
def loaded(ctx, signup_file, capsys):
    assert handle_page(["load", str(signup_file)], ctx) == 0
    capsys.readouterr()
    return ctx


# --- page ---

def test_page_load_activates_and_exports_variables(ctx, signup_file, capsys):
    assert handle_page(["load", str(signup_file)], ctx) == 0
    out = capsys.readouterr().out
    assert "Loaded 'signup' (enhanced): 1 form(s)." in out
    assert ctx.active_page == "signup"
    assert ctx.get("page.mode") == "enhanced"
    assert ctx.get("page.forms") == "1"
    assert ctx.get("page.source") == str(signup_file)


def test_page_load_twice_gets_a_new_name(loaded, signup_file):
    assert handle_page(["load", str(signup_file)], loaded) == 0
    assert list(loaded.pages) == ["signup", "signup-2"]
    assert loaded.active_page == "signup-2"


def test_page_load_basic_mode(ctx, signup_file):
    assert handle_page(["load", str(signup_file), "--basic"], ctx) == 0
    assert ctx.bridge.mode == "basic"


def test_page_load_missing_file(ctx, tmp_path, capsys):
    assert handle_page(["load", str(tmp_path / "absent.html")], ctx) == 1
    assert "❌" in capsys.readouterr().out
    assert ctx.pages == {}


def test_page_load_directory(ctx, tmp_path):
    for name in ("a.html", "b.htm"):
        (tmp_path / name).write_text(SIGNUP, encoding="utf-8")
    (tmp_path / "notes.txt").write_text("skip me", encoding="utf-8")
    assert handle_page(["load", str(tmp_path)], ctx) == 0
    assert sorted(ctx.pages) == ["a", "b"]


def test_page_list_use_and_close(loaded, signup_file, capsys):
    handle_page(["load", str(signup_file)], loaded)
    capsys.readouterr()

    handle_page(["list"], loaded)
    out = capsys.readouterr().out
    assert " * signup-2" in out

    assert handle_page(["use", "signup"], loaded) == 0
    assert loaded.active_page == "signup"
    assert handle_page(["use", "nope"], loaded) == 1

    assert handle_page(["close", "signup"], loaded) == 0
    assert loaded.active_page == "signup-2"
    assert handle_page(["close", "signup"], loaded) == 1


def test_closing_last_page_clears_page_variables(loaded):
    handle_page(["close", "signup"], loaded)
    assert loaded.bridge is None
    assert loaded.get("page.mode") is None


def test_page_info(loaded, capsys):
    assert handle_page(["info"], loaded) == 0
    out = capsys.readouterr().out
    assert "enhanced_available" in out
    assert "forms_count" in out


def test_page_info_without_page(ctx, capsys):
    assert handle_page(["info"], ctx) == 1
    assert "No active page" in capsys.readouterr().out


def test_page_save_keeps_filled_values(loaded, tmp_path):
    asyncio.run(loaded.bridge.apply_values({"nick": "Ada"}))
    target = tmp_path / "out" / "saved.html"
    target.parent.mkdir()
    assert handle_page(["save", str(target)], loaded) == 0
    assert 'value="Ada"' in target.read_text(encoding="utf-8")


def test_page_bad_arguments(ctx):
    assert handle_page(["use"], ctx) == 1
    assert handle_page([], ctx) == 0


def test_page_name_suffixes():
    from pathlib import Path
    assert PageService.page_name(Path("x/form.html"), ["form", "form-2"]) == "form-3"


# --- forms ---

def test_forms_require_active_page(ctx, capsys):
    assert handle_forms(["list"], ctx) == 1
    assert "No active page" in capsys.readouterr().out


def test_forms_list_and_export(loaded, tmp_path, capsys):
    export = tmp_path / "forms.csv"
    assert handle_forms(["list", "--export", str(export)], loaded) == 0
    assert list(loaded.last_table["id"]) == ["signup"]
    assert int(loaded.last_table["required"].iloc[0]) == 1
    assert export.read_text(encoding="utf-8").startswith("id,type,name")
    assert "Exported 1 rows" in capsys.readouterr().out


def test_forms_show(loaded, capsys):
    assert handle_forms(["show", "signup"], loaded) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["id"] == "signup"
    assert [el["id"] for el in payload["elements"]] == ["email", "nick"]
    assert handle_forms(["show", "missing"], loaded) == 1


def test_forms_elements_filters(loaded, tmp_path):
    assert handle_forms(["elements", "--type", "email"], loaded) == 0
    assert list(loaded.last_table["id"]) == ["email"]

    assert handle_forms(["elements", "--required"], loaded) == 0
    assert list(loaded.last_table["id"]) == ["email"]

    export = tmp_path / "elements.json"
    assert handle_forms(["elements", "--form", "signup", "--export", str(export)], loaded) == 0
    rows = json.loads(export.read_text(encoding="utf-8"))
    assert [r["label"] for r in rows] == ["Email address", "Nickname"]

    assert handle_forms(["elements", "--form", "other"], loaded) == 1


def test_forms_find(loaded, capsys):
    assert handle_forms(["find", "nickname"], loaded) == 0
    assert "nick" in capsys.readouterr().out
    assert handle_forms(["find", "qqq"], loaded) == 1


def test_forms_stats_and_history(loaded, capsys):
    assert handle_forms(["stats"], loaded) == 0
    metrics = list(loaded.last_table["metric"])
    assert "total_elements" in metrics
    assert "type:email" in metrics

    assert handle_forms(["history"], loaded) == 0
    assert "forms=1" in capsys.readouterr().out


def test_forms_refresh_picks_up_changes(loaded, capsys):
    doc = loaded.bridge.doc
    doc.append_html(doc.get_element_by_id("signup"), '<input id="city" name="city">')
    assert handle_forms(["refresh"], loaded) == 0
    form = loaded.bridge.get_form("signup")
    assert [el.id for el in form.elements] == ["email", "nick", "city"]


def test_forms_in_basic_mode(ctx, signup_file, capsys):
    handle_page(["load", str(signup_file), "--basic"], ctx)
    capsys.readouterr()
    assert handle_forms(["find", "nick"], ctx) == 0
    assert "Nickname" in capsys.readouterr().out
    assert handle_forms(["stats"], ctx) == 0
    assert "Basic mode: 2 items, 1 required." in capsys.readouterr().out
    assert handle_forms(["list"], ctx) == 0
    assert list(ctx.last_table["id"]) == ["email", "nick"]
