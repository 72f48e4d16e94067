# tests/shell/test_validate_and_highlight_handlers.py
import pytest

from formpiper_shell.core.context.shell_context import ShellContext
from formpiper_shell.core.handlers.highlight_handler import handle_highlight
from formpiper_shell.core.handlers.validate_handler import handle_validate
from formpiper_shell.core.managers.config_manager import config_manager
from formpiper_shell.core.services.page_service import PageService

SIGNUP = """
<html><head></head><body>
<form id="signup">
  <div class="form-group"><label for="email">Email</label><input id="email" name="email" type="email" value="bad"></div>
  <div class="form-group"><label for="nick">Nick</label><input id="nick" name="nick" value="ok"></div>
</form>
</body></html>
"""


def _context(force_basic=False):
    config_manager.reset()
    ctx = ShellContext()
    ctx.add_page("signup", PageService(config_manager).load_html(SIGNUP, force_basic=force_basic))
    return ctx


@pytest.fixture
def ctx():
    context = _context()
    yield context
    context.close_page("signup")


def _doc(ctx):
    return ctx.bridge.doc


# --- validate ---

def test_validate_form_annotates_errors(ctx, capsys):
    assert handle_validate(["form", "signup"], ctx) == 1
    out = capsys.readouterr().out
    assert "❌ signup: score" in out
    assert "Please enter a valid email" in out
    assert _doc(ctx).get_element_by_id("email-errors") is not None


def test_validate_quiet_leaves_page_alone(ctx):
    assert handle_validate(["form", "signup", "--quiet"], ctx) == 1
    assert _doc(ctx).get_element_by_id("email-errors") is None


def test_validate_clear(ctx, capsys):
    handle_validate(["form", "signup"], ctx)
    assert handle_validate(["clear"], ctx) == 0
    assert "Annotations cleared" in capsys.readouterr().out
    assert _doc(ctx).get_element_by_id("email-errors") is None


def test_validate_element(ctx, capsys):
    assert handle_validate(["element", "email", "--quiet"], ctx) == 1
    assert "error    [" in capsys.readouterr().out
    assert handle_validate(["element", "nick", "--quiet"], ctx) == 0
    assert "✅ nick: score 100" in capsys.readouterr().out


def test_validate_all(ctx, capsys):
    assert handle_validate(["all", "--quiet"], ctx) == 1
    assert "signup" in capsys.readouterr().out


def test_validate_unknown_targets(ctx, capsys):
    assert handle_validate(["form", "nope"], ctx) == 1
    assert handle_validate(["element", "zzz"], ctx) == 1
    assert capsys.readouterr().out.count("❌ Error") == 2


def test_validate_element_needs_full_engine(capsys):
    ctx = _context(force_basic=True)
    assert handle_validate(["element", "email"], ctx) == 1
    assert "needs the full engine" in capsys.readouterr().out
    assert handle_validate(["form", "email", "--quiet"], ctx) == 1


def test_validate_without_page(capsys):
    config_manager.reset()
    assert handle_validate(["all"], ShellContext()) == 1


# --- highlight ---

def test_highlight_element_and_clear(ctx, capsys):
    assert handle_highlight(["email", "--color", "red", "--no-pulse"], ctx) == 0
    email = _doc(ctx).get_element_by_id("email")
    assert "outline: 2px solid red" in email["style"]
    assert "Highlighted 1 element(s)" in capsys.readouterr().out

    assert handle_highlight(["clear"], ctx) == 0
    assert "Removed 1 highlight(s)" in capsys.readouterr().out
    assert not email.has_attr("style")


def test_highlight_whole_form(ctx, capsys):
    assert handle_highlight(["signup", "--style", "border"], ctx) == 0
    assert "Highlighted 2 element(s)" in capsys.readouterr().out
    assert "border" in _doc(ctx).get_element_by_id("nick")["style"]


def test_highlight_nothing_matched(ctx, capsys):
    assert handle_highlight(["nope"], ctx) == 1
    assert "Nothing matched: nope" in capsys.readouterr().out


def test_highlight_rejects_unknown_style(ctx):
    assert handle_highlight(["email", "--style", "glow"], ctx) == 1
