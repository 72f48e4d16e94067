# tests/shell/test_completion_manager.py
import pytest
from prompt_toolkit.document import Document
from prompt_toolkit.history import InMemoryHistory

from formpiper_shell.core.context.shell_context import ShellContext
from formpiper_shell.core.managers.completion_manager import CompletionManager
from formpiper_shell.core.managers.config_manager import config_manager
from formpiper_shell.core.services.page_service import PageService

HIERARCHY = {
    "page": {"load": None, "list": None, "use": None, "close": None},
    "forms": {"list": None, "show": None, "stats": None},
    "fill": None,
    "echo": None,
}

HTML = '<form id="checkout"><input name="a"></form><form id="contact"><input name="b"></form>'


@pytest.fixture
def completer():
    config_manager.reset()
    ctx = ShellContext()
    ctx.add_page("shop", PageService(config_manager).load_html(HTML))
    history = InMemoryHistory()
    for line in ["page list", "forms stats", "page list", "fill a=1"]:
        history.append_string(line)
    return CompletionManager(ctx, history, HIERARCHY)


def _texts(completer, text):
    return [c.text for c in completer.generate_completions(Document(text, len(text)))]


def test_main_commands(completer):
    assert _texts(completer, "f") == ["fill", "forms"]
    assert _texts(completer, "!c") == ["echo", "fill", "forms", "page"]


def test_subcommands(completer):
    assert _texts(completer, "page ") == ["close", "list", "load", "use"]
    assert _texts(completer, "page l") == ["list", "load"]
    assert _texts(completer, "fill ") == []


def test_completion_restarts_after_operator(completer):
    assert _texts(completer, "page list && fo") == ["forms"]
    assert _texts(completer, "page list | forms s") == ["show", "stats"]


def test_form_ids_and_pages(completer):
    assert _texts(completer, "forms show ") == ["checkout", "contact"]
    assert _texts(completer, "forms show ch") == ["checkout"]
    assert _texts(completer, "page use ") == ["shop"]


def test_variables(completer):
    completer.ctx.set("form", "checkout")
    assert _texts(completer, "forms show @{fo") == ["@{form}"]
    assert "@{page.mode}" in _texts(completer, "echo @{")


def test_history_is_deduplicated_and_recent_first(completer):
    assert _texts(completer, "!h") == ["fill a=1", "page list", "forms stats"]
