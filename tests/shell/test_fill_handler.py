# tests/shell/test_fill_handler.py
import json

import pytest

from formpiper_shell.core.context.shell_context import ShellContext
from formpiper_shell.core.handlers.fill_handler import handle_fill, parse_pairs
from formpiper_shell.core.managers.config_manager import config_manager
from formpiper_shell.core.services.page_service import PageService

CONTACT = """
<form id="contact">
  <label for="name">Full name</label><input id="name" name="name">
  <label for="mail">Email</label><input id="mail" name="mail" type="email">
  <select id="topics" name="topics" multiple>
    <option value="a">A</option><option value="b">B</option><option value="c">C</option>
  </select>
  <input type="file" id="cv">
</form>
"""


@pytest.fixture
def ctx():
    config_manager.reset()
    context = ShellContext()
    context.add_page("contact", PageService(config_manager).load_html(CONTACT, source="inline"))
    yield context
    context.close_page("contact")


def _value(ctx, element_id):
    doc = ctx.bridge.doc
    return doc.value(doc.get_element_by_id(element_id))


# --- parse_pairs ---

def test_parse_pairs_basic():
    assert parse_pairs(["name=Ada", "First Name=Ada Lovelace"]) == {
        "name": "Ada",
        "First Name": "Ada Lovelace",
    }


def test_parse_pairs_keeps_equals_in_values():
    assert parse_pairs(["query=a=b"]) == {"query": "a=b"}


def test_parse_pairs_repeated_key_builds_list():
    assert parse_pairs(["topics=a", "topics=c", "topics=b"]) == {"topics": ["a", "c", "b"]}


@pytest.mark.parametrize("bad", ["novalue", "=x"])
def test_parse_pairs_rejects_malformed(bad):
    with pytest.raises(ValueError):
        parse_pairs([bad])


# --- handle_fill ---

def test_fill_applies_pairs(ctx, capsys):
    assert handle_fill(["name=Ada", "mail=ada@example.com", "topics=a", "topics=c"], ctx) == 0
    out = capsys.readouterr().out
    assert "3/3 applied" in out
    assert "(enhanced)" in out
    assert _value(ctx, "name") == "Ada"
    assert _value(ctx, "mail") == "ada@example.com"
    topics = ctx.bridge.doc.get_element_by_id("topics")
    assert [ctx.bridge.doc.option_value(o) for o in ctx.bridge.doc.selected_options(topics)] == ["a", "c"]


def test_fill_fuzzy_label(ctx):
    assert handle_fill(["full name=Grace"], ctx) == 0
    assert _value(ctx, "name") == "Grace"


def test_fill_from_json_option(ctx):
    assert handle_fill(["--json", json.dumps({"name": "Bob"})], ctx) == 0
    assert _value(ctx, "name") == "Bob"


def test_fill_from_file(ctx, tmp_path):
    values = tmp_path / "values.json"
    values.write_text(json.dumps({"mail": "file@example.com"}), encoding="utf-8")
    assert handle_fill(["--file", str(values)], ctx) == 0
    assert _value(ctx, "mail") == "file@example.com"


def test_fill_from_piped_stdin(ctx):
    assert handle_fill([], ctx, stdin='{"name": "Zed"}\n') == 0
    assert _value(ctx, "name") == "Zed"


def test_fill_reports_failures(ctx, capsys):
    assert handle_fill(["cv=/etc/passwd", "--no-retry"], ctx) == 1
    out = capsys.readouterr().out
    assert "failed" in out
    assert "⚠️  0/1 applied" in out


def test_fill_invalid_json(ctx, capsys):
    assert handle_fill(["--json", "{not json"], ctx) == 1
    assert "❌ Error" in capsys.readouterr().out


def test_fill_malformed_pair(ctx, capsys):
    assert handle_fill(["justtext"], ctx) == 1
    assert "Expected key=value" in capsys.readouterr().out


def test_fill_without_page(capsys):
    config_manager.reset()
    assert handle_fill(["name=x"], ShellContext()) == 1
    assert "No active page" in capsys.readouterr().out


def test_fill_without_args_prints_help(ctx, capsys):
    assert handle_fill([], ctx) == 0
    assert "usage: fill" in capsys.readouterr().out
