# tests/engine/test_live_document.py
import pytest

from formengine.dom.document import LiveDocument, MutationObserver
from formengine.dom.style import iter_style_rules
from formengine.exceptions import DocumentLoadError

PAGE = """
<html><head>
<style>.gone { display: none } .ghost { visibility: hidden }</style>
</head><body>
<form id="signup">
  <input id="email" name="email" type="email" value="old@example.com">
  <input type="radio" name="color" value="red" checked>
  <input type="radio" name="color" value="green">
  <select id="topics" multiple>
    <option value="a">A</option><option value="b" selected>B</option><option value="c">C</option>
  </select>
  <select id="size"><option>S</option><option>M</option></select>
  <input id="hidden-by-class" class="gone">
  <input id="invisible" class="ghost">
  <div hidden><input id="in-hidden-div"></div>
</form>
</body></html>
"""


@pytest.fixture
def doc():
    return LiveDocument.from_html(PAGE, source="inline")


def test_from_html_rejects_none():
    with pytest.raises(DocumentLoadError):
        LiveDocument.from_html(None)


def test_from_file_missing_raises(tmp_path):
    with pytest.raises(DocumentLoadError):
        LiveDocument.from_file(tmp_path / "nope.html")


def test_from_file_keeps_source(tmp_path):
    page = tmp_path / "page.html"
    page.write_text("<title>Hello</title><input id='a'>", encoding="utf-8")
    loaded = LiveDocument.from_file(page)
    assert loaded.source == str(page)
    assert loaded.title == "Hello"


def test_value_state_is_separate_from_markup(doc):
    """Setting a value changes the property, not the value attribute."""
    email = doc.get_element_by_id("email")
    assert doc.value(email) == "old@example.com"
    doc.set_value(email, "new@example.com")
    assert doc.value(email) == "new@example.com"
    assert doc.default_value(email) == "old@example.com"
    assert email["value"] == "old@example.com"


def test_checking_a_radio_unchecks_its_group(doc):
    radios = doc.select('input[name="color"]')
    assert [doc.is_checked(r) for r in radios] == [True, False]
    doc.set_checked(radios[1], True)
    assert [doc.is_checked(r) for r in radios] == [False, True]
    assert len(doc.radio_group(radios[0])) == 2


def test_multi_select_selection(doc):
    topics = doc.get_element_by_id("topics")
    assert [doc.option_value(o) for o in doc.selected_options(topics)] == ["b"]
    for option in doc.options(topics):
        doc.set_selected(option, doc.option_value(option) in ("a", "c"))
    assert [doc.option_value(o) for o in doc.selected_options(topics)] == ["a", "c"]


def test_single_select_without_choice_shows_first_option(doc):
    size = doc.get_element_by_id("size")
    assert doc.value(size) == "S"
    doc.set_value(size, "M")
    assert doc.value(size) == "M"


def test_computed_style_uses_style_blocks_and_hidden(doc):
    assert doc.computed_style(doc.get_element_by_id("email")).rendered
    assert not doc.computed_style(doc.get_element_by_id("hidden-by-class")).rendered
    assert not doc.computed_style(doc.get_element_by_id("invisible")).rendered
    assert not doc.computed_style(doc.get_element_by_id("in-hidden-div")).rendered


def test_style_changes_are_picked_up_after_mutation(doc):
    email = doc.get_element_by_id("email")
    doc.add_class(email, "gone")
    assert not doc.computed_style(email).rendered
    doc.remove_class(email, "gone")
    assert doc.computed_style(email).rendered


def test_observer_filters_attributes(doc):
    seen = []
    observer = MutationObserver(doc, seen.extend)
    observer.observe(doc.body, attribute_filter=["required"])

    email = doc.get_element_by_id("email")
    doc.set_attribute(email, "placeholder", "you@example.com")
    doc.set_attribute(email, "required", "")
    doc.append_html(doc.get_element_by_id("signup"), '<input id="late">')

    assert [r.kind for r in seen] == ["attributes", "childList"]
    assert seen[0].attribute_name == "required"
    assert seen[1].added[0]["id"] == "late"

    observer.disconnect()
    doc.set_attribute(email, "required", "required")
    assert len(seen) == 2


def test_events_are_logged_and_delivered(doc):
    heard = []
    doc.add_event_listener("change", lambda tag, kind: heard.append(tag["id"]))
    email = doc.get_element_by_id("email")
    doc.dispatch_event(email, "input")
    doc.dispatch_event(email, "change")
    assert [e["type"] for e in doc.event_log] == ["input", "change"]
    assert heard == ["email"]


def test_insert_after_and_remove(doc):
    email = doc.get_element_by_id("email")
    added = doc.insert_after(email, '<span id="hint">Hint</span>')
    assert added[0].previous_sibling is email
    doc.remove(added[0])
    assert doc.get_element_by_id("hint") is None
    assert 'id="hint"' not in doc.serialize()


def test_serialize_writes_back_control_state(doc):
    email = doc.get_element_by_id("email")
    doc.set_value(email, "new@example.com")
    green = doc.select('input[value="green"]')[0]
    doc.set_checked(green, True)
    doc.set_selected(doc.select("#topics option")[0], True)

    saved = LiveDocument.from_html(doc.serialize())
    assert saved.get_element_by_id("email")["value"] == "new@example.com"
    assert saved.select('input[value="green"]')[0].has_attr("checked")
    assert not saved.select('input[value="red"]')[0].has_attr("checked")
    assert [o["value"] for o in saved.select("#topics option[selected]")] == ["a", "b"]
    # the live markup itself is untouched
    assert email["value"] == "old@example.com"


def test_rules_inside_at_rule_blocks_are_ignored():
    doc = LiveDocument.from_html("""
    <html><head><style>
    @import url("print.css");
    @media print { .no-print { display: none } }
    @supports (display: grid) { .grid-only { visibility: hidden } }
    .muted { opacity: 0 }
    </style></head><body>
    <input id="a" class="no-print"><input id="b" class="grid-only"><input id="c" class="muted">
    </body></html>
    """)
    assert doc.computed_style(doc.get_element_by_id("a")).rendered
    assert doc.computed_style(doc.get_element_by_id("b")).rendered
    assert not doc.computed_style(doc.get_element_by_id("c")).rendered


def test_iter_style_rules_yields_top_level_rules_only():
    css = "a { color: red } @media (max-width: 600px) { b { display: none } } i, em { display: none }"
    assert [selector for selector, _ in iter_style_rules(css)] == ["a", "i, em"]
