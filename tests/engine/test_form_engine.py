# tests/engine/test_form_engine.py
import asyncio

import pytest

from formengine.dom.core import CanonicalType
from formengine.dom.document import LiveDocument
from formengine.engine import FormEngine
from formengine.exceptions import CollaboratorMissingError, FormEngineError, FormNotFoundError
from formengine.model import EngineOptions, HighlightOptions, ValidateOptions
from formengine.services.annotation import PULSE_CLASS
from formengine.utils.debounce import DebounceScheduler

PAGE = """
<html><head></head><body>
<form id="contact">
  <label for="name">Name</label><input id="name" name="name" required aria-required="true" style="color: red">
  <label for="mail">Email</label><input id="mail" name="mail" type="email" data-tracking="x">
  <input type="radio" name="pref" value="mail"><input type="radio" name="pref" value="phone">
</form>
</body></html>
"""


@pytest.fixture
def engine():
    eng = FormEngine(LiveDocument.from_html(PAGE))
    eng.scan()
    yield eng
    eng.destroy()


def test_engine_needs_a_document():
    with pytest.raises(CollaboratorMissingError):
        FormEngine(None)


def test_forms_and_queries(engine):
    assert [f.id for f in engine.get_forms_data()] == ["contact"]
    assert engine.get_form("contact").elements[0].id == "name"
    assert engine.get_form("missing") is None
    assert [el.id for el in engine.find_elements(type=CanonicalType.EMAIL)] == ["mail"]
    assert [el.id for el in engine.find_elements(required=True)] == ["name"]
    assert [el.id for el in engine.find_elements(label="mai")] == ["mail"]
    assert [el.id for el in engine.find_elements(has_custom_data=True)] == ["mail"]
    assert engine.find_element("name_pref") is not None
    assert engine.get_statistics().total_elements == 3


def test_mutation_burst_collapses_into_one_rescan(engine):
    """Without a running loop the rescan waits for flush(); a burst still costs one extraction."""
    doc = engine.doc
    name = doc.get_element_by_id("name")
    before = len(engine.get_extraction_history())

    doc.add_class(name, "wide")
    doc.set_attribute(name, "required", "")
    doc.remove_attribute(name, "required")
    doc.append_html(doc.get_element_by_id("contact"), '<input id="late" name="late">')

    assert len(engine.get_extraction_history()) == before
    assert engine.flush() is True
    assert len(engine.get_extraction_history()) == before + 1
    assert engine.find_elements(name="late")
    assert engine.flush() is False


def test_unrelated_mutations_do_not_trigger_rescan(engine):
    doc = engine.doc
    doc.append_html(doc.body, "<p>Just text</p>")
    doc.set_attribute(doc.get_element_by_id("name"), "placeholder", "ignored attribute")
    doc.set_attribute(doc.get_element_by_id("name"), "style", "color: blue")
    assert engine.flush() is False


def test_history_is_bounded():
    eng = FormEngine(LiveDocument.from_html(PAGE), EngineOptions(history_limit=2, live_updates=False))
    for _ in range(4):
        eng.refresh()
    assert len(eng.get_extraction_history()) == 2


def test_debounce_inside_running_loop():
    calls = []

    async def burst():
        scheduler = DebounceScheduler(lambda: calls.append(1), delay=0.01)
        for _ in range(5):
            scheduler.trigger()
        await asyncio.sleep(0.05)
        return scheduler

    scheduler = asyncio.run(burst())
    assert calls == [1]
    assert scheduler.run_count == 1
    assert not scheduler.pending


def test_forms_updated_event(engine):
    seen = []
    engine.on("forms_updated", lambda payload: seen.append(len(payload["forms"])))
    engine.refresh()
    assert seen == [1]


def test_highlight_and_restore(engine):
    doc = engine.doc
    name, mail = doc.get_element_by_id("name"), doc.get_element_by_id("mail")

    count = engine.highlight(["name", "mail"], HighlightOptions(color="#ff0000"))
    assert count == 2
    assert name["style"] == "color: red; outline: 2px solid #ff0000; outline-offset: 2px"
    assert PULSE_CLASS in doc.class_list(mail)
    assert doc.get_element_by_id("form-highlight-pulse-animation") is not None

    assert engine.remove_highlight() == 2
    assert name["style"] == "color: red"
    assert not mail.has_attr("style")
    assert not mail.has_attr("class")


def test_highlight_whole_form_and_radio_group(engine):
    count = engine.highlight("contact", HighlightOptions(style="background", animation=None))
    # name, mail and both radios
    assert count == 4
    radios = engine.doc.select('input[name="pref"]')
    assert all("background-color" in r["style"] for r in radios)


def test_validate_element_and_form(engine):
    result = asyncio.run(engine.validate_element("name", ValidateOptions(show_errors=False)))
    assert not result.valid
    form_result = asyncio.run(engine.validate_form("contact", ValidateOptions(show_errors=False)))
    assert set(form_result.results) == {"name", "mail", "name_pref"}
    assert not form_result.valid

    with pytest.raises(FormEngineError):
        asyncio.run(engine.validate_element("nope"))
    with pytest.raises(FormNotFoundError):
        asyncio.run(engine.validate_form("nope"))


def test_values_applied_event(engine):
    seen = []
    engine.on("values_applied", seen.append)
    asyncio.run(engine.smart_fill_forms({"name": "Ada"}))
    assert len(seen) == 1
    assert seen[0].success[0].element_id == "name"


def test_destroy_stops_observing(engine):
    engine.destroy()
    engine.doc.append_html(engine.doc.get_element_by_id("contact"), '<input id="after">')
    assert engine.flush() is False
