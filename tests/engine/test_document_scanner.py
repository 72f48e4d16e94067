# tests/engine/test_document_scanner.py
import pytest

from formengine.controllers.scan_controller import STANDALONE_ID, DocumentScanner
from formengine.dom.core import CanonicalType
from formengine.dom.document import LiveDocument
from formengine.dom.registry import ControlRegistry
from formengine.model import ScanOptions

PAGE = """
<html><head><title>Checkout</title>
<style>.collapsed { display: none }</style>
</head><body>
<form id="checkout" action="/pay" method="POST">
  <label for="fname">First Name</label><input id="fname" name="first_name" required>
  <input type="email" id="mail" name="mail">
  <input type="hidden" name="token" value="abc">
  <input id="promo" class="collapsed">
  <input type="radio" name="ship" value="std" checked>
  <input type="radio" name="ship" value="express">
  <input type="checkbox" name="extras" value="wrap" checked>
  <input type="checkbox" name="extras" value="card">
  <input type="checkbox" name="extras" value="note" checked>
  <button type="submit">Pay</button>
</form>
<div class="form-wrapper">
  <input id="newsletter" name="newsletter" placeholder="Your email">
</div>
<input id="search" aria-label="Search">
<script>var s = '<input id="not-real">';</script>
</body></html>
"""


@pytest.fixture
def doc():
    return LiveDocument.from_html(PAGE)


@pytest.fixture
def snapshot(doc):
    return DocumentScanner(doc).scan()


def _ids(form):
    return [el.id for el in form.elements]


def test_registry_covers_every_canonical_type():
    ControlRegistry.discover()
    assert ControlRegistry.missing_types() == []
    assert {"choice", "select", "file", "text"} <= set(ControlRegistry.families())


def test_containers_in_document_order(snapshot):
    assert [f.id for f in snapshot.forms][0] == "checkout"
    assert snapshot.forms[-1].id == STANDALONE_ID
    wrapper = snapshot.forms[1]
    assert wrapper.type == "div"
    assert wrapper.id.startswith("form_")
    assert _ids(wrapper) == ["newsletter"]
    assert _ids(snapshot.forms[-1]) == ["search"]


def test_form_attributes(snapshot):
    form = snapshot.forms[0]
    assert form.method == "post"
    assert form.action == "/pay"
    assert form.structure["required_count"] == 1
    assert form.structure["has_submit_button"]


def test_hidden_and_styled_out_controls_excluded(snapshot):
    ids = [el.id for el in snapshot.all_elements()]
    assert "name_token" not in ids
    assert "promo" not in ids
    assert "not-real" not in ids


def test_include_hidden_option(doc):
    snapshot = DocumentScanner(doc, ScanOptions(include_hidden=True)).scan()
    token = next(el for el in snapshot.all_elements() if el.id == "name_token")
    assert token.type == CanonicalType.HIDDEN
    assert token.value == "abc"


def test_radio_and_checkbox_sets_merge(snapshot):
    form = snapshot.forms[0]
    ship = next(el for el in form.elements if el.name == "ship")
    extras = next(el for el in form.elements if el.name == "extras")

    assert sum(1 for el in form.elements if el.name == "ship") == 1
    assert ship.type == CanonicalType.RADIO
    assert ship.value == "std"
    assert ship.group["count"] == 2

    assert extras.type == CanonicalType.CHECKBOX
    assert extras.value == ["wrap", "note"]
    assert extras.group["count"] == 3


def test_descriptor_fields(snapshot):
    fname = next(el for el in snapshot.all_elements() if el.id == "fname")
    assert fname.label == "First Name"
    assert fname.name == "first_name"
    assert fname.form_id == "checkout"
    assert fname.required
    assert fname.selector == "#fname"
    mail = next(el for el in snapshot.all_elements() if el.id == "mail")
    assert mail.type == CanonicalType.EMAIL


def test_validation_rules_cover_type_validators(snapshot):
    rules = {r.element_id: r for r in snapshot.validation_rules}
    assert rules["mail"].validators == ["email"]
    assert rules["fname"].constraints.required


def test_statistics(snapshot):
    stats = snapshot.statistics
    assert stats.total_forms == len(snapshot.forms)
    assert stats.total_elements == len(snapshot.all_elements())
    assert stats.by_type["radio"] == 1


def test_metadata(snapshot):
    assert snapshot.metadata.title == "Checkout"


def test_scan_is_idempotent(doc):
    scanner = DocumentScanner(doc)
    first, second = scanner.scan(), scanner.scan()
    assert first.model_dump(exclude={"timestamp", "extraction_time"}) == \
        second.model_dump(exclude={"timestamp", "extraction_time"})


def test_scan_does_not_mutate_document(doc):
    before = doc.serialize()
    DocumentScanner(doc).scan()
    assert doc.serialize() == before


def test_element_and_form_ids_are_unique():
    doc = LiveDocument.from_html("""
    <form><input id="dup"><input></form>
    <form><input id="dup"><input></form>
    """)
    snapshot = DocumentScanner(doc).scan()
    element_ids = [el.id for el in snapshot.all_elements()]
    form_ids = [f.id for f in snapshot.forms]
    assert len(element_ids) == len(set(element_ids)) == 4
    assert {"dup", "dup-2"} <= set(element_ids)
    assert len(form_ids) == len(set(form_ids)) == 2


def test_nested_pattern_container_does_not_duplicate():
    doc = LiveDocument.from_html("""
    <form id="outer"><div class="form-group"><input id="a"></div></form>
    """)
    snapshot = DocumentScanner(doc).scan()
    assert [f.id for f in snapshot.forms] == ["outer"]
    assert _ids(snapshot.forms[0]) == ["a"]


def test_scan_of_empty_document():
    snapshot = DocumentScanner(LiveDocument.from_html("<p>No forms</p>")).scan()
    assert snapshot.forms == []
    assert snapshot.statistics.total_elements == 0
