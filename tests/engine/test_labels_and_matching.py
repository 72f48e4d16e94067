# tests/engine/test_labels_and_matching.py
import pytest

from formengine.dom.core import CanonicalType
from formengine.dom.document import LiveDocument
from formengine.model import ElementDescriptor
from formengine.services.labels import LabelResolver
from formengine.services.matching import FuzzyMatcher, match_score


def _resolver(html):
    doc = LiveDocument.from_html(html)
    return doc, LabelResolver(doc)


def test_aria_label_beats_wrapping_label():
    doc, labels = _resolver('<label>Wrapped <input id="a" aria-label="Aria name"></label>')
    tag = doc.get_element_by_id("a")
    assert labels.resolve(tag) == "Aria name"
    # the basic cascade looks at <label> elements first
    assert labels.resolve_basic(tag) == "Wrapped"


def test_aria_labelledby_joins_referenced_texts():
    doc, labels = _resolver(
        '<span id="l1">Billing</span><span id="l2">ZIP</span><input id="z" aria-labelledby="l1 l2">'
    )
    assert labels.resolve(doc.get_element_by_id("z")) == "Billing ZIP"


def test_label_for_and_wrapping_label():
    doc, labels = _resolver("""
    <form>
      <label for="first">First  Name</label><input id="first">
      <label>Age <input id="age" type="number"></label>
    </form>
    """)
    assert labels.resolve(doc.get_element_by_id("first")) == "First Name"
    assert labels.resolve(doc.get_element_by_id("age")) == "Age"
    assert labels.associated_labels(doc.get_element_by_id("age")) == ["Age"]


def test_container_heading_for_a_lone_field():
    doc, labels = _resolver("""
    <div class="row"><div class="field-label">Company</div><div><input id="co"></div></div>
    """)
    assert labels.resolve(doc.get_element_by_id("co")) == "Company"


def test_table_header_label():
    doc, labels = _resolver("""
    <table>
      <tr><th>Item</th><th>Qty</th></tr>
      <tr><td>Apples</td><td><input id="qty"></td></tr>
    </table>
    """)
    assert labels.table_header(doc.get_element_by_id("qty")) == "Qty"


def test_kintone_field_reference():
    doc, labels = _resolver('<div class="label-5">Customer</div><p>x</p><input id="1_5">')
    assert labels.field_id_reference(doc.get_element_by_id("1_5")) == "Customer"


def test_gaia_container_label():
    doc, labels = _resolver("""
    <div class="control-gaia field-7">
      <div class="control-label-gaia"><span class="control-label-text-gaia">Order No.</span></div>
      <div class="control-value-gaia"><input id="order"></div>
    </div>
    """)
    assert labels.resolve_basic(doc.get_element_by_id("order")) == "Order No."


@pytest.mark.parametrize("html, expected", [
    ('<input id="s" placeholder="Search here">', "Search here"),
    ('<input id="s" title="Find">', "Find"),
    ('<input id="s" name="query">', "query"),
    ('<input id="s">', "s"),
])
def test_fallback_strategies(html, expected):
    doc, labels = _resolver(html)
    assert labels.resolve(doc.get_element_by_id("s")) == expected


# --- Matching ---

def _element(**kwargs):
    defaults = {"id": "fname", "tag_name": "input", "type": CanonicalType.TEXT, "name": "first_name",
                "label": "First Name"}
    defaults.update(kwargs)
    return ElementDescriptor(**defaults)


@pytest.mark.parametrize("query, expected", [
    ("fname", 100),
    ("first_name", 100),
    ("first", 80),
    ("FIRST NAME", 80),
    ("Your First Name please", 60),
    ("firstname", 60),
    ("zip", 0),
    ("", 0),
])
def test_match_score_tiers(query, expected):
    assert match_score(query, _element()) == expected


def test_match_score_name_fallback():
    element = _element(id="pc", name="zip_code", label="Postcode")
    assert match_score("zip", element) == 40


def test_matcher_ranks_best_first_and_keeps_document_order_on_ties():
    elements = [
        _element(id="a", name="a", label="Email address"),
        _element(id="b", name="b", label="Backup email address"),
        _element(id="email", name="email", label="Contact"),
    ]
    matcher = FuzzyMatcher(elements)
    ranked = matcher.rank("email")
    assert [el.id for _, el in ranked] == ["email", "a", "b"]
    assert matcher.best("email")[0] == 100
    assert matcher.best("nothing") == (0, None)


def test_suggestions_fall_back_to_shared_characters():
    matcher = FuzzyMatcher([_element(id="zip", name="zip", label="Postcode")])
    hints = matcher.suggestions("postal")
    assert hints and hints[0]["id"] == "zip"
    assert hints[0]["score"] == 0
