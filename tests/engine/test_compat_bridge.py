# tests/engine/test_compat_bridge.py
import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from formengine.controllers.basic_controller import BasicFormsController
from formengine.controllers.compat_controller import FALLBACK_MESSAGE, CompatibilityBridge, FallbackPolicy
from formengine.dom.document import LiveDocument
from formengine.exceptions import FormNotFoundError
from formengine.model import ApplyOptions, ValidateOptions

PAGE = """
<html><head></head><body>
<form id="order">
  <label for="customer">Customer</label><input id="customer" name="customer" required>
  <input name="ref" placeholder="Reference">
  <input type="hidden" name="csrf" value="t">
  <label><input type="radio" name="speed" value="slow" checked> Slow</label>
  <label><input type="radio" name="speed" value="fast"> Fast</label>
  <input type="checkbox" name="tags" value="a"><input type="checkbox" name="tags" value="b">
  <select id="size" multiple><option value="s">S</option><option value="m">M</option></select>
  <input type="file" id="doc">
</form>
</body></html>
"""


@pytest.fixture
def doc():
    return LiveDocument.from_html(PAGE)


def _broken_engine():
    engine = MagicMock()
    engine.mode = "enhanced"
    engine.smart_fill_forms = AsyncMock(side_effect=RuntimeError("engine exploded"))
    return engine


# --- Bridge ---

def test_bridge_prefers_full_engine(doc):
    bridge = CompatibilityBridge(doc)
    assert bridge.is_enhanced
    assert bridge.mode == "enhanced"
    info = bridge.controller_info()
    assert info["enhanced_available"] and info["forms_count"] == 1


def test_bridge_uses_basic_when_engine_cannot_be_built(doc):
    def factory(d, options):
        raise RuntimeError("no engine today")

    bridge = CompatibilityBridge(doc, engine_factory=factory)
    assert bridge.mode == "basic"
    assert bridge.enhanced is None
    assert not bridge.enable_enhanced_mode()


def test_bridge_policy_can_force_basic(doc):
    bridge = CompatibilityBridge(doc, policy=FallbackPolicy(use_enhanced=False))
    assert bridge.mode == "basic"
    assert bridge.enhanced is None


def test_apply_falls_back_to_basic_on_engine_error(doc):
    bridge = CompatibilityBridge(doc, engine_factory=lambda d, o: _broken_engine())
    assert bridge.is_enhanced

    result = asyncio.run(bridge.apply_values({"customer": "ACME"}))

    assert result.fallback_used
    assert result.mode == "basic"
    assert [s.identifier for s in result.success] == ["customer"]
    assert result.warnings[-1].message == FALLBACK_MESSAGE
    assert result.warnings[-1].details == ["engine exploded"]
    assert doc.value(doc.get_element_by_id("customer")) == "ACME"


def test_apply_error_propagates_without_fallback(doc):
    bridge = CompatibilityBridge(
        doc,
        policy=FallbackPolicy(fallback_to_basic=False),
        engine_factory=lambda d, o: _broken_engine(),
    )
    with pytest.raises(RuntimeError):
        asyncio.run(bridge.apply_values({"customer": "ACME"}))


def test_bridge_apply_through_full_engine(doc):
    bridge = CompatibilityBridge(doc)
    bridge.refresh()
    result = asyncio.run(bridge.apply_values({"Customer": "ACME", "speed": "fast"}))
    assert not result.fallback_used
    assert result.mode == "enhanced"
    assert result.completion_report.succeeded == 2


def test_bridge_accepts_plain_apply_options(doc):
    bridge = CompatibilityBridge(doc)
    bridge.refresh()
    result = asyncio.run(bridge.apply_values({"customer": "ACME"}, ApplyOptions(trigger_events=False)))
    assert result.fallback_used is False
    assert result.mode == "enhanced"
    assert result.success[0].identifier == "customer"
    assert result.success[0].events == []
    assert result.completion_report.succeeded == 1


def test_bridge_validates_in_basic_mode(doc):
    bridge = CompatibilityBridge(doc, policy=FallbackPolicy(use_enhanced=False))
    result = asyncio.run(bridge.validate_forms("customer", ValidateOptions(show_errors=False)))
    assert not result.valid
    with pytest.raises(FormNotFoundError):
        asyncio.run(bridge.validate_forms("missing"))


def test_bridge_forwards_engine_events(doc):
    bridge = CompatibilityBridge(doc)
    seen = []
    bridge.events.on("forms_updated", seen.append)
    bridge.refresh()
    assert len(seen) == 1


def test_bridge_destroy_removes_highlights(doc):
    bridge = CompatibilityBridge(doc)
    bridge.refresh()
    assert bridge.highlight("customer") == 1
    bridge.destroy()
    assert not doc.get_element_by_id("customer").has_attr("style")


# --- Basic extractor ---

def test_basic_collects_visible_items_and_groups(doc):
    basic = BasicFormsController(doc)
    items = {item.id: item for item in basic.get_forms_data()}

    assert "csrf" not in items
    assert items["customer"].label == "Customer"
    assert items["customer"].required
    assert items["ref"].label == "Reference"
    assert items["speed"].tag_name == "input-group"
    assert [o["value"] for o in items["speed"].options] == ["slow", "fast"]
    assert items["speed"].label == "Slow"
    assert items["size"].type == "select-multiple"


def test_basic_queries(doc):
    basic = BasicFormsController(doc)
    assert [i.id for i in basic.find_forms_by_label("cust")] == ["customer"]
    assert basic.find_forms_by_label("cust", exact=True) == []
    assert [i.id for i in basic.find_required_forms()] == ["customer"]
    values = basic.get_form_values()
    assert values["speed"] == "slow"
    assert values["tags"] == []
    assert values["size"] == []
    assert not basic.is_kintone_page()


def test_basic_apply_values(doc):
    basic = BasicFormsController(doc)
    result = asyncio.run(basic.apply_values({
        "customer": "ACME",
        "speed": "fast",
        "tags": ["b"],
        "size": ["s", "m"],
        "doc": "x",
        "ghost": "boo",
    }))
    assert {s.identifier for s in result.success} == {"customer", "speed", "tags", "size"}
    reasons = {f.identifier: f.reason for f in result.failed}
    assert reasons == {
        "doc": "File inputs cannot be set programmatically for security reasons",
        "ghost": "Element not found",
    }
    basic.refresh()
    assert basic.get_form_values()["speed"] == "fast"
    assert basic.get_form_values()["tags"] == ["b"]
    assert basic.get_form_values()["size"] == ["s", "m"]


def test_basic_detects_kintone_layout():
    doc = LiveDocument.from_html("""
    <div class="layout-gaia">
      <div class="control-gaia field-12">
        <div class="control-label-gaia"><span class="control-label-text-gaia">Order</span></div>
        <div class="control-value-gaia"><input id="k1"></div>
      </div>
    </div>
    """)
    basic = BasicFormsController(doc)
    assert basic.is_kintone_page()
    item = basic.get_form("k1")
    assert item.label == "Order"
    assert item.kintone_field_id == "12"


def test_basic_needs_a_document():
    with pytest.raises(ValueError):
        BasicFormsController(None)
