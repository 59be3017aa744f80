"""Tests for the shipped controls."""

import pytest

from pyqt_controlgen.protocols.control_config import ControlGenConfig, set_control_config
from pyqt_controlgen.widgets import BUILTIN_CONTROLS, calculate_totals
from pyqt_controlgen.controls.validation import VALID_CONTROL_TYPES


def create(session, definition):
    control = session.factory.create(definition)
    session.target.mount(control.render())
    return control


def test_builtin_registry_covers_all_types():
    assert set(VALID_CONTROL_TYPES) <= set(BUILTIN_CONTROLS)
    assert BUILTIN_CONTROLS["input"]() is BUILTIN_CONTROLS["textbox"]()


# ========== ACTION ==========

def test_button_renders_template_text(session):
    button = create(session, {"type": "button", "UID": "b1", "text": "Hi #{UserName}", "props": {"size": "sm"}})
    assert button.node.tag == "button"
    assert button.node.text == "Hi Ann"
    assert button.node.attributes["data-testid"] == "button-b1"
    assert "px-3" in button.node.classes


def test_button_text_follows_context(session):
    button = create(session, {"type": "button", "UID": "b1", "text": "Hi #{UserName}"})
    session.templates.set_context("UserName", "Bob")
    assert button.node.text == "Hi Bob"


def test_button_icon(session):
    button = create(session, {"type": "button", "UID": "b1", "props": {"icon": "+"}})
    icon = session.target.query(button.node, "[data-role=icon]")
    assert icon.text == "+"


def test_button_click_emits(session):
    button = create(session, {"type": "button", "UID": "b1", "text": "Go"})
    clicks = []
    button.on("click", clicks.append)
    button.click()
    assert clicks == [{"UID": "b1"}]


def test_button_actions(session):
    received = []
    session.register_action("processPayment", received.append)

    button = create(session, {
        "type": "button", "UID": "pay", "text": "Pay",
        "props": {"action": {"type": "custom", "handler": "processPayment", "params": {"amount": 5}}},
    })
    button.click()
    assert received == [{"amount": 5}]

    navigate = create(session, {
        "type": "button", "UID": "nav", "text": "Next",
        "props": {"action": {"type": "navigate", "target": "checkout"}},
    })
    targets = []
    navigate.on("navigate", targets.append)
    navigate.click()
    assert targets == [{"target": "checkout", "UID": "nav"}]


def test_button_unknown_custom_action_is_ignored(session):
    button = create(session, {
        "type": "button", "UID": "pay", "text": "Pay",
        "props": {"action": {"type": "custom", "handler": "missing"}},
    })
    assert button.click().failures == []


# ========== DISPLAY ==========

def test_label(session):
    label = create(session, {"type": "label", "UID": "l", "text": "Total #{Total}", "props": {"variant": "heading"}})
    assert label.node.tag == "span"
    assert label.node.text == "Total 25.99"
    assert "font-semibold" in label.node.classes

    label.set_state({"text": "Changed"})
    assert label.node.text == "Changed"


def test_label_keeps_following_context_after_text_change(session):
    label = create(session, {"type": "label", "UID": "l", "text": "Hi #{UserName}"})
    label.set_state({"text": "Bye #{UserName}"})
    session.templates.set_context("UserName", "Bob")
    assert label.node.text == "Bye Bob"


# ========== STRUCTURAL ==========

def test_panel_with_title(session):
    panel = create(session, {
        "type": "panel", "UID": "p", "title": "Cart",
        "children": [{"type": "label", "UID": "a", "text": "A"}],
    })
    header, content = panel.node.children
    assert header.text == "Cart"
    assert [child.attributes["id"] for child in content.children] == ["a"]


def test_panel_without_title(session):
    panel = create(session, {"type": "panel", "UID": "p", "children": [{"type": "label", "UID": "a"}]})
    assert [child.attributes["id"] for child in panel.node.children] == ["a"]


def test_section(session):
    section = create(session, {"type": "section", "UID": "s", "title": "Details"})
    assert section.node.tag == "section"
    assert section.node.children[0].tag == "h3"


def test_grid_layout(session):
    grid = create(session, {
        "type": "grid-layout", "UID": "g", "style": {"rows": 2, "columns": 2, "gap": "8px"},
        "children": [{"type": "label", "UID": f"c{index}"} for index in range(3)],
    })
    assert grid.node.styles["grid-template-columns"] == "repeat(2, 1fr)"
    assert grid.node.styles["gap"] == "8px"
    cells = [(child.attributes["data-grid-row"], child.attributes["data-grid-column"]) for child in grid.node.children]
    assert cells == [("0", "0"), ("0", "1"), ("1", "0")]



def test_grid_layout_malformed_dimensions(session):
    """Non-integer rows/columns fall back to the defaults and every child is still placed."""
    grid = create(session, {
        "type": "grid-layout", "UID": "g", "style": {"columns": "3", "rows": 0},
        "children": [{"type": "label", "UID": f"c{index}"} for index in range(3)],
    })
    assert grid.columns == 2 and grid.rows == 2
    assert len(grid.child_controls) == len(grid.node.children) == 3
    cells = [(child.attributes["data-grid-row"], child.attributes["data-grid-column"]) for child in grid.node.children]
    assert cells == [("0", "0"), ("0", "1"), ("1", "0")]

def test_tab_control(session):
    tabs = create(session, {
        "type": "tab-control", "UID": "t",
        "children": [
            {"type": "label", "UID": "first", "title": "One", "text": "1"},
            {"type": "label", "UID": "second", "title": "Two", "text": "2"},
        ],
    })
    assert tabs.active_control.UID == "first"
    buttons = session.target.query_all(tabs.node, ".tab-button")
    assert [button.text for button in buttons] == ["One", "Two"]

    changes = []
    tabs.on("tabChange", changes.append)
    session.events.trigger(buttons[1], "click")

    assert changes == [{"active_tab": 1, "UID": "t"}]
    assert tabs.active_control.UID == "second"
    assert session.get_control("first") is None
    assert "active" in buttons[1].classes
    assert "active" not in buttons[0].classes


def test_tab_switch_out_of_range(session):
    tabs = create(session, {"type": "tab-control", "UID": "t", "children": [{"type": "label", "UID": "a"}]})
    tabs.switch_tab(5)
    assert tabs.active_tab == 0


# ========== INPUT ==========

def test_textbox_input(session):
    box = create(session, {"type": "textbox", "UID": "name", "placeholder": "Name for #{UserName}", "value": "x"})
    assert box.node.attributes["placeholder"] == "Name for Ann"
    assert box.node.attributes["value"] == "x"

    inputs = []
    box.on("input", inputs.append)
    session.events.trigger(box.node, "input", {"value": "Ann"})

    assert box.value == "Ann"
    assert box.state == {"value": "Ann"}
    assert session.store.get_state("name") == {"value": "Ann"}
    assert inputs == [{"value": "Ann", "UID": "name"}]


def test_textbox_reads_node_text(session):
    box = create(session, {"type": "textbox", "UID": "name"})
    session.target.set_text(box.node, "typed")
    session.events.trigger(box.node, "input")
    assert box.value == "typed"


def test_textbox_set_value(session):
    box = create(session, {"type": "textbox", "UID": "name"})
    assert box.set_value("hello")
    assert box.node.attributes["value"] == "hello"


def test_numeric_input(session):
    number = create(session, {"type": "numeric-input", "UID": "qty", "value": "1", "props": {"min": 0, "max": 10, "step": 1}})
    assert number.node.attributes["type"] == "number"
    assert number.node.attributes["max"] == "10"

    emitted = []
    number.on("numericInput", emitted.append)
    session.events.trigger(number.node, "input", {"value": "4"})
    assert number.state["numeric_value"] == 4.0
    assert emitted == [{"value": 4.0, "UID": "qty"}]

    session.events.trigger(number.node, "input", {"value": "abc"})
    assert number.numeric_value is None
    assert len(emitted) == 1
    assert not number.set_value("abc")


def test_dropdown(session):
    dropdown = create(session, {
        "type": "dropdown", "UID": "method", "placeholder": "Pick one",
        "props": {"options": ["cash", {"value": "card", "label": "Card"}]},
    })
    options = dropdown.node.children
    assert [option.text for option in options] == ["Pick one", "cash", "Card"]

    changes = []
    dropdown.on("change", changes.append)
    session.events.trigger(dropdown.node, "change", {"value": "card"})

    assert dropdown.state == {"selected_value": "card"}
    assert changes == [{"value": "card", "UID": "method"}]
    assert options[2].attributes.get("selected") == "true"
    assert "selected" not in options[1].attributes


def test_dropdown_empty_options_renders(session):
    dropdown = create(session, {"type": "dropdown", "UID": "d", "props": {"options": []}})
    assert dropdown.node.children == []


def test_toggle(session):
    toggle = create(session, {"type": "toggle", "UID": "t", "text": "Receipt", "props": {"checked": False}})
    assert toggle.input_node.attributes["checked"] == "false"
    assert "bg-muted" in toggle.track_node.classes

    toggles = []
    toggle.on("toggle", toggles.append)
    session.events.trigger(toggle.input_node, "change")

    assert toggle.checked is True
    assert toggle.state == {"checked": True}
    assert "bg-primary" in toggle.track_node.classes
    assert toggles == [{"checked": True, "UID": "t"}]

    session.events.trigger(toggle.input_node, "change", {"checked": 0})
    assert toggle.checked is False



def test_toggle_none_unchecks(session):
    toggle = create(session, {"type": "toggle", "UID": "t", "props": {"checked": True}})
    toggle.set_checked(None)
    assert toggle.checked is False

    toggle.toggle()
    session.events.trigger(toggle.input_node, "change", {"checked": None})
    assert toggle.checked is False
    assert toggle.state == {"checked": False}

# ========== TRANSACTION ==========

CART_ITEMS = [
    {"id": 1, "name": "Tea", "price": 3.99, "quantity": 2},
    {"id": 2, "name": "Milk", "price": 2.49, "quantity": 1},
]


def test_calculate_totals():
    totals = calculate_totals(CART_ITEMS, tax_rate=0.1)
    assert totals == {"subtotal": 10.47, "tax": 1.05, "total": 11.52, "item_count": 3}


def test_tax_rate_from_config():
    set_control_config(ControlGenConfig(tax_rate=0.0))
    assert calculate_totals(CART_ITEMS)["total"] == 10.47


def test_cart_grid_renders_rows(session):
    cart = create(session, {"type": "cart-grid", "UID": "cart", "props": {"items": CART_ITEMS}})
    rows = session.target.query_all(cart.node, "tr.cart-row")
    assert len(rows) == 2
    assert rows[0].children[0].text == "Tea"
    assert rows[0].children[3].text == "$7.98"
    assert session.store.get_state("cart")["subtotal"] == 10.47


def test_cart_add_item_merges_by_id(session):
    cart = create(session, {"type": "cart-grid", "UID": "cart", "props": {"items": CART_ITEMS}})
    totals = []
    cart.on("totalsUpdated", totals.append)

    cart.add_item({"id": 2, "name": "Milk", "price": 2.49})
    assert cart.items[1]["quantity"] == 2
    assert totals[-1]["subtotal"] == 12.96

    cart.add_item({"id": 3, "name": "Bread", "price": 1.5, "quantity": 2})
    assert len(session.target.query_all(cart.node, "tr.cart-row")) == 3
    assert cart.state["item_count"] == 6


def test_cart_remove_button(session):
    cart = create(session, {"type": "cart-grid", "UID": "cart", "props": {"items": CART_ITEMS}})
    removed = []
    cart.on("itemRemoved", removed.append)

    button = session.target.query(cart.node, '.remove-item[data-index="0"]')
    session.events.trigger(button, "click")

    assert [item["name"] for item in cart.items] == ["Milk"]
    assert removed[0]["index"] == 0
    assert cart.state["subtotal"] == 2.49
    assert not session.events.has_handlers(button)
    assert cart.remove_item(9) is None


def test_cart_clear(session):
    cart = create(session, {"type": "cart-grid", "UID": "cart", "props": {"items": CART_ITEMS}})
    cart.clear_cart()
    assert cart.state["total"] == 0
    assert session.target.query(cart.node, "[data-role=empty]") is not None
    assert session.events.get_stats()["total_handlers"] == 0


def test_totals_display(session):
    display = create(session, {"type": "totals-display", "UID": "totals"})
    assert display.value_nodes["total"].text == "$0.00"

    display.update_totals({"subtotal": 10.47, "tax": 0.84, "total": 11.31})
    assert display.value_nodes["subtotal"].text == "$10.47"
    assert display.value_nodes["total"].text == "$11.31"
    assert session.store.get_state("totals")["tax"] == 0.84
