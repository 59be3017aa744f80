"""End-to-end scenarios: definition JSON in, live control tree out."""

import json

from pyqt_controlgen.controls.base_control import Control


CHECKOUT_SCREEN = {
    "type": "panel",
    "UID": "checkout",
    "title": "Checkout for #{UserName}",
    "children": [
        {
            "type": "cart-grid",
            "UID": "cart",
            "props": {"items": [
                {"id": 1, "name": "Tea", "price": 3.99, "quantity": 2},
                {"id": 2, "name": "Milk", "price": 2.49, "quantity": 1},
            ]},
        },
        {"type": "totals-display", "UID": "totals"},
        {"type": "dropdown", "UID": "method", "props": {"options": []}},
        {"type": "hologram", "UID": "unknown"},
        {"type": "button", "UID": "pay", "text": "Pay #{Total}", "props": {"variant": "primary"}},
    ],
}


def test_button_greeting_and_bubbling(session):
    """Hi #{UserName} renders as Hi Ann and a click reaches the parent with the source UID."""
    parent = session.factory.create({
        "type": "panel", "UID": "main",
        "children": [{"type": "button", "UID": "b1", "text": "Hi #{UserName}"}],
    })
    session.target.mount(parent.render())
    button = parent.find_child("b1")

    assert button.node.text == "Hi Ann"

    received = []
    parent.on("click", received.append)
    button.click()
    assert received == [{"UID": "b1", "source": "b1"}]


def test_checkout_screen(session):
    screen = session.factory.create_from_json(json.dumps(CHECKOUT_SCREEN))
    session.target.mount(screen.render())

    # The unknown child is dropped; the dropdown with no options still renders
    assert [child.UID for child in screen.child_controls] == ["cart", "totals", "method", "pay"]
    assert not screen.validation_result.is_valid
    assert "Child at index 2: Dropdown has no options" in screen.validation_result.warnings

    cart = screen.find_child("cart")
    totals = screen.find_child("totals")
    assert cart.state["subtotal"] == 10.47

    # Wire cart totals into the display through the store
    session.store.subscribe("cart", lambda new, old, key: totals.update_totals(new or {}))
    cart.add_item({"id": 3, "name": "Bread", "price": 1.0})
    assert totals.value_nodes["subtotal"].text == "$11.47"

    header = screen.node.children[0]
    assert header.text == "Checkout for Ann"
    assert screen.find_child("pay").node.text == "Pay 25.99"


def test_context_change_rerenders_text(session):
    screen = session.factory.create(CHECKOUT_SCREEN)
    session.target.mount(screen.render())

    session.templates.update_context({"UserName": "Bob", "Total": 11.47})
    assert screen.node.children[0].text == "Checkout for Bob"
    assert screen.find_child("pay").node.text == "Pay 11.47"


def test_store_reflects_control_state(session):
    """Store subscribers observe control state transitions in order."""
    box = session.factory.create({"type": "textbox", "UID": "name"})
    session.target.mount(box.render())

    seen = []
    session.store.subscribe("name", lambda new, old, key: seen.append((new, old)))
    session.events.trigger(box.node, "input", {"value": "A"})
    session.events.trigger(box.node, "input", {"value": "An"})
    assert seen == [({"value": "A"}, None), ({"value": "An"}, {"value": "A"})]


def test_teardown_leaves_nothing_behind(session):
    screen = session.factory.create(CHECKOUT_SCREEN)
    session.target.mount(screen.render())
    assert session.events.get_stats()["total_handlers"] > 0

    screen.destroy()
    assert session.events.get_registry() == {}
    assert len(session.node_data) == 0
    assert session.live_controls() == []
    assert session.store.get_keys() == []
    assert session.templates._watchers == {}
    assert session.target.root.children == []


def test_snapshot_restores_cart_state(session):
    screen = session.factory.create(CHECKOUT_SCREEN)
    screen.render()
    cart = screen.find_child("cart")

    snapshot = session.store.create_snapshot()
    cart.clear_cart()
    assert session.store.get_state("cart")["total"] == 0

    session.store.restore_snapshot(snapshot)
    assert session.store.get_state("cart")["subtotal"] == 10.47


def test_custom_control_in_tree(session):
    class BadgeControl(Control):
        tag = "span"

        def create_node(self):
            node = super().create_node()
            self.bind_text(node, self.text)
            return node

    session.factory.register_control("badge", lambda: BadgeControl)
    panel = session.factory.create({
        "type": "panel", "UID": "p", "children": [{"type": "badge", "UID": "new", "text": "New for #{UserName}"}],
    })
    panel.render()
    assert panel.find_child("new").node.text == "New for Ann"
