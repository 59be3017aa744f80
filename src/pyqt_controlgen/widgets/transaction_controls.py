"""
Transaction controls: shopping cart grid and totals display.

Cart items are mappings with id, name, price and quantity. Totals use the
configured tax rate (ControlGenConfig.tax_rate).
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from pyqt_controlgen.controls.base_control import Control
from pyqt_controlgen.protocols.control_config import get_control_config
from pyqt_controlgen.services.template_engine import format_currency

logger = logging.getLogger(__name__)

CART_COLUMNS = ("Item", "Qty", "Price", "Total", "")


def calculate_totals(items: List[Mapping[str, Any]], tax_rate: Optional[float] = None) -> Dict[str, Any]:
    """Subtotal, tax and total rounded to cents, plus the summed quantity."""
    if tax_rate is None:
        tax_rate = get_control_config().tax_rate

    subtotal = round(sum(float(item.get("price", 0)) * int(item.get("quantity", 1)) for item in items), 2)
    tax = round(subtotal * tax_rate, 2)
    return {
        "subtotal": subtotal,
        "tax": tax,
        "total": round(subtotal + tax, 2),
        "item_count": sum(int(item.get("quantity", 1)) for item in items),
    }


class CartGridControl(Control):
    """
    Shopping cart table.

    Each row carries a remove button; removing, adding or clearing items
    re-renders the body and publishes fresh totals through set_state() and a
    "totalsUpdated" event.
    """

    def __init__(self, definition=None, session=None):
        super().__init__(definition, session)
        self.items: List[Dict[str, Any]] = [dict(item) for item in self.props.get("items") or []]
        if self.items:
            self.state.update(calculate_totals(self.items))
        self.body_node: Any = None

    def node_attributes(self) -> Dict[str, Any]:
        attributes = super().node_attributes()
        attributes["data-testid"] = f"cart-grid-{self.UID}"
        return attributes

    def get_base_classes(self) -> str:
        return "cart-grid-control bg-card border border-border rounded-lg overflow-hidden"

    def create_node(self) -> Any:
        node = super().create_node()

        table = self.target.create_node("table", {}, "w-full")
        head = self.target.create_node("thead", {}, "bg-muted/50")
        header_row = self.target.create_node("tr")
        for column in CART_COLUMNS:
            cell = self.target.create_node("th", {}, "px-4 py-2 text-left text-sm font-medium")
            self.target.set_text(cell, column)
            self.target.append_child(header_row, cell)
        self.target.append_child(head, header_row)

        self.body_node = self.target.create_node("tbody", {"data-testid": f"cart-items-{self.UID}"})
        self.target.append_child(table, head)
        self.target.append_child(table, self.body_node)
        self.target.append_child(node, table)

        self.render_items()
        return node

    def render_items(self) -> None:
        if self.body_node is None:
            return

        self.events.cleanup_subtree(self.body_node)
        for row in list(self.target.children(self.body_node)):
            self.target.remove_child(self.body_node, row)

        if not self.items:
            row = self.target.create_node("tr", {"data-role": "empty"})
            cell = self.target.create_node("td", {"colspan": len(CART_COLUMNS)}, "px-4 py-8 text-center text-muted-foreground")
            self.target.set_text(cell, "Cart is empty")
            self.target.append_child(row, cell)
            self.target.append_child(self.body_node, row)
            return

        for index, item in enumerate(self.items):
            self.target.append_child(self.body_node, self._create_row(index, item))

    def _create_row(self, index: int, item: Mapping[str, Any]) -> Any:
        price = float(item.get("price", 0))
        quantity = int(item.get("quantity", 1))
        row = self.target.create_node("tr", {"data-item-id": item.get("id", index)}, "cart-row border-b border-border")

        for text in (item.get("name", ""), str(quantity), format_currency(price), format_currency(price * quantity)):
            cell = self.target.create_node("td", {}, "px-4 py-2 text-sm")
            self.target.set_text(cell, str(text))
            self.target.append_child(row, cell)

        action_cell = self.target.create_node("td", {}, "px-4 py-2")
        remove_button = self.target.create_node(
            "button", {"data-index": index, "data-testid": f"remove-item-{index}"}, "remove-item text-destructive"
        )
        self.target.set_text(remove_button, "Remove")
        self.events.on(remove_button, "click.cart", lambda _event, i=index: self.remove_item(i))
        self.target.append_child(action_cell, remove_button)
        self.target.append_child(row, action_cell)
        return row

    # ========== CART OPERATIONS ==========

    def add_item(self, item: Mapping[str, Any]) -> None:
        """Add an item; an item with a known id increases that line's quantity."""
        item = dict(item)
        item.setdefault("quantity", 1)

        existing = next(
            (line for line in self.items if "id" in item and line.get("id") == item["id"]), None
        )
        if existing is not None:
            existing["quantity"] = int(existing.get("quantity", 1)) + int(item["quantity"])
        else:
            self.items.append(item)

        self.render_items()
        self.update_totals()
        self.emit("itemAdded", {"item": item, "UID": self.UID})
        self.log_event("cart", f"Item added to cart {self.UID}: {item.get('name')}")

    def remove_item(self, index: int) -> Optional[Dict[str, Any]]:
        if index < 0 or index >= len(self.items):
            logger.warning(f"Cart {self.UID} has no item at index {index}")
            return None

        removed = self.items.pop(index)
        self.render_items()
        self.update_totals()
        self.emit("itemRemoved", {"item": removed, "index": index, "UID": self.UID})
        self.log_event("cart", f"Item removed from cart {self.UID}: {removed.get('name')}")
        return removed

    def clear_cart(self) -> None:
        self.items = []
        self.render_items()
        self.update_totals()
        self.emit("cartCleared", {"UID": self.UID})
        self.log_event("cart", f"Cart {self.UID} cleared")

    def update_totals(self) -> Dict[str, Any]:
        totals = calculate_totals(self.items)
        self.set_state(totals)
        self.emit("totalsUpdated", {**totals, "UID": self.UID})
        return totals


class TotalsDisplayControl(Control):
    """Subtotal / tax / total summary. update_totals() accepts a CartGrid totals mapping."""

    def __init__(self, definition=None, session=None):
        super().__init__(definition, session)
        self.value_nodes: Dict[str, Any] = {}

    def node_attributes(self) -> Dict[str, Any]:
        attributes = super().node_attributes()
        attributes["data-testid"] = f"totals-display-{self.UID}"
        return attributes

    def get_base_classes(self) -> str:
        return "totals-display-control bg-card border border-border rounded-lg p-4 space-y-2"

    def create_node(self) -> Any:
        node = super().create_node()
        self.value_nodes = {}

        for key, label in (("subtotal", "Subtotal"), ("tax", "Tax"), ("total", "Total")):
            row = self.target.create_node("div", {"data-role": key}, "flex justify-between")
            label_node = self.target.create_node("span", {}, "text-sm")
            self.target.set_text(label_node, f"{label}:")
            value_node = self.target.create_node("span", {"data-testid": f"{key}-{self.UID}"}, "font-medium")
            self.target.set_text(value_node, format_currency(self.state.get(key, 0)))
            self.target.append_child(row, label_node)
            self.target.append_child(row, value_node)
            self.target.append_child(node, row)
            self.value_nodes[key] = value_node

        return node

    def update_totals(self, totals: Mapping[str, Any]) -> None:
        self.set_state({key: totals.get(key, 0) for key in ("subtotal", "tax", "total")})

    def on_state_change(self, new_state: Dict[str, Any], old_state: Dict[str, Any]) -> None:
        for key, value_node in self.value_nodes.items():
            if key in new_state:
                self.target.set_text(value_node, format_currency(new_state[key]))
