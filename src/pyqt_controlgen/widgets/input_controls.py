"""
Input controls.

Input values arrive either from native widget signals (Qt target) or from a
synthetic event detail, e.g. events.trigger(node, "input", {"value": "42"}).
When the detail carries no value the node's current text is read.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from pyqt_controlgen.controls.base_control import Control
from pyqt_controlgen.controls.validation import is_numeric
from pyqt_controlgen.services.event_registry import Event

logger = logging.getLogger(__name__)

INPUT_CLASSES = (
    "px-3 py-2 border border-input bg-background rounded-md "
    "focus:outline-none focus:ring-2 focus:ring-ring focus:ring-offset-2 transition-colors"
)


class TextBoxControl(Control):
    """Single-line text input. Publishes {"value": ...} state on every input."""

    tag = "input"
    input_type = "text"

    def node_attributes(self) -> Dict[str, Any]:
        attributes = super().node_attributes()
        attributes["type"] = self.input_type
        attributes["data-testid"] = f"{self.type}-{self.UID}"
        if self.placeholder:
            attributes["placeholder"] = self.render_text(self.placeholder)
        return attributes

    def get_base_classes(self) -> str:
        return f"textbox-control {INPUT_CLASSES}"

    def create_node(self) -> Any:
        node = super().create_node()
        self._write_value(node, self.value)
        return node

    def attach_events(self) -> None:
        self.events.on(self.node, "input", self._on_input)
        self.events.on(self.node, "blur", self._on_blur)
        self.events.on(self.node, "focus", self._on_focus)

    def read_event_value(self, event: Event) -> Any:
        if "value" in event.detail:
            value = event.detail["value"]
            self._write_value(self.node, value)
            return value
        return self.target.get_text(self.node)

    def _write_value(self, node: Any, value: Any) -> None:
        text = "" if value is None else str(value)
        self.target.set_attribute(node, "value", text)
        self.target.set_text(node, text)

    def _on_input(self, event: Event) -> None:
        value = self.read_event_value(event)
        self.value = value
        self.set_state({"value": value})
        self.emit("input", {"value": value, "UID": self.UID})
        self.log_event("input", f"{self.type} {self.UID} changed: {value}")

    def _on_blur(self, event: Event) -> None:
        self.emit("blur", {"value": self.target.get_text(self.node), "UID": self.UID})

    def _on_focus(self, event: Event) -> None:
        self.emit("focus", {"UID": self.UID})

    def update_value_on_node(self) -> None:
        self._write_value(self.node, self.value)


class NumericInputControl(TextBoxControl):
    """Number input honoring props min/max/step. Valid input also publishes numeric_value."""

    input_type = "number"

    def node_attributes(self) -> Dict[str, Any]:
        attributes = super().node_attributes()
        for key in ("min", "max", "step"):
            if self.props.get(key) is not None:
                attributes[key] = self.props[key]
        return attributes

    def _on_input(self, event: Event) -> None:
        super()._on_input(event)
        if is_numeric(self.value):
            number = float(self.value)
            self.set_state({"numeric_value": number})
            self.emit("numericInput", {"value": number, "UID": self.UID})

    @property
    def numeric_value(self) -> Optional[float]:
        return float(self.value) if is_numeric(self.value) else None


class DropdownControl(Control):
    """Select control over props.options (strings or {value, label} mappings)."""

    tag = "select"

    def node_attributes(self) -> Dict[str, Any]:
        attributes = super().node_attributes()
        attributes["data-testid"] = f"dropdown-{self.UID}"
        return attributes

    def get_base_classes(self) -> str:
        return f"dropdown-control {INPUT_CLASSES}"

    @property
    def options(self) -> List[Dict[str, Any]]:
        normalized = []
        for option in self.props.get("options") or []:
            if isinstance(option, Mapping):
                normalized.append({"value": option.get("value"), "label": option.get("label", option.get("value"))})
            else:
                normalized.append({"value": option, "label": option})
        return normalized

    def create_node(self) -> Any:
        node = super().create_node()

        if self.placeholder:
            default_option = self.target.create_node(
                "option", {"value": "", "disabled": "true", "selected": "true"}
            )
            self.bind_text(default_option, self.placeholder)
            self.target.append_child(node, default_option)

        for index, option in enumerate(self.options):
            option_node = self.target.create_node(
                "option", {"value": option["value"], "data-testid": f"option-{index}"}
            )
            self.target.set_text(option_node, self.render_text(option["label"]))
            self.target.append_child(node, option_node)

        if self.value not in ("", None):
            self._select(node, self.value)
        return node

    def attach_events(self) -> None:
        self.events.on(self.node, "change", self._on_change)

    def _select(self, node: Any, value: Any) -> None:
        self.target.set_attribute(node, "value", value)
        for option_node in self.target.children(node):
            if self.target.get_attribute(option_node, "value") == str(value):
                self.target.set_attribute(option_node, "selected", "true")
            else:
                self.target.remove_attribute(option_node, "selected")

    def _on_change(self, event: Event) -> None:
        value = event.detail.get("value", self.target.get_attribute(self.node, "value"))
        self.value = value
        self._select(self.node, value)
        self.set_state({"selected_value": value})
        self.emit("change", {"value": value, "UID": self.UID})
        self.log_event("selection", f"Dropdown {self.UID} changed to: {value}")

    def update_value_on_node(self) -> None:
        self._select(self.node, self.value)


class ToggleControl(Control):
    """On/off switch. The checked flag comes from props.checked."""

    def __init__(self, definition=None, session=None):
        super().__init__(definition, session)
        self.checked = bool(self.props.get("checked", False))
        self.input_node: Any = None
        self.track_node: Any = None

    def node_attributes(self) -> Dict[str, Any]:
        attributes = super().node_attributes()
        attributes["data-testid"] = f"toggle-{self.UID}"
        return attributes

    def get_base_classes(self) -> str:
        return "toggle-control flex items-center space-x-2"

    def create_node(self) -> Any:
        node = super().create_node()

        if self.text:
            text_node = self.target.create_node("span", {}, "ml-2 text-sm")
            self.bind_text(text_node, self.text)
            self.target.append_child(node, text_node)

        label = self.target.create_node("label", {}, "relative inline-flex items-center cursor-pointer")
        self.input_node = self.target.create_node(
            "input", {"type": "checkbox", "checked": "true" if self.checked else "false"}, "sr-only"
        )
        self.track_node = self.target.create_node("div", {}, "toggle-track w-11 h-6 rounded-full")
        self.target.append_child(label, self.input_node)
        self.target.append_child(label, self.track_node)
        self.target.append_child(node, label)
        self._paint()
        return node

    def attach_events(self) -> None:
        self.events.on(self.input_node, "change", self._on_change)

    def _paint(self) -> None:
        self.target.set_attribute(self.input_node, "checked", "true" if self.checked else "false")
        if self.checked:
            self.target.remove_class(self.track_node, "bg-muted")
            self.target.add_class(self.track_node, "bg-primary")
        else:
            self.target.remove_class(self.track_node, "bg-primary")
            self.target.add_class(self.track_node, "bg-muted")

    def _on_change(self, event: Event) -> None:
        checked = event.detail.get("checked", not self.checked)
        self.set_checked(checked)

    def set_checked(self, checked: Any) -> None:
        validation = self.validate("checked", checked)
        self.checked = validation.sanitized_value
        if self.input_node is not None:
            self._paint()
        self.set_state({"checked": self.checked})
        self.emit("toggle", {"checked": self.checked, "UID": self.UID})
        self.log_event("toggle", f"Toggle {self.UID} {'enabled' if self.checked else 'disabled'}")

    def toggle(self) -> None:
        self.set_checked(not self.checked)
