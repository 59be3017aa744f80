"""
Action controls.

ButtonControl emits "click" with its UID and optionally runs an action:

    {"type": "button", "UID": "pay", "text": "Pay #{Total}",
     "props": {"variant": "primary", "size": "lg",
               "action": {"type": "custom", "handler": "processPayment", "params": {...}}}}

Custom action handlers are looked up by name in the session
(ControlSession.register_action).
"""

import logging
from typing import Any, Dict, Mapping, Optional

from pyqt_controlgen.controls.base_control import Control
from pyqt_controlgen.services.event_registry import Event

logger = logging.getLogger(__name__)

BUTTON_BASE_CLASSES = (
    "button-control font-medium rounded-md transition-colors "
    "focus:outline-none focus:ring-2 focus:ring-ring focus:ring-offset-2"
)

BUTTON_VARIANT_CLASSES = {
    "primary": "bg-primary text-primary-foreground hover:bg-primary/90",
    "secondary": "bg-secondary text-secondary-foreground hover:bg-secondary/90",
    "destructive": "bg-destructive text-destructive-foreground hover:bg-destructive/90",
    "outline": "border border-input bg-background hover:bg-accent hover:text-accent-foreground",
    "ghost": "hover:bg-accent hover:text-accent-foreground",
}

BUTTON_SIZE_CLASSES = {
    "sm": "px-3 py-1.5 text-sm",
    "lg": "px-6 py-3 text-lg",
}


class ButtonControl(Control):
    """Action button with variants, sizes, an optional icon and an optional action."""

    tag = "button"

    def node_attributes(self) -> Dict[str, Any]:
        attributes = super().node_attributes()
        attributes["data-testid"] = f"button-{self.UID}"
        return attributes

    def get_base_classes(self) -> str:
        variant = self.props.get("variant") or "primary"
        size = self.props.get("size") or "default"
        variant_classes = BUTTON_VARIANT_CLASSES.get(variant, BUTTON_VARIANT_CLASSES["primary"])
        size_classes = BUTTON_SIZE_CLASSES.get(size, "px-4 py-2")
        return f"{BUTTON_BASE_CLASSES} {variant_classes} {size_classes}"

    def create_node(self) -> Any:
        node = super().create_node()
        self.bind_text(node, self.text)

        icon = self.props.get("icon")
        if icon:
            icon_node = self.target.create_node("span", {"data-role": "icon"}, "mr-2")
            self.target.set_text(icon_node, icon)
            self.target.append_child(node, icon_node)
        return node

    def attach_events(self) -> None:
        self.events.on(self.node, "click", self._on_click)

    def _on_click(self, event: Event) -> None:
        self.log_event("click", f"Button {self.UID} clicked")
        self.emit("click", {"UID": self.UID})

        action = self.props.get("action")
        if action:
            self.execute_action(action)

    def click(self) -> Optional[Event]:
        """Simulate a user click through the event registry."""
        if self.node is None:
            return None
        return self.events.trigger(self.node, "click")

    def execute_action(self, action: Mapping[str, Any]) -> None:
        action_type = action.get("type")
        if action_type == "navigate":
            self.log_event("action", f"Navigation to: {action.get('target')}")
            self.emit("navigate", {"target": action.get("target"), "UID": self.UID})
        elif action_type == "submit":
            self.log_event("action", "Form submission triggered")
            self.emit("submit", {"UID": self.UID})
        elif action_type == "custom":
            handler = self.session.get_action(action.get("handler") or "")
            if handler is None:
                logger.warning(f"No action handler registered as '{action.get('handler')}'")
                return
            handler(action.get("params"))
        else:
            logger.warning(f"Unknown action type for {self.UID}: {action_type}")
