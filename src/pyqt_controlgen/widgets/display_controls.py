"""Display controls."""

import logging
from typing import Any, Dict

from pyqt_controlgen.controls.base_control import Control

logger = logging.getLogger(__name__)

LABEL_VARIANT_CLASSES = {
    "heading": "text-lg font-semibold text-foreground",
    "subtitle": "text-sm text-muted-foreground",
    "caption": "text-xs text-muted-foreground",
}


class LabelControl(Control):
    """
    Text display with styling variants.

    The text is template-rendered and stays current when referenced context
    keys change; set_state({"text": ...}) replaces it.
    """

    tag = "span"

    def node_attributes(self) -> Dict[str, Any]:
        attributes = super().node_attributes()
        attributes["data-testid"] = f"label-{self.UID}"
        return attributes

    def get_base_classes(self) -> str:
        variant = self.props.get("variant") or "default"
        return f"label-control {LABEL_VARIANT_CLASSES.get(variant, 'text-sm text-foreground')}"

    def create_node(self) -> Any:
        node = super().create_node()
        self.bind_text(node, lambda: self.text)
        return node

    def on_state_change(self, new_state: Dict[str, Any], old_state: Dict[str, Any]) -> None:
        if "text" in new_state:
            self.text = new_state["text"]
            if self.node is not None:
                self.target.set_text(self.node, self.render_text(self.text))
