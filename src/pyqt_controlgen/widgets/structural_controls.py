"""
Structural controls: containers that arrange their children.

PanelControl and TabControl route children into a sub-node instead of their
root node, through child_container()/render_children().
"""

import logging
from typing import Any, Dict, List, Optional

from pyqt_controlgen.controls.base_control import Control, RenderOptions
from pyqt_controlgen.controls.validation import is_positive_int

logger = logging.getLogger(__name__)

DEFAULT_GRID_ROWS = 2
DEFAULT_GRID_COLUMNS = 2
DEFAULT_GRID_GAP = "1rem"


class PanelControl(Control):
    """Container with an optional header. With a title, children go into the content area."""

    def __init__(self, definition=None, session=None):
        super().__init__(definition, session)
        self.content_node: Any = None

    def node_attributes(self) -> Dict[str, Any]:
        attributes = super().node_attributes()
        attributes["data-testid"] = f"panel-{self.UID}"
        return attributes

    def get_base_classes(self) -> str:
        return "panel-control bg-card border border-border rounded-lg shadow-sm overflow-hidden"

    def create_node(self) -> Any:
        node = super().create_node()
        self.content_node = None

        if self.title:
            header = self.target.create_node(
                "div", {}, "panel-header bg-muted/50 px-4 py-2 border-b border-border font-medium"
            )
            self.bind_text(header, self.title)
            self.target.append_child(node, header)

            self.content_node = self.target.create_node("div", {}, "panel-content p-4")
            self.target.append_child(node, self.content_node)

        return node

    def child_container(self) -> Any:
        return self.content_node if self.content_node is not None else self.node


class SectionControl(Control):
    """Semantic grouping container with an optional heading."""

    tag = "section"

    def node_attributes(self) -> Dict[str, Any]:
        attributes = super().node_attributes()
        attributes["data-testid"] = f"section-{self.UID}"
        return attributes

    def get_base_classes(self) -> str:
        return "section-control space-y-4"

    def create_node(self) -> Any:
        node = super().create_node()
        if self.title:
            header = self.target.create_node("h3", {}, "section-header text-lg font-semibold mb-4")
            self.bind_text(header, self.title)
            self.target.append_child(node, header)
        return node


class GridLayoutControl(Control):
    """
    Grid container.

    rows/columns/gap come from the reserved style keys and are turned into
    grid styles here; the generic style pass skips them.
    """

    def node_attributes(self) -> Dict[str, Any]:
        attributes = super().node_attributes()
        attributes["data-testid"] = f"grid-layout-{self.UID}"
        return attributes

    def get_base_classes(self) -> str:
        return "grid-layout-control"

    @property
    def rows(self) -> int:
        rows = self.style.get("rows")
        return rows if is_positive_int(rows) else DEFAULT_GRID_ROWS

    @property
    def columns(self) -> int:
        columns = self.style.get("columns")
        return columns if is_positive_int(columns) else DEFAULT_GRID_COLUMNS

    def create_node(self) -> Any:
        node = super().create_node()
        self.target.set_styles(node, {
            "display": "grid",
            "grid-template-rows": f"repeat({self.rows}, 1fr)",
            "grid-template-columns": f"repeat({self.columns}, 1fr)",
            "gap": self.style.get("gap") or DEFAULT_GRID_GAP,
        })
        if not self.visible:
            self.target.set_styles(node, {"display": "none"})
        return node

    def place_child(self, child: Control, child_node: Any) -> None:
        index = len(self.child_controls) - 1
        self.target.set_attribute(child_node, "data-grid-row", index // self.columns)
        self.target.set_attribute(child_node, "data-grid-column", index % self.columns)
        super().place_child(child, child_node)


class TabControl(Control):
    """
    Tabbed container. Each child definition is one tab; only the active tab
    is rendered, switching tabs destroys the old tab control and renders the
    new one.
    """

    def __init__(self, definition=None, session=None):
        super().__init__(definition, session)
        self.active_tab = int(self.props.get("activeTab", 0) or 0)
        self.tab_buttons: List[Any] = []
        self.content_node: Any = None
        self._render_options = RenderOptions()

    def node_attributes(self) -> Dict[str, Any]:
        attributes = super().node_attributes()
        attributes["data-testid"] = f"tab-control-{self.UID}"
        return attributes

    def get_base_classes(self) -> str:
        return "tab-control bg-card border border-border rounded-lg overflow-hidden"

    def create_node(self) -> Any:
        node = super().create_node()

        header = self.target.create_node("div", {}, "tab-header")
        self.tab_buttons = []
        for index, child in enumerate(self.children):
            title = child.get("title") if isinstance(child, dict) else None
            classes = "tab-button active" if index == self.active_tab else "tab-button"
            button = self.target.create_node(
                "button", {"data-index": index, "data-testid": f"tab-button-{index}"}, classes
            )
            self.bind_text(button, title or f"Tab {index + 1}")
            self.target.append_child(header, button)
            self.tab_buttons.append(button)

        self.content_node = self.target.create_node(
            "div", {"data-testid": f"tab-content-{self.UID}"}, "tab-content"
        )
        self.target.append_child(node, header)
        self.target.append_child(node, self.content_node)
        return node

    def attach_events(self) -> None:
        for index, button in enumerate(self.tab_buttons):
            self.events.on(button, "click.tabs", lambda _event, i=index: self.switch_tab(i))

    def child_container(self) -> Any:
        return self.content_node

    def render_children(self, options: RenderOptions) -> None:
        self._render_options = options
        for child in list(self.child_controls):
            child.destroy()
        self.child_controls = []

        if 0 <= self.active_tab < len(self.children):
            self.render_child(self.active_tab, self.children[self.active_tab], options)

    @property
    def active_control(self) -> Optional[Control]:
        return self.child_controls[0] if self.child_controls else None

    def switch_tab(self, index: int) -> None:
        if index < 0 or index >= len(self.children):
            return

        self.active_tab = index
        for button_index, button in enumerate(self.tab_buttons):
            if button_index == index:
                self.target.add_class(button, "active")
            else:
                self.target.remove_class(button, "active")

        self.render_children(self._render_options)
        self.log_event("tab-switch", f"Switched to tab {index}")
        self.emit("tabChange", {"active_tab": index, "UID": self.UID})

