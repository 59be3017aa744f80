"""
PyQt6 render target.

Maps control nodes onto Qt widgets so a definition tree renders into a
live widget hierarchy:

- text tags (span, label, h1-h6, p, td, th) -> QLabel
- button                                   -> QPushButton
- input (type=checkbox)                    -> QCheckBox
- input / textarea                         -> QLineEdit
- everything else                          -> QWidget with a QVBoxLayout

Attributes, classes and styles are kept on the widget so selectors work the
same as on the in-memory target. The "id" attribute doubles as objectName and
the class list is exposed as the "class" dynamic property for stylesheets.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from PyQt6.QtWidgets import (
    QWidget, QLabel, QPushButton, QLineEdit, QCheckBox, QVBoxLayout
)

from pyqt_controlgen.core.selectors import matches_selector
from pyqt_controlgen.protocols.render_target import RenderTarget

logger = logging.getLogger(__name__)

TEXT_TAGS = {"span", "label", "p", "h1", "h2", "h3", "h4", "h5", "h6", "td", "th", "strong", "em"}

# Native signal per (widget class, event type)
NATIVE_SIGNALS: Dict[Tuple[type, str], str] = {
    (QPushButton, "click"): "clicked",
    (QLineEdit, "input"): "textEdited",
    (QLineEdit, "change"): "editingFinished",
    (QCheckBox, "change"): "stateChanged",
    (QCheckBox, "click"): "clicked",
}


class QtRenderTarget(RenderTarget):
    """
    Render target backed by PyQt6 widgets.

    Example:
        target = QtRenderTarget()
        session = ControlSession(target=target)
        control = session.factory.create(definition)
        target.mount(control.render())
        target.root.show()
    """

    def __init__(self, root: Optional[QWidget] = None):
        self.root = root if root is not None else QWidget()
        self._mark(self.root, "surface", {"id": "surface"}, [])
        self._ensure_layout(self.root)
        self._native_slots: Dict[Tuple[Any, str], Tuple[Any, Callable]] = {}

    # ========== NODE METADATA ==========

    @staticmethod
    def _mark(widget: QWidget, tag: str, attributes: Dict[str, str], classes: List[str]) -> None:
        widget._cg_tag = tag
        widget._cg_attributes = attributes
        widget._cg_classes = classes
        widget._cg_styles = {}
        widget._cg_text = ""
        if "id" in attributes:
            widget.setObjectName(attributes["id"])
        widget.setProperty("class", " ".join(classes))

    @staticmethod
    def _is_node(widget: Optional[QWidget]) -> bool:
        return widget is not None and hasattr(widget, "_cg_tag")

    @staticmethod
    def _ensure_layout(widget: QWidget) -> QVBoxLayout:
        layout = widget.layout()
        if layout is None:
            layout = QVBoxLayout(widget)
            layout.setContentsMargins(0, 0, 0, 0)
        return layout

    def mount(self, node: QWidget) -> QWidget:
        """Attach node to the root surface."""
        self.append_child(self.root, node)
        return node

    # ========== RENDER TARGET ==========

    def create_node(self, tag: str, attributes: Optional[Mapping[str, Any]] = None,
                    classes: Optional[Iterable[str]] = None) -> QWidget:
        attrs = {name: str(value) for name, value in (attributes or {}).items() if value is not None}
        if isinstance(classes, str):
            classes = [classes]
        class_list: List[str] = []
        for entry in classes or []:
            for name in str(entry).split():
                if name not in class_list:
                    class_list.append(name)

        tag_lower = tag.lower()
        if tag_lower in TEXT_TAGS:
            widget = QLabel()
        elif tag_lower == "button":
            widget = QPushButton()
        elif tag_lower == "input" and attrs.get("type") == "checkbox":
            widget = QCheckBox()
        elif tag_lower in ("input", "textarea"):
            widget = QLineEdit()
        else:
            widget = QWidget()

        self._mark(widget, tag, attrs, class_list)
        for name, value in attrs.items():
            self._apply_attribute(widget, name, value)
        logger.debug(f"Created {type(widget).__name__} for <{tag}>")
        return widget

    def set_styles(self, node: QWidget, styles: Mapping[str, Any]) -> None:
        for key, value in styles.items():
            if value is None or value == "":
                node._cg_styles.pop(key, None)
            else:
                node._cg_styles[key] = value

        node.setHidden(node._cg_styles.get("display") == "none")
        sheet = "; ".join(
            f"{key}: {value}" for key, value in node._cg_styles.items() if key != "display"
        )
        node.setStyleSheet(sheet)

    def append_child(self, parent: QWidget, node: QWidget) -> None:
        current = self.parent(node)
        if current is not None:
            self.remove_child(current, node)
        self._ensure_layout(parent).addWidget(node)

    def remove_child(self, parent: QWidget, node: QWidget) -> None:
        if node.parentWidget() is not parent:
            return
        layout = parent.layout()
        if layout is not None:
            layout.removeWidget(node)
        node.setParent(None)

    def matches(self, node: QWidget, selector: str) -> bool:
        if not self._is_node(node):
            return False
        return matches_selector(selector, node._cg_tag, node._cg_attributes, node._cg_classes)

    def is_attached(self, node: QWidget) -> bool:
        current = node
        while current is not None:
            if current is self.root:
                return True
            current = self.parent(current)
        return False

    def parent(self, node: QWidget) -> Optional[QWidget]:
        widget = node.parentWidget()
        return widget if self._is_node(widget) else None

    def children(self, node: QWidget) -> List[QWidget]:
        layout = node.layout()
        if layout is None:
            return []
        result = []
        for index in range(layout.count()):
            widget = layout.itemAt(index).widget()
            if self._is_node(widget):
                result.append(widget)
        return result

    def set_text(self, node: QWidget, text: str) -> None:
        text = "" if text is None else str(text)
        node._cg_text = text
        if isinstance(node, (QLabel, QPushButton, QLineEdit, QCheckBox)):
            node.setText(text)

    def get_text(self, node: QWidget) -> str:
        if isinstance(node, (QLabel, QPushButton, QLineEdit, QCheckBox)):
            return node.text()
        return node._cg_text

    def set_attribute(self, node: QWidget, name: str, value: Any) -> None:
        node._cg_attributes[name] = str(value)
        self._apply_attribute(node, name, str(value))

    def get_attribute(self, node: QWidget, name: str) -> Optional[str]:
        return node._cg_attributes.get(name)

    def remove_attribute(self, node: QWidget, name: str) -> None:
        node._cg_attributes.pop(name, None)
        if name == "disabled":
            node.setEnabled(True)
        elif name == "placeholder" and isinstance(node, QLineEdit):
            node.setPlaceholderText("")

    def add_class(self, node: QWidget, *classes: str) -> None:
        for entry in classes:
            for name in entry.split():
                if name not in node._cg_classes:
                    node._cg_classes.append(name)
        node.setProperty("class", " ".join(node._cg_classes))

    def remove_class(self, node: QWidget, *classes: str) -> None:
        for entry in classes:
            for name in entry.split():
                if name in node._cg_classes:
                    node._cg_classes.remove(name)
        node.setProperty("class", " ".join(node._cg_classes))

    @staticmethod
    def _apply_attribute(node: QWidget, name: str, value: str) -> None:
        if name == "id":
            node.setObjectName(value)
        elif name == "disabled":
            node.setEnabled(value == "false")
        elif name == "placeholder" and isinstance(node, QLineEdit):
            node.setPlaceholderText(value)
        elif name == "value" and isinstance(node, QLineEdit):
            node.setText(value)
        elif name == "checked" and isinstance(node, QCheckBox):
            node.setChecked(value == "true")

    # ========== NATIVE SIGNALS ==========

    def listen(self, node: QWidget, event_type: str, callback: Callable[[str], None]) -> None:
        signal_name = None
        for (widget_class, native_type), name in NATIVE_SIGNALS.items():
            if native_type == event_type and isinstance(node, widget_class):
                signal_name = name
                break
        if signal_name is None or (node, event_type) in self._native_slots:
            return

        signal = getattr(node, signal_name)
        slot = lambda *_args: callback(event_type)
        signal.connect(slot)
        self._native_slots[(node, event_type)] = (signal, slot)
        logger.debug(f"Bound {type(node).__name__}.{signal_name} -> '{event_type}'")

    def unlisten(self, node: QWidget, event_type: str) -> None:
        entry = self._native_slots.pop((node, event_type), None)
        if entry is None:
            return
        signal, slot = entry
        try:
            signal.disconnect(slot)
        except TypeError:
            # Signal not connected - ignore
            pass
