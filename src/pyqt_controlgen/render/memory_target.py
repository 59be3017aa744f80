"""
In-memory render target.

A plain node tree with tag/attributes/classes/styles/text. Used headless
(tests, server-side inspection) and as the default target of a session.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pyqt_controlgen.core.selectors import matches_selector
from pyqt_controlgen.protocols.render_target import RenderTarget

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class Node:
    """A node of the in-memory tree. Compared and hashed by identity."""
    tag: str
    attributes: Dict[str, str] = field(default_factory=dict)
    classes: List[str] = field(default_factory=list)
    styles: Dict[str, Any] = field(default_factory=dict)
    text: str = ""
    children: List["Node"] = field(default_factory=list)
    parent: Optional["Node"] = None

    @property
    def id(self) -> Optional[str]:
        return self.attributes.get("id")

    def __repr__(self) -> str:
        ident = f"#{self.id}" if self.id else ""
        return f"<Node {self.tag}{ident} children={len(self.children)}>"


def _split_classes(classes: Optional[Iterable[str]]) -> List[str]:
    if classes is None:
        return []
    if isinstance(classes, str):
        classes = [classes]
    result = []
    for entry in classes:
        for name in str(entry).split():
            if name not in result:
                result.append(name)
    return result


class MemoryRenderTarget(RenderTarget):
    """
    Render target backed by Node objects.

    Example:
        target = MemoryRenderTarget()
        node = control.render()
        target.mount(node)
        assert target.is_attached(node)
    """

    def __init__(self):
        self.root = Node("surface", {"id": "surface"})

    def mount(self, node: Node) -> Node:
        """Attach node to the root surface."""
        self.append_child(self.root, node)
        return node

    def create_node(self, tag: str, attributes: Optional[Mapping[str, Any]] = None,
                    classes: Optional[Iterable[str]] = None) -> Node:
        attrs = {name: str(value) for name, value in (attributes or {}).items() if value is not None}
        return Node(tag=tag, attributes=attrs, classes=_split_classes(classes))

    def set_styles(self, node: Node, styles: Mapping[str, Any]) -> None:
        for key, value in styles.items():
            if value is None or value == "":
                node.styles.pop(key, None)
            else:
                node.styles[key] = value

    def append_child(self, parent: Node, node: Node) -> None:
        if node.parent is not None:
            self.remove_child(node.parent, node)
        parent.children.append(node)
        node.parent = parent

    def remove_child(self, parent: Node, node: Node) -> None:
        if node in parent.children:
            parent.children.remove(node)
            node.parent = None

    def matches(self, node: Node, selector: str) -> bool:
        return matches_selector(selector, node.tag, node.attributes, node.classes)

    def is_attached(self, node: Node) -> bool:
        current = node
        while current is not None:
            if current is self.root:
                return True
            current = current.parent
        return False

    def parent(self, node: Node) -> Optional[Node]:
        return node.parent

    def children(self, node: Node) -> List[Node]:
        return list(node.children)

    def set_text(self, node: Node, text: str) -> None:
        node.text = "" if text is None else str(text)

    def get_text(self, node: Node) -> str:
        return node.text

    def set_attribute(self, node: Node, name: str, value: Any) -> None:
        node.attributes[name] = str(value)

    def get_attribute(self, node: Node, name: str) -> Optional[str]:
        return node.attributes.get(name)

    def remove_attribute(self, node: Node, name: str) -> None:
        node.attributes.pop(name, None)

    def add_class(self, node: Node, *classes: str) -> None:
        for name in _split_classes(classes):
            if name not in node.classes:
                node.classes.append(name)

    def remove_class(self, node: Node, *classes: str) -> None:
        for name in _split_classes(classes):
            if name in node.classes:
                node.classes.remove(name)

    def text_content(self, node: Node) -> str:
        """Concatenated text of node and its descendants."""
        return node.text + "".join(self.text_content(child) for child in node.children)
