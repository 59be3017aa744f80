"""
Render target ABC.

Controls never touch a concrete node API. Everything they do to the UI
surface goes through a RenderTarget, so the same control tree renders into
an in-memory node tree (headless) or into PyQt6 widgets.

Design Philosophy:
- Explicit inheritance over duck typing
- Nodes are opaque to the core; only the adapter inspects them
- Query helpers are implemented once here on top of the primitives
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional


class RenderTarget(ABC):
    """
    ABC for the platform surface controls attach nodes to.

    Implementations must keep nodes hashable by identity; the event
    registry and node data registry key their tables by node.
    """

    @abstractmethod
    def create_node(self, tag: str, attributes: Optional[Mapping[str, Any]] = None,
                    classes: Optional[Iterable[str]] = None) -> Any:
        """
        Create a detached node.

        Args:
            tag: Node tag (e.g., "div", "button", "span", "input")
            attributes: Initial attributes; "id" doubles as the node identity
            classes: Initial class names (a whitespace separated string is split)

        Returns:
            The new node
        """
        pass

    @abstractmethod
    def set_styles(self, node: Any, styles: Mapping[str, Any]) -> None:
        """Merge presentational styles into the node. A None value removes the key."""
        pass

    @abstractmethod
    def append_child(self, parent: Any, node: Any) -> None:
        """Append node as the last child of parent, detaching it from any previous parent."""
        pass

    @abstractmethod
    def remove_child(self, parent: Any, node: Any) -> None:
        """Detach node from parent. Removing a node that is not a child is a no-op."""
        pass

    @abstractmethod
    def matches(self, node: Any, selector: str) -> bool:
        """Return True if node matches the simple selector."""
        pass

    @abstractmethod
    def is_attached(self, node: Any) -> bool:
        """Return True if node is connected to the target's root surface."""
        pass

    @abstractmethod
    def parent(self, node: Any) -> Optional[Any]:
        """Return the parent node, or None for detached/root nodes."""
        pass

    @abstractmethod
    def children(self, node: Any) -> List[Any]:
        """Return the direct child nodes in order."""
        pass

    @abstractmethod
    def set_text(self, node: Any, text: str) -> None:
        """Set the node's text content."""
        pass

    @abstractmethod
    def get_text(self, node: Any) -> str:
        """Get the node's text content."""
        pass

    @abstractmethod
    def set_attribute(self, node: Any, name: str, value: Any) -> None:
        pass

    @abstractmethod
    def get_attribute(self, node: Any, name: str) -> Optional[str]:
        pass

    @abstractmethod
    def remove_attribute(self, node: Any, name: str) -> None:
        pass

    @abstractmethod
    def add_class(self, node: Any, *classes: str) -> None:
        pass

    @abstractmethod
    def remove_class(self, node: Any, *classes: str) -> None:
        pass

    def listen(self, node: Any, event_type: str, callback: Callable[[str], None]) -> None:
        """
        Bind the node's native signal for event_type, if it has one.

        The callback receives the event type and dispatches it through the
        event registry. Targets without native input keep the default no-op.
        """

    def unlisten(self, node: Any, event_type: str) -> None:
        """Drop a native binding made by listen()."""

    # ========== QUERY HELPERS ==========

    def descendants(self, node: Any) -> Iterator[Any]:
        """Yield all descendants of node in document order."""
        for child in self.children(node):
            yield child
            yield from self.descendants(child)

    def query_all(self, container: Any, selector: str) -> List[Any]:
        """Return every descendant of container matching selector."""
        return [node for node in self.descendants(container) if self.matches(node, selector)]

    def query(self, container: Any, selector: str) -> Optional[Any]:
        """Return the first descendant of container matching selector."""
        for node in self.descendants(container):
            if self.matches(node, selector):
                return node
        return None

    def ancestors(self, node: Any) -> Iterator[Any]:
        """Yield node's ancestors, nearest first."""
        current = self.parent(node)
        while current is not None:
            yield current
            current = self.parent(current)

    def has_class(self, node: Any, class_name: str) -> bool:
        return self.matches(node, f".{class_name}")

    def describe(self, node: Any) -> Dict[str, Any]:
        """Debug description of a node."""
        return {
            "id": self.get_attribute(node, "id"),
            "text": self.get_text(node),
            "children": len(self.children(node)),
        }
