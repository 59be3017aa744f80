"""
Delegated, namespaced event registry.

Handlers are tracked per render-target node:

    node -> "type[.namespace]" -> selector | "base" -> [handler entries]

Removing the last handler of a node removes the node's entry entirely, so a
destroyed control never leaves registry entries behind.

Dispatch is in-process: trigger() builds an Event and walks it from the
target node up through its ancestors, running the handlers registered on
each one. Render targets with native input (Qt widgets) forward their
signals into trigger() through RenderTarget.listen().

Example:
    events = EventRegistry(target)
    events.on(cart_node, "click.cart", ".remove-item", on_remove)
    events.trigger(remove_button, "click")
    events.off(cart_node, ".cart")
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from pyqt_controlgen.core.exceptions import HandlerFailure
from pyqt_controlgen.core.selectors import parse_selector
from pyqt_controlgen.protocols.render_target import RenderTarget

logger = logging.getLogger(__name__)

BASE_SELECTOR = "base"

# Synthetic aliases, dispatched under the native type
CUSTOM_EVENTS = {
    "mouseenter": "mouseover",
    "mouseleave": "mouseout",
}

EventHandler = Callable[["Event"], Any]


@dataclass(eq=False)
class Event:
    """A dispatched event. Mirrors the fields handlers expect from a native event."""
    type: str
    target: Any
    detail: Dict[str, Any] = field(default_factory=dict)
    bubbles: bool = True
    cancelable: bool = True
    current_target: Any = None
    delegate_target: Any = None
    default_prevented: bool = False
    propagation_stopped: bool = False
    failures: List[HandlerFailure] = field(default_factory=list)

    def stop_propagation(self) -> None:
        self.propagation_stopped = True

    def prevent_default(self) -> None:
        if self.cancelable:
            self.default_prevented = True


@dataclass(eq=False)
class _HandlerEntry:
    callback: EventHandler
    event_type: str
    selector: Optional[str]
    one_off: bool = False


def normalize_event_type(event: str) -> Tuple[str, str]:
    """
    Split "type.namespace" into (type, ".namespace").

    Aliased types (mouseenter/mouseleave) are mapped to their native type.
    """
    event_type, dot, namespace = event.partition(".")
    return CUSTOM_EVENTS.get(event_type, event_type), f"{dot}{namespace}"


class EventRegistry:
    """Per-node handler tables with delegation, namespaces and cleanup."""

    def __init__(self, target: RenderTarget):
        self.target = target
        self._registry: Dict[Any, Dict[str, Dict[str, List[_HandlerEntry]]]] = {}

    # ========== SUBSCRIPTION ==========

    def on(self, node: Any, event: str, selector: Any = None, handler: Optional[EventHandler] = None,
           one_off: bool = False) -> None:
        """
        Register a handler.

        Args:
            node: Node the handler is attached to (the delegation container)
            event: Event type with optional namespace, e.g. "click.cart"
            selector: Delegation selector, or the handler itself when not delegating
            handler: Callable receiving the Event
            one_off: Remove the handler before its first invocation
        """
        if callable(selector) and handler is None:
            handler, selector = selector, None

        if node is None or not event or handler is None:
            return

        event_type, namespace = normalize_event_type(event)
        if not event_type:
            logger.warning(f"Ignoring handler registration without event type: '{event}'")
            return

        if selector:
            try:
                parse_selector(selector)
            except ValueError:
                logger.warning(f"Ignoring '{event}' handler with unsupported selector: '{selector}'")
                return

        had_type = self._has_type(node, event_type)
        events = self._registry.setdefault(node, {})
        groups = events.setdefault(f"{event_type}{namespace}", {})
        groups.setdefault(selector or BASE_SELECTOR, []).append(
            _HandlerEntry(handler, event_type, selector, one_off)
        )

        if not had_type:
            self.target.listen(node, event_type, lambda native_type, n=node: self.trigger(n, native_type))

    def one(self, node: Any, event: str, selector: Any = None, handler: Optional[EventHandler] = None) -> None:
        self.on(node, event, selector, handler, one_off=True)

    def off(self, node: Any, event: Optional[str] = None, selector: Any = None,
            handler: Optional[EventHandler] = None) -> None:
        """
        Remove handlers.

        off(node)                   all handlers of node
        off(node, ".ns")            every handler in namespace ns
        off(node, "click")          every click handler, any namespace
        off(node, "click.ns")       click handlers in namespace ns
        Optional selector/handler arguments narrow the removal further.
        """
        if callable(selector) and handler is None:
            handler, selector = selector, None

        events = self._registry.get(node)
        if not events:
            return

        if not event:
            self._drop_node(node)
            return

        event_type, namespace = normalize_event_type(event)
        if not event_type:
            keys = [key for key in events if normalize_event_type(key)[1] == namespace]
        elif namespace:
            keys = [f"{event_type}{namespace}"]
        else:
            keys = [key for key in events if normalize_event_type(key)[0] == event_type]

        for key in keys:
            groups = events.get(key)
            if groups is None:
                continue
            selector_keys = [selector] if selector else list(groups)
            for selector_key in selector_keys:
                entries = groups.get(selector_key)
                if not entries:
                    continue
                remaining = [entry for entry in entries if handler is not None and entry.callback is not handler]
                if remaining:
                    groups[selector_key] = remaining
                else:
                    del groups[selector_key]
            if not groups:
                del events[key]

        self._release_types(node, {normalize_event_type(key)[0] for key in keys})
        if not events:
            del self._registry[node]

    def _remove_entry(self, node: Any, key: str, entry: _HandlerEntry) -> None:
        events = self._registry.get(node)
        if not events or key not in events:
            return
        groups = events[key]
        selector_key = entry.selector or BASE_SELECTOR
        entries = groups.get(selector_key, [])
        if entry in entries:
            entries.remove(entry)
        if not entries:
            groups.pop(selector_key, None)
        if not groups:
            del events[key]
        self._release_types(node, {entry.event_type})
        if not events:
            del self._registry[node]

    def _has_type(self, node: Any, event_type: str) -> bool:
        return any(normalize_event_type(key)[0] == event_type for key in self._registry.get(node, {}))

    def _release_types(self, node: Any, event_types) -> None:
        for event_type in event_types:
            if not self._has_type(node, event_type):
                self.target.unlisten(node, event_type)

    def _drop_node(self, node: Any) -> None:
        events = self._registry.pop(node, {})
        for event_type in {normalize_event_type(key)[0] for key in events}:
            self.target.unlisten(node, event_type)

    # ========== DISPATCH ==========

    def trigger(self, node: Any, event: str, detail: Optional[Dict[str, Any]] = None) -> Optional[Event]:
        """
        Dispatch a synthetic bubbling, cancelable event from node.

        Returns:
            The dispatched Event (inspect default_prevented/failures), or None
            when node or event is missing
        """
        if node is None or not event:
            return None

        event_type, _namespace = normalize_event_type(event)
        dispatched = Event(type=event_type, target=node, detail=dict(detail or {}))

        current = node
        while current is not None:
            dispatched.current_target = current
            self._dispatch(current, dispatched)
            if dispatched.propagation_stopped or not dispatched.bubbles:
                break
            current = self.target.parent(current)

        dispatched.current_target = None
        return dispatched

    def _dispatch(self, node: Any, event: Event) -> None:
        events = self._registry.get(node)
        if not events:
            return

        for key, groups in list(events.items()):
            if normalize_event_type(key)[0] != event.type:
                continue
            for selector_key, entries in list(groups.items()):
                if selector_key == BASE_SELECTOR:
                    delegate = node
                else:
                    delegate = self._find_delegate(node, selector_key, event.target)
                    if delegate is None:
                        continue
                for entry in list(entries):
                    if entry.one_off:
                        self._remove_entry(node, key, entry)
                    event.delegate_target = delegate
                    self._invoke(entry, event)

    def _find_delegate(self, container: Any, selector: str, target: Any) -> Optional[Any]:
        """First node from target up to (excluding) container that matches selector."""
        current = target
        while current is not None and current is not container:
            if self.target.matches(current, selector):
                return current
            current = self.target.parent(current)
        return None

    @staticmethod
    def _invoke(entry: _HandlerEntry, event: Event) -> None:
        try:
            entry.callback(event)
        except Exception as exc:
            failure = HandlerFailure(f"Handler for '{event.type}' failed: {exc}")
            failure.__cause__ = exc
            event.failures.append(failure)
            logger.exception(f"Error in '{event.type}' handler")

    # ========== CLEANUP ==========

    def cleanup_node(self, node: Any) -> None:
        """Remove every handler registered on node."""
        if node in self._registry:
            self._drop_node(node)

    def cleanup_subtree(self, node: Any) -> None:
        """Remove every handler registered on node or any of its descendants."""
        self.cleanup_node(node)
        for descendant in self.target.descendants(node):
            self.cleanup_node(descendant)

    def cleanup(self) -> int:
        """
        Purge entries of nodes no longer attached to the render target.

        Returns:
            Number of purged nodes
        """
        orphaned = []
        for node in list(self._registry):
            try:
                attached = self.target.is_attached(node)
            except Exception as exc:
                # Node already torn down by the platform
                logger.debug(f"Treating node as detached: {exc}")
                attached = False
            if not attached:
                orphaned.append(node)

        for node in orphaned:
            events = self._registry.pop(node, {})
            for event_type in {normalize_event_type(key)[0] for key in events}:
                try:
                    self.target.unlisten(node, event_type)
                except Exception as exc:
                    logger.debug(f"Could not unbind '{event_type}' from detached node: {exc}")

        if orphaned:
            logger.debug(f"Cleaned up {len(orphaned)} orphaned node(s)")
        return len(orphaned)

    # ========== INTROSPECTION ==========

    def has_handlers(self, node: Any, event: Optional[str] = None) -> bool:
        events = self._registry.get(node)
        if not events:
            return False
        if not event:
            return True
        event_type, namespace = normalize_event_type(event)
        if namespace:
            return f"{event_type}{namespace}" in events
        return self._has_type(node, event_type)

    def get_registry(self) -> Dict[Any, Dict[str, Dict[str, int]]]:
        """Snapshot of node -> event key -> selector -> handler count."""
        return {
            node: {
                key: {selector: len(entries) for selector, entries in groups.items()}
                for key, groups in events.items()
            }
            for node, events in self._registry.items()
        }

    def get_stats(self) -> Dict[str, Any]:
        element_count = len(self._registry)
        total_events = sum(len(events) for events in self._registry.values())
        total_handlers = sum(
            len(entries)
            for events in self._registry.values()
            for groups in events.values()
            for entries in groups.values()
        )
        return {
            "element_count": element_count,
            "total_events": total_events,
            "total_handlers": total_handlers,
            "average_events_per_element": total_events / element_count if element_count else 0,
            "average_handlers_per_event": total_handlers / total_events if total_events else 0,
        }
