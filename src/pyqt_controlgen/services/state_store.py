"""
Reactive state store.

Global key/value state with per-key and global subscriptions, computed
values, a bounded history log and snapshot/restore.

Ordering contract for every mutation:
    1. history entry appended
    2. per-key subscribers, in subscription order
    3. global subscribers, in subscription order
all before the mutating call returns.

Example:
    store = ReactiveStore()
    unsubscribe = store.subscribe("userName", lambda new, old, key: print(old, "->", new))
    store.set_state("userName", "Ann")

    full_name = store.computed(["first", "last"], lambda first, last: f"{first} {last}")
    full_name.get_value()
"""

import copy
import itertools
import logging
import time
import uuid
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, Iterable, List, Mapping, Optional

from pyqt_controlgen.protocols.control_config import get_control_config

logger = logging.getLogger(__name__)

STATE_FORMAT_VERSION = "1.0.0"

_MISSING = object()

KeyCallback = Callable[[Any, Any, str], None]


@dataclass
class HistoryEntry:
    """One recorded store mutation."""
    type: str
    key: Optional[str] = None
    old_value: Any = None
    new_value: Any = None
    timestamp: float = field(default_factory=time.time)
    changes: Optional[List[Dict[str, Any]]] = None
    old_state: Optional[Dict[str, Any]] = None
    new_state: Optional[Dict[str, Any]] = None
    snapshot_id: Optional[str] = None


@dataclass
class StoreEvent:
    """Payload delivered to global subscribers."""
    type: str
    key: Optional[str] = None
    value: Any = None
    old_value: Any = None
    changes: Optional[List[Dict[str, Any]]] = None
    old_state: Optional[Dict[str, Any]] = None
    new_state: Optional[Dict[str, Any]] = None
    snapshot: Optional[Dict[str, Any]] = None


GlobalCallback = Callable[[StoreEvent], None]


class Computed:
    """
    A value derived from store keys.

    Recomputes whenever any dependency changes and notifies its own
    subscribers only when the result differs from the previous one.
    destroy() must be called to release the dependency subscriptions.
    """

    def __init__(self, store: "ReactiveStore", dependencies: List[str], compute_fn: Callable[..., Any]):
        self._store = store
        self._dependencies = list(dependencies)
        self._compute_fn = compute_fn
        self._listeners: List[Callable[[Any, Any], None]] = []
        self._value: Any = None
        self._initialized = False
        self._unsubscribers = [store.subscribe(dep, self._on_dependency_change) for dep in self._dependencies]
        self._recompute()

    def _on_dependency_change(self, _value: Any, _old_value: Any, _key: str) -> None:
        self._recompute()

    def _recompute(self) -> None:
        new_value = self._compute_fn(*(self._store.get_state(dep) for dep in self._dependencies))
        if self._initialized and new_value == self._value:
            return

        old_value = self._value
        self._value = new_value
        self._initialized = True
        for callback in list(self._listeners):
            try:
                callback(new_value, old_value)
            except Exception:
                logger.exception("Error in computed listener")

    def get_value(self) -> Any:
        return self._value

    def subscribe(self, callback: Callable[[Any, Any], None]) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def destroy(self) -> None:
        for unsubscribe in self._unsubscribers:
            if unsubscribe is not None:
                unsubscribe()
        self._unsubscribers = []
        self._listeners.clear()


class ReactiveStore:
    """Global key/value state with synchronous, ordered notification."""

    def __init__(self, max_history_size: Optional[int] = None):
        size = max_history_size if max_history_size is not None else get_control_config().history_size
        self._state: Dict[str, Any] = {}
        self._listeners: Dict[str, List[KeyCallback]] = {}
        self._global_listeners: List[GlobalCallback] = []
        self._history: Deque[HistoryEntry] = deque(maxlen=size)

    @property
    def max_history_size(self) -> int:
        return self._history.maxlen

    # ========== READ ==========

    def get_state(self, key: str, default: Any = None) -> Any:
        return self._state.get(key, default)

    def get_all_state(self) -> Dict[str, Any]:
        return dict(self._state)

    def has_key(self, key: str) -> bool:
        return key in self._state

    def get_keys(self) -> List[str]:
        return list(self._state)

    # ========== MUTATION ==========

    def set_state(self, key: str, value: Any) -> None:
        """Set a value and notify subscribers."""
        old_value = self._state.get(key)
        self._state[key] = value

        self._add_to_history(HistoryEntry("setState", key=key, old_value=old_value, new_value=value))
        self._notify_key(key, value, old_value)
        self._notify_global(StoreEvent("setState", key=key, value=value, old_value=old_value))
        logger.debug(f"{key} changed from {old_value!r} to {value!r}")

    def update_state(self, updates: Mapping[str, Any]) -> List[Dict[str, Any]]:
        """
        Set several keys as one batch.

        Only keys whose value changes are written and notified; one history
        entry covers the whole batch.

        Returns:
            List of {"key", "old_value", "new_value"} changes
        """
        if not isinstance(updates, Mapping):
            logger.error("State updates must be a mapping")
            return []

        changes = []
        for key, new_value in updates.items():
            old_value = self._state.get(key, _MISSING)
            if old_value is _MISSING or old_value != new_value:
                self._state[key] = new_value
                changes.append({
                    "key": key,
                    "old_value": None if old_value is _MISSING else old_value,
                    "new_value": new_value,
                })

        if changes:
            self._add_to_history(HistoryEntry("updateState", changes=changes))
            for change in changes:
                self._notify_key(change["key"], change["new_value"], change["old_value"])
            self._notify_global(StoreEvent("updateState", changes=changes))
            logger.debug(f"Batch update applied: {[change['key'] for change in changes]}")
        return changes

    def remove_state(self, key: str) -> None:
        old_value = self._state.pop(key, None)
        self._add_to_history(HistoryEntry("removeState", key=key, old_value=old_value))
        self._notify_key(key, None, old_value)
        self._notify_global(StoreEvent("removeState", key=key, old_value=old_value))
        logger.debug(f"{key} removed")

    def clear_state(self) -> None:
        old_state = self._state
        self._state = {}
        self._add_to_history(HistoryEntry("clearState", old_state=dict(old_state)))
        for key, old_value in old_state.items():
            self._notify_key(key, None, old_value)
        self._notify_global(StoreEvent("clearState", old_state=dict(old_state)))
        logger.debug("All state cleared")

    # ========== SUBSCRIPTIONS ==========

    def subscribe(self, key: str, callback: KeyCallback) -> Optional[Callable[[], None]]:
        """
        Subscribe to changes of one key.

        Args:
            key: State key to watch
            callback: Called with (new_value, old_value, key)

        Returns:
            Unsubscribe function, or None if callback is not callable
        """
        if not callable(callback):
            logger.error("Store callback must be callable")
            return None

        self._listeners.setdefault(key, []).append(callback)

        def unsubscribe() -> None:
            callbacks = self._listeners.get(key)
            if callbacks and callback in callbacks:
                callbacks.remove(callback)
                if not callbacks:
                    del self._listeners[key]

        return unsubscribe

    def subscribe_global(self, callback: GlobalCallback) -> Optional[Callable[[], None]]:
        if not callable(callback):
            logger.error("Store callback must be callable")
            return None

        self._global_listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._global_listeners:
                self._global_listeners.remove(callback)

        return unsubscribe

    def watch(self, key: str, callback: KeyCallback, immediate: bool = False) -> Optional[Callable[[], None]]:
        """Subscribe, optionally calling back right away with the current value."""
        unsubscribe = self.subscribe(key, callback)
        if unsubscribe is not None and immediate and self.has_key(key):
            callback(self.get_state(key), None, key)
        return unsubscribe

    def computed(self, dependencies: Iterable[str], compute_fn: Callable[..., Any]) -> Optional[Computed]:
        """Create a value derived from dependency keys."""
        if isinstance(dependencies, str) or not isinstance(dependencies, Iterable):
            logger.error("Computed dependencies must be a list of keys")
            return None
        if not callable(compute_fn):
            logger.error("Computed function must be callable")
            return None
        return Computed(self, list(dependencies), compute_fn)

    def _notify_key(self, key: str, value: Any, old_value: Any) -> None:
        for callback in list(self._listeners.get(key, ())):
            try:
                callback(value, old_value, key)
            except Exception:
                logger.exception(f"Error in state listener for '{key}'")

    def _notify_global(self, event: StoreEvent) -> None:
        for callback in list(self._global_listeners):
            try:
                callback(event)
            except Exception:
                logger.exception("Error in global state listener")

    # ========== HISTORY ==========

    def _add_to_history(self, entry: HistoryEntry) -> None:
        self._history.append(entry)

    def get_history(self) -> List[HistoryEntry]:
        return list(self._history)

    def clear_history(self) -> None:
        self._history.clear()

    # ========== SERIALIZATION ==========

    def export_state(self) -> Dict[str, Any]:
        return {
            "state": copy.deepcopy(self._state),
            "timestamp": time.time(),
            "version": STATE_FORMAT_VERSION,
        }

    def import_state(self, exported: Mapping[str, Any]) -> bool:
        """Replace the whole state with an export_state() payload."""
        if not isinstance(exported, Mapping) or not isinstance(exported.get("state"), Mapping):
            logger.error("Invalid exported state")
            return False

        old_state, new_state = self._replace_state(exported["state"])
        self._add_to_history(HistoryEntry("importState", old_state=old_state, new_state=dict(new_state)))
        self._notify_replacement(old_state, new_state)
        self._notify_global(StoreEvent("importState", old_state=old_state, new_state=dict(new_state)))
        logger.debug("State imported")
        return True

    def create_snapshot(self) -> Dict[str, Any]:
        return {
            "state": copy.deepcopy(self._state),
            "timestamp": time.time(),
            "id": f"snapshot-{uuid.uuid4().hex[:12]}",
        }

    def restore_snapshot(self, snapshot: Mapping[str, Any]) -> bool:
        if not isinstance(snapshot, Mapping) or not isinstance(snapshot.get("state"), Mapping):
            logger.error("Invalid snapshot")
            return False

        old_state, new_state = self._replace_state(snapshot["state"])
        self._add_to_history(HistoryEntry(
            "restoreSnapshot", old_state=old_state, new_state=dict(new_state), snapshot_id=snapshot.get("id")
        ))
        self._notify_replacement(old_state, new_state)
        self._notify_global(StoreEvent(
            "restoreSnapshot", old_state=old_state, new_state=dict(new_state), snapshot=dict(snapshot)
        ))
        logger.debug(f"Snapshot restored: {snapshot.get('id')}")
        return True

    def _replace_state(self, state: Mapping[str, Any]):
        old_state = self._state
        self._state = copy.deepcopy(dict(state))
        return old_state, self._state

    def _notify_replacement(self, old_state: Dict[str, Any], new_state: Dict[str, Any]) -> None:
        # Union of keys, old order first, so removed keys are notified too
        for key in dict.fromkeys(itertools.chain(old_state, new_state)):
            self._notify_key(key, new_state.get(key), old_state.get(key))

    def debug_info(self) -> Dict[str, Any]:
        return {
            "state_size": len(self._state),
            "listener_count": sum(len(callbacks) for callbacks in self._listeners.values()),
            "global_listener_count": len(self._global_listeners),
            "history_size": len(self._history),
            "current_state": self.get_all_state(),
        }
