"""
Base control class.

Every control, built-in or externally registered, extends Control. It owns:

- identity (UID, generated when the definition has none)
- the definition fields (props, state, style, text, ...)
- exactly one render-target node, created by render()
- its child controls (parent owns children; children hold a weak parent reference)
- a private listener table for emit()/on()/off()

Lifecycle: constructed -> rendered -> state transitions -> destroyed.

Subclasses customize rendering through the hooks below rather than by
overriding render() itself:

    tag / get_base_classes()   node tag and classes
    create_node()              build the node (call super, then add content)
    attach_events()            wire node events through the session's EventRegistry
    child_container()          node children are placed into
    place_child()              how one child node is attached
    on_state_change()          react to set_state() without re-rendering
    update_value_on_node()     reflect set_value() on the node
"""

import json
import logging
import re
import weakref
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, TYPE_CHECKING, Union

from pyqt_controlgen.core.exceptions import ConstructionFailure, ControlDestroyedError, HandlerFailure

if TYPE_CHECKING:
    from pyqt_controlgen.controls.session import ControlSession
    from pyqt_controlgen.controls.validation import RuntimeValidation, ValidationResult

logger = logging.getLogger(__name__)

# Consumed by layout controls, never passed to the render target
RESERVED_LAYOUT_KEYS = ("rows", "columns", "gap")

DISABLED_CLASSES = ("opacity-50", "pointer-events-none")

_CAMEL_BOUNDARY = re.compile(r"([A-Z])")

ControlHandler = Callable[[Dict[str, Any]], Any]

_MISSING = object()


def to_kebab_case(key: str) -> str:
    """paddingTop -> padding-top"""
    return _CAMEL_BOUNDARY.sub(r"-\1", key).lower()


@dataclass(frozen=True)
class RenderOptions:
    """
    Per-render configuration threaded through a control tree.

    Attributes:
        designer_mode: Outline every control and add a "<type> | <UID>" tooltip node
    """
    designer_mode: bool = False


class Control:
    """
    Base capability set shared by all controls.

    Also used directly as the degraded fallback for unknown or failing
    control types, so a tree always renders.

    Example:
        control = Control({"type": "panel", "UID": "main", "style": {"padding": "10px"}})
        node = control.render()
        control.on("click", lambda data: print(data["source"]))
    """

    tag = "div"

    def __init__(self, definition: Optional[Mapping[str, Any]] = None,
                 session: Optional["ControlSession"] = None):
        if session is None:
            from pyqt_controlgen.controls.session import get_session
            session = get_session()
        self.session = session

        definition = definition or {}
        self.type: str = definition.get("type") or "control"
        self.UID: str = definition.get("UID") or session.generate_uid()
        self.props: Dict[str, Any] = dict(definition.get("props") or {})
        self.state: Dict[str, Any] = dict(definition.get("state") or {})
        self.children: List[Dict[str, Any]] = list(definition.get("children") or [])
        self.style: Dict[str, Any] = dict(definition.get("style") or {})
        self.text = definition.get("text") or ""
        self.placeholder = definition.get("placeholder") or ""
        self.title = definition.get("title") or ""
        self.value = definition.get("value", "")
        if self.value is None:
            self.value = ""
        self.disabled = bool(definition.get("disabled", False))
        self.visible = definition.get("visible", True) is not False

        self.node: Any = None
        self.child_controls: List["Control"] = []
        self.validation_result: Optional["ValidationResult"] = None
        self.construction_failure: Optional[ConstructionFailure] = None
        self.destroyed = False
        self._parent_ref: Optional[weakref.ReferenceType] = None
        self._listeners: Dict[str, List[ControlHandler]] = {}
        self._disposers: List[Callable[[], None]] = []

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.type} {self.UID}>"

    # ========== SESSION SHORTCUTS ==========

    @property
    def target(self):
        return self.session.target

    @property
    def events(self):
        return self.session.events

    @property
    def templates(self):
        return self.session.templates

    @property
    def store(self):
        return self.session.store

    @property
    def parent(self) -> Optional["Control"]:
        return self._parent_ref() if self._parent_ref is not None else None

    @parent.setter
    def parent(self, control: Optional["Control"]) -> None:
        self._parent_ref = weakref.ref(control) if control is not None else None

    # ========== RENDERING ==========

    def render(self, options: Optional[RenderOptions] = None) -> Any:
        """
        Render the control and its children.

        Each call creates a new node; a previously rendered node (and the
        child controls built for it) is released first.

        Args:
            options: Render options, passed down to every child

        Returns:
            The rendered node

        Raises:
            ControlDestroyedError: If the control was destroyed
        """
        if self.destroyed:
            raise ControlDestroyedError(f"Control {self.UID} was destroyed and cannot be rendered")

        options = options or RenderOptions()
        if self.node is not None:
            self._release_node()

        self.node = self.create_node()
        self.session.node_data.set(self.node, "control", self)
        if self.validation_result is not None:
            self.session.node_data.set(self.node, "validation", self.validation_result)

        self.apply_styles()
        self.attach_events()
        self.render_children(options)

        if options.designer_mode:
            self.add_designer_annotations()

        self.session.register_live(self)
        if self.state:
            self.store.set_state(self.UID, dict(self.state))

        self.log_event("render", f"Control {self.UID} ({self.type}) rendered")
        return self.node

    def get_base_classes(self) -> str:
        return "control-base"

    def node_attributes(self) -> Dict[str, Any]:
        return {
            "id": self.UID,
            "data-testid": f"control-{self.type}-{self.UID}",
            "data-control-type": self.type,
        }

    def create_node(self) -> Any:
        """Create this control's node. Subclasses call super() and add content."""
        node = self.target.create_node(self.tag, self.node_attributes(), self.get_base_classes())

        if not self.visible:
            self.target.set_styles(node, {"display": "none"})

        if self.disabled:
            self.target.set_attribute(node, "disabled", "true")
            self.target.add_class(node, *DISABLED_CLASSES)

        return node

    def apply_styles(self) -> None:
        if not self.style:
            return
        styles = {
            to_kebab_case(key): value
            for key, value in self.style.items()
            if key not in RESERVED_LAYOUT_KEYS
        }
        if styles:
            self.target.set_styles(self.node, styles)

    def attach_events(self) -> None:
        """Wire node events. Base controls have none."""

    def render_text(self, text: Any, extra_context: Optional[Mapping[str, Any]] = None) -> str:
        rendered = self.templates.render(text, extra_context)
        return "" if rendered is None else str(rendered)

    def bind_text(self, node: Any, source: Union[str, Callable[[], str]]) -> None:
        """
        Render placeholder text onto node and keep it current.

        The node is re-rendered whenever a context key the text references
        changes. source may be a callable so later text changes are picked up.
        """
        get_text = source if callable(source) else (lambda: source)

        def refresh(_changed_keys=None, _context=None) -> None:
            self.target.set_text(node, self.render_text(get_text()))

        refresh()
        keys = self.templates.referenced_keys(get_text())
        if keys:
            self.add_disposer(self.templates.watch(keys, refresh))

    def render_children(self, options: RenderOptions) -> None:
        """Create, render and place every declared child. One failing child never stops its siblings."""
        for index, child_definition in enumerate(self.children):
            self.render_child(index, child_definition, options)

    def render_child(self, index: int, definition: Any, options: RenderOptions) -> Optional["Control"]:
        """Create one child through the factory, render it and place its node."""
        child = None
        try:
            child = self.session.factory.create(definition)
            if child is None:
                logger.warning(f"Skipping child {index} of {self.UID}: definition rejected")
                return None

            child.parent = self
            child_node = child.render(options)
            self.child_controls.append(child)
            self.place_child(child, child_node)
            return child
        except Exception as e:
            logger.exception(f"Failed to render child {index} of {self.UID}")
            self.log_event("error", f"Child {index} of {self.UID} failed: {e}")
            if child is not None:
                # Half-built children would leave child_controls out of step with child nodes
                child.destroy()
            return None

    def child_container(self) -> Any:
        """Node that receives child nodes."""
        return self.node

    def place_child(self, child: "Control", child_node: Any) -> None:
        self.target.append_child(self.child_container(), child_node)

    def add_designer_annotations(self) -> None:
        self.target.add_class(self.node, "designer-outline")
        tooltip = self.target.create_node("div", {}, "designer-tooltip")
        self.target.set_text(tooltip, f"{self.type} | {self.UID}")
        self.target.append_child(self.node, tooltip)

    # ========== STATE ==========

    def set_state(self, new_state: Mapping[str, Any]) -> None:
        """
        Shallow-merge new_state into state.

        Publishes the merged state to the store under this control's UID,
        then calls on_state_change(new_state, old_state).
        """
        if not isinstance(new_state, Mapping):
            logger.error(f"State update for {self.UID} must be a mapping")
            return

        old_state = dict(self.state)
        self.state = {**self.state, **new_state}

        self.log_event("state-change", f"State updated for {self.UID}: {json.dumps(dict(new_state), default=str)}")
        self.store.set_state(self.UID, dict(self.state))
        self.on_state_change(dict(new_state), old_state)

    def on_state_change(self, new_state: Dict[str, Any], old_state: Dict[str, Any]) -> None:
        """Override to update the rendered node after set_state()."""

    # ========== EVENTS ==========

    def on(self, event: str, handler: ControlHandler) -> None:
        self._listeners.setdefault(event, []).append(handler)

    def off(self, event: str, handler: Optional[ControlHandler] = None) -> None:
        """Remove one handler, or every handler of event when handler is None."""
        handlers = self._listeners.get(event)
        if not handlers:
            return
        if handler is None:
            del self._listeners[event]
        elif handler in handlers:
            handlers.remove(handler)

    def emit(self, event: str, data: Optional[Mapping[str, Any]] = None) -> List[HandlerFailure]:
        """
        Run local handlers, then bubble to the parent with source=<UID>.

        Each handler runs isolated; a failing handler is logged and never
        stops the remaining handlers or the bubble step.

        Returns:
            HandlerFailure for every handler that raised, here and in ancestors
        """
        payload = dict(data or {})
        failures: List[HandlerFailure] = []

        for handler in list(self._listeners.get(event, ())):
            try:
                handler(payload)
            except Exception as e:
                failure = HandlerFailure(f"Error in event handler for {event}: {e}")
                failure.__cause__ = e
                failures.append(failure)
                logger.exception(f"Handler for '{event}' on {self.UID} failed")
                self.log_event("error", str(failure))

        parent = self.parent
        if parent is not None:
            failures.extend(parent.emit(event, {**payload, "source": self.UID}))
        return failures

    def log_event(self, event_type: str, message: str) -> None:
        level = logging.ERROR if event_type == "error" else logging.DEBUG
        logger.log(level, message, extra={"event_type": event_type, "control_uid": self.UID})

    # ========== VALUE & VALIDATION ==========

    def validate(self, prop: Optional[str] = None,
                 value: Any = _MISSING) -> Union["ValidationResult", "RuntimeValidation"]:
        """
        Validate one runtime value (prop and value given) or the whole control.

        Whole-control validation rebuilds the definition from the current
        fields and stores the result on validation_result.
        """
        validator = self.session.validator
        if prop and value is not _MISSING:
            return validator.validate_runtime_value(self.type, prop, value)

        definition = {
            "type": self.type,
            "UID": self.UID,
            "props": self.props,
            "state": self.state,
            "style": self.style,
            "text": self.text,
            "placeholder": self.placeholder,
            "title": self.title,
            "value": self.value,
            "disabled": self.disabled,
            "visible": self.visible,
            "children": self.children,
        }
        self.validation_result = validator.validate_control_definition(definition)
        return self.validation_result

    def set_value(self, new_value: Any) -> bool:
        validation = self.validate("value", new_value)
        if not validation.is_valid:
            logger.warning(f"Invalid value for {self.UID}: {validation.error}")
            return False

        old_value = self.value
        self.value = validation.sanitized_value
        if self.node is not None:
            self.update_value_on_node()

        self.emit("valueChange", {"old_value": old_value, "new_value": self.value})
        return True

    def update_value_on_node(self) -> None:
        """Override to reflect value on the node. Base nodes carry no value."""

    def is_valid(self) -> bool:
        return self.validate().is_valid

    def get_validation_errors(self) -> List[str]:
        return list(self.validate().errors)

    # ========== TREE & NODE HELPERS ==========

    def find_child(self, uid: str) -> Optional["Control"]:
        for child in self.child_controls:
            if child.UID == uid:
                return child
            nested = child.find_child(uid)
            if nested is not None:
                return nested
        return None

    def get_attribute(self, name: str) -> Optional[str]:
        return self.target.get_attribute(self.node, name) if self.node is not None else None

    def set_attribute(self, name: str, value: Any) -> None:
        if self.node is not None:
            self.target.set_attribute(self.node, name, value)

    def add_class(self, class_name: str) -> None:
        if self.node is not None:
            self.target.add_class(self.node, class_name)

    def remove_class(self, class_name: str) -> None:
        if self.node is not None:
            self.target.remove_class(self.node, class_name)

    def show(self) -> None:
        self.visible = True
        if self.node is not None:
            self.target.set_styles(self.node, {"display": None})

    def hide(self) -> None:
        self.visible = False
        if self.node is not None:
            self.target.set_styles(self.node, {"display": "none"})

    def enable(self) -> None:
        self.disabled = False
        if self.node is not None:
            self.target.remove_attribute(self.node, "disabled")
            self.target.remove_class(self.node, *DISABLED_CLASSES)

    def disable(self) -> None:
        self.disabled = True
        if self.node is not None:
            self.target.set_attribute(self.node, "disabled", "true")
            self.target.add_class(self.node, *DISABLED_CLASSES)

    # ========== TEARDOWN ==========

    def add_disposer(self, disposer: Optional[Callable[[], None]]) -> None:
        """Register a callable (unsubscribe, unwatch, timer stop...) run when the node is released."""
        if disposer is not None:
            self._disposers.append(disposer)

    def _run_disposers(self) -> None:
        disposers, self._disposers = self._disposers, []
        for disposer in disposers:
            try:
                disposer()
            except Exception:
                logger.exception(f"Disposer failed for {self.UID}")

    def _release_node(self) -> None:
        """Drop the current node, its registrations and the child controls built for it."""
        node = self.node
        self._run_disposers()
        self.events.cleanup_subtree(node)
        self.session.node_data.clear_node(node)

        for child in list(self.child_controls):
            child.destroy()
        self.child_controls = []

        parent_node = self.target.parent(node)
        if parent_node is not None:
            self.target.remove_child(parent_node, node)
        self.node = None

    def destroy(self) -> None:
        """
        Tear the control down. Idempotent.

        Order: event registry entries of the node subtree, node data, store
        key, children (depth-first), node detach, parent link, listeners.
        """
        if self.destroyed:
            return
        self.destroyed = True
        self._run_disposers()

        if self.node is not None:
            self.events.cleanup_subtree(self.node)
            self.session.node_data.clear_node(self.node)

        if self.store.has_key(self.UID):
            self.store.remove_state(self.UID)

        for child in list(self.child_controls):
            child.destroy()
        self.child_controls = []

        if self.node is not None:
            parent_node = self.target.parent(self.node)
            if parent_node is not None:
                self.target.remove_child(parent_node, self.node)

        parent = self.parent
        if parent is not None and self in parent.child_controls:
            parent.child_controls.remove(self)

        self._listeners = {}
        self.session.unregister_live(self)
        self.log_event("destroy", f"Control {self.UID} destroyed")
