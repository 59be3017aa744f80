"""
Control session: the process-scoped services a control tree shares.

A session bundles the render target, reactive store, event registry,
template engine, validator, factory, node data registry, the arena of
currently rendered controls and named action handlers. Controls receive
their session explicitly; the module-level default is used only when none
is given, so independent sessions can coexist (one per window, one per
test...).

Lifecycle of the default session:
    get_session()      create lazily and return
    set_session(s)     replace
    reset_session()    discard; the next get_session() starts fresh
"""

import logging
import random
import uuid
from typing import Any, Callable, Dict, List, Optional

from pyqt_controlgen.controls.control_factory import ControlFactory
from pyqt_controlgen.controls.validation import DefinitionValidator
from pyqt_controlgen.core.node_data import NodeDataRegistry
from pyqt_controlgen.protocols.control_config import get_control_config
from pyqt_controlgen.protocols.render_target import RenderTarget
from pyqt_controlgen.render.memory_target import MemoryRenderTarget
from pyqt_controlgen.services.event_registry import EventRegistry
from pyqt_controlgen.services.state_store import ReactiveStore
from pyqt_controlgen.services.template_engine import TemplateEngine

logger = logging.getLogger(__name__)

ActionHandler = Callable[..., Any]


class ControlSession:
    """
    Services shared by one control tree.

    Args:
        target: Render target (defaults to an in-memory node tree)
        store: Reactive store
        templates: Template engine
        events: Event registry (must be bound to target)
    """

    def __init__(self, target: Optional[RenderTarget] = None, store: Optional[ReactiveStore] = None,
                 templates: Optional[TemplateEngine] = None, events: Optional[EventRegistry] = None):
        self.target = target if target is not None else MemoryRenderTarget()
        self.store = store if store is not None else ReactiveStore()
        self.templates = templates if templates is not None else TemplateEngine()
        self.events = events if events is not None else EventRegistry(self.target)
        self.node_data = NodeDataRegistry()
        self.factory = ControlFactory(self)
        self.validator = DefinitionValidator(known_types=self.factory.known_types, uid_generator=self.generate_uid)
        self._live: Dict[str, Any] = {}
        self._actions: Dict[str, ActionHandler] = {}

    # ========== LIVE CONTROLS ==========

    def register_live(self, control) -> None:
        existing = self._live.get(control.UID)
        if existing is not None and existing is not control:
            logger.warning(f"UID {control.UID} is already rendered by another control")
        self._live[control.UID] = control

    def unregister_live(self, control) -> None:
        if self._live.get(control.UID) is control:
            del self._live[control.UID]

    def is_uid_live(self, uid: str) -> bool:
        return uid in self._live

    def get_control(self, uid: str):
        return self._live.get(uid)

    def live_controls(self) -> List[Any]:
        return list(self._live.values())

    def generate_uid(self, prefix: Optional[str] = None) -> str:
        """
        Generate a UID that no currently rendered control uses.

        Random candidates are retried up to the configured attempt limit;
        after that a uuid suffix is used, which cannot realistically collide.
        """
        config = get_control_config()
        prefix = prefix or config.uid_prefix
        for _ in range(config.uid_max_attempts):
            candidate = f"{prefix}-{random.randrange(config.uid_max)}"
            if candidate not in self._live:
                return candidate
        logger.debug(f"UID space for '{prefix}' crowded, using uuid suffix")
        return f"{prefix}-{uuid.uuid4().hex}"

    # ========== ACTIONS ==========

    def register_action(self, name: str, handler: ActionHandler) -> bool:
        """Register a named handler buttons can invoke through props.action."""
        if not callable(handler):
            logger.error(f"Action handler '{name}' must be callable")
            return False
        self._actions[name] = handler
        return True

    def unregister_action(self, name: str) -> bool:
        return self._actions.pop(name, None) is not None

    def get_action(self, name: str) -> Optional[ActionHandler]:
        return self._actions.get(name)

    # ========== TEARDOWN ==========

    def destroy_all(self) -> None:
        """Destroy every rendered root control (children go with their parents)."""
        for control in list(self._live.values()):
            if control.parent is None:
                control.destroy()
        self.events.cleanup()


# Global default session (created on first use)
_session: Optional[ControlSession] = None


def get_session() -> ControlSession:
    global _session
    if _session is None:
        _session = ControlSession()
    return _session


def set_session(session: Optional[ControlSession]) -> None:
    """Replace the default session (None discards it)."""
    global _session
    _session = session


def reset_session() -> None:
    set_session(None)
