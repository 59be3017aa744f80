"""
Service layer for control generation.

Process-scoped services shared by every control of a session: the reactive
state store, the event registry and the template engine.
"""

from .state_store import ReactiveStore, Computed, StoreEvent, HistoryEntry
from .event_registry import EventRegistry, Event
from .template_engine import TemplateEngine, evaluate_expression, format_value
from .context_clock import ContextClock

__all__ = [
    "ReactiveStore",
    "Computed",
    "StoreEvent",
    "HistoryEntry",
    "EventRegistry",
    "Event",
    "TemplateEngine",
    "evaluate_expression",
    "format_value",
    "ContextClock",
]
