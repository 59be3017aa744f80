"""
pyqt-controlgen: declarative control trees rendered into PyQt6 or an in-memory node tree.

User interfaces are described as JSON trees of typed control definitions and
turned into live, reactive control trees.

Architecture:
- Tier 1 (Core): Exceptions, selectors, node data and diagnostics helpers
- Tier 2 (Protocols): Render target ABC and configuration
- Tier 3 (Services): Reactive store, event registry, template engine
- Tier 4 (Controls): Control lifecycle, validation, factory and session
- Tier 5 (Widgets/Render): Shipped controls and render target adapters

Key Features:
- Definition validation with sanitization before construction
- Open, string-keyed control type registry with graceful degradation
- Keyed reactive store with history, snapshots and computed values
- Delegated, namespaced event dispatch with bubbling
- Placeholder templates (#{Name}, ${Name}, {{Name}}) with caching and watchers
"""

from __future__ import annotations

import importlib
from typing import TYPE_CHECKING

__version__ = "0.1.0"

if TYPE_CHECKING:
    from .controls import Control, ControlFactory, ControlSession, RenderOptions
    from .controls import get_session, set_session, reset_session
    from .render import MemoryRenderTarget, QtRenderTarget
    from .services import ReactiveStore, EventRegistry, TemplateEngine

_EXPORTS = {
    "Control": ("pyqt_controlgen.controls.base_control", "Control"),
    "RenderOptions": ("pyqt_controlgen.controls.base_control", "RenderOptions"),
    "ControlFactory": ("pyqt_controlgen.controls.control_factory", "ControlFactory"),
    "ControlSession": ("pyqt_controlgen.controls.session", "ControlSession"),
    "get_session": ("pyqt_controlgen.controls.session", "get_session"),
    "set_session": ("pyqt_controlgen.controls.session", "set_session"),
    "reset_session": ("pyqt_controlgen.controls.session", "reset_session"),
    "MemoryRenderTarget": ("pyqt_controlgen.render.memory_target", "MemoryRenderTarget"),
    "QtRenderTarget": ("pyqt_controlgen.render.qt_target", "QtRenderTarget"),
    "ReactiveStore": ("pyqt_controlgen.services.state_store", "ReactiveStore"),
    "EventRegistry": ("pyqt_controlgen.services.event_registry", "EventRegistry"),
    "TemplateEngine": ("pyqt_controlgen.services.template_engine", "TemplateEngine"),
}


def __getattr__(name: str):
    if name in _EXPORTS:
        module_name, attr = _EXPORTS[name]
        module = importlib.import_module(module_name)
        value = getattr(module, attr)
        globals()[name] = value
        return value
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["__version__", *_EXPORTS.keys()]
