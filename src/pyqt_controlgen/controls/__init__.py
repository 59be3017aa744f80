"""
Control lifecycle, factory, validation and session.

Control and ControlFactory are the core; ControlSession bundles the
services a control tree shares.
"""

from __future__ import annotations

import importlib
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .base_control import Control, RenderOptions
    from .control_factory import ControlFactory
    from .session import ControlSession, get_session, set_session, reset_session
    from .validation import DefinitionValidator, ValidationResult, RuntimeValidation, VALID_CONTROL_TYPES

_EXPORTS = {
    "Control": ("pyqt_controlgen.controls.base_control", "Control"),
    "RenderOptions": ("pyqt_controlgen.controls.base_control", "RenderOptions"),
    "ControlFactory": ("pyqt_controlgen.controls.control_factory", "ControlFactory"),
    "ControlSession": ("pyqt_controlgen.controls.session", "ControlSession"),
    "get_session": ("pyqt_controlgen.controls.session", "get_session"),
    "set_session": ("pyqt_controlgen.controls.session", "set_session"),
    "reset_session": ("pyqt_controlgen.controls.session", "reset_session"),
    "DefinitionValidator": ("pyqt_controlgen.controls.validation", "DefinitionValidator"),
    "ValidationResult": ("pyqt_controlgen.controls.validation", "ValidationResult"),
    "RuntimeValidation": ("pyqt_controlgen.controls.validation", "RuntimeValidation"),
    "VALID_CONTROL_TYPES": ("pyqt_controlgen.controls.validation", "VALID_CONTROL_TYPES"),
}


def __getattr__(name: str):
    if name in _EXPORTS:
        module_name, attr = _EXPORTS[name]
        module = importlib.import_module(module_name)
        value = getattr(module, attr)
        globals()[name] = value
        return value
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = list(_EXPORTS.keys())
