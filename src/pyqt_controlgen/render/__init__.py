"""
Render target implementations.

MemoryRenderTarget is importable without a running Qt application;
QtRenderTarget is loaded on first access.
"""

from __future__ import annotations

import importlib
from typing import TYPE_CHECKING

from .memory_target import MemoryRenderTarget, Node

if TYPE_CHECKING:
    from .qt_target import QtRenderTarget

_EXPORTS = {
    "QtRenderTarget": ("pyqt_controlgen.render.qt_target", "QtRenderTarget"),
}


def __getattr__(name: str):
    if name in _EXPORTS:
        module_name, attr = _EXPORTS[name]
        module = importlib.import_module(module_name)
        value = getattr(module, attr)
        globals()[name] = value
        return value
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["MemoryRenderTarget", "Node", *_EXPORTS.keys()]
