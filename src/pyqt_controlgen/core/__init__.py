"""
Core utilities.

Exceptions, selector matching, node data and diagnostics helpers with no
dependency on concrete controls.
"""

from .exceptions import (
    ControlGenError,
    DefinitionError,
    DefinitionWarning,
    ConstructionFailure,
    HandlerFailure,
    TemplateExpressionError,
    ControlDestroyedError,
)
from .selectors import CompoundSelector, parse_selector, matches_selector
from .node_data import NodeDataRegistry
from .log_utils import DiagnosticsHandler, attach_diagnostics_sink, detach_diagnostics_sink

__all__ = [
    "ControlGenError",
    "DefinitionError",
    "DefinitionWarning",
    "ConstructionFailure",
    "HandlerFailure",
    "TemplateExpressionError",
    "ControlDestroyedError",
    "CompoundSelector",
    "parse_selector",
    "matches_selector",
    "NodeDataRegistry",
    "DiagnosticsHandler",
    "attach_diagnostics_sink",
    "detach_diagnostics_sink",
]
