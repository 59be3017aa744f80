"""
Shipped control implementations.

BUILTIN_CONTROLS maps every built-in type name to a provider returning its
control class. Types without a shipped implementation resolve to the base
Control until an application registers a provider for them.
"""

from typing import Callable, Dict, Optional, Type

from pyqt_controlgen.controls.base_control import Control
from pyqt_controlgen.controls.validation import VALID_CONTROL_TYPES

from .action_controls import ButtonControl
from .display_controls import LabelControl
from .input_controls import DropdownControl, NumericInputControl, TextBoxControl, ToggleControl
from .structural_controls import GridLayoutControl, PanelControl, SectionControl, TabControl
from .transaction_controls import CartGridControl, TotalsDisplayControl, calculate_totals

IMPLEMENTED_CONTROLS: Dict[str, Type[Control]] = {
    "panel": PanelControl,
    "section": SectionControl,
    "grid-layout": GridLayoutControl,
    "tab-control": TabControl,
    "textbox": TextBoxControl,
    "input": TextBoxControl,
    "numeric-input": NumericInputControl,
    "dropdown": DropdownControl,
    "toggle": ToggleControl,
    "button": ButtonControl,
    "label": LabelControl,
    "cart-grid": CartGridControl,
    "totals-display": TotalsDisplayControl,
}


def _provider(control_class: Type[Control]) -> Callable[[], Optional[Type[Control]]]:
    return lambda: control_class


BUILTIN_CONTROLS: Dict[str, Callable[[], Optional[Type[Control]]]] = {
    control_type: _provider(IMPLEMENTED_CONTROLS.get(control_type, Control))
    for control_type in sorted(VALID_CONTROL_TYPES | set(IMPLEMENTED_CONTROLS))
}

__all__ = [
    "BUILTIN_CONTROLS",
    "IMPLEMENTED_CONTROLS",
    "ButtonControl",
    "LabelControl",
    "TextBoxControl",
    "NumericInputControl",
    "DropdownControl",
    "ToggleControl",
    "PanelControl",
    "SectionControl",
    "GridLayoutControl",
    "TabControl",
    "CartGridControl",
    "TotalsDisplayControl",
    "calculate_totals",
]
