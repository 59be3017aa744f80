"""
Control factory with an open, string-keyed type registry.

Design:
- Built-in types map to providers of the shipped control classes
  (initialized lazily on first factory construction)
- register_control()/unregister_control() extend the registry at runtime
- Every definition is validated first; only critical errors block creation
- Unknown types and failing constructors degrade to the base Control
"""

import copy
import json
import logging
import re
import warnings
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Type, TYPE_CHECKING

from pyqt_controlgen.controls.base_control import Control
from pyqt_controlgen.controls.validation import VALID_CONTROL_TYPES, ValidationResult
from pyqt_controlgen.core.exceptions import ConstructionFailure, DefinitionError, DefinitionWarning

if TYPE_CHECKING:
    from pyqt_controlgen.controls.session import ControlSession

logger = logging.getLogger(__name__)

ControlProvider = Callable[[], Optional[Type[Control]]]

# Built-in type -> provider mapping, filled on first use
BUILTIN_CONTROL_REGISTRY: Dict[str, ControlProvider] = {}

TEMPLATE_PLACEHOLDER = re.compile(r"#\{(\w+)\}")

CONTROL_CATEGORIES = {
    "panel": "structural",
    "tab-control": "structural",
    "grid-layout": "structural",
    "section": "structural",
    "splitter": "structural",
    "datagrid": "structural",

    "textbox": "input",
    "input": "input",
    "numeric-input": "input",
    "password": "input",
    "barcode-input": "input",
    "dropdown": "input",
    "datepicker": "input",
    "toggle": "input",

    "button": "action",
    "button-pad": "action",
    "menu-button": "action",
    "shortcut-keys": "action",

    "label": "display",
    "message-box": "display",
    "status-bar": "display",
    "notification-area": "display",
    "image": "display",

    "cart-grid": "transaction",
    "totals-display": "transaction",
    "payment-control": "transaction",
    "change-due-display": "transaction",
    "customer-info-panel": "transaction",

    "price-checker": "special",
    "signature-pad": "special",
    "receipt-preview": "special",
    "scale-input": "special",
    "cash-drawer": "special",
    "device-control": "special",
    "context-menu": "special",
    "search-bar": "special",
}

CONTROL_DESCRIPTIONS = {
    "panel": "Container control with optional header",
    "tab-control": "Tabbed interface for organizing content",
    "grid-layout": "Grid layout container",
    "section": "Simple grouping container",
    "splitter": "Resizable panes with splitter handle",
    "datagrid": "Data table with sorting capabilities",

    "textbox": "Basic text input field",
    "input": "Alias for textbox control",
    "numeric-input": "Number input with validation",
    "password": "Password input with toggle visibility",
    "barcode-input": "Specialized barcode scanner input",
    "dropdown": "Select dropdown menu",
    "datepicker": "Date selection input",
    "toggle": "Switch/toggle control",

    "button": "Action button with multiple variants",
    "button-pad": "Grid of buttons",
    "menu-button": "Button with dropdown menu",
    "shortcut-keys": "Keyboard shortcut handler",

    "label": "Text display with styling variants",
    "message-box": "Modal dialog for messages",
    "status-bar": "Application status display",
    "notification-area": "Toast notification container",
    "image": "Image display control",

    "cart-grid": "Shopping cart items display",
    "totals-display": "Transaction totals calculator",
    "payment-control": "Payment method selection",
    "change-due-display": "Change calculation display",
    "customer-info-panel": "Customer information display",

    "price-checker": "Product price lookup",
    "signature-pad": "Digital signature capture",
    "receipt-preview": "Transaction receipt display",
    "scale-input": "Weight-based input with pricing",
    "cash-drawer": "Cash drawer control button",
    "device-control": "Generic device interface",
    "context-menu": "Right-click context menu",
    "search-bar": "Product search with dropdown results",
}


def _init_control_type_registry() -> None:
    """Populate BUILTIN_CONTROL_REGISTRY from the shipped widgets."""
    if BUILTIN_CONTROL_REGISTRY:
        # Already initialized
        return

    from pyqt_controlgen.widgets import BUILTIN_CONTROLS

    BUILTIN_CONTROL_REGISTRY.update(BUILTIN_CONTROLS)
    logger.debug(f"Initialized BUILTIN_CONTROL_REGISTRY with {len(BUILTIN_CONTROL_REGISTRY)} types")


def replace_context_placeholders(text: str, context: Mapping[str, Any]) -> str:
    """Replace #{key} with context[key], leaving unknown keys verbatim."""
    return TEMPLATE_PLACEHOLDER.sub(
        lambda match: str(context[match.group(1)]) if context.get(match.group(1)) is not None else match.group(0),
        text,
    )


def apply_context_to_definition(value: Any, context: Mapping[str, Any]) -> Any:
    """Recursively substitute #{key} placeholders in every string of a definition."""
    if isinstance(value, str):
        return replace_context_placeholders(value, context)
    if isinstance(value, Mapping):
        return {key: apply_context_to_definition(item, context) for key, item in value.items()}
    if isinstance(value, list):
        return [apply_context_to_definition(item, context) for item in value]
    return value


class ControlFactory:
    """
    Turns definitions into live controls for one session.

    Example:
        factory = session.factory
        button = factory.create({"type": "button", "UID": "ok", "text": "OK"})

        # Register a custom control
        factory.register_control("rating", lambda: RatingControl)
    """

    def __init__(self, session: "ControlSession"):
        _init_control_type_registry()
        self.session = session
        self.control_types: Dict[str, ControlProvider] = dict(BUILTIN_CONTROL_REGISTRY)

    # ========== CREATION ==========

    def create(self, definition: Any, strict: bool = False) -> Optional[Control]:
        """
        Create a control from a definition.

        Args:
            definition: Control definition mapping
            strict: Raise DefinitionError on any validation error instead of
                only refusing critical ones

        Returns:
            The control, a degraded base Control, or None when the
            definition has no usable type
        """
        if not isinstance(definition, Mapping) or not definition.get("type"):
            logger.error(f"Invalid control definition: {definition!r}")
            if strict:
                raise DefinitionError("Control definition must be a mapping with a type")
            return None

        validation = self.validate_definition(definition)
        control_type = definition.get("type")

        if not validation.is_valid:
            logger.error(f"Control validation failed for {control_type}: {validation.errors}")
            if strict:
                raise DefinitionError(f"Invalid definition for {control_type}", validation.errors)
            if validation.critical_errors:
                return None

        if validation.warnings:
            logger.warning(f"Control validation warnings for {control_type}: {validation.warnings}")
            if strict:
                for message in validation.warnings:
                    warnings.warn(f"{control_type}: {message}", DefinitionWarning, stacklevel=2)

        sanitized = validation.sanitized_definition or dict(definition)
        control = self._construct(sanitized, strict)
        if control is not None:
            control.validation_result = validation
        return control

    def _construct(self, definition: Dict[str, Any], strict: bool = False) -> Optional[Control]:
        control_type = definition["type"]
        provider = self.control_types.get(control_type)

        if provider is None:
            logger.warning(f"Unknown control type: {control_type}. Falling back to base control")
            return self._create_fallback(definition, ConstructionFailure(f"Unknown control type: {control_type}"))

        try:
            control_class = provider()
        except Exception as e:
            logger.exception(f"Provider for {control_type} failed")
            failure = ConstructionFailure(f"Provider for {control_type} failed: {e}")
            failure.__cause__ = e
            if strict:
                raise failure
            return self._create_fallback(definition, failure)

        if control_class is None:
            logger.error(f"Control class not found for type: {control_type}")
            failure = ConstructionFailure(f"Control class not found for type: {control_type}")
            if strict:
                raise failure
            return self._create_fallback(definition, failure)

        try:
            control = control_class(definition, session=self.session)
        except Exception as e:
            logger.exception(f"Error creating control of type {control_type}")
            failure = ConstructionFailure(f"Error creating {control_type}: {e}")
            failure.__cause__ = e
            if strict:
                raise failure
            return self._create_fallback(definition, failure)

        logger.debug(f"Created control: {control_type} ({control.UID})")
        return control

    def _create_fallback(self, definition: Dict[str, Any], failure: ConstructionFailure) -> Optional[Control]:
        """Degrade to the base Control, keeping the failure that caused it on construction_failure."""
        try:
            control = Control(definition, session=self.session)
        except Exception:
            logger.exception("Failed to create fallback control")
            return None
        control.construction_failure = failure
        return control

    def create_from_template(self, template: Any, context: Optional[Mapping[str, Any]] = None) -> Optional[Control]:
        """Clone template, substitute #{key} placeholders from context, then create()."""
        if not template:
            logger.error("Template is required")
            return None

        definition = apply_context_to_definition(copy.deepcopy(template), context or {})
        return self.create(definition)

    def create_batch(self, definitions: Any) -> List[Control]:
        """Create every definition independently; failures are skipped."""
        if not isinstance(definitions, list):
            logger.error("Definitions must be a list")
            return []

        controls = []
        for index, definition in enumerate(definitions):
            try:
                control = self.create(definition)
                if control is not None:
                    controls.append(control)
            except Exception:
                logger.exception(f"Error creating control at index {index}")
        return controls

    def create_from_json(self, text: str) -> Optional[Control]:
        """Create a control from a JSON definition document."""
        try:
            definition = json.loads(text)
        except json.JSONDecodeError as e:
            logger.error(f"Invalid definition JSON: {e}")
            return None
        return self.create(definition)

    # ========== REGISTRY ==========

    def register_control(self, control_type: str, provider: ControlProvider) -> bool:
        if not callable(provider):
            logger.error("Control provider must be callable")
            return False
        self.control_types[control_type] = provider
        logger.debug(f"Registered control type: {control_type}")
        return True

    def unregister_control(self, control_type: str) -> bool:
        if control_type in self.control_types:
            del self.control_types[control_type]
            logger.debug(f"Unregistered control type: {control_type}")
            return True
        return False

    def get_available_types(self) -> List[str]:
        return list(self.control_types)

    def is_valid_type(self, control_type: str) -> bool:
        return control_type in self.control_types

    def known_types(self) -> Iterable[str]:
        """Types the validator accepts: the built-in set plus anything registered."""
        return VALID_CONTROL_TYPES | set(self.control_types)

    def validate_definition(self, definition: Any) -> ValidationResult:
        return self.session.validator.validate_control_definition(definition)

    def get_control_info(self, control_type: str) -> Optional[Dict[str, Any]]:
        if not self.is_valid_type(control_type):
            return None
        return {
            "type": control_type,
            "available": True,
            "category": CONTROL_CATEGORIES.get(control_type, "unknown"),
            "description": CONTROL_DESCRIPTIONS.get(control_type, "No description available"),
        }
