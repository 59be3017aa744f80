"""
Control definition validation.

Structural and type-specific validation of definition trees, plus
sanitization: defaults are filled in, a missing UID is generated and
script-injection content is stripped from free-text fields. Validation
never raises; everything is reported through ValidationResult.

Errors in the "critical" subset (missing or unknown type at the top level)
block creation. All other errors and every warning only get logged.
"""

import copy
import logging
import math
import random
import re
import time
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional

logger = logging.getLogger(__name__)

REQUIRED_CONTROL_PROPERTIES = ("type",)

VALID_CONTROL_TYPES: FrozenSet[str] = frozenset({
    # Structural
    "panel", "tab-control", "grid-layout", "section", "splitter", "datagrid",
    # Input
    "textbox", "numeric-input", "password", "barcode-input", "dropdown",
    "datepicker", "toggle", "search-bar",
    # Action
    "button", "button-pad", "menu-button", "shortcut-keys",
    # Display
    "label", "message-box", "status-bar", "notification-area", "image",
    # Transaction
    "cart-grid", "totals-display", "payment-control", "change-due-display",
    "customer-info-panel",
    # Special
    "price-checker", "signature-pad", "receipt-preview", "scale-input",
    "cash-drawer", "device-control", "context-menu",
})

ALLOWED_PROPERTIES = (
    "type", "UID", "title", "text", "placeholder", "value", "disabled",
    "visible", "props", "state", "style", "children",
)

BUTTON_VARIANTS = ("primary", "secondary", "destructive", "outline", "ghost", "default")
BUTTON_SIZES = ("sm", "default", "lg")
LABEL_VARIANTS = ("heading", "subtitle", "caption", "default")
DEVICE_TYPES = ("printer", "scanner", "scale", "terminal", "display")

BOOLEAN_FIELDS = ("disabled", "visible")
STRING_FIELDS = ("title", "text", "placeholder", "value")
SANITIZED_FIELDS = ("title", "text", "placeholder")

UID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")
SCRIPT_PATTERN = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
JAVASCRIPT_URI_PATTERN = re.compile(r"javascript:", re.IGNORECASE)

CRITICAL_ERROR_PREFIXES = (
    "Control definition must be an object",
    "Missing required property: type",
    "Invalid control type",
)


@dataclass
class ValidationResult:
    """Outcome of validating one definition tree."""
    is_valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    sanitized_definition: Optional[Dict[str, Any]] = None

    @property
    def critical_errors(self) -> List[str]:
        """Errors that block creation (child errors are prefixed and never critical)."""
        return [error for error in self.errors if error.startswith(CRITICAL_ERROR_PREFIXES)]


@dataclass
class RuntimeValidation:
    """Outcome of validating one runtime property value."""
    is_valid: bool = True
    error: Optional[str] = None
    sanitized_value: Any = None


# ========== HELPERS ==========

def is_valid_uid(uid: Any) -> bool:
    return isinstance(uid, str) and bool(UID_PATTERN.match(uid))


def is_numeric(value: Any) -> bool:
    """True for finite numbers and strings that parse as one. Booleans are not numeric."""
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return math.isfinite(value)
    if isinstance(value, str):
        try:
            return math.isfinite(float(value))
        except ValueError:
            return False
    return False


def is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 1


def is_valid_date(value: Any) -> bool:
    if isinstance(value, (date, datetime)):
        return True
    if not isinstance(value, str):
        return False
    try:
        datetime.fromisoformat(value)
        return True
    except ValueError:
        return False


def sanitize_string(value: Any) -> Any:
    """Strip script tags and javascript: URIs. Non-strings pass through."""
    if not isinstance(value, str):
        return value
    value = SCRIPT_PATTERN.sub("", value)
    value = JAVASCRIPT_URI_PATTERN.sub("", value)
    return value.strip()


def generate_uid(control_type: Any = "control") -> str:
    return f"{control_type or 'control'}-{int(time.time() * 1000)}-{random.randrange(1000)}"


class DefinitionValidator:
    """
    Validates and sanitizes control definitions.

    Args:
        known_types: Callable returning the currently known type names
            (defaults to the built-in set)
        uid_generator: Callable producing a UID for a control type when the
            definition has none
    """

    def __init__(self, known_types: Optional[Callable[[], Iterable[str]]] = None,
                 uid_generator: Optional[Callable[[Any], str]] = None):
        self._known_types = known_types or (lambda: VALID_CONTROL_TYPES)
        self._uid_generator = uid_generator or generate_uid
        self._type_rules: Dict[str, Callable[[Dict[str, Any], ValidationResult], None]] = {
            "button": self._validate_button,
            "grid-layout": self._validate_grid_layout,
            "dropdown": self._validate_dropdown,
            "numeric-input": self._validate_numeric_input,
            "datagrid": self._validate_datagrid,
            "device-control": self._validate_device_control,
            "cart-grid": self._validate_cart_grid,
            "label": self._validate_label,
        }

    def known_types(self) -> FrozenSet[str]:
        return frozenset(self._known_types())

    def validate_control_definition(self, definition: Any) -> ValidationResult:
        """
        Validate a definition and its children.

        Returns:
            ValidationResult; is_valid is True iff no errors were collected
            anywhere in the tree
        """
        result = ValidationResult()

        try:
            sanitized = copy.deepcopy(definition)

            if not isinstance(sanitized, Mapping):
                result.errors.append("Control definition must be an object")
                result.is_valid = False
                return result

            sanitized = dict(sanitized)
            self._validate_basic_structure(sanitized, result)
            self._validate_type_specific(sanitized, result)
            self._validate_properties(sanitized, result)
            self._validate_children(sanitized, result)
            self._validate_style(sanitized, result)
            self._apply_sanitization(sanitized, result)

            result.sanitized_definition = sanitized
            result.is_valid = not result.errors
        except Exception as e:
            logger.exception("Definition validation failed")
            result.errors.append(f"Validation failed: {e}")
            result.is_valid = False

        return result

    # ========== STRUCTURE ==========

    def _validate_basic_structure(self, definition: Dict[str, Any], result: ValidationResult) -> None:
        for prop in REQUIRED_CONTROL_PROPERTIES:
            if prop not in definition:
                result.errors.append(f"Missing required property: {prop}")

        control_type = definition.get("type")
        if "type" in definition:
            known = self.known_types()
            if not isinstance(control_type, str) or control_type not in known:
                result.errors.append(
                    f"Invalid control type: {control_type}. Valid types: {', '.join(sorted(known))}"
                )

        uid = definition.get("UID")
        if uid and not is_valid_uid(uid):
            result.warnings.append(
                f'UID "{uid}" should be a valid identifier (alphanumeric, hyphens, underscores)'
            )

        for prop in definition:
            if prop not in ALLOWED_PROPERTIES:
                result.warnings.append(f"Unexpected property: {prop}")

    def _validate_type_specific(self, definition: Dict[str, Any], result: ValidationResult) -> None:
        rule = self._type_rules.get(definition.get("type")) if isinstance(definition.get("type"), str) else None
        if rule is not None:
            rule(definition, result)

    def _validate_properties(self, definition: Dict[str, Any], result: ValidationResult) -> None:
        if "props" in definition and definition["props"] is not None and not isinstance(definition["props"], Mapping):
            result.errors.append("Props must be an object")

        for prop in BOOLEAN_FIELDS:
            if prop in definition and not isinstance(definition[prop], bool):
                result.warnings.append(f"Property {prop} should be boolean")

        for prop in STRING_FIELDS:
            if prop in definition and not isinstance(definition[prop], str):
                result.warnings.append(f"Property {prop} should be string")

        if "state" in definition and definition["state"] is not None and not isinstance(definition["state"], Mapping):
            result.errors.append("State must be an object")

    def _validate_children(self, definition: Dict[str, Any], result: ValidationResult) -> None:
        children = definition.get("children")
        if not children:
            return
        if not isinstance(children, list):
            result.errors.append("Children must be an array")
            return

        for index, child in enumerate(children):
            child_result = self.validate_control_definition(child)
            result.errors.extend(f"Child at index {index}: {error}" for error in child_result.errors)
            result.warnings.extend(f"Child at index {index}: {warning}" for warning in child_result.warnings)

    @staticmethod
    def _validate_style(definition: Dict[str, Any], result: ValidationResult) -> None:
        if "style" in definition and definition["style"] is not None and not isinstance(definition["style"], Mapping):
            result.errors.append("Style must be an object")

    def _apply_sanitization(self, definition: Dict[str, Any], result: ValidationResult) -> None:
        if not definition.get("UID"):
            definition["UID"] = self._uid_generator(definition.get("type"))
            result.warnings.append(f"Generated UID: {definition['UID']}")

        definition.setdefault("disabled", False)
        definition.setdefault("visible", True)
        if not definition.get("props"):
            definition["props"] = {}

        for prop in SANITIZED_FIELDS:
            if definition.get(prop):
                definition[prop] = sanitize_string(definition[prop])

    # ========== TYPE RULES ==========

    @staticmethod
    def _props(definition: Dict[str, Any]) -> Mapping[str, Any]:
        props = definition.get("props")
        return props if isinstance(props, Mapping) else {}

    def _validate_button(self, definition: Dict[str, Any], result: ValidationResult) -> None:
        props = self._props(definition)
        variant = props.get("variant")
        size = props.get("size")

        if variant and variant not in BUTTON_VARIANTS:
            result.errors.append(f"Invalid button variant: {variant}. Valid variants: {', '.join(BUTTON_VARIANTS)}")
        if size and size not in BUTTON_SIZES:
            result.errors.append(f"Invalid button size: {size}. Valid sizes: {', '.join(BUTTON_SIZES)}")

        if not definition.get("text") and not props.get("icon"):
            result.warnings.append("Button should have either text or icon")

    @staticmethod
    def _validate_grid_layout(definition: Dict[str, Any], result: ValidationResult) -> None:
        style = definition.get("style")
        if not isinstance(style, Mapping):
            return

        rows = style.get("rows")
        columns = style.get("columns")
        if rows is not None and not is_positive_int(rows):
            result.errors.append("Grid rows must be a positive integer")
        if columns is not None and not is_positive_int(columns):
            result.errors.append("Grid columns must be a positive integer")

        children = definition.get("children")
        if isinstance(children, list) and is_positive_int(rows) and is_positive_int(columns):
            capacity = rows * columns
            if len(children) > capacity:
                result.warnings.append(
                    f"Grid has {len(children)} children but only {capacity} cells ({rows}x{columns})"
                )

    def _validate_dropdown(self, definition: Dict[str, Any], result: ValidationResult) -> None:
        props = self._props(definition)
        if "options" not in props or props["options"] is None:
            result.errors.append("Dropdown must have options in props")
            return

        options = props["options"]
        if not isinstance(options, list):
            result.errors.append("Dropdown options must be an array")
            return

        if not options:
            result.warnings.append("Dropdown has no options")

        for index, option in enumerate(options):
            if isinstance(option, Mapping):
                if "value" not in option or "label" not in option:
                    result.errors.append(f"Dropdown option at index {index} must have 'value' and 'label' properties")
            elif not isinstance(option, str):
                result.errors.append(f"Dropdown option at index {index} must be a string or object with value/label")

    def _validate_numeric_input(self, definition: Dict[str, Any], result: ValidationResult) -> None:
        props = self._props(definition)
        minimum = props.get("min")
        maximum = props.get("max")
        step = props.get("step")

        if minimum is not None and not is_numeric(minimum):
            result.errors.append("Numeric input min must be a number")
        if maximum is not None and not is_numeric(maximum):
            result.errors.append("Numeric input max must be a number")
        if is_numeric(minimum) and is_numeric(maximum) and float(minimum) > float(maximum):
            result.errors.append("Numeric input min cannot be greater than max")
        if step is not None and (not is_numeric(step) or float(step) <= 0):
            result.errors.append("Numeric input step must be a positive number")

        if "value" in definition and not is_numeric(definition["value"]):
            result.warnings.append("Numeric input value should be numeric")

    def _validate_datagrid(self, definition: Dict[str, Any], result: ValidationResult) -> None:
        props = self._props(definition)
        columns = props.get("columns")
        if not columns:
            result.errors.append("DataGrid must have columns in props")
            return
        if not isinstance(columns, list):
            result.errors.append("DataGrid columns must be an array")
            return

        for index, column in enumerate(columns):
            if not isinstance(column, Mapping) or not column.get("key") or not column.get("title"):
                result.errors.append(f"DataGrid column at index {index} must have 'key' and 'title' properties")

        data = props.get("data")
        if data and not isinstance(data, list):
            result.errors.append("DataGrid data must be an array")

    def _validate_device_control(self, definition: Dict[str, Any], result: ValidationResult) -> None:
        device_type = self._props(definition).get("deviceType")
        if device_type and device_type not in DEVICE_TYPES:
            result.errors.append(f"Invalid device type: {device_type}. Valid types: {', '.join(DEVICE_TYPES)}")

    def _validate_cart_grid(self, definition: Dict[str, Any], result: ValidationResult) -> None:
        items = self._props(definition).get("items")
        if not items:
            return
        if not isinstance(items, list):
            result.errors.append("Cart items must be an array")
            return

        for index, item in enumerate(items):
            if not isinstance(item, Mapping):
                result.errors.append(f"Cart item at index {index} must be an object")
                continue
            for required in ("id", "name", "price"):
                if required not in item:
                    result.errors.append(f"Cart item at index {index} missing required field: {required}")
            if "price" in item and not is_numeric(item["price"]):
                result.errors.append(f"Cart item at index {index} price must be numeric")
            quantity = item.get("quantity")
            if "quantity" in item and not (isinstance(quantity, int) and not isinstance(quantity, bool) and quantity >= 0):
                result.errors.append(f"Cart item at index {index} quantity must be a non-negative integer")

    def _validate_label(self, definition: Dict[str, Any], result: ValidationResult) -> None:
        variant = self._props(definition).get("variant")
        if variant and variant not in LABEL_VARIANTS:
            result.errors.append(f"Invalid label variant: {variant}. Valid variants: {', '.join(LABEL_VARIANTS)}")

    # ========== RUNTIME VALUES ==========

    @staticmethod
    def validate_runtime_value(control_type: str, prop: str, value: Any) -> RuntimeValidation:
        """
        Validate a value assigned to a live control.

        Args:
            control_type: Control type name
            prop: Property being assigned ("value", "checked", ...)
            value: Candidate value

        Returns:
            RuntimeValidation with the value to actually apply
        """
        result = RuntimeValidation(sanitized_value=value)

        if control_type == "numeric-input":
            if prop == "value" and value != "" and value is not None and not is_numeric(value):
                result.is_valid = False
                result.error = "Value must be numeric"
                result.sanitized_value = ""
        elif control_type == "datepicker":
            if prop == "value" and value and not is_valid_date(value):
                result.is_valid = False
                result.error = "Value must be a valid date"
                result.sanitized_value = ""
        elif control_type == "toggle":
            if prop == "checked" and not isinstance(value, bool):
                result.sanitized_value = bool(value)
        elif isinstance(value, str):
            result.sanitized_value = sanitize_string(value)

        return result
