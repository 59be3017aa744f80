"""Control framework exceptions."""

from typing import List, Optional


class ControlGenError(Exception):
    """Base class for all control framework errors."""


class DefinitionError(ControlGenError):
    """Raised when a control definition is malformed or invalid."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = list(errors or [])


class DefinitionWarning(UserWarning):
    """Warning category for recoverable definition issues."""


class ConstructionFailure(ControlGenError):
    """Raised when a control constructor fails or its type cannot be resolved."""


class HandlerFailure(ControlGenError):
    """Raised when an event handler throws while being dispatched."""


class TemplateExpressionError(ControlGenError):
    """Raised when a template expression is unsafe or malformed."""


class ControlDestroyedError(ControlGenError):
    """Raised when a destroyed control is used again."""
