"""Base configuration class for control generation.

Provides hooks for applications to customize runtime behavior.
"""

from typing import Any, Dict, Optional
from dataclasses import dataclass, field


def _default_context() -> Dict[str, Any]:
    return {
        "UserName": "John Doe",
        "UserID": "U001",
        "AppVersion": "2.1.0",
        "StoreName": "ABC Store",
        "StoreID": "STR001",
        "TerminalID": "T001",
    }


@dataclass
class ControlGenConfig:
    """Base configuration for control generation behavior.

    Applications can subclass this to provide custom configuration.

    Attributes:
        history_size: Number of store mutations kept in the history log
        template_cache_size: Maximum number of cached template renders
        template_cache_enabled: Whether template renders are cached at all
        uid_prefix: Prefix for generated control UIDs
        uid_max: Upper bound of the random part of generated UIDs
        uid_max_attempts: Collision retries before falling back to a uuid suffix
        tax_rate: Tax rate applied by transaction controls
        default_context: Initial template context (date/time keys are added at runtime)
        logger_name: Root logger name used for diagnostics
        clock_interval_ms: Refresh interval of the context clock
    """

    history_size: int = 50
    template_cache_size: int = 1000
    template_cache_enabled: bool = True
    uid_prefix: str = "control"
    uid_max: int = 1000000
    uid_max_attempts: int = 100
    tax_rate: float = 0.08
    default_context: Dict[str, Any] = field(default_factory=_default_context)
    logger_name: str = "pyqt_controlgen"
    clock_interval_ms: int = 1000


# Global config instance (set by application)
_control_config: Optional[ControlGenConfig] = None


def set_control_config(config: Optional[ControlGenConfig]) -> None:
    """Set the global control generation configuration.

    Args:
        config: ControlGenConfig instance, or None to restore defaults
    """
    global _control_config
    _control_config = config


def get_control_config() -> ControlGenConfig:
    """Get the current control generation configuration.

    Returns:
        Current ControlGenConfig or default if not set
    """
    if _control_config is None:
        return ControlGenConfig()
    return _control_config
