"""
Protocol definitions.

The render target ABC every surface adapter implements, and the
application-level configuration hook.
"""

from .render_target import RenderTarget
from .control_config import ControlGenConfig, set_control_config, get_control_config

__all__ = [
    "RenderTarget",
    "ControlGenConfig",
    "set_control_config",
    "get_control_config",
]
