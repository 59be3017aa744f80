"""Periodic refresh of date/time template context."""

import logging
from datetime import datetime
from typing import Optional

from PyQt6.QtCore import QTimer

from pyqt_controlgen.protocols.control_config import get_control_config
from pyqt_controlgen.services.template_engine import TemplateEngine

logger = logging.getLogger(__name__)


class ContextClock:
    """
    Keeps CurrentDate/CurrentTime in a TemplateEngine context up to date.

    Each tick is an ordinary context update: watchers fire and cache entries
    mentioning the keys are invalidated.

    Usage:
        clock = ContextClock(session.templates)
        clock.start()
        ...
        clock.stop()
    """

    def __init__(self, engine: TemplateEngine, interval_ms: Optional[int] = None):
        self._engine = engine
        self._interval_ms = interval_ms if interval_ms is not None else get_control_config().clock_interval_ms
        self._timer: Optional[QTimer] = None

    @property
    def running(self) -> bool:
        return self._timer is not None and self._timer.isActive()

    def start(self) -> None:
        """Start periodic refresh (restarts if already running)."""
        self.stop()
        self.tick()
        self._timer = QTimer()
        self._timer.timeout.connect(self.tick)
        self._timer.start(self._interval_ms)
        logger.debug(f"Context clock started ({self._interval_ms} ms)")

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.stop()
            self._timer = None

    def tick(self) -> None:
        now = datetime.now()
        self._engine.update_context({
            "CurrentDate": now.strftime("%x"),
            "CurrentTime": now.strftime("%X"),
        })
