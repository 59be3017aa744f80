"""
Diagnostics logging utilities.

The diagnostics sink is an optional line-oriented target (a list, a text
widget appender, a file's write method...) fed through the standard logging
machinery. Attaching or detaching it never changes functional behavior.
"""

import logging
import time
from typing import Callable, Optional

from pyqt_controlgen.protocols import get_control_config

logger = logging.getLogger(__name__)

LineSink = Callable[[str], None]


class DiagnosticsFormatter(logging.Formatter):
    """Formats records as '[HH:MM:SS] [TYPE] message'."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = time.strftime("%H:%M:%S", time.localtime(record.created))
        event_type = getattr(record, "event_type", record.levelname)
        return f"[{timestamp}] [{str(event_type).upper()}] {record.getMessage()}"


class DiagnosticsHandler(logging.Handler):
    """Logging handler that forwards formatted lines to a sink callable."""

    def __init__(self, sink: LineSink, level: int = logging.DEBUG):
        super().__init__(level)
        self.sink = sink
        self.setFormatter(DiagnosticsFormatter())

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.sink(self.format(record))
        except Exception:
            self.handleError(record)


def attach_diagnostics_sink(sink: LineSink, level: int = logging.DEBUG,
                            logger_name: Optional[str] = None) -> DiagnosticsHandler:
    """
    Route framework log records to sink.

    Args:
        sink: Callable receiving one formatted line per record
        level: Minimum level forwarded
        logger_name: Logger to attach to (defaults to the configured root logger name)

    Returns:
        The installed handler, for detach_diagnostics_sink()
    """
    name = logger_name or get_control_config().logger_name
    target_logger = logging.getLogger(name)
    handler = DiagnosticsHandler(sink, level)
    target_logger.addHandler(handler)
    if target_logger.level == logging.NOTSET or target_logger.level > level:
        target_logger.setLevel(level)
    logger.debug(f"Diagnostics sink attached to '{name}'")
    return handler


def detach_diagnostics_sink(handler: DiagnosticsHandler, logger_name: Optional[str] = None) -> None:
    name = logger_name or get_control_config().logger_name
    logging.getLogger(name).removeHandler(handler)
