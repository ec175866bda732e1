"""
Structured logging module.

Provides JSON logging with batch context propagation.

Import directly from sub-modules or from here:
    from core.logging import setup_logging, log_with_context
"""

from core.logging.context import (
    clear_log_context,
    get_log_context,
    log_context,
    set_log_context,
)
from core.logging.formatters import ConsoleFormatter, JSONFormatter
from core.logging.setup import generate_batch_id, get_logger, setup_logging
from core.logging.utilities import log_exception, log_with_context

__all__ = [
    "setup_logging",
    "get_logger",
    "generate_batch_id",
    "set_log_context",
    "get_log_context",
    "clear_log_context",
    "log_context",
    "JSONFormatter",
    "ConsoleFormatter",
    "log_with_context",
    "log_exception",
]
