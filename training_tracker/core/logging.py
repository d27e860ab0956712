"""Structured logging configuration.

Provides JSON-formatted logs carrying mapping context (source and target types,
field paths) so mapper failures can be traced back to the offending field.
"""
import logging
import json
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import traceback

from training_tracker.core.config import settings


CONTEXT_FIELDS = ("source_type", "target_type", "field", "path", "component")


class JSONFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging.

    Outputs logs in JSON format for easy parsing by log aggregation services.
    Includes timestamp, level, message, module, function, and mapping context.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON string.

        Args:
            record: LogRecord to format

        Returns:
            JSON string with log data
        """
        log_obj: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # Add exception info if present
        if record.exc_info:
            log_obj["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info)
            }

        # Add mapping context if available
        for attr in CONTEXT_FIELDS:
            if hasattr(record, attr):
                log_obj[attr] = getattr(record, attr)

        return json.dumps(log_obj, default=str)


class ContextLogger(logging.LoggerAdapter):
    """Logger adapter that includes context in all log messages.

    Example:
        >>> logger = ContextLogger(base_logger, {"component": "domain_mapper"})
        >>> logger.debug("Mapping started")
        # Output includes component automatically
    """

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        """Process log message and add context.

        Args:
            msg: Log message
            kwargs: Additional keyword arguments

        Returns:
            Tuple of (message, kwargs) with context added
        """
        extra = dict(self.extra)
        extra.update(kwargs.get('extra') or {})
        kwargs['extra'] = extra
        return msg, kwargs


def setup_logging(
    level: Optional[str] = None,
    json_format: Optional[bool] = None,
) -> logging.Logger:
    """Configure application-wide logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL), defaults to
            LOG_LEVEL from settings
        json_format: Whether to use JSON formatter, defaults to LOG_JSON
            from settings

    Returns:
        Configured root logger

    Example:
        >>> logger = setup_logging(level="DEBUG", json_format=True)
        >>> logger.info("Mapper ready")
    """
    if level is None:
        level = settings.log_level
    if json_format is None:
        json_format = settings.log_json

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    # Replace handlers installed by a previous call
    for handler in list(root_logger.handlers):
        if getattr(handler, "_training_tracker", False):
            root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, level.upper()))
    console_handler._training_tracker = True

    if json_format:
        formatter = JSONFormatter()
    else:
        # Human-readable format for development
        fmt = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        formatter = logging.Formatter(fmt)

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    return root_logger


def get_logger(name: str, context: Optional[Dict[str, Any]] = None) -> logging.Logger:
    """Get a logger with optional context.

    Args:
        name: Logger name (typically __name__ of module)
        context: Optional context dict to include in all logs

    Returns:
        Logger or ContextLogger if context provided
    """
    logger = logging.getLogger(name)

    if context:
        return ContextLogger(logger, context)

    return logger
