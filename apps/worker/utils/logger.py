"""Multi-destination logging for the worker: console and optional Syslog UDP.

Standard library loggers (used by ``shared`` and ``apps.services``) and
structlog loggers (used by the worker jobs) render through the same handlers.
Every record carries a correlation ID for tracing one job run.
"""

# flake8: noqa: E501


import logging
import socket
import sys
import uuid
from logging.handlers import SysLogHandler
from typing import Any, Optional

import structlog

_SHARED_PROCESSORS = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.UnicodeDecoder(),
]


class CorrelationIDFilter(logging.Filter):
    """Add correlation ID to log records for distributed tracing."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = "-"
        return True


def _formatter(renderer) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_SHARED_PROCESSORS + [structlog.stdlib.ExtraAdder()],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )


def configure_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    syslog_enabled: bool = False,
    syslog_host: str = "localhost",
    syslog_port: int = 514,
) -> None:
    """Configure console logging plus optional Syslog UDP.

    Console is always enabled, as JSON or human readable text.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    root_logger.handlers = []

    correlation_filter = CorrelationIDFilter()

    # 1. CONSOLE HANDLER (always enabled)
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG)
    if log_format == "json":
        console_handler.setFormatter(_formatter(structlog.processors.JSONRenderer()))
    else:
        console_handler.setFormatter(_formatter(structlog.dev.ConsoleRenderer(colors=False)))
    console_handler.addFilter(correlation_filter)
    root_logger.addHandler(console_handler)

    # 2. SYSLOG UDP HANDLER (optional)
    if syslog_enabled:
        try:
            syslog_handler = SysLogHandler(
                address=(syslog_host, syslog_port),
                socktype=socket.SOCK_DGRAM,
            )
            syslog_handler.setLevel(logging.INFO)
            syslog_handler.setFormatter(
                _formatter(structlog.processors.KeyValueRenderer(key_order=["event", "level", "logger"]))
            )
            syslog_handler.addFilter(correlation_filter)
            root_logger.addHandler(syslog_handler)
            root_logger.info(f"Syslog UDP logging enabled: {syslog_host}:{syslog_port}")
        except OSError as e:
            root_logger.error(f"Failed to configure Syslog UDP handler: {e}")

    # Configure structlog to work with standard logging
    structlog.configure(
        processors=_SHARED_PROCESSORS + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_from_settings(settings) -> None:
    configure_logging(
        log_level=settings.log_level,
        log_format=settings.log_format,
        syslog_enabled=settings.syslog_enabled,
        syslog_host=settings.syslog_host,
        syslog_port=settings.syslog_port,
    )


def get_logger(name: str, correlation_id: Optional[str] = None) -> Any:
    """Get a configured logger instance with optional correlation ID.

    Args:
        name: Logger name (typically __name__)
        correlation_id: Optional correlation ID for distributed tracing

    Returns:
        Configured structlog logger with correlation context
    """
    logger = structlog.get_logger(name)

    if correlation_id:
        logger = logger.bind(correlation_id=correlation_id)

    return logger


def create_correlation_id() -> str:
    """Generate a new correlation ID for distributed tracing.

    Returns:
        UUID4 string for correlation tracking
    """
    return str(uuid.uuid4())
