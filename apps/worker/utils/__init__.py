"""Utility modules for the worker service."""

# flake8: noqa: E501


from apps.worker.utils.logger import (
    configure_from_settings,
    configure_logging,
    create_correlation_id,
    get_logger,
)

__all__ = [
    "configure_from_settings",
    "configure_logging",
    "create_correlation_id",
    "get_logger",
]
