"""
Centralized logging utilities for minitelnet.

Provides standardized logging functions for common scenarios to reduce duplication
and ensure consistent log formatting across the codebase.
"""

import logging
from typing import Any

__all__ = [
    "log_session_action",
    "log_session_error",
    "log_protocol_event",
    "log_negotiation_event",
    "log_debug_operation",
    "log_connection_event",
    "log_data_processing",
    "mask_secret",
]


def log_session_action(
    logger: logging.Logger, action_name: str, details: str = ""
) -> None:
    """Log the start of a login or command execution."""
    detail_str = f": {details}" if details else ""
    logger.info(f"Executing {action_name} action{detail_str}")


def log_session_error(
    logger: logging.Logger, action_name: str, error: Exception
) -> None:
    """Log a failed login or command execution, naming the error class."""
    logger.error(f"Error executing {action_name} action: {type(error).__name__}: {error}")


def log_protocol_event(
    logger: logging.Logger, event_type: str, details: str = ""
) -> None:
    """Log a prompt or state event seen on the Telnet stream."""
    detail_str = f": {details}" if details else ""
    logger.info(f"[PROTOCOL] {event_type}{detail_str}")


def log_negotiation_event(
    logger: logging.Logger, event_type: str, details: str = ""
) -> None:
    """Log how an option negotiation request was answered."""
    detail_str = f": {details}" if details else ""
    logger.info(f"[NEGOTIATION] {event_type}{detail_str}")


def log_debug_operation(
    logger: logging.Logger, operation: str, details: Any = None
) -> None:
    """Log debug information for operations."""
    if details is not None:
        logger.debug(f"{operation}: {details}")
    else:
        logger.debug(f"{operation}")


def log_connection_event(
    logger: logging.Logger, event_type: str, host: str = "", port: int = 0
) -> None:
    """Log connection events with consistent format."""
    if host and port:
        logger.info(f"[CONNECTION] {event_type} - {host}:{port}")
    else:
        logger.info(f"[CONNECTION] {event_type}")


def log_data_processing(
    logger: logging.Logger, operation: str, data_info: str = ""
) -> None:
    """Log raw bytes moving over the connection (DEBUG only)."""
    info_str = f" - {data_info}" if data_info else ""
    logger.debug(f"[DATA] {operation}{info_str}")


def mask_secret(secret: str) -> str:
    """Replace a credential with a fixed-width mask for log output."""
    return "***" if secret else ""
