"""
Centralized error handling utilities for protocol operations.

Provides a context manager and helper functions that translate socket
failures and protocol violations into minitelnet exceptions, so the session
code does not repeat the same try/except blocks around every read and write.
"""

import asyncio
import logging
from typing import Any, Dict, NoReturn, Optional

from .exceptions import TransportError, UnexpectedProtocolItem

logger = logging.getLogger(__name__)


class safe_socket_operation:
    """
    Async context manager for socket operations.

    Catches OSError (other than timeouts, which callers map to a phase-tagged
    TimeoutError themselves); logs and raises TransportError chained to the
    original exception. Use for connect, read and write ops.
    """

    def __init__(
        self, operation: str, context: Optional[Dict[str, Any]] = None
    ) -> None:
        self.operation = operation
        self.context = context or {}

    def _translate(self, exc_type: Any, exc_val: Any) -> None:
        if exc_type is None or not issubclass(exc_type, OSError):
            return
        if issubclass(exc_type, asyncio.TimeoutError):
            return
        logger.error(f"Socket operation '{self.operation}' failed: {exc_val}", exc_info=True)
        context = dict(self.context, operation=self.operation)
        raise TransportError(
            f"Transport failure during {self.operation}: {exc_val}",
            context=context,
            original_exception=exc_val,
        ) from exc_val

    def __enter__(self) -> "safe_socket_operation":
        return self

    async def __aenter__(self) -> "safe_socket_operation":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self._translate(exc_type, exc_val)
        return None

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self._translate(exc_type, exc_val)
        return None


def raise_unexpected_item(item: Any, phase: str) -> NoReturn:
    """Log and raise UnexpectedProtocolItem for ``item`` seen during ``phase``."""
    logger.error(f"Unexpected protocol item during {phase}: {item!r}")
    raise UnexpectedProtocolItem(item, context={"phase": phase})
