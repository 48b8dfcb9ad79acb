"""
SessionManager for minitelnet, handling connection setup and teardown.
"""

import asyncio
import logging
from asyncio import StreamReader, StreamWriter
from typing import Optional, Tuple

from .exceptions import NotConnectedError, TimeoutError
from .protocol.errors import safe_socket_operation
from .utils.logging_utils import log_connection_event

logger = logging.getLogger(__name__)


class SessionManager:
    """
    Owner of the single TCP connection behind a session.

    The connection is exposed as two halves: ``reader`` (StreamReader) and
    ``writer`` (StreamWriter). Both live as long as the manager keeps the
    connection open.
    """

    def __init__(
        self,
        host: Optional[str] = None,
        port: int = 23,
        connect_timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.connect_timeout = connect_timeout
        self.reader: Optional[StreamReader] = None
        self.writer: Optional[StreamWriter] = None
        self.connected: bool = False

    async def setup_connection(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
    ) -> None:
        """
        Establish the socket connection within ``connect_timeout``.

        Overrides host/port if provided.

        Raises:
            ValueError: If no host is known.
            TimeoutError: With phase ``connect`` when the deadline expires.
            TransportError: If the connection attempt fails.
        """
        if host is not None:
            self.host = host
        if port is not None:
            self.port = port
        if not self.host:
            raise ValueError(
                "Host must be provided either at initialization or in setup_connection call."
            )
        log_connection_event(logger, "Connecting", self.host, self.port)
        async with safe_socket_operation(
            "connect", context={"host": self.host, "port": self.port}
        ):
            try:
                self.reader, self.writer = await asyncio.wait_for(
                    asyncio.open_connection(self.host, self.port),
                    timeout=self.connect_timeout,
                )
            except asyncio.TimeoutError:
                raise TimeoutError(
                    "connect", context={"host": self.host, "port": self.port}
                ) from None
        self.connected = True
        log_connection_event(logger, "Connected", self.host, self.port)

    def attach(self, reader: StreamReader, writer: StreamWriter) -> None:
        """Adopt an already open pair of stream halves."""
        self.reader = reader
        self.writer = writer
        self.connected = True

    def halves(self) -> Tuple[StreamReader, StreamWriter]:
        """Return the (reader, writer) halves of the open connection."""
        if not self.connected or self.reader is None or self.writer is None:
            raise NotConnectedError("Session not connected.")
        return self.reader, self.writer

    async def teardown_connection(self) -> None:
        """Close the socket connection and reset state."""
        if self.writer:
            writer = self.writer
            self.writer = None
            writer.close()
            try:
                await writer.wait_closed()
            except ConnectionError as e:
                logger.debug(f"[CONNECTION] Peer already gone while closing: {e}")
        self.reader = None
        if self.connected:
            log_connection_event(logger, "Disconnected", self.host or "", self.port)
        self.connected = False
