"""
Mock Network Connection Handlers.

Provides stand-ins for the asyncio StreamReader/StreamWriter halves so the
session engine can be driven without a real socket, with full control over
how the remote's bytes are chunked between reads.
"""

import asyncio
import logging
from typing import List, Optional


class MockAsyncReader:
    """Mock async reader that returns one queued response per read call."""

    def __init__(
        self,
        responses: Optional[List[bytes]] = None,
        response_delay: float = 0.0,
        hang_when_exhausted: bool = False,
    ):
        """
        Initialize mock async reader.

        Args:
            responses: List of bytes to return on each read call
            response_delay: Delay in seconds before returning response
            hang_when_exhausted: Block forever instead of signalling EOF once
                all responses were returned
        """
        self.responses = list(responses or [])
        self.current_index = 0
        self.response_delay = response_delay
        self.hang_when_exhausted = hang_when_exhausted
        self.read_calls = 0

    async def read(self, n: int = -1) -> bytes:
        """Read the next queued response (``n`` is ignored)."""
        self.read_calls += 1
        if self.response_delay > 0:
            await asyncio.sleep(self.response_delay)

        if self.current_index >= len(self.responses):
            if self.hang_when_exhausted:
                await asyncio.Event().wait()
            # Return empty bytes to signal end of data
            return b""

        response = self.responses[self.current_index]
        self.current_index += 1
        return response

    def add_response(self, response: bytes) -> None:
        """Add a response to the queue."""
        self.responses.append(response)


class MockAsyncWriter:
    """Mock async writer that records everything written to it."""

    def __init__(self, drain_delay: float = 0.0, fail_with: Optional[Exception] = None):
        self.written_data: List[bytes] = []
        self.closed = False
        self.drain_delay = drain_delay
        self.fail_with = fail_with

    def write(self, data: bytes) -> None:
        if self.closed:
            raise ConnectionError("Mock writer is closed")
        self.written_data.append(bytes(data))

    async def drain(self) -> None:
        """Drain the mock connection (simulate network flush)."""
        if self.fail_with is not None:
            raise self.fail_with
        if self.drain_delay > 0:
            await asyncio.sleep(self.drain_delay)

    def close(self) -> None:
        self.closed = True

    async def wait_closed(self) -> None:
        return None

    def is_closing(self) -> bool:
        return self.closed

    def get_written_data(self) -> List[bytes]:
        """Get all data that has been written."""
        return self.written_data.copy()

    def get_last_written(self) -> Optional[bytes]:
        """Get the most recently written data."""
        return self.written_data[-1] if self.written_data else None


class MockConnection:
    """Mock network connection that provides reader/writer for testing."""

    def __init__(
        self,
        reader_responses: Optional[List[bytes]] = None,
        hang_when_exhausted: bool = False,
    ):
        self.reader = MockAsyncReader(
            reader_responses, hang_when_exhausted=hang_when_exhausted
        )
        self.writer = MockAsyncWriter()
        logging.getLogger(__name__).debug(
            f"Mock connection with {len(self.reader.responses)} queued responses"
        )

    def set_response_delay(self, delay: float) -> None:
        """Set delay for reader responses."""
        self.reader.response_delay = delay

    def set_drain_delay(self, delay: float) -> None:
        """Set delay for writer drain operations."""
        self.writer.drain_delay = delay
