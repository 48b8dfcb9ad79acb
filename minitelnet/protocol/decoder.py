"""Incremental Telnet stream decoder.

Turns raw socket bytes into discrete items: option negotiation commands and
lines of text. The decoder performs no I/O; callers append received bytes to
a ``bytearray`` and call :meth:`TelnetDecoder.decode` until it returns
``None`` or :data:`NEED_MORE_DATA`, then read again.
"""

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterator, Optional, Tuple, Union

from ..exceptions import UnknownNegotiationCommand
from .utils import IAC, LF, SB, SE, command_name, option_name

logger = logging.getLogger(__name__)


class NegotiationKind(IntEnum):
    """Option negotiation verbs, valued by their command byte."""

    WILL = 0xFB
    WONT = 0xFC
    DO = 0xFD
    DONT = 0xFE


@dataclass(frozen=True)
class Line:
    """Raw line bytes, LF-terminated or cut at the end of available input."""

    data: bytes

    @property
    def complete(self) -> bool:
        return self.data.endswith(b"\n")


@dataclass(frozen=True)
class Negotiate:
    kind: NegotiationKind
    option: int

    def __str__(self) -> str:
        return f"{self.kind.name} {option_name(self.option)}"


@dataclass(frozen=True)
class SubnegotiationStart:
    option: int


@dataclass(frozen=True)
class SubnegotiationEnd:
    option: int


class NeedMoreData:
    """A partial IAC sequence sits at the front of the buffer."""

    _instance: Optional["NeedMoreData"] = None

    def __new__(cls) -> "NeedMoreData":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NEED_MORE_DATA"


NEED_MORE_DATA = NeedMoreData()

DecodedItem = Union[Line, Negotiate, SubnegotiationStart, SubnegotiationEnd, NeedMoreData]

_NEGOTIATION_COMMANDS = frozenset(kind.value for kind in NegotiationKind)


def decode_command(data: bytes) -> Tuple[DecodedItem, int]:
    """
    Interpret the IAC sequence at the front of ``data``.

    SB and SE consume two bytes, WILL/WONT/DO/DONT consume three. All of them
    need the option byte to be present before anything is consumed.

    Args:
        data: Bytes starting with IAC.

    Returns:
        The decoded item and the number of bytes it consumed. A partial
        sequence yields ``(NEED_MORE_DATA, 0)``.

    Raises:
        UnknownNegotiationCommand: If the byte after IAC is not a supported command.
    """
    if len(data) < 2:
        return NEED_MORE_DATA, 0
    if data[0] != IAC:
        raise ValueError(f"IAC sequence must start with 0xff, got 0x{data[0]:02x}")
    command = data[1]
    if command not in _NEGOTIATION_COMMANDS and command not in (SB, SE):
        raise UnknownNegotiationCommand(
            command,
            context={"sequence": data[:2].hex(), "command": command_name(command)},
        )
    if len(data) < 3:
        return NEED_MORE_DATA, 0

    option = data[2]
    if command == SE:
        return SubnegotiationEnd(option), 2
    if command == SB:
        return SubnegotiationStart(option), 2
    return Negotiate(NegotiationKind(command), option), 3


class TelnetDecoder:
    """
    Stateful decoder for one logical operation on a Telnet stream.

    State kept between calls: whether a subnegotiation block is open, and the
    bytes of a line that has not been terminated yet.
    """

    def __init__(self, emit_subnegotiation: bool = False) -> None:
        """
        Args:
            emit_subnegotiation: Also return SB/SE markers as items. By default
                they only toggle the internal subnegotiation state.
        """
        self._emit_subnegotiation = emit_subnegotiation
        self._in_subnegotiation = False
        self._current_line = bytearray()

    @property
    def in_subnegotiation(self) -> bool:
        return self._in_subnegotiation

    @property
    def pending(self) -> bytes:
        """Bytes of the line currently being accumulated."""
        return bytes(self._current_line)

    def _flush_line(self) -> Line:
        line = Line(bytes(self._current_line))
        self._current_line.clear()
        return line

    def decode(self, buffer: bytearray) -> Optional[DecodedItem]:
        """
        Decode the next item from the front of ``buffer``.

        Consumed bytes are removed from ``buffer`` in place.

        Returns:
            The next item, :data:`NEED_MORE_DATA` when a partial IAC sequence
            was left untouched at the front of the buffer, or ``None`` when the
            buffer ran out without completing an item.

        Raises:
            UnknownNegotiationCommand: On an unsupported byte after IAC. Bytes
                before the IAC are consumed, the IAC itself is not.
        """
        pos = 0
        try:
            while pos < len(buffer):
                byte = buffer[pos]
                if byte == IAC:
                    item, consumed = decode_command(bytes(buffer[pos : pos + 3]))
                    pos += consumed
                    if item is NEED_MORE_DATA:
                        return item
                    if isinstance(item, SubnegotiationStart):
                        self._in_subnegotiation = True
                        logger.debug(
                            f"[TELNET] Subnegotiation {option_name(item.option)} opened"
                        )
                        if not self._emit_subnegotiation:
                            continue
                    elif isinstance(item, SubnegotiationEnd):
                        self._in_subnegotiation = False
                        logger.debug("[TELNET] Subnegotiation closed")
                        if not self._emit_subnegotiation:
                            continue
                    return item

                if self._in_subnegotiation:
                    # Skip straight to the next IAC; SB payload is never line data
                    next_iac = buffer.find(IAC, pos)
                    pos = len(buffer) if next_iac == -1 else next_iac
                    continue

                pos += 1
                if byte == LF:
                    self._current_line.append(byte)
                    return self._flush_line()
                if byte < 32:
                    continue
                self._current_line.append(byte)
                if pos == len(buffer):
                    return self._flush_line()
            return None
        finally:
            del buffer[:pos]

    def decode_all(self, buffer: bytearray) -> Iterator[DecodedItem]:
        """Yield items until ``buffer`` holds no further complete item."""
        while True:
            item = self.decode(buffer)
            if item is None or item is NEED_MORE_DATA:
                return
            yield item
