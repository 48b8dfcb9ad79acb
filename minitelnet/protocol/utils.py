"""Telnet constants and wire helpers.

Typing notes:
- Helpers are pure and return `bytes`; the session layer writes and drains them.
"""

import struct
from typing import Tuple

# Telnet constants
IAC = 0xFF
SB = 0xFA
SE = 0xF0
WILL = 0xFB
WONT = 0xFC
DO = 0xFD
DONT = 0xFE
# Additional IAC commands per RFC 854 (not decoded, listed for log output)
GA = 0xF9  # Go Ahead
EL = 0xF8  # Erase Line
EC = 0xF7  # Erase Character
AYT = 0xF6  # Are You There
AO = 0xF5  # Abort Output
IP = 0xF4  # Interrupt Process
BRK = 0xF3  # Break
DM = 0xF2  # Data Mark
NOP = 0xF1  # No Operation

LF = 0x0A

# Telnet Options
TELOPT_BINARY = 0x00
TELOPT_ECHO = 0x01
TELOPT_SGA = 0x03
TELOPT_STATUS = 0x05
TELOPT_TM = 0x06
TELOPT_TTYPE = 0x18  # Terminal Type
TELOPT_EOR = 0x19  # End of Record
TELOPT_NAWS = 0x1F
TELOPT_TSPEED = 0x20
TELOPT_LFLOW = 0x21
TELOPT_LINEMODE = 0x22
TELOPT_XDISPLOC = 0x23
TELOPT_OLD_ENVIRON = 0x24
TELOPT_AUTHENTICATION = 0x25
TELOPT_ENCRYPT = 0x26
TELOPT_NEW_ENVIRON = 0x27

# Window advertised in answer to DO NAWS: 252 columns, 27 rows
DEFAULT_WINDOW_SIZE: Tuple[int, int] = (252, 27)

COMMAND_NAMES = {
    SE: "SE",
    NOP: "NOP",
    DM: "DM",
    BRK: "BRK",
    IP: "IP",
    AO: "AO",
    AYT: "AYT",
    EC: "EC",
    EL: "EL",
    GA: "GA",
    SB: "SB",
    WILL: "WILL",
    WONT: "WONT",
    DO: "DO",
    DONT: "DONT",
    IAC: "IAC",
}

OPTION_NAMES = {
    TELOPT_BINARY: "BINARY",
    TELOPT_ECHO: "ECHO",
    TELOPT_SGA: "SGA",
    TELOPT_STATUS: "STATUS",
    TELOPT_TM: "TIMING-MARK",
    TELOPT_TTYPE: "TTYPE",
    TELOPT_EOR: "EOR",
    TELOPT_NAWS: "NAWS",
    TELOPT_TSPEED: "TSPEED",
    TELOPT_LFLOW: "LFLOW",
    TELOPT_LINEMODE: "LINEMODE",
    TELOPT_XDISPLOC: "XDISPLOC",
    TELOPT_OLD_ENVIRON: "OLD-ENVIRON",
    TELOPT_AUTHENTICATION: "AUTHENTICATION",
    TELOPT_ENCRYPT: "ENCRYPT",
    TELOPT_NEW_ENVIRON: "NEW-ENVIRON",
}


def command_name(code: int) -> str:
    """Return a readable name for a Telnet command byte."""
    return COMMAND_NAMES.get(code, f"0x{code:02x}")


def option_name(code: int) -> str:
    """Return a readable name for a Telnet option byte."""
    return OPTION_NAMES.get(code, f"0x{code:02x}")


def iac_command(command: int, option: int) -> bytes:
    """Build a three-byte ``IAC <command> <option>`` sequence."""
    return bytes([IAC, command, option])


def subnegotiation(option: int, data: bytes) -> bytes:
    """Build ``IAC SB <option> <data> IAC SE``."""
    return bytes([IAC, SB, option]) + data + bytes([IAC, SE])


def naws_payload(columns: int, rows: int) -> bytes:
    """Pack window dimensions as two big-endian 16-bit values."""
    return struct.pack(">HH", columns, rows)


def naws_acceptance(window_size: Tuple[int, int] = DEFAULT_WINDOW_SIZE) -> bytes:
    """
    Build the reply to ``DO NAWS``: ``WILL NAWS`` followed by the window size.

    With the default window this is ``FF FB 1F FF FA 1F 00 FC 00 1B FF F0``.
    """
    columns, rows = window_size
    return iac_command(WILL, TELOPT_NAWS) + subnegotiation(
        TELOPT_NAWS, naws_payload(columns, rows)
    )


def format_bytes(data: bytes, limit: int = 64) -> str:
    """Hex representation of ``data`` for log output, truncated to ``limit`` bytes."""
    if len(data) > limit:
        return f"{data[:limit].hex(' ')} ... ({len(data)} bytes)"
    return data.hex(" ")
