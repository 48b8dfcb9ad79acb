"""Telnet protocol layer: stream decoder, negotiation policy and text decoding."""

from .decoder import (
    NEED_MORE_DATA,
    DecodedItem,
    Line,
    Negotiate,
    NegotiationKind,
    NeedMoreData,
    SubnegotiationEnd,
    SubnegotiationStart,
    TelnetDecoder,
    decode_command,
)
from .negotiator import Negotiator
from .text_codec import decode_text

__all__ = [
    "NEED_MORE_DATA",
    "DecodedItem",
    "Line",
    "Negotiate",
    "NegotiationKind",
    "NeedMoreData",
    "SubnegotiationEnd",
    "SubnegotiationStart",
    "TelnetDecoder",
    "decode_command",
    "Negotiator",
    "decode_text",
]
