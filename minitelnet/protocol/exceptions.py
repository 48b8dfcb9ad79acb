"""Exceptions for protocol handling."""

from ..exceptions import (
    TransportError,
    UnexpectedProtocolItem,
    UnknownNegotiationCommand,
)

__all__ = [
    "TransportError",
    "UnexpectedProtocolItem",
    "UnknownNegotiationCommand",
]
