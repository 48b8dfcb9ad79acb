"""Exceptions for minitelnet with contextual information."""

from typing import Any, Dict, Optional


class MiniTelnetError(Exception):
    """Base error for minitelnet with contextual information."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[BaseException] = None,
    ):
        """
        Initialize a minitelnet error.

        Args:
            message: Error message
            context: Optional context information (host, port, phase, option, etc.)
            original_exception: Original exception that caused this error
        """
        super().__init__(message)
        self.context = context or {}
        self.original_exception = original_exception

    def __str__(self) -> str:
        """Get string representation with context."""
        base_msg = super().__str__()
        if self.context:
            context_items = []
            for key, value in self.context.items():
                if isinstance(value, str) and len(value) > 50:
                    # Truncate long values
                    value = value[:47] + "..."
                context_items.append(f"{key}={value}")
            context_str = ", ".join(context_items)
            return f"{base_msg} (Context: {context_str})"
        return base_msg

    def __repr__(self) -> str:
        """Get repr with context details."""
        base_repr = super().__repr__()
        if self.context:
            return f"{base_repr} (context={self.context!r})"
        return base_repr

    def add_context(self, key: str, value: Any) -> None:
        """
        Add context information to the exception.

        Args:
            key: Context key
            value: Context value
        """
        self.context[key] = value

    def get_context(self, key: str, default: Any = None) -> Any:
        """
        Get context information from the exception.

        Args:
            key: Context key
            default: Default value if key not found

        Returns:
            Context value or default
        """
        return self.context.get(key, default)


class TimeoutError(MiniTelnetError):
    """A bounded operation exceeded its deadline.

    ``phase`` names the operation that expired: ``connect``, ``login``,
    ``write`` or ``read``.
    """

    def __init__(self, phase: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(f"`{phase}` operation timeout", context=context)
        self.phase = phase
        self.add_context("phase", phase)


class TransportError(MiniTelnetError):
    """Underlying I/O failure on the connection."""

    pass


class DecodeError(MiniTelnetError):
    """Text could not be decoded under the primary or any fallback encoding."""

    pass


class UnknownNegotiationCommand(MiniTelnetError):
    """An unrecognized command byte followed IAC."""

    def __init__(self, code: int, context: Optional[Dict[str, Any]] = None):
        super().__init__(f"Unknown IAC command {code}", context=context)
        self.code = code


class AuthenticationFailed(MiniTelnetError):
    """The remote asked for the username again after the password was sent."""

    pass


class UnexpectedProtocolItem(MiniTelnetError):
    """A decoded item arrived in a context where it is not valid."""

    def __init__(self, item: Any, context: Optional[Dict[str, Any]] = None):
        super().__init__(f"Unexpected protocol item {item!r}", context=context)
        self.item = item


class ConnectionClosed(MiniTelnetError):
    """The transport reached end of stream before the operation finished."""

    pass


class NotConnectedError(MiniTelnetError):
    """Error raised when operation is attempted on a not connected session."""

    pass


class ConfigurationError(MiniTelnetError, ValueError):
    """Invalid session configuration."""

    pass
