import asyncio
import builtins

import pytest

from minitelnet.exceptions import (
    AuthenticationFailed,
    ConfigurationError,
    ConnectionClosed,
    DecodeError,
    MiniTelnetError,
    NotConnectedError,
    TimeoutError,
    TransportError,
    UnexpectedProtocolItem,
    UnknownNegotiationCommand,
)
from minitelnet.protocol.decoder import SubnegotiationStart
from minitelnet.protocol.errors import raise_unexpected_item, safe_socket_operation


class TestMiniTelnetError:
    def test_str_without_context(self):
        assert str(MiniTelnetError("boom")) == "boom"

    def test_str_with_context(self):
        error = MiniTelnetError("boom", context={"host": "example", "port": 23})
        assert str(error) == "boom (Context: host=example, port=23)"

    def test_long_context_values_are_truncated(self):
        error = MiniTelnetError("boom", context={"data": "x" * 80})
        assert "x" * 47 + "..." in str(error)
        assert "x" * 48 not in str(error)

    def test_add_and_get_context(self):
        error = MiniTelnetError("boom")
        error.add_context("phase", "login")
        assert error.get_context("phase") == "login"
        assert error.get_context("missing", "default") == "default"

    def test_repr_includes_context(self):
        error = MiniTelnetError("boom", context={"k": 1})
        assert "context={'k': 1}" in repr(error)

    @pytest.mark.parametrize(
        "error_class",
        [
            TransportError,
            DecodeError,
            AuthenticationFailed,
            ConnectionClosed,
            NotConnectedError,
            ConfigurationError,
        ],
    )
    def test_hierarchy(self, error_class):
        assert issubclass(error_class, MiniTelnetError)


class TestSpecificErrors:
    @pytest.mark.parametrize("phase", ["connect", "login", "write", "read"])
    def test_timeout_phase(self, phase):
        error = TimeoutError(phase)
        assert error.phase == phase
        assert str(error).startswith(f"`{phase}` operation timeout")
        assert error.get_context("phase") == phase

    def test_timeout_is_not_the_builtin(self):
        assert TimeoutError is not builtins.TimeoutError
        assert not isinstance(TimeoutError("read"), OSError)

    def test_unknown_negotiation_command(self):
        error = UnknownNegotiationCommand(0x99)
        assert error.code == 153
        assert "Unknown IAC command 153" in str(error)

    def test_unexpected_protocol_item(self):
        item = SubnegotiationStart(0x1F)
        error = UnexpectedProtocolItem(item)
        assert error.item is item


class TestErrorHelpers:
    async def _fail(self, exc):
        async with safe_socket_operation("read", context={"host": "h"}):
            raise exc

    @pytest.mark.asyncio
    async def test_socket_error_becomes_transport_error(self):
        original = ConnectionResetError("reset by peer")
        with pytest.raises(TransportError) as excinfo:
            await self._fail(original)
        error = excinfo.value
        assert error.original_exception is original
        assert error.__cause__ is original
        assert error.get_context("operation") == "read"
        assert error.get_context("host") == "h"

    @pytest.mark.asyncio
    async def test_timeouts_pass_through(self):
        with pytest.raises(asyncio.TimeoutError):
            await self._fail(asyncio.TimeoutError())

    def test_sync_usage(self):
        with pytest.raises(TransportError):
            with safe_socket_operation("connect"):
                raise ConnectionRefusedError()

    def test_other_errors_are_untouched(self):
        with pytest.raises(KeyError):
            with safe_socket_operation("connect"):
                raise KeyError("x")

    def test_raise_unexpected_item(self):
        with pytest.raises(UnexpectedProtocolItem) as excinfo:
            raise_unexpected_item(SubnegotiationStart(1), "login")
        assert excinfo.value.get_context("phase") == "login"
