"""
Tests for the synchronous Session wrapper.

The scripted daemon runs on the test's event loop, so blocking Session calls
are made from a worker thread with asyncio.to_thread.
"""

import asyncio

import pytest

from minitelnet import NotConnectedError, Session, TransportError
from tests.mocks.telnet_server import TEST_HOST, ScriptedTelnetServer


class TestSession:
    def test_initial_state(self, config):
        session = Session(config, TEST_HOST, 23)
        assert not session.connected

    @pytest.mark.parametrize(
        "call",
        [
            lambda s: s.login("bob", "secret"),
            lambda s: s.execute("echo hi"),
            lambda s: s.normal_execute("echo hi"),
        ],
    )
    def test_operations_require_connection(self, config, call):
        session = Session(config, TEST_HOST, 23)
        with pytest.raises(NotConnectedError):
            call(session)

    def test_close_without_connect(self, config):
        session = Session(config)
        session.close()
        assert not session.connected

    @pytest.mark.asyncio
    async def test_refused_connection_releases_worker(self, config):
        async def idle(reader, writer, server):
            await reader.read()

        async with ScriptedTelnetServer(idle) as server:
            port = server.port
        session = Session(config, TEST_HOST, port)
        with pytest.raises(TransportError):
            await asyncio.to_thread(session.connect)
        assert not session.connected
        assert session._loop is None

    def test_missing_host_releases_worker(self, config):
        session = Session(config)
        with pytest.raises(ValueError):
            session.connect()
        assert not session.connected
        assert session._loop is None
        assert session._thread is None

    @pytest.mark.asyncio
    async def test_reconnect_closes_previous_connection(self, config):
        async def idle(reader, writer, server):
            await reader.read()

        async with ScriptedTelnetServer(idle) as server:
            session = Session(config, TEST_HOST, server.port)
            await asyncio.to_thread(session.connect)
            first = session._async_session
            await asyncio.to_thread(session.connect)
            try:
                assert not first.connected
                assert session.connected
                assert session._async_session is not first
            finally:
                await asyncio.to_thread(session.close)

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_execute(self, config, shell_server):
        def run():
            with Session(config) as session:
                session.connect(TEST_HOST, shell_server.port)
                assert session.connected
                results = [session.execute("echo hi"), session.normal_execute("echo a")]
            assert not session.connected
            return results

        assert await asyncio.to_thread(run) == ["hi\n", "echo a\na\n"]
