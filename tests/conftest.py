import pytest
import pytest_asyncio

from minitelnet import AsyncSession, build_config
from tests.mocks.network_handlers import MockConnection
from tests.mocks.telnet_server import PROMPT, ScriptedTelnetServer, shell_script


@pytest.fixture
def config():
    return build_config(
        [PROMPT],
        username_prompt="login: ",
        password_prompt="Password: ",
        connect_timeout=2.0,
        timeout=1.0,
    )


@pytest.fixture
def fast_config():
    """Configuration with a short per-operation timeout for timeout tests."""
    return build_config([PROMPT], connect_timeout=0.5, timeout=0.1)


@pytest.fixture
def make_session(config):
    """Build an AsyncSession over mock stream halves fed with ``responses``."""

    def factory(responses, cfg=None, hang_when_exhausted=False):
        connection = MockConnection(responses, hang_when_exhausted=hang_when_exhausted)
        session = AsyncSession.from_streams(
            cfg or config, connection.reader, connection.writer
        )
        return session, connection

    return factory


@pytest_asyncio.fixture
async def shell_server():
    async with ScriptedTelnetServer(
        shell_script({"echo hi": b"hi\n", "echo a": b"a\r\n", "echo b": b"b\r\n"})
    ) as server:
        yield server
