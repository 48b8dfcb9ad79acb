"""
Session management for minitelnet, handling synchronous and asynchronous Telnet sessions.
"""

import asyncio
import functools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Coroutine, Iterable, List, Optional, Sequence, Tuple, TypeVar

from .exceptions import (
    AuthenticationFailed,
    ConfigurationError,
    ConnectionClosed,
    MiniTelnetError,
    NotConnectedError,
    TimeoutError,
)
from .protocol.decoder import NEED_MORE_DATA, DecodedItem, Line, Negotiate, TelnetDecoder
from .protocol.errors import raise_unexpected_item, safe_socket_operation
from .protocol.negotiator import Negotiator
from .protocol.text_codec import (
    DEFAULT_ENCODING,
    DEFAULT_FALLBACK_ENCODINGS,
    decode_text,
    validate_encoding,
)
from .protocol.utils import DEFAULT_WINDOW_SIZE, format_bytes
from .session_manager import SessionManager
from .utils.logging_utils import (
    log_data_processing,
    log_debug_operation,
    log_protocol_event,
    log_session_action,
    log_session_error,
    mask_secret,
)

T = TypeVar("T")

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 4096

DEFAULT_USERNAME_PROMPT = "login: "
DEFAULT_PASSWORD_PROMPT = "Password: "
DEFAULT_CONNECT_TIMEOUT = 10.0
DEFAULT_TIMEOUT = 5.0


class ExecutionState(Enum):
    """Progress of a single command execution."""

    AWAIT_ECHO = "await_echo"
    AWAIT_REAL_OUTPUT_START = "await_real_output_start"
    COLLECTING = "collecting"
    DONE = "done"


@dataclass(frozen=True)
class TelnetConfig:
    """Immutable session configuration. Build it with :func:`build_config`."""

    prompts: Tuple[str, ...]
    username_prompt: str = DEFAULT_USERNAME_PROMPT
    password_prompt: str = DEFAULT_PASSWORD_PROMPT
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    timeout: float = DEFAULT_TIMEOUT
    encoding: str = DEFAULT_ENCODING
    fallback_encodings: Tuple[str, ...] = DEFAULT_FALLBACK_ENCODINGS
    window_size: Tuple[int, int] = DEFAULT_WINDOW_SIZE

    def encode(self, text: str) -> bytes:
        return text.encode(self.encoding)

    def matches_prompt(self, data: bytes) -> bool:
        """True when ``data`` ends with any of the configured shell prompts."""
        return any(data.endswith(self.encode(prompt)) for prompt in self.prompts)


def build_config(
    prompts: Iterable[str],
    username_prompt: str = DEFAULT_USERNAME_PROMPT,
    password_prompt: str = DEFAULT_PASSWORD_PROMPT,
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
    timeout: float = DEFAULT_TIMEOUT,
    encoding: str = DEFAULT_ENCODING,
    fallback_encodings: Sequence[str] = DEFAULT_FALLBACK_ENCODINGS,
    window_size: Tuple[int, int] = DEFAULT_WINDOW_SIZE,
) -> TelnetConfig:
    """
    Validate settings and return a TelnetConfig.

    Args:
        prompts: Shell prompts; use as many characters as possible, a bare
            ``$`` or ``#`` will misjudge output lines as prompts.
        username_prompt: Trailing text of the login prompt.
        password_prompt: Trailing text of the password prompt.
        connect_timeout: Seconds allowed for the TCP connect.
        timeout: Seconds allowed for each individual read or write.
        encoding: Primary encoding for prompts, credentials, commands and output.
        fallback_encodings: Encodings tried when output is not valid ``encoding``.
        window_size: (columns, rows) advertised when the remote asks for NAWS.

    Raises:
        ConfigurationError: If any setting is invalid.
    """
    if isinstance(prompts, str):
        prompts = [prompts]
    prompt_tuple = tuple(prompts)
    if not prompt_tuple:
        raise ConfigurationError("At least one prompt is required")
    if any(not prompt for prompt in prompt_tuple):
        raise ConfigurationError("Prompts must not be empty", context={"prompts": prompt_tuple})
    if not username_prompt or not password_prompt:
        raise ConfigurationError("Username and password prompts must not be empty")
    for name, value in (("connect_timeout", connect_timeout), ("timeout", timeout)):
        if value is None or value <= 0:
            raise ConfigurationError(
                f"{name} must be a positive number of seconds", context={name: value}
            )
    if len(window_size) != 2 or any(not 0 <= dim <= 0xFFFF for dim in window_size):
        raise ConfigurationError(
            "Window size must be two values in 0..65535",
            context={"window_size": window_size},
        )
    validate_encoding(encoding)
    for fallback in fallback_encodings:
        validate_encoding(fallback)
    return TelnetConfig(
        prompts=prompt_tuple,
        username_prompt=username_prompt,
        password_prompt=password_prompt,
        connect_timeout=float(connect_timeout),
        timeout=float(timeout),
        encoding=encoding,
        fallback_encodings=tuple(fallback_encodings),
        window_size=(int(window_size[0]), int(window_size[1])),
    )


class TelnetBuilder:
    """
    Fluent construction of a session configuration.

    Example::

        session = await (
            TelnetBuilder()
            .prompt("ubuntu@ubuntu:~$ ")
            .login_prompt("login: ", "Password: ")
            .connect_timeout(10)
            .timeout(5)
            .connect("192.168.100.2", 23)
        )
    """

    def __init__(self) -> None:
        self._prompts: List[str] = []
        self._username_prompt = DEFAULT_USERNAME_PROMPT
        self._password_prompt = DEFAULT_PASSWORD_PROMPT
        self._connect_timeout = DEFAULT_CONNECT_TIMEOUT
        self._timeout = DEFAULT_TIMEOUT
        self._encoding = DEFAULT_ENCODING
        self._fallback_encodings: Tuple[str, ...] = DEFAULT_FALLBACK_ENCODINGS

    def prompt(self, prompt: str) -> "TelnetBuilder":
        """Set a single shell prompt."""
        self._prompts = [prompt]
        return self

    def prompts(self, prompts: Iterable[str]) -> "TelnetBuilder":
        """Set several shell prompts, replacing any set by :meth:`prompt`."""
        self._prompts = list(prompts)
        return self

    def login_prompt(self, user_prompt: str, pass_prompt: str) -> "TelnetBuilder":
        """Common pairs are ``login: ``/``Password: `` and ``Username:``/``Password:``."""
        self._username_prompt = user_prompt
        self._password_prompt = pass_prompt
        return self

    def connect_timeout(self, seconds: float) -> "TelnetBuilder":
        self._connect_timeout = seconds
        return self

    def timeout(self, seconds: float) -> "TelnetBuilder":
        self._timeout = seconds
        return self

    def encodings(self, encoding: str, *fallbacks: str) -> "TelnetBuilder":
        self._encoding = encoding
        self._fallback_encodings = tuple(fallbacks)
        return self

    def build(self) -> TelnetConfig:
        return build_config(
            self._prompts,
            username_prompt=self._username_prompt,
            password_prompt=self._password_prompt,
            connect_timeout=self._connect_timeout,
            timeout=self._timeout,
            encoding=self._encoding,
            fallback_encodings=self._fallback_encodings,
        )

    async def connect(self, host: str, port: int = 23) -> "AsyncSession":
        """Build the configuration and return a connected AsyncSession."""
        session = AsyncSession(self.build(), host=host, port=port)
        await session.connect()
        return session


def _format_enter_str(text: str) -> str:
    """Terminate ``text`` with a newline if it lacks one."""
    return text if text.endswith("\n") else f"{text}\n"


class AsyncSession:
    """
    Asynchronous Telnet session handler.

    Only one ``login``/``execute`` call may run at a time on a session. Each
    call decodes the stream with its own decoder and buffers, and every
    individual read or write is bounded by ``config.timeout``.
    """

    def __init__(
        self,
        config: TelnetConfig,
        host: Optional[str] = None,
        port: int = 23,
    ) -> None:
        """
        Initialize the AsyncSession.

        Args:
            config: Session configuration.
            host: Host to connect to.
            port: Port to connect to.
        """
        self.config = config
        self._manager = SessionManager(host, port, connect_timeout=config.connect_timeout)
        self._negotiator = Negotiator(config.window_size)

    @classmethod
    def from_streams(
        cls,
        config: TelnetConfig,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> "AsyncSession":
        """Create a session over an already connected pair of stream halves."""
        session = cls(config)
        session._manager.attach(reader, writer)
        return session

    @property
    def host(self) -> Optional[str]:
        return self._manager.host

    @property
    def port(self) -> int:
        return self._manager.port

    @property
    def connected(self) -> bool:
        return self._manager.connected

    @property
    def negotiator(self) -> Negotiator:
        return self._negotiator

    async def connect(self, host: Optional[str] = None, port: Optional[int] = None) -> None:
        """
        Connect to the Telnet daemon within ``config.connect_timeout``.

        Raises:
            TimeoutError: With phase ``connect``.
            TransportError: If the connection is refused or fails.
        """
        await self._manager.setup_connection(host, port)

    async def close(self) -> None:
        """Close the session."""
        await self._manager.teardown_connection()

    async def __aenter__(self) -> "AsyncSession":
        if not self.connected:
            await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def _write(self, writer: asyncio.StreamWriter, data: bytes) -> None:
        try:
            async with safe_socket_operation("write", context={"host": self.host}):
                writer.write(data)
                await asyncio.wait_for(writer.drain(), timeout=self.config.timeout)
        except asyncio.TimeoutError:
            raise TimeoutError("write", context={"host": self.host}) from None

    async def _next_item(
        self,
        reader: asyncio.StreamReader,
        decoder: TelnetDecoder,
        buffer: bytearray,
        phase: str,
    ) -> DecodedItem:
        """Decode the next complete item, reading from the remote as needed."""
        while True:
            item = decoder.decode(buffer)
            if item is not None and item is not NEED_MORE_DATA:
                return item
            try:
                async with safe_socket_operation("read", context={"host": self.host}):
                    data = await asyncio.wait_for(
                        reader.read(READ_CHUNK_SIZE), timeout=self.config.timeout
                    )
            except asyncio.TimeoutError:
                logger.warning(
                    f"[TIMEOUT] No data within {self.config.timeout}s",
                    extra={"protocol_phase": phase},
                )
                raise TimeoutError(phase, context={"host": self.host}) from None
            if not data:
                raise ConnectionClosed("No more data.", context={"phase": phase})
            log_data_processing(logger, "Received", format_bytes(data))
            buffer.extend(data)

    async def _answer(self, writer: asyncio.StreamWriter, request: Negotiate) -> None:
        await self._write(writer, self._negotiator.reply_for(request))

    def _decode(self, data: bytes) -> str:
        return decode_text(data, self.config.encoding, self.config.fallback_encodings)

    async def login(self, username: str, password: str) -> None:
        """
        Log in to the remote daemon.

        The username and password are sent when their prompts appear; the
        call returns once a shell prompt is seen. If the username prompt
        comes back after the password was sent the login has failed; this
        one re-prompt is the only retry.

        Raises:
            AuthenticationFailed: If the credentials were rejected.
            TimeoutError: With phase ``login`` on a read timeout, ``write``
                on a write timeout.
            ConnectionClosed: If the remote closed the connection.
            UnexpectedProtocolItem: On an item that is not valid during login.
        """
        reader, writer = self._manager.halves()
        user = self.config.encode(_format_enter_str(username))
        secret = self.config.encode(_format_enter_str(password))
        username_prompt = self.config.encode(self.config.username_prompt)
        password_prompt = self.config.encode(self.config.password_prompt)
        log_session_action(
            logger, "login", f"user={username} password={mask_secret(password)}"
        )

        password_sent = False
        decoder = TelnetDecoder()
        buffer = bytearray()
        # Prompts may arrive split over several reads
        pending = bytearray()
        try:
            while True:
                item = await self._next_item(reader, decoder, buffer, "login")
                if isinstance(item, Negotiate):
                    await self._answer(writer, item)
                    continue
                if not isinstance(item, Line):
                    raise_unexpected_item(item, "login")

                pending.extend(item.data)
                text = bytes(pending)
                if item.complete:
                    pending.clear()

                if text.endswith(username_prompt):
                    if password_sent:
                        raise AuthenticationFailed(
                            "Authentication failed.", context={"user": username}
                        )
                    pending.clear()
                    log_protocol_event(logger, "Username prompt", "sending username")
                    await self._write(writer, user)
                elif text.endswith(password_prompt):
                    pending.clear()
                    log_protocol_event(logger, "Password prompt", "sending password")
                    await self._write(writer, secret)
                    password_sent = True
                elif self.config.matches_prompt(text):
                    log_protocol_event(logger, "Shell prompt", "login complete")
                    return
        except MiniTelnetError as e:
            log_session_error(logger, "login", e)
            raise

    async def execute(self, cmd: str) -> str:
        """
        Execute ``cmd`` and return its output without the echoed command.

        As many leading lines as the command itself spans are treated as the
        terminal echo and dropped. The trailing prompt line is never included.

        Example::

            assert await session.execute("echo 'haha'") == "haha\\n"

        Raises:
            TimeoutError: With phase ``write`` or ``read``.
            ConnectionClosed: If the remote closed the connection.
            DecodeError: If an output line cannot be decoded.
        """
        return await self._run_command(cmd, filter_echo=True)

    async def normal_execute(self, cmd: str) -> str:
        """
        Execute ``cmd`` and return everything the remote sent back, echo included.

        Example::

            assert await session.normal_execute("echo 'haha'") == "echo 'haha'\\nhaha\\n"
        """
        return await self._run_command(cmd, filter_echo=False)

    async def _run_command(self, cmd: str, filter_echo: bool) -> str:
        reader, writer = self._manager.halves()
        command = _format_enter_str(cmd)
        action = "execute" if filter_echo else "normal_execute"
        log_session_action(logger, action, repr(cmd))
        try:
            await self._write(writer, self.config.encode(command))
            return await self._collect_output(reader, writer, command, filter_echo)
        except MiniTelnetError as e:
            log_session_error(logger, action, e)
            raise

    async def _collect_output(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        command: str,
        filter_echo: bool,
    ) -> str:
        # The command echo spans one line per newline sent
        echo_lines = command.count("\n")
        state = ExecutionState.AWAIT_ECHO if filter_echo else ExecutionState.COLLECTING
        output: List[str] = []
        incomplete = bytearray()
        decoder = TelnetDecoder()
        buffer = bytearray()

        while state is not ExecutionState.DONE:
            item = await self._next_item(reader, decoder, buffer, "read")
            if isinstance(item, Negotiate):
                await self._answer(writer, item)
                continue
            if not isinstance(item, Line):
                raise_unexpected_item(item, "read")

            line = item.data
            if self.config.matches_prompt(line):
                state = self._transition(state, ExecutionState.DONE)
                break

            if state is ExecutionState.AWAIT_ECHO:
                if item.complete:
                    echo_lines -= 1
                    if echo_lines == 0:
                        state = self._transition(
                            state, ExecutionState.AWAIT_REAL_OUTPUT_START
                        )
                continue
            if state is ExecutionState.AWAIT_REAL_OUTPUT_START:
                state = self._transition(state, ExecutionState.COLLECTING)

            if item.complete and not incomplete:
                output.append(self._decode(line))
                continue
            incomplete.extend(line)
            if self.config.matches_prompt(incomplete):
                state = self._transition(state, ExecutionState.DONE)
                break
            if incomplete.endswith(b"\n"):
                output.append(self._decode(bytes(incomplete)))
                incomplete.clear()

        return "".join(output)

    @staticmethod
    def _transition(current: ExecutionState, new: ExecutionState) -> ExecutionState:
        log_debug_operation(logger, "Execution state", f"{current.value} -> {new.value}")
        return new


def _require_connected_session(func: Callable[..., Any]) -> Callable[..., Any]:
    """
    Decorator to ensure the session has a connected async session.

    Raises NotConnectedError if connect() has not succeeded yet.
    """

    @functools.wraps(func)
    def wrapper(self: "Session", *args: Any, **kwargs: Any) -> Any:
        if self._async_session is None or not self._async_session.connected:
            raise NotConnectedError("Session not connected.")
        return func(self, *args, **kwargs)

    return wrapper


class Session:
    """
    Synchronous wrapper for AsyncSession.

    Every call is executed on a dedicated worker thread running its own event
    loop, so the wrapper can be used from plain code and from inside a running
    loop alike.
    """

    def __init__(
        self,
        config: TelnetConfig,
        host: Optional[str] = None,
        port: int = 23,
    ) -> None:
        self.config = config
        self._host = host
        self._port = port
        self._async_session: Optional[AsyncSession] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[Any] = None

    def _ensure_worker_loop(self) -> None:
        """Ensure a dedicated worker thread with an event loop exists.

        A single loop is reused per Session so the streams opened by connect()
        belong to the same loop that later runs execute() and close().
        """
        import threading

        if self._loop is not None and self._thread is not None and self._thread.is_alive():
            return

        loop = asyncio.new_event_loop()

        def _runner() -> None:
            asyncio.set_event_loop(loop)
            try:
                loop.run_forever()
            finally:
                loop.close()

        th = threading.Thread(target=_runner, name="minitelnet-SessionLoop", daemon=True)
        th.start()
        self._loop = loop
        self._thread = th

    def _shutdown_worker_loop(self) -> None:
        """Stop and join the worker loop thread if present."""
        loop = self._loop
        th = self._thread
        self._loop = None
        self._thread = None
        if loop is not None:
            loop.call_soon_threadsafe(loop.stop)
        if th is not None:
            th.join(timeout=1.0)

    def _run_async(self, coro: Coroutine[Any, Any, T]) -> T:
        """Run an async coroutine synchronously on the dedicated worker loop."""
        self._ensure_worker_loop()
        assert self._loop is not None
        fut = asyncio.run_coroutine_threadsafe(coro, self._loop)
        return fut.result()

    def connect(self, host: Optional[str] = None, port: Optional[int] = None) -> None:
        """Connect to the Telnet daemon synchronously.

        Args:
            host: Optional host override.
            port: Optional port override (default 23).
        """
        if host is not None:
            self._host = host
        if port is not None:
            self._port = port
        if self._async_session is not None:
            # Reconnecting replaces the current connection
            self.close()
        self._async_session = AsyncSession(self.config, self._host, self._port)
        try:
            self._run_async(self._async_session.connect())
        except Exception:
            self._async_session = None
            self._shutdown_worker_loop()
            raise

    @_require_connected_session
    def login(self, username: str, password: str) -> None:
        assert self._async_session is not None  # Ensured by decorator
        self._run_async(self._async_session.login(username, password))

    @_require_connected_session
    def execute(self, cmd: str) -> str:
        assert self._async_session is not None  # Ensured by decorator
        return self._run_async(self._async_session.execute(cmd))

    @_require_connected_session
    def normal_execute(self, cmd: str) -> str:
        assert self._async_session is not None  # Ensured by decorator
        return self._run_async(self._async_session.normal_execute(cmd))

    def close(self) -> None:
        """Close the session synchronously."""
        if self._async_session:
            self._run_async(self._async_session.close())
            self._async_session = None
        self._shutdown_worker_loop()

    @property
    def connected(self) -> bool:
        """Check if session is connected."""
        return self._async_session is not None and self._async_session.connected

    def __enter__(self) -> "Session":
        """Enter the context manager."""
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[Exception],
        exc_tb: Optional[Any],
    ) -> None:
        """Exit the context manager and ensure cleanup."""
        self.close()
