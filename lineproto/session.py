"""
Request/response session over a LineReader.

This module provides the command layer of an NNTP-style line protocol:
every command is one CRLF-terminated line, and every response starts with
a status line whose first character is ``2`` on success. Multi-line
responses end with a line holding only ``.``.

The session implements a state machine over one connection:
    DISCONNECTED -> connect() -> CONNECTED (greeting pending)
    CONNECTED -> greeting accepted -> READY
    READY -> *_command() -> AWAITING_RESPONSE -> READY
    AWAITING_RESPONSE -> I/O failure -> AWAITING_RESPONSE (close only)
    any -> close() -> CLOSED

A response cut short by an I/O failure (end of stream, timeout, overlong
line) leaves its remainder unread, so the session stays out of READY and
only close() is accepted.

Response lines are written to an output sink as they are read; the
session never holds more than the current line.

Example:
    >>> import sys
    >>> from lineproto import ProtocolSession, SessionConfig
    >>>
    >>> config = SessionConfig(host="news.example.com", username="me", password="secret")
    >>> with ProtocolSession(config, output=sys.stdout.buffer) as session:
    ...     if session.connect() and session.authenticate():
    ...         session.single_line_command("group misc.test")
    ...         session.multi_line_command("head 3000234")
"""

from __future__ import annotations

import logging
from enum import Enum, auto
from typing import TYPE_CHECKING, BinaryIO

from lineproto.exceptions import SessionStateError
from lineproto.models.config import SessionConfig
from lineproto.models.results import CommandResult, ErrorKind, OperationResult
from lineproto.protocol.constants import ProtocolConstants
from lineproto.protocol.line_reader import LineReader
from lineproto.protocol.status import StatusLine, parse_status_line

if TYPE_CHECKING:
    from lineproto.models.results import LineResult
    from lineproto.protocol.line_reader import TransportFactory
    from lineproto.transport.abc import AbstractTransport

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """Protocol session states."""

    DISCONNECTED = auto()
    """No connection opened yet."""

    CONNECTED = auto()
    """Connection open, greeting not (or not successfully) received."""

    READY = auto()
    """Greeting accepted, ready for commands."""

    AWAITING_RESPONSE = auto()
    """Command sent, response being read or left incomplete by a failure."""

    CLOSED = auto()
    """Connection closed."""


class ProtocolSession:
    """
    Client session for a status-coded line protocol.

    The session holds a LineReader and delegates all I/O to it. Every
    operation blocks until complete and reports its outcome as a
    CommandResult; failures never raise. Only misuse raises: sending a
    command outside the READY state, or a command containing CR/LF.

    Attributes:
        state: Current session state.
        config: Session settings.
        reader: The underlying LineReader.

    Example:
        >>> session = ProtocolSession(SessionConfig(host="localhost", port=1119))
        >>> result = session.connect()
        >>> if result:
        ...     listing = session.multi_line_command("list")
        ...     print(listing.line_count)
        >>> session.close()
    """

    def __init__(
        self,
        config: SessionConfig | None = None,
        *,
        output: BinaryIO | None = None,
        transport_factory: TransportFactory | None = None,
    ) -> None:
        """
        Initialize the session.

        Args:
            config: Session settings. Defaults to SessionConfig().
            output: Sink receiving every response line as raw bytes.
                None discards them.
            transport_factory: Builds a transport from (host, port);
                defaults to a TCP socket.
        """
        self._config = config or SessionConfig()
        self._output = output
        self._reader = LineReader(
            self._config.capacity,
            self._config.encoding,
            transport_factory=transport_factory,
            timeout=self._config.timeout,
            trace_buffer=self._config.trace_buffer,
        )
        self._success_byte = self._config.success_byte
        self._sentinel_byte = self._config.sentinel_byte
        self._state = SessionState.DISCONNECTED

    @property
    def state(self) -> SessionState:
        """Get the current session state."""
        return self._state

    @property
    def config(self) -> SessionConfig:
        """Get the session settings."""
        return self._config

    @property
    def reader(self) -> LineReader:
        """Get the underlying line reader."""
        return self._reader

    @property
    def is_ready(self) -> bool:
        """Check if the session accepts commands."""
        return self._state == SessionState.READY

    @property
    def total_bytes_read(self) -> int:
        """Get the number of bytes received on the connection."""
        return self._reader.total_bytes_read

    # ===== Connection =====

    def connect(
        self,
        host: str | None = None,
        port: int | None = None,
        *,
        output: BinaryIO | None = None,
    ) -> CommandResult:
        """
        Connect and read the server greeting.

        Args:
            host: Server host; defaults to the configured host.
            port: Server port; defaults to the configured port.
            output: Sink for the greeting, overriding the session sink.

        Returns:
            Success if the greeting starts with the success indicator.
            CONNECTION/TIMEOUT if the server is unreachable, PROTOCOL if
            the greeting reports a failure (the session then stays
            CONNECTED and should be closed).

        Raises:
            SessionStateError: If the session is already connected.
        """
        host = host if host is not None else self._config.host
        port = port if port is not None else self._config.port
        self._ensure_state(SessionState.DISCONNECTED, SessionState.CLOSED)

        logger.info("Connecting to %s:%d", host, port)
        return self._open(self._reader.connect(host, port), output)

    def attach(
        self,
        transport: AbstractTransport,
        *,
        output: BinaryIO | None = None,
    ) -> CommandResult:
        """
        Start the session on an existing transport and read the greeting.

        Args:
            transport: Transport to use, opened if needed.
            output: Sink for the greeting, overriding the session sink.

        Returns:
            Same outcomes as connect().

        Raises:
            SessionStateError: If the session is already connected.
        """
        self._ensure_state(SessionState.DISCONNECTED, SessionState.CLOSED)
        return self._open(self._reader.attach(transport), output)

    def _open(self, opened: OperationResult, output: BinaryIO | None) -> CommandResult:
        if not opened:
            return CommandResult(ok=False, error=opened.error, detail=opened.detail)

        self._state = SessionState.CONNECTED
        self._reader.init_read()

        line = self._reader.read_next_line()
        if not line:
            logger.warning("No welcome message read: %s", line.detail)
            return self._read_failure(line, None, 0)

        self._deliver(output)
        status = self._status()
        if not status.is_success(self._success_byte):
            logger.warning("Server rejected the connection: %s", status)
            return CommandResult(
                ok=False,
                error=ErrorKind.PROTOCOL,
                detail=str(status),
                status=status,
                line_count=1,
            )

        self._state = SessionState.READY
        logger.debug("Greeting: %s", status)
        return CommandResult(ok=True, status=status, line_count=1)

    def authenticate(
        self,
        user: str | None = None,
        password: str | None = None,
        *,
        output: BinaryIO | None = None,
    ) -> CommandResult:
        """
        Log in with the two-step authinfo handshake.

        Sends ``authinfo user`` then ``authinfo pass``. The first reply is
        normally 381 (password required) and is not checked; an I/O
        failure on the first step aborts without sending the password.

        Args:
            user: Login; defaults to the configured username.
            password: Password; defaults to the configured password.
            output: Sink for both replies, overriding the session sink.

        Returns:
            The result of the password step.

        Raises:
            SessionStateError: If the session is not READY.
            ValueError: If no credentials are given or configured.
        """
        self._ensure_state(SessionState.READY)

        user = user if user is not None else self._config.username
        if password is None and self._config.password is not None:
            password = self._config.password.get_secret_value()
        if user is None or password is None:
            raise ValueError("Username and password are required for authentication")

        first = self._single_line(f"{ProtocolConstants.AUTH_USER_COMMAND} {user}", output)
        if not first and first.error is not ErrorKind.PROTOCOL:
            logger.warning("Authentication aborted: %s", first.detail)
            return first

        result = self._single_line(
            f"{ProtocolConstants.AUTH_PASS_COMMAND} {password}",
            output,
            echo=f"{ProtocolConstants.AUTH_PASS_COMMAND} ****",
        )
        if result:
            logger.info("Authenticated as %s", user)
        else:
            logger.warning("Authentication failed for %s: %s", user, result.detail)
        return result

    # ===== Commands =====

    def single_line_command(
        self,
        cmd: str,
        *,
        output: BinaryIO | None = None,
    ) -> CommandResult:
        """
        Send a command whose response is exactly one line.

        Args:
            cmd: Command without terminator.
            output: Sink for the reply, overriding the session sink.

        Returns:
            Success if the reply starts with the success indicator. The
            reply line is delivered to the sink either way.

        Raises:
            SessionStateError: If the session is not READY.
            ValueError: If cmd contains CR or LF.
        """
        self._ensure_state(SessionState.READY)
        return self._single_line(cmd, output)

    def multi_line_command(
        self,
        cmd: str,
        *,
        output: BinaryIO | None = None,
    ) -> CommandResult:
        """
        Send a command whose response may span several lines.

        Lines are read and delivered until either the first line reports
        a failure (the whole response is that line) or the sentinel line
        ``.`` arrives.

        Args:
            cmd: Command without terminator.
            output: Sink for the reply lines, overriding the session sink.

        Returns:
            Result whose line_count includes the status line and the
            closing sentinel line.

        Raises:
            SessionStateError: If the session is not READY.
            ValueError: If cmd contains CR or LF.
        """
        self._ensure_state(SessionState.READY)

        sent = self._send(cmd)
        if sent is not None:
            return sent

        self._reader.init_read()
        status: StatusLine | None = None
        count = 0

        while True:
            line = self._reader.read_next_line()
            if not line:
                return self._read_failure(line, status, count)

            count += 1
            self._deliver(output)

            if count == 1:
                status = self._status()
                if not status.is_success(self._success_byte):
                    self._state = SessionState.READY
                    return CommandResult(
                        ok=False,
                        error=ErrorKind.PROTOCOL,
                        detail=str(status),
                        status=status,
                        line_count=count,
                    )

            if self._is_sentinel(line.line):
                self._state = SessionState.READY
                logger.debug("%r: %d lines", cmd, count)
                return CommandResult(ok=True, status=status, line_count=count)

    def _single_line(
        self,
        cmd: str,
        output: BinaryIO | None,
        echo: str | None = None,
    ) -> CommandResult:
        sent = self._send(cmd, echo)
        if sent is not None:
            return sent

        self._reader.init_read()
        line = self._reader.read_next_line()
        if not line:
            return self._read_failure(line, None, 0)

        self._state = SessionState.READY
        self._deliver(output)
        status = self._status()
        if status.is_success(self._success_byte):
            return CommandResult(ok=True, status=status, line_count=1)
        return CommandResult(
            ok=False,
            error=ErrorKind.PROTOCOL,
            detail=str(status),
            status=status,
            line_count=1,
        )

    # ===== Shutdown =====

    def close(self, *, output: BinaryIO | None = None) -> None:
        """
        Send the quit command and close the connection.

        The quit reply and any error are ignored. Quit is skipped when a
        previous response was left incomplete. Calling close() again, or on
        a session that never connected, does nothing.

        Args:
            output: Sink for the quit reply, overriding the session sink.
        """
        if self._state in (SessionState.DISCONNECTED, SessionState.CLOSED):
            return

        if self._reader.is_connected and self._state != SessionState.AWAITING_RESPONSE:
            result = self._single_line(self._config.quit_command, output)
            if not result:
                logger.debug("Quit failed: %s", result.detail)

        self._reader.close()
        self._state = SessionState.CLOSED
        logger.info("Session closed, total bytes read: %d", self._reader.total_bytes_read)

    # ===== Helpers =====

    def _send(self, cmd: str, echo: str | None = None) -> CommandResult | None:
        """
        Write cmd followed by CRLF.

        Returns:
            A failure result, or None if everything was written.
        """
        if "\r" in cmd or "\n" in cmd:
            raise ValueError("Command must not contain CR or LF")

        if self._config.echo_commands:
            logger.info("REQ> %s", echo if echo is not None else cmd)

        self._state = SessionState.AWAITING_RESPONSE
        payload = cmd.encode(self._config.encoding) + ProtocolConstants.CRLF
        written = self._reader.write_bytes(payload)
        if not written:
            return CommandResult(ok=False, error=written.error, detail=written.detail)
        return None

    def _deliver(self, output: BinaryIO | None) -> None:
        sink = output if output is not None else self._output
        if sink is not None:
            sink.write(self._reader.current_line)

    def _status(self) -> StatusLine:
        return parse_status_line(self._reader.current_line, self._config.encoding)

    def _is_sentinel(self, line: bytes) -> bool:
        return len(line) == ProtocolConstants.SENTINEL_LINE_LENGTH and line[0] == self._sentinel_byte

    def _read_failure(
        self,
        line: LineResult,
        status: StatusLine | None,
        count: int,
    ) -> CommandResult:
        logger.warning("Response interrupted (%s), the session can only be closed", line.error.name)
        return CommandResult(
            ok=False,
            error=line.error,
            detail=line.detail,
            capacity=line.capacity,
            status=status,
            line_count=count,
        )

    def _ensure_state(self, *allowed: SessionState) -> None:
        """Verify the session is in one of the allowed states."""
        if self._state not in allowed:
            raise SessionStateError(
                f"Operation not allowed (state: {self._state.name})"
            )

    def __enter__(self) -> ProtocolSession:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        transport = self._reader.transport
        endpoint = transport.endpoint if transport is not None else f"{self._config.host}:{self._config.port}"
        return f"ProtocolSession(state={self._state.name}, endpoint={endpoint})"
