"""
CRLF line extraction over a fixed-size buffer.

The LineReader owns one bytearray of fixed capacity bound to one
connection. Lines are located in place and exposed as offsets into that
buffer; nothing is copied or decoded unless the caller asks for it.

Buffer layout at any observable point:

    0          line_start     position        limit          capacity
    |  consumed  |  current line  |  unscanned   |    free      |

    0 <= line_start <= position <= limit <= capacity

When a line is not complete in the buffer, more bytes are read into the
free region. The buffer is linear, not circular, so before reading the
unconsumed tail [line_start, limit) is moved down to offset 0 (compaction).
That copy only happens for a line that straddles two reads, and it keeps
line_start/line_end plain offsets into a flat array.

The capacity must exceed the longest line the peer sends. A buffered span
that fills the whole capacity without a CRLF is reported as LINE_TOO_LONG.

Example:
    >>> reader = LineReader(capacity=1024)
    >>> if reader.connect("news.example.com", 119):
    ...     reader.init_read()
    ...     result = reader.read_next_line()
    ...     if result:
    ...         print(reader.decode_line())
    ...     reader.close()
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Final

from lineproto.exceptions import ConnectionError, TimeoutError, TransportError
from lineproto.models.results import (
    ErrorKind,
    LineResult,
    OperationResult,
    WriteResult,
)
from lineproto.protocol.constants import ProtocolConstants
from lineproto.transport.socket_tcp import SocketTransport

if TYPE_CHECKING:
    from lineproto.transport.abc import AbstractTransport

logger = logging.getLogger(__name__)

FIRST_READ: Final[int] = -1
"""line_number value after init_read, before any read for the command."""

NO_LINE: Final[int] = -1
"""line_end value while no terminator has been found."""

TransportFactory = Callable[[str, int], "AbstractTransport"]


class LineReader:
    """
    Reads CRLF-terminated lines from one connection through a fixed buffer.

    One instance serves one connection and one command at a time: send a
    command with write_bytes(), call init_read(), then call
    read_next_line() until the response is complete. Operations block and
    report failures as result values.

    Attributes:
        capacity: Buffer size in bytes.
        encoding: Charset used only by decode_line().
        line_start: Offset of the current line in the buffer.
        line_end: Offset one past the current line's LF, or -1.
        line_number: Lines read since init_read(), -1 before the first read.
        total_bytes_read: Bytes received over the connection's lifetime.
    """

    def __init__(
        self,
        capacity: int = ProtocolConstants.DEFAULT_BUFFER_SIZE,
        encoding: str = ProtocolConstants.DEFAULT_ENCODING,
        *,
        transport_factory: TransportFactory | None = None,
        timeout: float | None = None,
        trace_buffer: bool = False,
    ) -> None:
        """
        Initialize the reader and allocate its buffer.

        Args:
            capacity: Buffer size; must exceed the longest expected line.
            encoding: Charset for decode_line().
            transport_factory: Builds a transport from (host, port).
                Defaults to SocketTransport.
            timeout: Deadline passed to the default SocketTransport.
            trace_buffer: Log buffer state at DEBUG level while reading.

        Raises:
            ValueError: If capacity cannot hold the shortest line.
        """
        if capacity < ProtocolConstants.MIN_BUFFER_SIZE:
            raise ValueError(
                f"Buffer capacity must be at least {ProtocolConstants.MIN_BUFFER_SIZE} bytes"
            )

        self._capacity = capacity
        self._encoding = encoding
        self._buffer = bytearray(capacity)
        self._view = memoryview(self._buffer)
        self._timeout = timeout
        self._transport_factory = transport_factory
        self._transport: AbstractTransport | None = None
        self._trace_buffer = trace_buffer

        self._position = 0
        self._limit = 0
        self._line_start = 0
        self._line_end = NO_LINE
        self._line_number = 0
        self._total_bytes_read = 0

    # ===== Properties =====

    @property
    def capacity(self) -> int:
        """Get the buffer size in bytes."""
        return self._capacity

    @property
    def encoding(self) -> str:
        """Get the charset used by decode_line()."""
        return self._encoding

    @property
    def position(self) -> int:
        """Get the scan cursor."""
        return self._position

    @property
    def limit(self) -> int:
        """Get the end of buffered data."""
        return self._limit

    @property
    def line_start(self) -> int:
        """Get the offset of the current line."""
        return self._line_start

    @property
    def line_end(self) -> int:
        """Get the offset one past the current line's LF, or -1."""
        return self._line_end

    @property
    def line_number(self) -> int:
        """Get the number of lines read since init_read()."""
        return self._line_number

    @property
    def total_bytes_read(self) -> int:
        """Get the number of bytes received over the connection."""
        return self._total_bytes_read

    @property
    def is_connected(self) -> bool:
        """Check if a transport is attached and open."""
        return self._transport is not None and self._transport.is_open

    @property
    def transport(self) -> AbstractTransport | None:
        """Get the attached transport."""
        return self._transport

    @property
    def current_line(self) -> bytes:
        """
        Get a copy of the current line including its CRLF.

        Returns:
            Line bytes, empty if no line has been located.
        """
        if self._line_end == NO_LINE:
            return b""
        return bytes(self._view[self._line_start:self._line_end])

    def decode_line(self, strip_terminator: bool = True) -> str:
        """
        Decode the current line to text.

        Args:
            strip_terminator: Drop the trailing CRLF.

        Returns:
            Decoded line, empty if no line has been located.
        """
        if self._line_end == NO_LINE:
            return ""
        end = self._line_end - 2 if strip_terminator else self._line_end
        return self._view[self._line_start:end].tobytes().decode(self._encoding)

    # ===== Connection =====

    def connect(self, host: str, port: int) -> OperationResult:
        """
        Open a connection to host:port.

        Failures are reported, never raised; nothing is retried.

        Args:
            host: Remote hostname or address.
            port: Remote port.

        Returns:
            Result with error CONNECTION or TIMEOUT on failure.
        """
        if self._transport_factory is not None:
            transport = self._transport_factory(host, port)
        else:
            transport = SocketTransport(host, port, timeout=self._timeout)
        return self.attach(transport)

    def attach(self, transport: AbstractTransport) -> OperationResult:
        """
        Use an existing transport, opening it if needed.

        Args:
            transport: Transport to read from and write to.

        Returns:
            Result with error CONNECTION or TIMEOUT on failure.
        """
        if self.is_connected:
            self.close()

        self._transport = transport
        self._total_bytes_read = 0
        self.init_read()

        if transport.is_open:
            return OperationResult(ok=True)

        try:
            transport.open()
        except TimeoutError as e:
            logger.warning("Timeout connecting to %s", transport.endpoint)
            self._transport = None
            return OperationResult(ok=False, error=ErrorKind.TIMEOUT, detail=str(e))
        except (ConnectionError, TransportError) as e:
            logger.warning("Couldn't connect to %s: %s", transport.endpoint, e)
            self._transport = None
            return OperationResult(ok=False, error=ErrorKind.CONNECTION, detail=str(e))

        logger.info("Connected to %s", transport.endpoint)
        return OperationResult(ok=True)

    def close(self) -> None:
        """
        Close the connection.

        Best effort and idempotent: close errors are logged, never raised.
        """
        transport, self._transport = self._transport, None
        if transport is None:
            return

        try:
            transport.close()
        except (TransportError, OSError) as e:
            logger.debug("Error closing %s: %s", transport.endpoint, e)

    # ===== Reading =====

    def init_read(self) -> None:
        """
        Reset scanning state for the response to a new command.

        Buffered leftovers are discarded, and the next read_next_line()
        reads fresh bytes before scanning.
        """
        self._position = 0
        self._limit = 0
        self._line_start = 0
        self._line_end = NO_LINE
        self._line_number = FIRST_READ

    def read_next_line(self) -> LineResult:
        """
        Locate the next CRLF-terminated line.

        Lines already buffered are returned without I/O. Otherwise the
        buffer is cleared or compacted and more bytes are read until a
        terminator arrives.

        On success, [line_start, line_end) spans the line including CRLF.

        Returns:
            LineResult carrying the line on success. Failures:
            END_OF_STREAM if the peer closed first, LINE_TOO_LONG if the
            line does not fit, CONNECTION or TIMEOUT on I/O errors.
        """
        if self._transport is None:
            return LineResult(ok=False, error=ErrorKind.CONNECTION, detail="Not connected")

        self._line_start = self._position

        while True:
            if self._line_number == FIRST_READ:
                self._line_number = 0
            else:
                self._line_end = self._find_line_end()
                self._trace("scan")

                if self._line_end != NO_LINE:
                    self._line_number += 1
                    return LineResult(ok=True, line=self.current_line)

                failure = self._make_room()
                if failure is not None:
                    return failure

            failure = self._fill()
            if failure is not None:
                return failure

            # Rescan the whole partial line: its CR may have ended the last read
            self._position = self._line_start
            self._trace("after read")

    def _find_line_end(self) -> int:
        """
        Scan [position, limit) for CR LF, advancing position.

        Returns:
            Offset one past the LF, or -1 if no terminator was found.
        """
        index = self._buffer.find(ProtocolConstants.CRLF, self._position, self._limit)
        if index == -1:
            self._position = self._limit
            return NO_LINE
        self._position = index + 2
        return self._position

    def _make_room(self) -> LineResult | None:
        """
        Free space after a failed scan.

        Returns:
            A LINE_TOO_LONG failure if the buffer is full, None otherwise.
        """
        if self._line_start == 0:
            if self._limit == self._capacity:
                logger.warning("Line longer than the %d byte buffer", self._capacity)
                return LineResult(
                    ok=False,
                    error=ErrorKind.LINE_TOO_LONG,
                    detail="No line terminator in buffer",
                    capacity=self._capacity,
                )
            logger.debug("Partial read, line starts at buffer start")

        elif self._line_start == self._limit:
            logger.debug("Buffer fully consumed")
            self._line_start = 0
            self._position = 0
            self._limit = 0

        else:
            tail = self._limit - self._line_start
            self._trace("compact needed")
            self._buffer[:tail] = self._buffer[self._line_start:self._limit]
            self._line_start = 0
            self._position = 0
            self._limit = tail
            self._trace("compact result")

        return None

    def _fill(self) -> LineResult | None:
        """
        Read from the transport into the free region.

        Returns:
            A failure result, or None if bytes were read.
        """
        try:
            count = self._transport.recv_into(self._view[self._limit:self._capacity])
        except TimeoutError as e:
            logger.warning("Read timed out on %s", self._transport.endpoint)
            return LineResult(ok=False, error=ErrorKind.TIMEOUT, detail=str(e))
        except (ConnectionError, TransportError) as e:
            logger.warning("Read failed on %s: %s", self._transport.endpoint, e)
            return LineResult(ok=False, error=ErrorKind.CONNECTION, detail=str(e))

        if count == 0:
            logger.debug("End of stream with %d unterminated bytes", self._limit - self._line_start)
            return LineResult(
                ok=False,
                error=ErrorKind.END_OF_STREAM,
                detail="Connection closed before end of line",
            )

        self._limit += count
        self._total_bytes_read += count
        self._trace(f"channel read {count}")
        return None

    # ===== Writing =====

    def write_bytes(self, data: bytes | bytearray | memoryview) -> WriteResult:
        """
        Write all of data to the connection.

        Loops until the transport has accepted every byte.

        Args:
            data: Bytes to send.

        Returns:
            WriteResult with bytes_written == len(data) on success; on
            failure, the count accepted before the error. A write that
            accepts nothing is a CONNECTION failure.
        """
        if self._transport is None:
            return WriteResult(ok=False, error=ErrorKind.CONNECTION, detail="Not connected")

        view = memoryview(data)
        written = 0
        while written < len(view):
            try:
                count = self._transport.write(view[written:])
            except TimeoutError as e:
                logger.warning("Write timed out on %s", self._transport.endpoint)
                return WriteResult(
                    ok=False, error=ErrorKind.TIMEOUT, detail=str(e), bytes_written=written
                )
            except (ConnectionError, TransportError) as e:
                logger.warning("Write failed on %s: %s", self._transport.endpoint, e)
                return WriteResult(
                    ok=False, error=ErrorKind.CONNECTION, detail=str(e), bytes_written=written
                )
            if count == 0:
                logger.warning("Write stalled on %s after %d bytes", self._transport.endpoint, written)
                return WriteResult(
                    ok=False,
                    error=ErrorKind.CONNECTION,
                    detail="Transport accepted no bytes",
                    bytes_written=written,
                )
            written += count

        return WriteResult(ok=True, bytes_written=written)

    # ===== Tracing =====

    def _trace(self, stage: str) -> None:
        if self._trace_buffer and logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "[%s] pos=%d lim=%d lineStart=%d lineEnd=%d buff=%r",
                stage,
                self._position,
                self._limit,
                self._line_start,
                self._line_end,
                bytes(self._view[:self._limit]),
            )

    def __enter__(self) -> LineReader:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        endpoint = self._transport.endpoint if self._transport is not None else None
        return (
            f"LineReader(capacity={self._capacity}, endpoint={endpoint!r}, "
            f"bytes_read={self._total_bytes_read})"
        )
