"""
Mock transport for testing.

This module provides in-memory transports that let the LineReader and
ProtocolSession run without a server. Each queued response is handed out
as one read, which makes partial reads and lines split across reads easy
to reproduce.

Example:
    >>> from lineproto.transport import MockTransport
    >>>
    >>> mock = MockTransport()
    >>> mock.add_responses(b"200 welc", b"ome\\r\\n")  # greeting split in two reads
    >>> mock.open()
    >>> mock.recv_into(memoryview(bytearray(16)))
    8
"""

from __future__ import annotations

from collections import deque
from typing import Callable

from lineproto.exceptions import TransportError
from lineproto.transport.abc import AbstractTransport


class MockTransport(AbstractTransport):
    """
    Mock transport for testing without a server.

    Responses are queued chunks returned one per ``recv_into`` call; a
    chunk larger than the caller's buffer is split and the remainder is
    returned on the next call. Queuing an exception makes the read that
    reaches it raise. When the queue is empty, reads report end of stream.

    All written data is recorded for verification.

    Attributes:
        written_data: List of all writes, one entry per write call.
        chunk_size: If set, each read returns at most this many bytes.
        max_write: If set, each write accepts at most this many bytes.

    Example:
        >>> mock = MockTransport(chunk_size=1)  # one byte per read
        >>> mock.add_response(b"200 OK\\r\\n")
        >>>
        >>> with mock:
        ...     mock.write(b"mode reader\\r\\n")
        ...     assert mock.written_data == [b"mode reader\\r\\n"]
    """

    def __init__(
        self,
        endpoint: str = "mock://test",
        *,
        chunk_size: int | None = None,
        max_write: int | None = None,
    ) -> None:
        """
        Initialize the mock transport.

        Args:
            endpoint: Identifier for the mock transport.
            chunk_size: Upper bound on bytes returned per read.
            max_write: Upper bound on bytes accepted per write.
        """
        self._endpoint = endpoint
        self._chunk_size = chunk_size
        self._max_write = max_write
        self._is_open = False
        self._responses: deque[bytes | BaseException] = deque()
        self._written_data: list[bytes] = []
        self._read_buffer = bytearray()
        self._response_callback: Callable[[bytes], bytes | None] | None = None
        self._open_error: BaseException | None = None
        self.open_count = 0
        self.close_count = 0
        self.bytes_delivered = 0

    @property
    def is_open(self) -> bool:
        """Check if the mock transport is open."""
        return self._is_open

    @property
    def endpoint(self) -> str:
        """Get the mock endpoint name."""
        return self._endpoint

    @property
    def written_data(self) -> list[bytes]:
        """Get all data written to the transport."""
        return self._written_data.copy()

    @property
    def written_bytes(self) -> bytes:
        """Get all written data joined into one byte string."""
        return b"".join(self._written_data)

    @property
    def last_written(self) -> bytes | None:
        """Get the most recently written data."""
        return self._written_data[-1] if self._written_data else None

    def add_response(self, response: bytes | BaseException) -> None:
        """
        Add a response chunk to the queue.

        Chunks are returned in FIFO order, one per read.

        Args:
            response: Bytes to return, or an exception to raise on read.
        """
        self._responses.append(response)

    def add_responses(self, *responses: bytes | BaseException) -> None:
        """
        Add multiple response chunks to the queue.

        Args:
            *responses: Chunks to add, in order.
        """
        for response in responses:
            self._responses.append(response)

    def add_lines(self, *lines: str | bytes) -> None:
        """
        Queue lines as one chunk, each terminated by CRLF.

        Args:
            *lines: Line contents without terminators.
        """
        chunk = b"".join(
            (line.encode("ascii") if isinstance(line, str) else line) + b"\r\n"
            for line in lines
        )
        self._responses.append(chunk)

    def fail_open(self, error: BaseException) -> None:
        """
        Make the next open() raise error.

        Args:
            error: Exception to raise.
        """
        self._open_error = error

    def set_response_callback(
        self,
        callback: Callable[[bytes], bytes | None] | None,
    ) -> None:
        """
        Set a callback to dynamically generate responses.

        The callback receives each write and may return bytes, which are
        queued as one response chunk. Returning None queues nothing.

        Args:
            callback: Function that takes written bytes and returns response.
        """
        self._response_callback = callback

    def clear(self) -> None:
        """Clear all written data and pending responses."""
        self._written_data.clear()
        self._responses.clear()
        self._read_buffer.clear()

    def open(self) -> None:
        """
        Open the mock transport.

        Raises:
            TransportError: If already open.
        """
        if self._open_error is not None:
            error, self._open_error = self._open_error, None
            raise error
        if self._is_open:
            raise TransportError("Mock transport already open")
        self._is_open = True
        self.open_count += 1

    def close(self) -> None:
        """Close the mock transport."""
        if self._is_open:
            self.close_count += 1
        self._is_open = False

    def write(self, data: bytes | bytearray | memoryview) -> int:
        """
        Write data to the mock transport.

        Records the accepted data and optionally triggers the response
        callback once a whole write has been delivered.

        Args:
            data: Bytes to write.

        Returns:
            Number of bytes accepted.

        Raises:
            TransportError: If transport is not open.
        """
        if not self._is_open:
            raise TransportError("Mock transport not open")

        accepted = bytes(data)
        if self._max_write is not None:
            accepted = accepted[:self._max_write]
        self._written_data.append(accepted)

        if self._response_callback and len(accepted) == len(data):
            response = self._response_callback(bytes(data))
            if response is not None:
                self._responses.append(response)

        return len(accepted)

    def recv_into(self, buffer: memoryview) -> int:
        """
        Return the next queued chunk.

        Args:
            buffer: Writable view to fill.

        Returns:
            Bytes stored, 0 when the queue is exhausted (end of stream).

        Raises:
            TransportError: If transport is not open.
            BaseException: Any exception queued with add_response().
        """
        if not self._is_open:
            raise TransportError("Mock transport not open")

        if not self._read_buffer:
            if not self._responses:
                return 0
            response = self._responses.popleft()
            if isinstance(response, BaseException):
                raise response
            self._read_buffer.extend(response)

        size = len(buffer)
        if self._chunk_size is not None:
            size = min(size, self._chunk_size)
        size = min(size, len(self._read_buffer))

        buffer[:size] = self._read_buffer[:size]
        del self._read_buffer[:size]
        self.bytes_delivered += size
        return size

    def assert_written(self, expected: bytes, index: int = -1) -> None:
        """
        Assert that specific data was written.

        Args:
            expected: Expected bytes.
            index: Index in written_data list (-1 for last).

        Raises:
            AssertionError: If data doesn't match.
        """
        if not self._written_data:
            raise AssertionError("No data written to mock transport")

        actual = self._written_data[index]
        if actual != expected:
            raise AssertionError(f"Written data mismatch: expected {expected!r}, got {actual!r}")

    def assert_write_count(self, expected: int) -> None:
        """
        Assert number of write operations.

        Args:
            expected: Expected number of writes.

        Raises:
            AssertionError: If count doesn't match.
        """
        actual = len(self._written_data)
        if actual != expected:
            raise AssertionError(f"Write count mismatch: expected {expected}, got {actual}")


class ScriptedMockTransport(MockTransport):
    """
    Mock transport with scripted request/response pairs.

    Each complete command line written advances the script by one step
    and queues that step's response. Requests are matched against the
    whole line including CRLF.

    Example:
        >>> mock = ScriptedMockTransport(greeting=b"200 ready\\r\\n")
        >>> mock.expect(request=b"group misc.test\\r\\n", response=b"211 3 1 3 misc.test\\r\\n")
        >>> mock.expect(response=b"205 bye\\r\\n")  # any request
    """

    def __init__(
        self,
        endpoint: str = "mock://scripted",
        *,
        greeting: bytes | None = None,
        chunk_size: int | None = None,
        max_write: int | None = None,
    ) -> None:
        super().__init__(endpoint, chunk_size=chunk_size, max_write=max_write)
        self._script: list[tuple[bytes | None, bytes]] = []
        self._script_index = 0
        self._pending_request = bytearray()
        if greeting is not None:
            self.add_response(greeting)

    @property
    def script_complete(self) -> bool:
        """Check if every scripted step has been consumed."""
        return self._script_index >= len(self._script)

    def expect(
        self,
        response: bytes,
        request: bytes | None = None,
    ) -> None:
        """
        Add an expected request/response pair.

        Args:
            response: Response to queue once the request is written.
            request: Expected request line (None to match any).
        """
        self._script.append((request, response))

    def write(self, data: bytes | bytearray | memoryview) -> int:
        """Write with script validation, one step per complete line."""
        accepted = super().write(data)
        self._pending_request.extend(bytes(data)[:accepted])

        while b"\r\n" in self._pending_request:
            end = self._pending_request.index(b"\r\n") + 2
            request = bytes(self._pending_request[:end])
            del self._pending_request[:end]
            self._advance(request)

        return accepted

    def _advance(self, request: bytes) -> None:
        if self._script_index >= len(self._script):
            return

        expected_request, response = self._script[self._script_index]
        if expected_request is not None and request != expected_request:
            raise AssertionError(
                f"Script mismatch at step {self._script_index}: "
                f"expected {expected_request!r}, got {request!r}"
            )

        self._responses.append(response)
        self._script_index += 1

    def reset_script(self) -> None:
        """Reset script to beginning."""
        self._script_index = 0
        self._pending_request.clear()
        self._read_buffer.clear()

    def clear_script(self) -> None:
        """Clear all scripted expectations."""
        self._script.clear()
        self._script_index = 0
