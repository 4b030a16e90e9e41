"""
TCP socket transport.

This module provides the default transport: a blocking client socket to
a host and port. Reads hand back whatever the kernel has buffered, so a
line may arrive split across several reads; the LineReader reassembles
it.

No deadline is set unless one is given. Without a deadline a silent peer
blocks the caller indefinitely.

Example:
    >>> transport = SocketTransport("news.example.com", 119, timeout=10.0)
    >>> with transport:
    ...     transport.write(b"help\\r\\n")
    ...     count = transport.recv_into(memoryview(bytearray(512)))
"""

from __future__ import annotations

import logging
import socket

from lineproto.exceptions import ConnectionError, TimeoutError, TransportError
from lineproto.transport.abc import AbstractTransport

logger = logging.getLogger(__name__)


class SocketTransport(AbstractTransport):
    """
    Blocking TCP transport built on the standard socket module.

    Attributes:
        host: Remote hostname or address.
        port: Remote TCP port.
        timeout: Deadline in seconds for connect, read and write, or None.
    """

    def __init__(
        self,
        host: str,
        port: int,
        timeout: float | None = None,
    ) -> None:
        """
        Initialize the socket transport.

        Args:
            host: Remote hostname or address.
            port: Remote TCP port.
            timeout: Deadline in seconds for each socket operation.
                None blocks indefinitely.
        """
        self._host = host
        self._port = port
        self._timeout = timeout
        self._sock: socket.socket | None = None

    @property
    def is_open(self) -> bool:
        """Check if the socket is connected."""
        return self._sock is not None

    @property
    def endpoint(self) -> str:
        """Get the remote endpoint as host:port."""
        return f"{self._host}:{self._port}"

    @property
    def timeout(self) -> float | None:
        """Get the configured deadline."""
        return self._timeout

    def open(self) -> None:
        """
        Connect to the remote endpoint.

        Raises:
            ConnectionError: If the host cannot be resolved or refuses.
            TimeoutError: If the connection attempt times out.
            TransportError: If the transport is already open.
        """
        if self._sock is not None:
            raise TransportError(f"Socket to {self.endpoint} already open")

        try:
            self._sock = socket.create_connection((self._host, self._port), timeout=self._timeout)
        except socket.timeout:
            raise TimeoutError(
                f"Timeout connecting to {self.endpoint}",
                timeout_seconds=self._timeout,
            ) from None
        except OSError as e:
            raise ConnectionError(f"Cannot connect to {self.endpoint}: {e}") from e

        logger.debug("Connected to %s", self.endpoint)

    def close(self) -> None:
        """
        Shut down and close the socket.

        Errors are logged and ignored; the peer may already be gone.
        """
        sock, self._sock = self._sock, None
        if sock is None:
            return

        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError as e:
            logger.debug("Shutdown of %s failed: %s", self.endpoint, e)
        try:
            sock.close()
        except OSError as e:
            logger.debug("Close of %s failed: %s", self.endpoint, e)

    def write(self, data: bytes | bytearray | memoryview) -> int:
        """
        Send data with a single send call.

        Args:
            data: Bytes to send.

        Returns:
            Number of bytes the kernel accepted.

        Raises:
            TimeoutError: If the deadline expires.
            TransportError: If the socket is closed or the send fails.
        """
        if self._sock is None:
            raise TransportError("Socket is not open")

        try:
            return self._sock.send(data)
        except socket.timeout:
            raise TimeoutError(
                f"Timeout writing to {self.endpoint}",
                timeout_seconds=self._timeout,
            ) from None
        except OSError as e:
            raise TransportError(f"Write to {self.endpoint} failed: {e}") from e

    def recv_into(self, buffer: memoryview) -> int:
        """
        Receive available bytes into buffer.

        Args:
            buffer: Writable view to fill.

        Returns:
            Number of bytes received, 0 if the peer closed the stream.

        Raises:
            TimeoutError: If the deadline expires.
            TransportError: If the socket is closed or the read fails.
        """
        if self._sock is None:
            raise TransportError("Socket is not open")

        try:
            return self._sock.recv_into(buffer)
        except socket.timeout:
            raise TimeoutError(
                f"Timeout reading from {self.endpoint}",
                timeout_seconds=self._timeout,
            ) from None
        except OSError as e:
            raise TransportError(f"Read from {self.endpoint} failed: {e}") from e

    def __repr__(self) -> str:
        status = "open" if self.is_open else "closed"
        return f"SocketTransport({self._host!r}, {self._port}, {status})"
