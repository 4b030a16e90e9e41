"""
Abstract transport interface for line protocol communication.

This module defines the abstract base class for all transport
implementations. Transports handle the raw byte stream underneath the
LineReader: TCP sockets, serial ports, or in-memory mocks for tests.

The transport layer is responsible for:
- Opening/closing the connection
- Reading whatever bytes are available into a caller-owned buffer
- Writing bytes, possibly accepting fewer than offered
- Honouring a deadline, if one was configured

Implementations:
- SocketTransport: TCP client socket
- SerialTransport: pyserial port or URL
- MockTransport: For testing without a server
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from types import TracebackType


class AbstractTransport(ABC):
    """
    Abstract base class for line protocol transports.

    Transports provide blocking read/write operations on one byte
    stream. All implementations must inherit from this class and
    implement all abstract methods.

    Transports support the context manager protocol for safe resource
    management:

        with SocketTransport("news.example.com", 119) as transport:
            transport.write(b"help\\r\\n")
            count = transport.recv_into(view)

    Attributes:
        is_open: Whether the transport connection is currently open.
        endpoint: Identifier for the transport (e.g., "host:port").
    """

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """
        Check if the transport connection is currently open.

        Returns:
            True if connected and ready for I/O, False otherwise.
        """
        ...

    @property
    @abstractmethod
    def endpoint(self) -> str:
        """
        Get the transport identifier.

        Returns:
            Endpoint string (e.g., "localhost:119", "/dev/ttyUSB0").
        """
        ...

    @abstractmethod
    def open(self) -> None:
        """
        Open the transport connection.

        Raises:
            ConnectionError: If the endpoint cannot be reached.
            TimeoutError: If a configured deadline expires while connecting.
            TransportError: If already open or on other I/O failures.
        """
        ...

    @abstractmethod
    def close(self) -> None:
        """
        Close the transport connection.

        Releases the connection and any associated resources. Safe to call
        multiple times (idempotent) and never raises.
        """
        ...

    @abstractmethod
    def write(self, data: bytes | bytearray | memoryview) -> int:
        """
        Write data to the transport.

        A single call may accept only part of the data; callers loop
        until everything is written.

        Args:
            data: Bytes to send.

        Returns:
            Number of bytes accepted.

        Raises:
            TimeoutError: If a configured deadline expires.
            TransportError: If the transport is not open or write fails.
        """
        ...

    @abstractmethod
    def recv_into(self, buffer: memoryview) -> int:
        """
        Read available bytes into a buffer.

        Blocks until at least one byte is available, the stream ends,
        or a configured deadline expires. Never reads more than
        ``len(buffer)`` bytes.

        Args:
            buffer: Writable view to fill from its start.

        Returns:
            Number of bytes stored, 0 at end of stream.

        Raises:
            TimeoutError: If a configured deadline expires.
            TransportError: If the transport is not open or read fails.
        """
        ...

    def __enter__(self) -> AbstractTransport:
        """Context manager entry - opens the transport."""
        self.open()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Context manager exit - closes the transport."""
        self.close()
