"""
Serial transport using pyserial.

Line protocols are as common on serial links as on TCP. This transport
opens a port with ``serial.serial_for_url``, so besides device paths it
accepts every pyserial URL handler:

- ``/dev/ttyUSB0``, ``COM3``: local serial ports
- ``socket://host:port``: raw TCP through pyserial
- ``rfc2217://host:port``: Telnet COM port control
- ``loop://``: loopback, useful in tests

Serial links have no end-of-stream: with a timeout configured an empty
read raises TimeoutError, without one a read blocks until data arrives.

Example:
    >>> transport = SerialTransport("/dev/ttyUSB0", baudrate=9600, timeout=5.0)
    >>> with transport:
    ...     transport.write(b"help\\r\\n")
"""

from __future__ import annotations

import logging

import serial

from lineproto.exceptions import ConnectionError, TimeoutError, TransportError
from lineproto.transport.abc import AbstractTransport

logger = logging.getLogger(__name__)


class SerialTransport(AbstractTransport):
    """
    Blocking serial transport built on pyserial.

    The port is configured 8N1 without flow control unless told otherwise.

    Attributes:
        endpoint: Port path or pyserial URL.
        is_open: Whether the port is currently open.

    Example:
        >>> transport = SerialTransport("loop://", timeout=1.0)
        >>> transport.open()
        >>> try:
        ...     transport.write(b"200 ready\\r\\n")
        ... finally:
        ...     transport.close()
    """

    def __init__(
        self,
        url: str,
        baudrate: int = 9600,
        timeout: float | None = None,
        *,
        rtscts: bool = False,
        xonxoff: bool = False,
    ) -> None:
        """
        Initialize the serial transport.

        Args:
            url: Serial port path or pyserial URL.
            baudrate: Baud rate (default: 9600).
            timeout: Read/write deadline in seconds. None blocks.
            rtscts: Enable hardware flow control.
            xonxoff: Enable software flow control.
        """
        self._url = url
        self._baudrate = baudrate
        self._timeout = timeout
        self._rtscts = rtscts
        self._xonxoff = xonxoff
        self._serial: serial.SerialBase | None = None

    @property
    def is_open(self) -> bool:
        """Check if the serial port is currently open."""
        return self._serial is not None and self._serial.is_open

    @property
    def endpoint(self) -> str:
        """Get the serial port path or URL."""
        return self._url

    @property
    def baudrate(self) -> int:
        """Get the configured baud rate."""
        return self._baudrate

    def open(self) -> None:
        """
        Open the serial port.

        Raises:
            ConnectionError: If the port cannot be opened.
            TransportError: If the port is already open.
        """
        if self.is_open:
            raise TransportError(f"Serial port {self._url} already open")

        try:
            self._serial = serial.serial_for_url(
                self._url,
                baudrate=self._baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=self._timeout,
                write_timeout=self._timeout,
                rtscts=self._rtscts,
                xonxoff=self._xonxoff,
            )
        except serial.SerialException as e:
            raise ConnectionError(f"Failed to open serial port {self._url}: {e}") from e
        except (OSError, ValueError) as e:
            raise ConnectionError(f"Error opening {self._url}: {e}") from e

        logger.debug("Opened serial port %s at %d baud", self._url, self._baudrate)

    def close(self) -> None:
        """
        Close the serial port.

        Safe to call multiple times; close errors are logged and ignored.
        """
        port, self._serial = self._serial, None
        if port is None:
            return

        try:
            port.close()
        except (serial.SerialException, OSError) as e:
            logger.debug("Error closing %s: %s", self._url, e)

    def write(self, data: bytes | bytearray | memoryview) -> int:
        """
        Write data to the serial port.

        Args:
            data: Bytes to transmit.

        Returns:
            Number of bytes written.

        Raises:
            TimeoutError: If the write deadline expires.
            TransportError: If the port is not open or write fails.
        """
        if not self.is_open:
            raise TransportError("Serial port is not open")

        try:
            written = self._serial.write(data)
            self._serial.flush()
        except serial.SerialTimeoutException:
            raise TimeoutError(
                f"Timeout writing to {self._url}",
                timeout_seconds=self._timeout,
            ) from None
        except (serial.SerialException, OSError) as e:
            raise TransportError(f"Write failed: {e}") from e

        return len(data) if written is None else written

    def recv_into(self, buffer: memoryview) -> int:
        """
        Read available bytes from the serial port.

        Waits for one byte, then takes whatever else is already waiting,
        up to the size of the buffer.

        Args:
            buffer: Writable view to fill.

        Returns:
            Number of bytes stored.

        Raises:
            TimeoutError: If no byte arrives before the deadline.
            TransportError: If the port is not open or read fails.
        """
        if not self.is_open:
            raise TransportError("Serial port is not open")

        if len(buffer) == 0:
            return 0

        try:
            data = self._serial.read(1)
            if not data:
                raise TimeoutError(
                    f"Timeout reading from {self._url}",
                    timeout_seconds=self._timeout,
                )
            waiting = min(self._serial.in_waiting, len(buffer) - 1)
            if waiting:
                data += self._serial.read(waiting)
        except (serial.SerialException, OSError) as e:
            raise TransportError(f"Read failed: {e}") from e

        buffer[:len(data)] = data
        return len(data)

    def __repr__(self) -> str:
        status = "open" if self.is_open else "closed"
        return f"SerialTransport({self._url!r}, baudrate={self._baudrate}, {status})"
