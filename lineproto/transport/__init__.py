"""
Transport layer for line protocol communication.

This package provides the byte streams underneath the LineReader.

Available transports:
- SocketTransport: TCP client socket
- SerialTransport: Serial port or pyserial URL using pyserial
- MockTransport: Mock transport for testing without a server

Example:
    >>> from lineproto.transport import SocketTransport
    >>> with SocketTransport("news.example.com", 119) as transport:
    ...     transport.write(b"help\\r\\n")

Testing Example:
    >>> from lineproto.transport import MockTransport
    >>> mock = MockTransport()
    >>> mock.add_response(b"200 ready\\r\\n")
"""

from lineproto.transport.abc import AbstractTransport
from lineproto.transport.mock import MockTransport, ScriptedMockTransport
from lineproto.transport.serial_sync import SerialTransport
from lineproto.transport.socket_tcp import SocketTransport

__all__ = [
    "AbstractTransport",
    "SocketTransport",
    "SerialTransport",
    "MockTransport",
    "ScriptedMockTransport",
]
