"""
lineproto - Python library for CRLF line protocols with status-coded replies.

This library reads CRLF-terminated lines from a byte stream through one
fixed-size buffer, and layers an NNTP-style command session on top:
greeting check, authinfo login, single-line and multi-line commands.

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

from lineproto.exceptions import (
    ConnectionError,
    LineProtoError,
    LineTooLongError,
    ProtocolError,
    ReplyError,
    SessionStateError,
    TimeoutError,
    TransportError,
)
from lineproto.models.config import SessionConfig
from lineproto.models.results import (
    CommandResult,
    ErrorKind,
    LineResult,
    OperationResult,
    WriteResult,
)
from lineproto.protocol.line_reader import LineReader
from lineproto.protocol.status import StatusLine, parse_status_line
from lineproto.session import ProtocolSession, SessionState
from lineproto.transport import AbstractTransport, SerialTransport, SocketTransport

__version__ = "0.1.0"
__all__ = [
    # Session
    "ProtocolSession",
    "SessionState",
    "SessionConfig",
    # Reader
    "LineReader",
    "StatusLine",
    "parse_status_line",
    # Results
    "ErrorKind",
    "OperationResult",
    "LineResult",
    "WriteResult",
    "CommandResult",
    # Exceptions
    "LineProtoError",
    "TransportError",
    "ConnectionError",
    "TimeoutError",
    "SessionStateError",
    "ProtocolError",
    "LineTooLongError",
    "ReplyError",
    # Transport
    "AbstractTransport",
    "SocketTransport",
    "SerialTransport",
    # Version
    "__version__",
]
