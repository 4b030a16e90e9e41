"""
Exception hierarchy for lineproto.

All exceptions inherit from LineProtoError. The engine itself reports
failures as result values (see lineproto.models.results); exceptions are
raised by transports, by misuse of a session, and by
``raise_for_status()`` for callers that prefer exceptions:

1. Transport errors (socket, serial) are distinct from protocol errors
2. Server replies carry their status code for debugging
3. Overlong lines carry the buffer capacity they did not fit in
"""

from __future__ import annotations

from typing import Final


class LineProtoError(Exception):
    """
    Base exception for all lineproto errors.

    All library-specific exceptions inherit from this class, allowing
    callers to catch all lineproto errors with a single except clause.
    """

    pass


class TransportError(LineProtoError):
    """
    Transport-level error.

    Raised for low-level transport issues:
    - Socket or serial port errors
    - I/O errors on read or write
    - Operations on a transport that is not open
    """

    pass


class ConnectionError(LineProtoError):  # noqa: A001 - intentionally shadows builtin
    """
    Connection error.

    Raised when:
    - The remote endpoint cannot be resolved or refuses the connection
    - The connection is unexpectedly lost
    - The peer closes the stream before a complete line arrived
    """

    pass


class TimeoutError(LineProtoError):  # noqa: A001 - intentionally shadows builtin
    """
    Communication timeout.

    Only raised when the caller configured a deadline on the transport;
    the engine never imposes one itself.
    """

    def __init__(
        self,
        message: str = "Communication timeout",
        *,
        timeout_seconds: float | None = None,
    ) -> None:
        super().__init__(message)
        self.timeout_seconds = timeout_seconds

    def __str__(self) -> str:
        base = super().__str__()
        if self.timeout_seconds is not None:
            return f"{base} (after {self.timeout_seconds:.1f}s)"
        return base


class SessionStateError(ConnectionError):
    """
    Operation not allowed in the current session state.

    Raised when a command is issued before the greeting was accepted or
    after the session was closed.
    """

    pass


class ProtocolError(LineProtoError):
    """
    Protocol-level error.

    Raised when the peer's response violates the line protocol or
    reports a failure.
    """

    pass


class LineTooLongError(ProtocolError):
    """
    A line did not fit in the reader's buffer.

    The buffered span filled the whole capacity without a CRLF terminator.
    The reader must be created with a capacity larger than the longest
    line the peer can send.
    """

    def __init__(
        self,
        message: str = "Line exceeds buffer capacity",
        *,
        capacity: int | None = None,
    ) -> None:
        super().__init__(message)
        self.capacity = capacity

    def __str__(self) -> str:
        base = super().__str__()
        if self.capacity is not None:
            return f"{base} (capacity {self.capacity} bytes)"
        return base


class ReplyError(ProtocolError):
    """
    Non-success reply from the server.

    The code attribute holds the three-digit status code when the reply
    line carried one, None otherwise.
    """

    def __init__(self, code: int | None, text: str = "") -> None:
        self.code = code
        self.text = text or REPLY_MESSAGES.get(code or 0, "Unknown reply")
        if code is None:
            super().__init__(f"Server error: {self.text}")
        else:
            super().__init__(f"Server error {code}: {self.text}")


# Messages for failure replies, used when the server sent no text
REPLY_MESSAGES: Final[dict[int, str]] = {
    400: "Service not available",
    403: "Internal fault",
    411: "No such newsgroup",
    412: "No newsgroup selected",
    420: "Current article number is invalid",
    423: "No article with that number",
    430: "No article with that message-id",
    480: "Authentication required",
    481: "Authentication failed",
    482: "Authentication commands issued out of sequence",
    500: "Unknown command",
    501: "Syntax error",
    502: "Command unavailable",
    503: "Feature not supported",
}
