"""
Result types returned by reader and session operations.

Every operation reports its outcome as a value rather than raising:
``ok`` is the success discriminant and, on failure, ``error`` holds the
ErrorKind. Results are truthy on success, so callers can write:

    >>> result = session.single_line_command("group misc.test")
    >>> if not result:
    ...     print(result.error.name, result.detail)

``raise_for_status()`` turns a failed result into the matching exception.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

from lineproto.exceptions import (
    ConnectionError,
    LineTooLongError,
    ReplyError,
    TimeoutError,
)

if TYPE_CHECKING:
    from lineproto.protocol.status import StatusLine


class ErrorKind(Enum):
    """
    Failure categories reported by results.
    """

    CONNECTION = auto()
    """The stream could not be opened or broke during I/O."""

    END_OF_STREAM = auto()
    """The peer closed the stream before a complete line arrived."""

    TIMEOUT = auto()
    """A deadline configured on the transport expired."""

    PROTOCOL = auto()
    """The peer answered with a non-success status."""

    LINE_TOO_LONG = auto()
    """A line did not fit in the reader's buffer."""


@dataclass(frozen=True)
class OperationResult:
    """
    Outcome of an operation that produces no data.

    Attributes:
        ok: True if the operation succeeded.
        error: Failure category, None on success.
        detail: Human-readable failure description.
        capacity: Reader buffer size, set on LINE_TOO_LONG failures.
    """

    ok: bool
    error: ErrorKind | None = None
    detail: str = ""
    capacity: int | None = None

    def __bool__(self) -> bool:
        return self.ok

    def raise_for_status(self) -> None:
        """
        Raise the exception matching a failed result.

        Raises:
            ConnectionError: For CONNECTION and END_OF_STREAM failures.
            TimeoutError: For TIMEOUT failures.
            LineTooLongError: For LINE_TOO_LONG failures.
            ReplyError: For PROTOCOL failures.
        """
        if self.ok:
            return
        if self.error is ErrorKind.TIMEOUT:
            raise TimeoutError(self.detail or "Communication timeout")
        if self.error is ErrorKind.LINE_TOO_LONG:
            raise LineTooLongError(
                self.detail or "Line exceeds buffer capacity",
                capacity=self.capacity,
            )
        if self.error is ErrorKind.PROTOCOL:
            raise ReplyError(None, self.detail)
        raise ConnectionError(self.detail or "Connection failed")

    def __repr__(self) -> str:
        if self.ok:
            return f"{type(self).__name__}(ok)"
        return f"{type(self).__name__}({self.error.name if self.error else 'failed'}: {self.detail})"


@dataclass(frozen=True, repr=False)
class LineResult(OperationResult):
    """
    Outcome of reading the next line.

    Attributes:
        line: The located line including its CRLF, empty if none was found.
    """

    line: bytes = b""


@dataclass(frozen=True, repr=False)
class WriteResult(OperationResult):
    """
    Outcome of writing bytes to the connection.

    Attributes:
        bytes_written: Bytes accepted by the connection. Equals the input
            length on success.
    """

    bytes_written: int = 0


@dataclass(frozen=True, repr=False)
class CommandResult(OperationResult):
    """
    Outcome of a command round-trip.

    Attributes:
        status: The response's first line, None if no line was read.
        line_count: Lines read for this response. For multi-line commands
            the closing sentinel line is included in the count.
    """

    status: StatusLine | None = None
    line_count: int = 0

    def raise_for_status(self) -> None:
        """Raise ReplyError with the status code for PROTOCOL failures."""
        if not self.ok and self.error is ErrorKind.PROTOCOL and self.status is not None:
            raise ReplyError(self.status.code, self.status.text)
        super().raise_for_status()

    def __repr__(self) -> str:
        status = f", status={str(self.status)!r}" if self.status is not None else ""
        outcome = "ok" if self.ok else (self.error.name if self.error else "failed")
        return f"CommandResult({outcome}, lines={self.line_count}{status})"
