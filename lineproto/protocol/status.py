"""
Status line parsing.

The first line of every response starts with a three-digit status code
followed by free text:

    211 1234 3000234 3002322 misc.test

Success is decided on the raw first byte only (see ``is_success``); the
parsed code and text are informational and never drive the protocol.
"""

from __future__ import annotations

from dataclasses import dataclass

from lineproto.protocol.constants import (
    MULTI_LINE_REPLY_CODES,
    ProtocolConstants,
    ReplyCode,
)


@dataclass(frozen=True)
class StatusLine:
    """
    A response's first line, split into status code and text.

    Attributes:
        raw: Line bytes as received, including the CRLF terminator.
        code: Three-digit status code, or None if the line has none.
        text: Decoded text after the code, without the terminator.
    """

    raw: bytes
    code: int | None
    text: str

    @property
    def reply(self) -> ReplyCode | int | None:
        """Get the code as ReplyCode enum if recognized, else raw int."""
        if self.code is None:
            return None
        try:
            return ReplyCode(self.code)
        except ValueError:
            return self.code

    def is_success(self, indicator: int = ord(ProtocolConstants.SUCCESS_INDICATOR)) -> bool:
        """Check whether the first byte equals the success indicator."""
        return bool(self.raw) and self.raw[0] == indicator

    @property
    def announces_body(self) -> bool:
        """Check if the code announces a multi-line body."""
        return self.code in MULTI_LINE_REPLY_CODES

    def __str__(self) -> str:
        if self.code is None:
            return self.text
        return f"{self.code} {self.text}".rstrip()


def parse_status_line(
    raw: bytes | bytearray | memoryview,
    encoding: str = ProtocolConstants.DEFAULT_ENCODING,
) -> StatusLine:
    """
    Parse a response line into a StatusLine.

    Lines that do not start with three ASCII digits yield ``code=None``
    and the whole line as text.

    Args:
        raw: Line bytes, with or without the CRLF terminator.
        encoding: Charset used to decode the text part.

    Returns:
        The parsed status line.
    """
    data = bytes(raw)
    body = data[:-2] if data.endswith(ProtocolConstants.CRLF) else data

    width = ProtocolConstants.STATUS_CODE_LENGTH
    head = body[:width]
    if len(head) == width and head.isdigit() and body[width:width + 1] in (b"", b" "):
        return StatusLine(
            raw=data,
            code=int(head),
            text=body[width + 1:].decode(encoding, errors="replace"),
        )

    return StatusLine(raw=data, code=None, text=body.decode(encoding, errors="replace"))
