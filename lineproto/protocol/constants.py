"""
Line protocol reply codes and constants.

Reply codes follow the NNTP conventions of RFC 3977 and RFC 4643: a
three-digit status at the start of the first response line, where the
first digit classifies the outcome.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Final


class ReplyCode(IntEnum):
    """
    Status codes sent by the server at the start of a response.

    Codes are grouped by their first digit:
    - 1xx: Informative
    - 2xx: Command completed OK
    - 3xx: Command OK so far, send the rest
    - 4xx: Command correct but could not be performed
    - 5xx: Command unknown, unsupported or incorrect
    """

    # ===== Connection =====

    HELP_FOLLOWS = 100
    """Help text follows (multi-line)."""

    CAPABILITIES_FOLLOW = 101
    """Capability list follows (multi-line)."""

    SERVICE_AVAILABLE_POSTING = 200
    """Greeting: service available, posting allowed."""

    SERVICE_AVAILABLE_NO_POSTING = 201
    """Greeting: service available, posting prohibited."""

    CONNECTION_CLOSING = 205
    """Reply to quit."""

    # ===== Groups and articles =====

    GROUP_SELECTED = 211
    """Newsgroup selected."""

    LIST_FOLLOWS = 215
    """Information follows (multi-line)."""

    ARTICLE_FOLLOWS = 220
    """Article follows (multi-line)."""

    HEAD_FOLLOWS = 221
    """Headers follow (multi-line)."""

    BODY_FOLLOWS = 222
    """Body follows (multi-line)."""

    ARTICLE_EXISTS = 223
    """Article exists and is selected."""

    OVERVIEW_FOLLOWS = 224
    """Overview information follows (multi-line)."""

    # ===== Authentication =====

    AUTH_ACCEPTED = 281
    """Authentication accepted."""

    PASSWORD_REQUIRED = 381
    """Password required."""

    # ===== Failures =====

    SERVICE_UNAVAILABLE = 400
    """Service not available or no longer available."""

    NO_SUCH_GROUP = 411
    """No such newsgroup."""

    NO_GROUP_SELECTED = 412
    """No newsgroup selected."""

    NO_SUCH_ARTICLE_NUMBER = 423
    """No article with that number."""

    NO_SUCH_ARTICLE_ID = 430
    """No article with that message-id."""

    AUTH_REQUIRED = 480
    """Authentication required."""

    AUTH_REJECTED = 481
    """Authentication failed/rejected."""

    AUTH_OUT_OF_SEQUENCE = 482
    """Authentication commands issued out of sequence."""

    UNKNOWN_COMMAND = 500
    """Unknown command."""

    SYNTAX_ERROR = 501
    """Syntax error in command."""

    ACCESS_DENIED = 502
    """Permission denied or command unavailable."""


class ProtocolConstants:
    """
    Line protocol constants.

    Contains line delimiters, status markers, buffer sizes and command
    words used throughout the protocol implementation.
    """

    # ===== Line Delimiters =====

    CR: Final[int] = 0x0D
    """Carriage return."""

    LF: Final[int] = 0x0A
    """Line feed."""

    CRLF: Final[bytes] = b"\r\n"
    """Line terminator, for both commands and responses."""

    # ===== Status Markers =====

    SUCCESS_INDICATOR: Final[str] = "2"
    """First character of a successful response."""

    SENTINEL: Final[str] = "."
    """Sole character of the line closing a multi-line response."""

    SENTINEL_LINE_LENGTH: Final[int] = 3
    """Length of the closing line including CRLF."""

    STATUS_CODE_LENGTH: Final[int] = 3
    """Number of digits in a status code."""

    # ===== Buffer Sizes =====

    DEFAULT_BUFFER_SIZE: Final[int] = 1024
    """Default reader capacity; must exceed the longest line."""

    MIN_BUFFER_SIZE: Final[int] = 3
    """Smallest capacity that can hold the sentinel line."""

    DEFAULT_ENCODING: Final[str] = "iso-8859-15"
    """Charset used when a located line is decoded to text."""

    # ===== Connection =====

    DEFAULT_PORT: Final[int] = 119
    """Well-known NNTP port."""

    # ===== Commands =====

    QUIT_COMMAND: Final[str] = "quit"
    """Command sent before closing the connection."""

    AUTH_USER_COMMAND: Final[str] = "authinfo user"
    """First step of the authentication handshake."""

    AUTH_PASS_COMMAND: Final[str] = "authinfo pass"
    """Second step of the authentication handshake."""

    GROUP_COMMAND: Final[str] = "group"
    """Select a newsgroup (single-line reply)."""


MULTI_LINE_REPLY_CODES: Final[frozenset[int]] = frozenset({
    ReplyCode.HELP_FOLLOWS,
    ReplyCode.CAPABILITIES_FOLLOW,
    ReplyCode.LIST_FOLLOWS,
    ReplyCode.ARTICLE_FOLLOWS,
    ReplyCode.HEAD_FOLLOWS,
    ReplyCode.BODY_FOLLOWS,
    ReplyCode.OVERVIEW_FOLLOWS,
})
"""Reply codes announcing a multi-line body closed by the sentinel line."""
