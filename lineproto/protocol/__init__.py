"""
Protocol layer for line-based communication.

This module contains the low-level protocol handling:
- Reply codes and protocol constants
- Status line parsing
- CRLF line extraction over a fixed buffer
"""

from lineproto.protocol.constants import MULTI_LINE_REPLY_CODES, ProtocolConstants, ReplyCode
from lineproto.protocol.line_reader import LineReader
from lineproto.protocol.status import StatusLine, parse_status_line

__all__ = [
    # Constants
    "ReplyCode",
    "ProtocolConstants",
    "MULTI_LINE_REPLY_CODES",
    # Status lines
    "StatusLine",
    "parse_status_line",
    # Line reading
    "LineReader",
]
