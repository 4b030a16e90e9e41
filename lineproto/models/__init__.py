"""
Data models for lineproto.

This module exports the session configuration and the result types
returned by reader and session operations.
"""

from lineproto.models.config import SessionConfig
from lineproto.models.results import (
    CommandResult,
    ErrorKind,
    LineResult,
    OperationResult,
    WriteResult,
)

__all__ = [
    "SessionConfig",
    "ErrorKind",
    "OperationResult",
    "LineResult",
    "WriteResult",
    "CommandResult",
]
