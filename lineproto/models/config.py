"""
Pydantic configuration model for protocol sessions.

SessionConfig replaces process-wide switches with per-instance settings:
every session carries its own buffer size, markers, credentials and
tracing flags.

Example:
    >>> config = SessionConfig(host="news.example.com", username="me", password="secret")
    >>> config.port
    119
    >>> config.password.get_secret_value()
    'secret'
"""

from __future__ import annotations

import codecs

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator

from lineproto.protocol.constants import ProtocolConstants


class SessionConfig(BaseModel):
    """
    Settings for one ProtocolSession and its LineReader.

    The buffer capacity must exceed the longest line the server can send;
    a longer line is reported as a LINE_TOO_LONG failure.

    Attributes:
        host: Server hostname or address.
        port: Server TCP port.
        capacity: Reader buffer size in bytes.
        encoding: Charset for decoding located lines to text. Protocol
            comparisons never use it.
        success_indicator: First character of a successful response.
        sentinel: Sole character of the multi-line closing line.
        username: Login for the authentication handshake.
        password: Password for the authentication handshake.
        quit_command: Command sent when the session closes.
        timeout: Transport deadline in seconds, None to block indefinitely.
        echo_commands: Log each command sent at INFO level.
        trace_buffer: Log reader buffer state at DEBUG level.
    """

    model_config = ConfigDict(frozen=True)

    host: str = Field(default="localhost", min_length=1)
    port: int = Field(default=ProtocolConstants.DEFAULT_PORT, ge=1, le=65535)
    capacity: int = Field(
        default=ProtocolConstants.DEFAULT_BUFFER_SIZE,
        ge=ProtocolConstants.MIN_BUFFER_SIZE,
        description="Reader buffer size; must exceed the longest line",
    )
    encoding: str = ProtocolConstants.DEFAULT_ENCODING
    success_indicator: str = Field(
        default=ProtocolConstants.SUCCESS_INDICATOR, min_length=1, max_length=1
    )
    sentinel: str = Field(default=ProtocolConstants.SENTINEL, min_length=1, max_length=1)
    username: str | None = None
    password: SecretStr | None = None
    quit_command: str = ProtocolConstants.QUIT_COMMAND
    timeout: float | None = Field(default=None, gt=0)
    echo_commands: bool = False
    trace_buffer: bool = False

    @field_validator("encoding")
    @classmethod
    def validate_encoding(cls, v: str) -> str:
        """Ensure the encoding is known to the codecs registry."""
        try:
            codecs.lookup(v)
        except LookupError:
            raise ValueError(f"Unknown encoding: {v!r}") from None
        return v

    @field_validator("success_indicator", "sentinel")
    @classmethod
    def validate_marker(cls, v: str) -> str:
        """Markers are compared as raw bytes, so they must be ASCII."""
        if not v.isascii() or not v.isprintable():
            raise ValueError("Marker must be a single printable ASCII character")
        return v

    @field_validator("quit_command")
    @classmethod
    def validate_command(cls, v: str) -> str:
        """Commands must fit on one line."""
        if "\r" in v or "\n" in v:
            raise ValueError("Command must not contain CR or LF")
        return v

    @model_validator(mode="after")
    def validate_markers_differ(self) -> SessionConfig:
        """A sentinel line must never read as a successful status."""
        if self.success_indicator == self.sentinel:
            raise ValueError("success_indicator and sentinel must differ")
        return self

    @property
    def success_byte(self) -> int:
        """Success indicator as a byte value."""
        return ord(self.success_indicator)

    @property
    def sentinel_byte(self) -> int:
        """Sentinel as a byte value."""
        return ord(self.sentinel)
