"""
Accept-loop line server for exercising the client over real sockets.

LinePeer listens on a local port and, for every accepted connection,
either writes a canned response and closes, or holds a scripted dialog:

- canned lines: each line + CRLF, then the sentinel line ``.``
- a text file: streamed line by line, then the sentinel line
- scripted: a greeting, then one reply per received command line,
  produced by a responder callable

Example:
    >>> def responder(command: str) -> list[str]:
    ...     if command == "quit":
    ...         return ["205 bye"]
    ...     return ["500 unknown command"]
    >>>
    >>> with LinePeer.scripted("200 ready", responder) as peer:
    ...     session = ProtocolSession(SessionConfig(host=peer.host, port=peer.port))
    ...     session.connect()
"""

from __future__ import annotations

import logging
import socketserver
import threading
from pathlib import Path
from typing import Callable, Sequence

from lineproto.protocol.constants import ProtocolConstants

logger = logging.getLogger(__name__)

Responder = Callable[[str], Sequence[str]]
"""Maps a received command line to the reply lines to send back."""

ENCODING = "iso-8859-15"


def encode_lines(lines: Sequence[str], encoding: str = ENCODING) -> bytes:
    """Join lines into wire format, each terminated by CRLF."""
    return b"".join(line.encode(encoding) + ProtocolConstants.CRLF for line in lines)


class _CannedHandler(socketserver.BaseRequestHandler):
    """Writes the server's payload and closes."""

    server: _PeerServer

    def handle(self) -> None:
        for chunk in self.server.peer.payload():
            self.request.sendall(chunk)


class _ScriptedHandler(socketserver.StreamRequestHandler):
    """Greets, then answers each command line until quit or EOF."""

    server: _PeerServer

    def handle(self) -> None:
        peer = self.server.peer
        self.wfile.write(encode_lines([peer.greeting], peer.encoding))

        for raw in self.rfile:
            command = raw.rstrip(b"\r\n").decode(peer.encoding)
            peer.received.append(command)
            self.wfile.write(encode_lines(peer.responder(command), peer.encoding))
            if command.lower() == ProtocolConstants.QUIT_COMMAND:
                break


class _PeerServer(socketserver.ThreadingTCPServer):
    allow_reuse_address = True
    daemon_threads = True

    def __init__(self, address: tuple[str, int], handler: type, peer: LinePeer) -> None:
        self.peer = peer
        super().__init__(address, handler)


class LinePeer:
    """
    Threaded TCP server speaking the line protocol.

    Use the class constructors canned(), from_file() or scripted(), then
    start() or a with block. The bound port is ephemeral unless given.

    Attributes:
        host: Listening address.
        port: Listening port, known once started.
        received: Command lines received in scripted mode.
    """

    def __init__(
        self,
        *,
        lines: Sequence[str] | None = None,
        path: str | Path | None = None,
        greeting: str | None = None,
        responder: Responder | None = None,
        host: str = "127.0.0.1",
        port: int = 0,
        encoding: str = ENCODING,
        chunk_size: int | None = None,
    ) -> None:
        self.host = host
        self.port = port
        self.encoding = encoding
        self.lines = list(lines) if lines is not None else None
        self.path = Path(path) if path is not None else None
        self.greeting = greeting
        self.responder = responder
        self.chunk_size = chunk_size
        self.received: list[str] = []
        self._server: _PeerServer | None = None
        self._thread: threading.Thread | None = None

    @classmethod
    def canned(cls, lines: Sequence[str], **kwargs) -> LinePeer:
        """Serve lines followed by the sentinel line on every connection."""
        return cls(lines=lines, **kwargs)

    @classmethod
    def from_file(cls, path: str | Path, **kwargs) -> LinePeer:
        """Serve a text file line by line followed by the sentinel line."""
        return cls(path=path, **kwargs)

    @classmethod
    def scripted(cls, greeting: str, responder: Responder, **kwargs) -> LinePeer:
        """Greet, then answer each command through responder."""
        return cls(greeting=greeting, responder=responder, **kwargs)

    def payload(self) -> list[bytes]:
        """
        Build the canned response as wire chunks.

        With chunk_size set the bytes are split into pieces of that size,
        each sent separately, so lines straddle socket reads.
        """
        if self.path is not None:
            with self.path.open(encoding=self.encoding) as f:
                lines = [line.rstrip("\r\n") for line in f]
        else:
            lines = list(self.lines or [])

        data = encode_lines(lines + [ProtocolConstants.SENTINEL], self.encoding)
        if not self.chunk_size:
            return [data]
        return [data[i:i + self.chunk_size] for i in range(0, len(data), self.chunk_size)]

    def start(self) -> LinePeer:
        """Bind and serve in a background thread."""
        handler = _ScriptedHandler if self.responder is not None else _CannedHandler
        self._server = _PeerServer((self.host, self.port), handler, self)
        self.port = self._server.server_address[1]
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)
        self._thread.start()
        logger.debug("Peer listening on %s:%d", self.host, self.port)
        return self

    def stop(self) -> None:
        """Stop serving and release the port."""
        server, self._server = self._server, None
        if server is None:
            return
        server.shutdown()
        server.server_close()
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    def __enter__(self) -> LinePeer:
        return self.start()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()
