"""Tests for ProtocolSession."""

import io
import logging

import pytest

from lineproto import ProtocolSession, SessionConfig, SessionState
from lineproto.exceptions import ConnectionError, ReplyError, SessionStateError
from lineproto.models.results import ErrorKind
from lineproto.protocol.constants import ReplyCode
from lineproto.transport.mock import MockTransport, ScriptedMockTransport


@pytest.fixture
def mock_transport():
    """Create a MockTransport instance."""
    return MockTransport()


@pytest.fixture
def sink():
    """Collect delivered response lines."""
    return io.BytesIO()


@pytest.fixture
def session(mock_transport, sink):
    """Create a session whose connections use the mock."""
    return ProtocolSession(
        SessionConfig(host="news.example.com"),
        output=sink,
        transport_factory=lambda host, port: mock_transport,
    )


@pytest.fixture
def ready(session, mock_transport, sink):
    """Session past an accepted greeting, with the sink emptied."""
    mock_transport.add_lines("200 news.example.com InterNetNews server ready")
    assert session.connect().ok
    sink.seek(0)
    sink.truncate()
    return session


class TestSessionConnect:
    """Tests for connecting and the greeting."""

    def test_initial_state(self, session):
        """Test session starts disconnected."""
        assert session.state == SessionState.DISCONNECTED
        assert session.is_ready is False
        assert session.total_bytes_read == 0

    def test_greeting_accepted(self, session, mock_transport, sink):
        """Test that a 2xx greeting makes the session ready."""
        mock_transport.add_lines("200 news.example.com ready")

        result = session.connect()

        assert result.ok
        assert result.status.reply == ReplyCode.SERVICE_AVAILABLE_POSTING
        assert result.line_count == 1
        assert session.state == SessionState.READY
        assert sink.getvalue() == b"200 news.example.com ready\r\n"

    def test_greeting_rejected(self, session, mock_transport, sink):
        """Test that a non-2xx greeting is reported as PROTOCOL."""
        mock_transport.add_lines("502 Access denied")

        result = session.connect()

        assert not result
        assert result.error is ErrorKind.PROTOCOL
        assert result.status.code == 502
        assert session.state == SessionState.CONNECTED
        assert sink.getvalue() == b"502 Access denied\r\n"

    def test_commands_refused_after_rejected_greeting(self, session, mock_transport):
        """Test that no command can be sent before a valid greeting."""
        mock_transport.add_lines("400 Service temporarily unavailable")
        session.connect()

        with pytest.raises(SessionStateError) as exc_info:
            session.single_line_command("date")
        assert "CONNECTED" in str(exc_info.value)

    def test_no_greeting(self, session):
        """Test a server closing before the greeting."""
        result = session.connect()
        assert result.error is ErrorKind.END_OF_STREAM
        assert result.line_count == 0

    def test_connection_refused(self, session, mock_transport):
        """Test that an unreachable server is reported as CONNECTION."""
        mock_transport.fail_open(ConnectionError("Connection refused"))

        result = session.connect()

        assert result.error is ErrorKind.CONNECTION
        assert session.state == SessionState.DISCONNECTED

    def test_connect_twice_raises(self, ready):
        """Test that connecting a connected session raises."""
        with pytest.raises(SessionStateError):
            ready.connect()

    def test_connect_overrides_host(self, mock_transport):
        """Test that connect arguments take precedence over the config."""
        calls = []

        def factory(host, port):
            calls.append((host, port))
            return mock_transport

        session = ProtocolSession(transport_factory=factory)
        mock_transport.add_lines("201 ready, no posting")
        session.connect("other.example.com", 1119)

        assert calls == [("other.example.com", 1119)]

    def test_attach(self, sink):
        """Test starting a session on an existing transport."""
        transport = MockTransport()
        transport.add_lines("200 ready")
        session = ProtocolSession(output=sink)

        assert session.attach(transport).ok
        assert transport.is_open
        assert session.is_ready


class TestSessionSingleLine:
    """Tests for single_line_command."""

    def test_success(self, ready, mock_transport, sink):
        """Test a 2xx reply."""
        mock_transport.add_lines("211 1234 3000234 3002322 misc.test")

        result = ready.single_line_command("group misc.test")

        assert result.ok
        assert result.status.code == 211
        assert result.status.text == "1234 3000234 3002322 misc.test"
        assert result.line_count == 1
        mock_transport.assert_written(b"group misc.test\r\n")
        assert sink.getvalue() == b"211 1234 3000234 3002322 misc.test\r\n"
        assert ready.state == SessionState.READY

    def test_failure_reply(self, ready, mock_transport, sink):
        """Test that a non-2xx reply is delivered and reported."""
        mock_transport.add_lines("500 What?")

        result = ready.single_line_command("bogus")

        assert not result
        assert result.error is ErrorKind.PROTOCOL
        assert result.status.code == 500
        assert sink.getvalue() == b"500 What?\r\n"
        assert ready.state == SessionState.READY

        with pytest.raises(ReplyError) as exc_info:
            result.raise_for_status()
        assert exc_info.value.code == 500

    def test_sentinel_reply_is_not_success(self, ready, mock_transport):
        """Test that success is decided by the success indicator."""
        mock_transport.add_lines(".")
        assert not ready.single_line_command("date")

    def test_custom_success_indicator(self, sink):
        """Test a protocol using '+' for success."""
        transport = MockTransport()
        transport.add_lines("+OK POP3 server ready")
        transport.add_lines("-ERR no such message")
        transport.add_lines("+OK 2 320")
        session = ProtocolSession(SessionConfig(success_indicator="+"), output=sink)

        assert session.attach(transport).ok
        assert not session.single_line_command("retr 9")
        assert session.single_line_command("stat").ok

    def test_io_failure(self, ready, mock_transport):
        """Test that a lost connection is reported and leaves the session unusable."""
        mock_transport.add_response(b"211 partial")

        result = ready.single_line_command("group misc.test")

        assert result.error is ErrorKind.END_OF_STREAM
        assert result.status is None
        assert ready.state == SessionState.AWAITING_RESPONSE
        with pytest.raises(SessionStateError):
            ready.single_line_command("date")

    def test_write_failure(self, ready, mock_transport):
        """Test that a failed send is reported without reading."""
        mock_transport.close()

        result = ready.single_line_command("date")

        assert result.error is ErrorKind.CONNECTION
        assert ready.state == SessionState.AWAITING_RESPONSE

    def test_command_with_newline_raises(self, ready):
        """Test that a command must fit on one line."""
        with pytest.raises(ValueError):
            ready.single_line_command("group a\r\ngroup b")
        assert ready.state == SessionState.READY

    def test_before_connect_raises(self, session):
        """Test that commands require a ready session."""
        with pytest.raises(SessionStateError):
            session.single_line_command("date")

    def test_output_override(self, ready, mock_transport, sink):
        """Test that a per-call sink receives the reply instead."""
        mock_transport.add_lines("111 20240101120000")
        other = io.BytesIO()

        ready.single_line_command("date", output=other)

        assert other.getvalue() == b"111 20240101120000\r\n"
        assert sink.getvalue() == b""

    def test_stale_lines_are_dropped(self, ready, mock_transport):
        """Test that extra lines from a previous reply are not read as the next reply."""
        mock_transport.add_lines("211 3 1 3 misc.test", "junk")
        mock_transport.add_lines("223 1 <a@b> status")

        ready.single_line_command("group misc.test")
        result = ready.single_line_command("stat 1")

        assert result.status.code == 223


class TestSessionMultiLine:
    """Tests for multi_line_command."""

    def test_head(self, ready, mock_transport, sink):
        """Test a multi-line reply counted through the sentinel line."""
        mock_transport.add_lines(
            "221 3000234 <45223423@example.com>",
            "Path: pathost!demo!whitehouse!not-for-mail",
            "Subject: Re: I am just a test article",
            ".",
        )

        result = ready.multi_line_command("head 3000234")

        assert result.ok
        assert result.line_count == 4
        assert result.status.announces_body
        assert sink.getvalue() == (
            b"221 3000234 <45223423@example.com>\r\n"
            b"Path: pathost!demo!whitehouse!not-for-mail\r\n"
            b"Subject: Re: I am just a test article\r\n"
            b".\r\n"
        )
        mock_transport.assert_written(b"head 3000234\r\n")

    def test_failure_status_ends_response(self, ready, mock_transport, sink):
        """Test that a non-2xx first line is the whole response."""
        mock_transport.add_lines("423 No article with that number")

        result = ready.multi_line_command("head 1")

        assert result.error is ErrorKind.PROTOCOL
        assert result.line_count == 1
        assert sink.getvalue() == b"423 No article with that number\r\n"
        assert ready.state == SessionState.READY

    def test_empty_body(self, ready, mock_transport):
        """Test a reply with only the status and sentinel lines."""
        mock_transport.add_lines("215 list follows", ".")
        assert ready.multi_line_command("list").line_count == 2

    def test_dot_prefixed_lines_are_data(self, ready, mock_transport):
        """Test that only a lone dot closes the response."""
        mock_transport.add_lines("222 body", "..leading dot", ".x", "", ".")
        assert ready.multi_line_command("body 1").line_count == 5

    def test_split_reads(self, sink):
        """Test a response arriving a few bytes at a time."""
        transport = MockTransport(chunk_size=3)
        transport.add_lines("200 ready")
        transport.add_lines("215 list follows", "misc.test 3002322 3000234 y", ".")
        session = ProtocolSession(output=sink)
        session.attach(transport)

        result = session.multi_line_command("list")

        assert result.line_count == 3
        assert sink.getvalue().endswith(b"misc.test 3002322 3000234 y\r\n.\r\n")

    def test_end_of_stream_mid_body(self, ready, mock_transport):
        """Test a server closing before the sentinel line."""
        mock_transport.add_response(b"221 head follows\r\nPath: x\r\nSubj")

        result = ready.multi_line_command("head 1")

        assert result.error is ErrorKind.END_OF_STREAM
        assert result.line_count == 2
        assert result.status.code == 221
        assert ready.state == SessionState.AWAITING_RESPONSE

    def test_line_too_long(self, sink):
        """Test a body line longer than the buffer."""
        transport = MockTransport()
        transport.add_lines("200 ready")
        transport.add_lines("222 body", "x" * 40, ".")
        session = ProtocolSession(SessionConfig(capacity=16), output=sink)
        session.attach(transport)

        result = session.multi_line_command("body 1")

        assert result.error is ErrorKind.LINE_TOO_LONG
        assert result.line_count == 1
        assert result.capacity == 16
        assert session.state == SessionState.AWAITING_RESPONSE

    def test_overlong_reply_blocks_next_command(self, sink):
        """Test that the unread rest of an overlong reply is never taken as the next reply."""
        transport = MockTransport()
        transport.add_lines("200 ready")
        transport.add_lines("500 " + "x" * 20)
        transport.add_lines("500 no such group")
        session = ProtocolSession(SessionConfig(capacity=16), output=sink)
        session.attach(transport)

        result = session.single_line_command("help")

        assert result.error is ErrorKind.LINE_TOO_LONG
        with pytest.raises(SessionStateError) as exc_info:
            session.single_line_command("group a")
        assert "AWAITING_RESPONSE" in str(exc_info.value)

        session.close()

        assert session.state == SessionState.CLOSED
        assert transport.written_data == [b"help\r\n"]
        assert not transport.is_open

    def test_custom_sentinel(self, sink):
        """Test a protocol closing multi-line replies with another marker."""
        transport = MockTransport()
        transport.add_lines("200 ready")
        transport.add_lines("215 list", ".", "!")
        session = ProtocolSession(SessionConfig(sentinel="!"), output=sink)
        session.attach(transport)

        assert session.multi_line_command("list").line_count == 3


class TestSessionAuthenticate:
    """Tests for the authinfo handshake."""

    @pytest.fixture
    def scripted(self):
        """Create a scripted transport that greets."""
        return ScriptedMockTransport(greeting=b"200 ready\r\n")

    def test_accepted(self, scripted, sink):
        """Test a full user/pass exchange."""
        scripted.expect(request=b"authinfo user me\r\n", response=b"381 PASS required\r\n")
        scripted.expect(request=b"authinfo pass secret\r\n", response=b"281 Ok\r\n")
        session = ProtocolSession(output=sink)
        session.attach(scripted)

        result = session.authenticate("me", "secret")

        assert result.ok
        assert result.status.reply == ReplyCode.AUTH_ACCEPTED
        assert scripted.script_complete
        assert sink.getvalue() == b"200 ready\r\n381 PASS required\r\n281 Ok\r\n"

    def test_rejected(self, scripted):
        """Test a wrong password."""
        scripted.expect(request=b"authinfo user me\r\n", response=b"381 PASS required\r\n")
        scripted.expect(request=b"authinfo pass wrong\r\n", response=b"481 Authentication failed\r\n")
        session = ProtocolSession()
        session.attach(scripted)

        result = session.authenticate("me", "wrong")

        assert result.error is ErrorKind.PROTOCOL
        assert result.status.code == 481
        assert session.is_ready

    def test_password_sent_after_failure_reply(self, scripted):
        """Test that a failure reply to the user step still sends the password."""
        scripted.expect(response=b"482 out of sequence\r\n")
        scripted.expect(response=b"481 rejected\r\n")
        session = ProtocolSession()
        session.attach(scripted)

        session.authenticate("me", "secret")

        assert scripted.written_data[-1] == b"authinfo pass secret\r\n"

    def test_io_failure_aborts(self, scripted):
        """Test that a lost connection on the user step skips the password."""
        session = ProtocolSession()
        session.attach(scripted)

        result = session.authenticate("me", "secret")

        assert result.error is ErrorKind.END_OF_STREAM
        scripted.assert_write_count(1)

    def test_credentials_from_config(self, scripted):
        """Test that configured credentials are used by default."""
        scripted.expect(request=b"authinfo user cfg\r\n", response=b"381 more\r\n")
        scripted.expect(request=b"authinfo pass pw\r\n", response=b"281 Ok\r\n")
        session = ProtocolSession(SessionConfig(username="cfg", password="pw"))
        session.attach(scripted)

        assert session.authenticate().ok

    def test_missing_credentials_raise(self, ready):
        """Test that authenticating without credentials raises."""
        with pytest.raises(ValueError):
            ready.authenticate()

    def test_password_is_masked_in_echo(self, scripted, caplog):
        """Test that echoed commands never show the password."""
        scripted.expect(response=b"381 more\r\n")
        scripted.expect(response=b"281 Ok\r\n")
        session = ProtocolSession(SessionConfig(echo_commands=True))
        session.attach(scripted)

        with caplog.at_level(logging.INFO, logger="lineproto.session"):
            session.authenticate("me", "secret")

        assert "REQ> authinfo user me" in caplog.text
        assert "REQ> authinfo pass ****" in caplog.text
        assert "secret" not in caplog.text


class TestSessionClose:
    """Tests for closing a session."""

    def test_close_sends_quit(self, ready, mock_transport, sink):
        """Test that close sends quit and closes the transport."""
        mock_transport.add_lines("205 closing connection")

        ready.close()

        mock_transport.assert_written(b"quit\r\n")
        assert sink.getvalue() == b"205 closing connection\r\n"
        assert ready.state == SessionState.CLOSED
        assert mock_transport.is_open is False

    def test_close_twice_logs_once(self, ready, mock_transport, caplog):
        """Test that a second close does nothing."""
        mock_transport.add_lines("205 bye")

        with caplog.at_level(logging.INFO, logger="lineproto.session"):
            ready.close()
            ready.close()

        closed = [r for r in caplog.records if r.getMessage().startswith("Session closed")]
        assert len(closed) == 1
        assert closed[0].getMessage().endswith(str(ready.total_bytes_read))
        mock_transport.assert_write_count(1)
        assert mock_transport.close_count == 1

    def test_close_ignores_quit_failure(self, ready, mock_transport):
        """Test that a missing quit reply does not prevent closing."""
        ready.close()
        assert ready.state == SessionState.CLOSED

    def test_close_never_connected(self, session, mock_transport):
        """Test that closing an unconnected session is a no-op."""
        session.close()
        assert session.state == SessionState.DISCONNECTED
        assert mock_transport.written_data == []

    def test_close_after_rejected_greeting(self, session, mock_transport):
        """Test that a rejected session can still be closed."""
        mock_transport.add_lines("502 go away")
        session.connect()

        session.close()

        assert session.state == SessionState.CLOSED
        mock_transport.assert_written(b"quit\r\n")

    def test_custom_quit_command(self, mock_transport):
        """Test closing with a configured quit command."""
        session = ProtocolSession(
            SessionConfig(quit_command="QUIT"),
            transport_factory=lambda host, port: mock_transport,
        )
        mock_transport.add_lines("200 ready")
        session.connect()

        session.close()

        mock_transport.assert_written(b"QUIT\r\n")

    def test_reconnect_after_close(self, ready, mock_transport):
        """Test that a closed session can connect again."""
        ready.close()
        mock_transport.add_lines("200 ready again")

        assert ready.connect().ok
        assert ready.total_bytes_read == len(b"200 ready again\r\n")

    def test_context_manager(self, mock_transport):
        """Test that leaving a with block closes the session."""
        mock_transport.add_lines("200 ready")
        with ProtocolSession(transport_factory=lambda host, port: mock_transport) as session:
            session.connect()
        assert session.state == SessionState.CLOSED

    def test_commands_after_close_raise(self, ready):
        """Test that a closed session refuses commands."""
        ready.close()
        with pytest.raises(SessionStateError):
            ready.multi_line_command("list")
