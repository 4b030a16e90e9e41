"""Tests for the lineproto command line."""

import io

import pytest

from lineproto.cli import build_parser, main, make_config, run
from lineproto.peer import LinePeer, encode_lines


def responder(command):
    """Answer like a small news server."""
    replies = {
        "authinfo user me": ["381 PASS required"],
        "authinfo pass pw": ["281 Ok"],
        "group misc.test": ["211 1 3000234 3000234 misc.test"],
        "group nowhere": ["411 No such newsgroup"],
        "date": ["111 20240101120000"],
        "stat 3000234": ["223 3000234 <45223423@example.com>"],
        "list": ["215 list follows", "misc.test 3000234 3000234 y", "."],
        "quit": ["205 bye"],
    }
    return replies.get(command, ["500 What?"])


@pytest.fixture
def peer():
    """Start a scripted peer."""
    with LinePeer.scripted("200 ready", responder) as peer:
        yield peer


def parse(peer, *extra):
    return build_parser().parse_args([peer.host, str(peer.port), "--timeout", "5", *extra])


class TestParser:
    """Tests for argument parsing."""

    def test_defaults(self):
        """Test defaults for a bare host."""
        args = build_parser().parse_args(["news.example.com"])
        assert args.port == 119
        assert args.single == []
        assert args.multi == []
        assert args.buffer_size == 1024

    def test_repeatable_commands(self):
        """Test collecting several commands in order."""
        args = build_parser().parse_args(["h", "--single", "date", "--single", "help", "--multi", "list"])
        assert args.single == ["date", "help"]
        assert args.multi == ["list"]

    def test_make_config(self):
        """Test mapping arguments to session settings."""
        args = build_parser().parse_args(
            ["h", "563", "--user", "me", "--password", "pw", "--buffer-size", "4096", "-vv"]
        )
        config = make_config(args)
        assert config.port == 563
        assert config.capacity == 4096
        assert config.password.get_secret_value() == "pw"
        assert config.trace_buffer is True

    def test_user_requires_password(self):
        """Test that credentials must be given together."""
        with pytest.raises(SystemExit) as exc_info:
            main(["news.example.com", "--user", "me"])
        assert exc_info.value.code == 2


class TestRun:
    """Tests for running commands against a peer."""

    def test_full_run(self, peer):
        """Test authentication, group selection and commands."""
        output = io.BytesIO()
        args = parse(
            peer,
            "--user", "me", "--password", "pw",
            "--group", "misc.test",
            "--single", "stat 3000234",
            "--multi", "list",
        )

        assert run(args, output) == 0
        assert peer.received == [
            "authinfo user me",
            "authinfo pass pw",
            "group misc.test",
            "stat 3000234",
            "list",
            "quit",
        ]
        assert output.getvalue() == encode_lines([
            "200 ready",
            "381 PASS required",
            "281 Ok",
            "211 1 3000234 3000234 misc.test",
            "223 3000234 <45223423@example.com>",
            "215 list follows",
            "misc.test 3000234 3000234 y",
            ".",
            "205 bye",
        ])

    def test_informational_reply_fails(self, peer):
        """Test that a 1xx reply to a single-line command is a failure."""
        args = parse(peer, "--single", "date")
        assert run(args, io.BytesIO()) == 1
        assert peer.received == ["date", "quit"]

    def test_bad_group(self, peer):
        """Test that a missing group stops the run."""
        args = parse(peer, "--group", "nowhere", "--single", "date")
        assert run(args, io.BytesIO()) == 1
        assert "date" not in peer.received

    def test_failed_command(self, peer):
        """Test that a failing command sets the exit status."""
        args = parse(peer, "--single", "frobnicate", "--single", "date")
        assert run(args, io.BytesIO()) == 1
        assert "date" in peer.received

    def test_bad_password(self, peer):
        """Test that rejected credentials stop the run."""
        args = parse(peer, "--user", "me", "--password", "nope")
        assert run(args, io.BytesIO()) == 1

    def test_connection_refused(self):
        """Test an unreachable server."""
        server = LinePeer.canned([]).start()
        port = server.port
        server.stop()

        args = build_parser().parse_args(["127.0.0.1", str(port)])
        assert run(args, io.BytesIO()) == 1

    def test_invalid_settings(self):
        """Test that invalid settings are rejected before connecting."""
        args = build_parser().parse_args(["127.0.0.1", "--buffer-size", "1"])
        assert run(args, io.BytesIO()) == 2
