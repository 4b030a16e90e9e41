"""
Command line client for NNTP-style line protocol servers.

Connects, optionally authenticates and selects a group, then runs each
--single and --multi command in turn, streaming every response line to
stdout. The exit status is 0 if every step succeeded, 1 if any failed and
2 for invalid settings.

Example:
    $ lineproto news.example.com --user me --password secret \\
        --group misc.test --multi "head 3000234" -v
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import BinaryIO

from pydantic import ValidationError

from .models.config import SessionConfig
from .protocol.constants import ProtocolConstants
from .session import ProtocolSession

logger = logging.getLogger("lineproto")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="lineproto",
        description="Run commands against an NNTP-style line protocol server.",
    )
    p.add_argument("host")
    p.add_argument("port", nargs="?", type=int, default=ProtocolConstants.DEFAULT_PORT)
    p.add_argument("--user")
    p.add_argument("--password")
    p.add_argument("--group", help="select a group before running commands")
    p.add_argument(
        "--single", action="append", default=[], metavar="CMD",
        help="command with a one-line reply (repeatable)",
    )
    p.add_argument(
        "--multi", action="append", default=[], metavar="CMD",
        help="command with a multi-line reply (repeatable)",
    )
    p.add_argument("--buffer-size", type=int, default=ProtocolConstants.DEFAULT_BUFFER_SIZE)
    p.add_argument("--encoding", default=ProtocolConstants.DEFAULT_ENCODING)
    p.add_argument("--timeout", type=float, default=None)
    p.add_argument("--echo", action="store_true", help="log each command sent")
    p.add_argument("-v", "--verbose", action="count", default=0)
    return p


def make_config(args: argparse.Namespace) -> SessionConfig:
    return SessionConfig(
        host=args.host,
        port=args.port,
        capacity=args.buffer_size,
        encoding=args.encoding,
        username=args.user,
        password=args.password,
        timeout=args.timeout,
        echo_commands=args.echo,
        trace_buffer=args.verbose > 1,
    )


def run(args: argparse.Namespace, output: BinaryIO) -> int:
    try:
        config = make_config(args)
    except ValidationError as e:
        logger.error("Invalid settings: %s", e)
        return 2

    with ProtocolSession(config, output=output) as session:
        result = session.connect()
        if not result:
            logger.error("Error connecting to %s:%d: %s", args.host, args.port, result.detail)
            return 1

        if args.user is not None:
            result = session.authenticate()
            if not result:
                logger.error("Error during authentication: %s", result.detail)
                return 1

        if args.group is not None:
            result = session.single_line_command(f"{ProtocolConstants.GROUP_COMMAND} {args.group}")
            if not result:
                logger.error("Error selecting group %s: %s", args.group, result.detail)
                return 1

        failed = False
        for cmd in args.single:
            result = session.single_line_command(cmd)
            failed = failed or not result
        for cmd in args.multi:
            result = session.multi_line_command(cmd)
            failed = failed or not result

    return 1 if failed else 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if (args.user is None) != (args.password is None):
        parser.error("--user and --password must be given together")

    level = logging.WARNING
    if args.verbose == 1 or args.echo:
        level = logging.INFO
    if args.verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    return run(args, sys.stdout.buffer)


if __name__ == "__main__":
    raise SystemExit(main())
