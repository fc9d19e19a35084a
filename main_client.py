#!/usr/bin/env python3
"""
Main entry point for the bounce sender.

Reads a bounce message from stdin and delivers it to the bounce receiver
as a single frame. Intended to be run as a Postfix pipe transport, so the
exit status follows sysexits.h:

    0   delivered and acknowledged
    64  usage or configuration error (EX_USAGE)
    75  any I/O, protocol or resource failure; retry later (EX_TEMPFAIL)
"""

from importlib.metadata import PackageNotFoundError, version
from typing import BinaryIO, List, Optional
import argparse
import os
import sys

from client.resolver import Resolver
from client.sender import BounceClient, read_body
from config.settings import Config
from utils.logging import setup_logging, get_logger
from utils.exceptions import BounceError, ConfigurationError

logger = get_logger(__name__)

EX_OK = 0
EX_USAGE = 64
EX_TEMPFAIL = 75


def get_version() -> str:
    """Installed package version, or 'dev' when running from a checkout."""
    try:
        return version('bounce-notify')
    except PackageNotFoundError:
        return 'dev'


class _ArgumentParser(argparse.ArgumentParser):
    """Argument parser that raises instead of exiting with status 2."""

    def error(self, message: str) -> None:
        raise ConfigurationError(message)


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog='bounce-notify',
        description='Deliver a bounce message read from stdin to the bounce receiver.',
    )
    parser.add_argument('--server', help='receiver address, host:port')
    parser.add_argument('--from', dest='from_addr', help='sender address')
    parser.add_argument('--to', dest='to_addr', help='recipient address')
    parser.add_argument('--timeout-secs', type=float, help='socket timeout in seconds (default: 10)')
    parser.add_argument('--kind', help='classification tag')
    parser.add_argument('--source', help='origin tag')
    parser.add_argument('-V', '--version', action='version', version=f'bounce-notify {get_version()}')
    return parser


class ClientApplication:
    """Main application class for the bounce sender."""

    def __init__(self, stdin: Optional[BinaryIO] = None, resolver: Optional[Resolver] = None):
        """
        Initialize application.

        Args:
            stdin: Body source (default: sys.stdin.buffer)
            resolver: Address resolver (default: getaddrinfo)
        """
        self.config = Config()
        self._stdin = stdin
        self._resolver = resolver

    def run(self, args: argparse.Namespace) -> int:
        """
        Run one delivery.

        Returns:
            Process exit code
        """
        try:
            client_config = self.config.load_client_config(
                server=args.server,
                from_addr=args.from_addr,
                to_addr=args.to_addr,
                timeout_secs=args.timeout_secs,
                kind=args.kind,
                source=args.source,
            )
        except ConfigurationError as e:
            logger.error(f"Configuration error: {e}")
            return EX_USAGE

        logger.debug(
            f"Configuration loaded: server={client_config.server}, "
            f"timeout={client_config.timeout_secs}s, "
            f"max_body={client_config.max_body_bytes}"
        )

        try:
            stdin = self._stdin or sys.stdin.buffer
            body = read_body(stdin, client_config.max_body_bytes)
            BounceClient(client_config, self._resolver).send(body)
        except ConfigurationError as e:
            logger.error(f"Configuration error: {e}")
            return EX_USAGE
        except BounceError as e:
            logger.error(f"Delivery to {client_config.server} failed ({e.reason.value}): {e}")
            return EX_TEMPFAIL
        except Exception as e:
            logger.error(f"Unexpected error: {e}", exc_info=True)
            return EX_TEMPFAIL

        return EX_OK


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    try:
        setup_logging(os.getenv('LOG_LEVEL', 'WARNING'))
    except ValueError as e:
        print(e, file=sys.stderr)
        return EX_USAGE

    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except ConfigurationError as e:
        print(f"{parser.prog}: {e}", file=sys.stderr)
        parser.print_usage(sys.stderr)
        return EX_USAGE

    return ClientApplication().run(args)


if __name__ == '__main__':
    sys.exit(main())
