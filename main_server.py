#!/usr/bin/env python3
"""
Main entry point for the reference bounce receiver.

Accepts a single connection, reads one frame, acknowledges it and exits.
Status lines go to stdout for test harnesses; logs go to stderr. The exit
code tells which step rejected the exchange.
"""

from typing import List, Optional
import argparse
import os
import sys

from config.settings import Config
from server.server import BounceServer, ExchangeResult, ServerState
from utils.logging import setup_logging, get_logger
from utils.exceptions import ConfigurationError, FailureReason

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_USAGE = 1

_EXIT_CODES = {
    FailureReason.BIND_ERROR: 2,
    FailureReason.ACCEPT_ERROR: 3,
    FailureReason.BAD_MAGIC: 5,
    FailureReason.INVALID_LENGTH: 6,
    FailureReason.OUT_OF_MEMORY: 7,
    FailureReason.ACK_WRITE_ERROR: 9,
}
EXIT_TRUNCATED_PREFIX = 4
EXIT_TRUNCATED_PAYLOAD = 8


def exit_code_for(result: ExchangeResult) -> int:
    """Map an exchange result to the process exit code."""
    if result.accepted:
        return EXIT_OK
    if result.reason is FailureReason.TRUNCATED:
        if result.failed_in is ServerState.READING_PREFIX:
            return EXIT_TRUNCATED_PREFIX
        return EXIT_TRUNCATED_PAYLOAD
    return _EXIT_CODES.get(result.reason, EXIT_USAGE)


class ServerApplication:
    """Main application class for the reference receiver."""

    def __init__(self):
        """Initialize application."""
        self.config = Config()

    def run(self, args: argparse.Namespace) -> int:
        """
        Load configuration and run one exchange.

        Returns:
            Process exit code
        """
        try:
            server_config = self.config.load_server_config(
                listen=args.listen,
                max_header_bytes=args.max_header_bytes,
                max_body_bytes=args.max_body_bytes,
                read_timeout_secs=args.read_timeout_secs,
            )
        except ConfigurationError as e:
            logger.error(f"Configuration error: {e}")
            return EXIT_USAGE

        logger.info(
            f"Configuration loaded: listen={server_config.listen}, "
            f"max_header={server_config.max_header_bytes}, "
            f"max_body={server_config.max_body_bytes}"
        )

        result = BounceServer(server_config).serve()
        return exit_code_for(result)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='bounce-server',
        description='Receive one bounce frame and acknowledge it.',
    )
    parser.add_argument('--listen', help='listen address, host:port (default: 127.0.0.1:32147)')
    parser.add_argument('--max-header-bytes', type=int, help='largest accepted header')
    parser.add_argument('--max-body-bytes', type=int, help='largest accepted body')
    parser.add_argument('--read-timeout-secs', type=float, help='per-read timeout on the connection')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    setup_logging(os.getenv('LOG_LEVEL', 'INFO'))

    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        # --help exits 0, bad arguments exit 2
        return EXIT_OK if e.code == 0 else EXIT_USAGE

    return ServerApplication().run(args)


if __name__ == '__main__':
    sys.exit(main())
