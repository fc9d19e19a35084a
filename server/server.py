"""Reference receiver: accepts one connection and reads one bounce frame."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, TextIO, Tuple
import socket
import sys

from protocol.constants import ACK
from protocol.messages import DecodedFrame, read_payload, read_prefix
from config.settings import ServerConfig
from utils.addresses import format_host_port, split_host_port
from utils.logging import get_logger
from utils.exceptions import (
    AcceptError,
    AckWriteError,
    BindError,
    BounceError,
    FailureReason,
)

logger = get_logger(__name__)


class ServerState(str, Enum):
    """States of a single receive exchange."""

    IDLE = "Idle"
    LISTENING = "Listening"
    ACCEPTED = "Accepted"
    READING_PREFIX = "ReadingPrefix"
    READING_PAYLOAD = "ReadingPayload"
    ACKING = "Acking"
    CLOSED = "Closed"
    REJECTED = "Rejected"


@dataclass
class ExchangeResult:
    """Outcome of one exchange as reported to the caller."""

    accepted: bool
    state: ServerState
    reason: Optional[FailureReason] = None
    failed_in: Optional[ServerState] = None
    message: str = ""
    header_text: Optional[str] = None
    header_len: int = 0
    body_len: int = 0
    body: bytes = b''
    peer: Optional[str] = None


class StatusWriter:
    """
    Line-oriented status channel read by test harnesses.

    Each line is flushed as soon as it is written.
    """

    def __init__(self, stream: Optional[TextIO] = None):
        self._stream = stream

    def line(self, text: str) -> None:
        stream = self._stream or sys.stdout
        stream.write(text + "\n")
        stream.flush()

    def listening(self, address: str) -> None:
        self.line(f"LISTENING {address}")

    def frame(self, header_len: int, body_len: int) -> None:
        self.line(f"FRAME header_len={header_len} body_len={body_len}")

    def header(self, text: str) -> None:
        self.line(f"HEADER {text}")

    def ok(self) -> None:
        self.line("RESULT ok")

    def rejected(self, reason: FailureReason) -> None:
        self.line(f"RESULT rejected {reason.value}")


class BounceServer:
    """
    Single-shot receiver for one bounce exchange.

    Listens on the configured address, accepts exactly one connection,
    stops listening, reads and validates one frame, answers with the
    ACK and closes everything. Malformed input from the peer ends the
    exchange with a rejection; it is never retried or resynchronized.
    """

    def __init__(self, config: ServerConfig, status: Optional[StatusWriter] = None):
        """
        Initialize server with configuration.

        Args:
            config: Server configuration (listen address, limits)
            status: Status line writer (default: stdout)
        """
        self._config: ServerConfig = config
        self._status: StatusWriter = status or StatusWriter()
        self._listener: Optional[socket.socket] = None
        self._state: ServerState = ServerState.IDLE
        self._frame: Optional[DecodedFrame] = None
        self._peer: Optional[str] = None

    @property
    def state(self) -> ServerState:
        """Current exchange state."""
        return self._state

    @property
    def address(self) -> Optional[Tuple[str, int]]:
        """Bound (host, port) while listening."""
        if self._listener is None:
            return None
        host, port = self._listener.getsockname()[:2]
        return host, port

    def listen(self) -> Tuple[str, int]:
        """
        Bind and listen on the configured address.

        Returns:
            The bound (host, port); useful when the configured port is 0

        Raises:
            BindError: If the address is unparsable or cannot be bound
        """
        try:
            host, port = split_host_port(self._config.listen)
        except ValueError as e:
            raise BindError(f"Failed to listen on {self._config.listen}: {e}") from e

        try:
            infos = socket.getaddrinfo(
                host, port, socket.AF_UNSPEC, socket.SOCK_STREAM, 0, socket.AI_PASSIVE
            )
        except (socket.gaierror, UnicodeError) as e:
            raise BindError(f"Failed to listen on {self._config.listen}: {e}") from e

        last_error: Optional[OSError] = None
        for family, socktype, proto, _canonname, sockaddr in infos:
            try:
                sock = socket.socket(family, socktype, proto)
            except OSError as e:
                last_error = e
                continue
            try:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
                sock.bind(sockaddr)
                sock.listen(1)
            except OSError as e:
                last_error = e
                sock.close()
                continue
            self._listener = sock
            break

        if self._listener is None:
            raise BindError(f"Failed to listen on {self._config.listen}: {last_error}")

        self._transition(ServerState.LISTENING)
        bound = self.address
        self._status.listening(format_host_port(*bound))
        logger.info(f"Listening on {format_host_port(*bound)}")
        return bound

    def serve(self) -> ExchangeResult:
        """
        Run one complete exchange.

        Listens first if listen() has not been called. Sockets are
        closed on every path before the result is returned.

        Returns:
            ExchangeResult with the received frame details or the
            rejection reason
        """
        self._frame = None
        self._peer = None
        try:
            if self._listener is None:
                self.listen()
            conn = self._accept()
            with conn:
                self._receive(conn)
                self._ack(conn)
        except BounceError as e:
            return self._reject(e)
        finally:
            self.close()

        self._transition(ServerState.CLOSED)
        self._status.ok()
        logger.info("Exchange complete")
        return self._result(accepted=True)

    def close(self) -> None:
        """Close the listening socket if still open."""
        if self._listener is not None:
            self._listener.close()
            self._listener = None

    def _accept(self) -> socket.socket:
        try:
            conn, peer = self._listener.accept()
        except OSError as e:
            raise AcceptError(f"Accept failed: {e}") from e
        finally:
            # Single-shot: no further connections are taken
            self.close()

        self._peer = format_host_port(*peer[:2])
        self._transition(ServerState.ACCEPTED)
        logger.info(f"Accepted connection from {self._peer}")
        if self._config.read_timeout_secs is not None:
            conn.settimeout(self._config.read_timeout_secs)
        return conn

    def _receive(self, conn: socket.socket) -> None:
        self._transition(ServerState.READING_PREFIX)
        prefix = read_prefix(
            conn.recv, self._config.max_header_bytes, self._config.max_body_bytes
        )
        logger.debug(f"Prefix: header_len={prefix.header_len} body_len={prefix.body_len}")

        self._transition(ServerState.READING_PAYLOAD)
        self._frame = read_payload(conn.recv, prefix)
        self._status.frame(self._frame.header_len, self._frame.body_len)
        self._status.header(self._frame.header_text)

    def _ack(self, conn: socket.socket) -> None:
        self._transition(ServerState.ACKING)
        try:
            conn.sendall(ACK)
        except OSError as e:
            raise AckWriteError(f"Failed to write ACK: {e}") from e

    def _reject(self, error: BounceError) -> ExchangeResult:
        failed_in = self._state
        self._transition(ServerState.REJECTED)
        if error.is_protocol_error:
            logger.error(f"Rejected in {failed_in.value}: {error.reason.value}: {error}")
        else:
            logger.warning(f"Rejected in {failed_in.value}: {error.reason.value}: {error}")
        self._status.rejected(error.reason)
        return self._result(
            accepted=False,
            reason=error.reason,
            failed_in=failed_in,
            message=str(error),
        )

    def _result(self, accepted: bool, **kwargs) -> ExchangeResult:
        frame = self._frame
        return ExchangeResult(
            accepted=accepted,
            state=self._state,
            header_text=frame.header_text if frame else None,
            header_len=frame.header_len if frame else 0,
            body_len=frame.body_len if frame else 0,
            body=frame.body if frame else b'',
            peer=self._peer,
            **kwargs,
        )

    def _transition(self, state: ServerState) -> None:
        logger.debug(f"Server state {self._state.value} -> {state.value}")
        self._state = state


def serve_once(config: ServerConfig, status: Optional[StatusWriter] = None) -> ExchangeResult:
    """Listen on ``config.listen`` and run exactly one exchange."""
    return BounceServer(config, status).serve()
