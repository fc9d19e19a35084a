"""Bounce sender: one frame out, one acknowledgement back."""

from dataclasses import dataclass
from enum import Enum
from typing import BinaryIO, List, Optional, Tuple
import socket

from protocol.constants import ACK, ACK_SIZE, DEFAULT_TIMEOUT_SECS, SENDER_MAX_BODY_BYTES
from protocol.messages import BounceHeader, encode_frame, read_exact
from client.resolver import Endpoint, Resolver, SystemResolver, split_host_port
from config.settings import ClientConfig
from utils.logging import get_logger
from utils.exceptions import (
    BadAckError,
    BodyTooLargeError,
    BounceError,
    ConfigurationError,
    ConnectError,
    NoAckError,
    ResolutionError,
    SendError,
    TruncatedFrameError,
)

logger = get_logger(__name__)


class ClientState(str, Enum):
    """States of a single send."""

    IDLE = "Idle"
    RESOLVING = "Resolving"
    CONNECTING = "Connecting"
    SENDING = "Sending"
    AWAITING_ACK = "AwaitingAck"
    DONE = "Done"
    FAILED = "Failed"


@dataclass
class SendReport:
    """Summary of a completed send."""

    endpoint: str
    header_len: int
    body_len: int


def read_body(stream: BinaryIO, max_bytes: int = SENDER_MAX_BODY_BYTES) -> bytes:
    """
    Read a message body from a binary stream until end of input.

    At most ``max_bytes + 1`` bytes are read; input beyond the limit
    is a hard failure, never truncated.

    Args:
        stream: Binary input stream (e.g. sys.stdin.buffer)
        max_bytes: Largest accepted body

    Returns:
        Body bytes

    Raises:
        BodyTooLargeError: If the input exceeds ``max_bytes``
    """
    buf = bytearray()
    while True:
        chunk = stream.read(max_bytes + 1 - len(buf))
        if not chunk:
            break
        buf += chunk
        if len(buf) > max_bytes:
            raise BodyTooLargeError(f"Mail body too large (limit {max_bytes} bytes)")
    return bytes(buf)


class BounceClient:
    """
    Sends one bounce frame to a receiver and waits for its acknowledgement.

    Each call to send() is a single attempt over a single connection:
    resolve, connect, write the frame, read the 3-byte ACK, close. Any
    failure ends the attempt with a BounceError; retrying is up to the
    caller.
    """

    def __init__(self, config: ClientConfig, resolver: Optional[Resolver] = None):
        """
        Initialize client with configuration.

        Args:
            config: Client configuration (target, header fields, limits)
            resolver: Address resolver (default: getaddrinfo)
        """
        self._config: ClientConfig = config
        self._resolver: Resolver = resolver or SystemResolver()
        self._state: ClientState = ClientState.IDLE
        self._failure: Optional[BounceError] = None

    @property
    def state(self) -> ClientState:
        """Current state of the last send."""
        return self._state

    @property
    def failure(self) -> Optional[BounceError]:
        """Error that ended the last send, if any."""
        return self._failure

    def header(self) -> BounceHeader:
        """Build the frame header from configuration."""
        return BounceHeader(
            from_addr=self._config.from_addr,
            to_addr=self._config.to_addr,
            kind=self._config.kind,
            source=self._config.source,
        )

    def send(self, body: bytes, header: Optional[BounceHeader] = None) -> SendReport:
        """
        Deliver one frame and wait for the acknowledgement.

        Args:
            body: Message body
            header: Frame header (default: built from configuration)

        Returns:
            SendReport describing the delivered frame

        Raises:
            BodyTooLargeError: If the body exceeds the limit (no connection is made)
            ConfigurationError: If the header cannot be encoded (no connection is made)
            ResolutionError: If the target cannot be parsed or resolved
            ConnectError: If no endpoint accepts the connection
            SendError: If the frame cannot be written
            NoAckError: If the peer closes or times out before acknowledging
            BadAckError: If the peer answers with anything but the ACK
        """
        self._state = ClientState.IDLE
        self._failure = None
        try:
            return self._send(header or self.header(), body)
        except BounceError as e:
            self._fail(e)
            raise

    def _send(self, header: BounceHeader, body: bytes) -> SendReport:
        if len(body) > self._config.max_body_bytes:
            raise BodyTooLargeError(
                f"Body of {len(body)} bytes exceeds limit {self._config.max_body_bytes}"
            )

        try:
            header_bytes = header.to_bytes()
        except UnicodeError as e:
            raise ConfigurationError(f"Header cannot be encoded: {e}") from e

        endpoints = self._resolve()
        sock, endpoint = self._connect(endpoints)

        with sock:
            self._send_frame(sock, header_bytes, body)
            self._await_ack(sock)

        self._transition(ClientState.DONE)
        logger.info(
            f"Delivered bounce to {endpoint}: header={len(header_bytes)} body={len(body)} bytes"
        )
        return SendReport(endpoint=str(endpoint), header_len=len(header_bytes), body_len=len(body))

    def _resolve(self) -> List[Endpoint]:
        self._transition(ClientState.RESOLVING)
        host, port = split_host_port(self._config.server)
        try:
            endpoints = self._resolver.resolve(host, port)
        except OSError as e:
            raise ResolutionError(f"Failed to resolve {self._config.server}: {e}") from e
        if not endpoints:
            raise ResolutionError(f"No addresses found for {self._config.server}")
        return endpoints

    def _connect(self, endpoints: List[Endpoint]) -> Tuple[socket.socket, Endpoint]:
        """Try endpoints in resolver order; first successful connect wins."""
        self._transition(ClientState.CONNECTING)
        last_error: Optional[OSError] = None

        for endpoint in endpoints:
            try:
                sock = socket.socket(endpoint.family, endpoint.socktype, endpoint.proto)
            except OSError as e:
                last_error = e
                continue

            # Applies to connect, send and recv alike
            sock.settimeout(self._config.timeout_secs)
            try:
                sock.connect(endpoint.sockaddr)
            except OSError as e:
                logger.debug(f"Connect to {endpoint} failed: {e}")
                last_error = e
                sock.close()
                continue

            logger.debug(f"Connected to {endpoint}")
            return sock, endpoint

        raise ConnectError(f"Failed to connect to {self._config.server}: {last_error}")

    def _send_frame(self, sock: socket.socket, header_bytes: bytes, body: bytes) -> None:
        self._transition(ClientState.SENDING)
        frame = encode_frame(header_bytes, body)
        try:
            sock.sendall(frame)
        except OSError as e:
            raise SendError(f"Failed to send frame: {e}") from e

    def _await_ack(self, sock: socket.socket) -> None:
        self._transition(ClientState.AWAITING_ACK)
        try:
            reply = read_exact(sock.recv, ACK_SIZE, "ack")
        except TruncatedFrameError as e:
            raise NoAckError(f"Missing ACK from server: {e}") from e
        if reply != ACK:
            raise BadAckError(f"Invalid ACK from server: {reply!r}")

    def _transition(self, state: ClientState) -> None:
        logger.debug(f"Client state {self._state.value} -> {state.value}")
        self._state = state

    def _fail(self, error: BounceError) -> None:
        failed_in = self._state
        self._state = ClientState.FAILED
        self._failure = error
        if error.is_protocol_error:
            logger.error(f"Protocol error in {failed_in.value}: {error.reason.value}: {error}")
        else:
            logger.warning(f"Send failed in {failed_in.value}: {error.reason.value}: {error}")


def send_bounce(
    server: str,
    header: BounceHeader,
    body: bytes,
    timeout_secs: float = DEFAULT_TIMEOUT_SECS,
    max_body_bytes: int = SENDER_MAX_BODY_BYTES,
    resolver: Optional[Resolver] = None,
) -> SendReport:
    """
    Send one bounce frame to ``server`` (host:port) and wait for the ACK.

    Raises:
        BounceError: On any failure, see BounceClient.send()
    """
    config = ClientConfig(
        server=server,
        from_addr=header.from_addr,
        to_addr=header.to_addr,
        timeout_secs=timeout_secs,
        max_body_bytes=max_body_bytes,
        kind=header.kind,
        source=header.source,
    )
    return BounceClient(config, resolver).send(body, header)
