from __future__ import annotations

import io
import socket
import struct

import pytest

from client.sender import BounceClient, ClientState
from config.settings import ClientConfig, ServerConfig
from protocol.messages import BounceHeader, encode_frame
from server.server import BounceServer, ServerState, StatusWriter
from utils.exceptions import BindError, FailureReason

HEADER = BounceHeader(from_addr="a@x.com", to_addr="b@y.com")
HEADER_TEXT = '{"from":"a@x.com","to":"b@y.com","kind":null,"source":null}'


def send_raw(port: int, data: bytes, half_close: bool = True) -> bytes:
    """Write ``data`` and return whatever the server answers.

    The server may reject and close mid-write, so a reset on any step
    reads as an empty reply.
    """
    with socket.create_connection(("127.0.0.1", port), timeout=5) as s:
        try:
            s.sendall(data)
            if half_close:
                s.shutdown(socket.SHUT_WR)
            return s.recv(16)
        except OSError:
            return b""


def test_end_to_end(server_thread):
    st = server_thread()
    config = ClientConfig(server=st.address, from_addr="a@x.com", to_addr="b@y.com", timeout_secs=5)
    client = BounceClient(config)
    client.send(b"hello")
    result = st.join()

    assert client.state is ClientState.DONE
    assert result.accepted
    assert result.state is ServerState.CLOSED
    assert result.header_text == HEADER_TEXT
    assert result.header_len == len(HEADER_TEXT)
    assert result.body_len == 5
    assert result.body == b"hello"
    assert st.status_lines() == [
        f"LISTENING 127.0.0.1:{st.port}",
        f"FRAME header_len={len(HEADER_TEXT)} body_len=5",
        f"HEADER {HEADER_TEXT}",
        "RESULT ok",
    ]


def test_ack_is_sent(server_thread):
    st = server_thread()
    assert send_raw(st.port, encode_frame(HEADER, b"")) == b"OK\n"
    assert st.join().accepted


def test_bad_magic_rejected_without_reading_lengths(server_thread):
    st = server_thread()
    with socket.create_connection(("127.0.0.1", st.port), timeout=5) as s:
        # only the magic is sent; the server must not wait for length fields
        s.sendall(b"JUNK")
        result = st.join()
        assert s.recv(16) == b""

    assert not result.accepted
    assert result.state is ServerState.REJECTED
    assert result.reason is FailureReason.BAD_MAGIC
    assert result.failed_in is ServerState.READING_PREFIX
    assert st.status_lines()[-1] == "RESULT rejected BadMagic"


@pytest.mark.parametrize("header_len,body_len", [(0, 0), (16 * 1024 + 1, 0), (10, 2 * 1024 * 1024 + 1)])
def test_invalid_lengths(server_thread, header_len, body_len):
    st = server_thread()
    send_raw(st.port, b"BNCE" + struct.pack(">IQ", header_len, body_len))
    result = st.join()
    assert result.reason is FailureReason.INVALID_LENGTH
    assert result.body_len == 0


def test_custom_limits(server_thread):
    st = server_thread(max_body_bytes=4)
    reply = send_raw(st.port, encode_frame(HEADER, b"hello"))
    assert reply == b""
    assert st.join().reason is FailureReason.INVALID_LENGTH


def test_truncated_prefix(server_thread):
    st = server_thread()
    send_raw(st.port, b"BNCE\x00\x00")
    result = st.join()
    assert result.reason is FailureReason.TRUNCATED
    assert result.failed_in is ServerState.READING_PREFIX


def test_truncated_body(server_thread):
    st = server_thread()
    reply = send_raw(st.port, encode_frame(HEADER, b"hello")[:-2])
    result = st.join()
    assert reply == b""
    assert result.reason is FailureReason.TRUNCATED
    assert result.failed_in is ServerState.READING_PAYLOAD
    assert "FRAME" not in st.status.getvalue()


def test_read_timeout_rejects_stalled_peer(server_thread):
    st = server_thread(read_timeout_secs=0.3)
    with socket.create_connection(("127.0.0.1", st.port), timeout=5) as s:
        s.sendall(encode_frame(HEADER, b"hello")[:20])
        result = st.join()
    assert result.reason is FailureReason.TRUNCATED


def test_bind_error_when_address_in_use(server_thread):
    st = server_thread()
    other = BounceServer(ServerConfig(listen=st.address), StatusWriter(io.StringIO()))
    with pytest.raises(BindError):
        other.listen()
    send_raw(st.port, encode_frame(HEADER, b""))
    st.join()


@pytest.mark.parametrize("listen", ["127.0.0.1", "127.0.0.1:notaport"])
def test_serve_reports_bind_error(listen):
    out = io.StringIO()
    result = BounceServer(ServerConfig(listen=listen), StatusWriter(out)).serve()
    assert not result.accepted
    assert result.reason is FailureReason.BIND_ERROR
    assert out.getvalue() == "RESULT rejected BindError\n"


def test_listener_closed_after_accept(server_thread):
    st = server_thread()
    send_raw(st.port, encode_frame(HEADER, b"x"))
    st.join()
    assert st.server.address is None
    with pytest.raises(OSError):
        socket.create_connection(("127.0.0.1", st.port), timeout=1).close()


class UnwritableConnection:
    """Accepted connection whose writes fail as if the peer went away."""

    def __init__(self, conn: socket.socket):
        self._conn = conn

    def recv(self, n: int) -> bytes:
        return self._conn.recv(n)

    def sendall(self, data: bytes) -> None:
        raise BrokenPipeError("peer went away")

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self._conn.close()


def test_ack_write_error(server_thread, monkeypatch):
    accept = BounceServer._accept
    monkeypatch.setattr(BounceServer, "_accept", lambda self: UnwritableConnection(accept(self)))
    st = server_thread()

    reply = send_raw(st.port, encode_frame(HEADER, b"hello"))
    result = st.join()

    assert reply == b""
    assert not result.accepted
    assert result.state is ServerState.REJECTED
    assert result.reason is FailureReason.ACK_WRITE_ERROR
    assert result.failed_in is ServerState.ACKING
    # the frame itself was read in full
    assert result.body_len == 5
    assert result.header_text == HEADER_TEXT
    assert st.status_lines()[-3:] == [
        f"FRAME header_len={len(HEADER_TEXT)} body_len=5",
        f"HEADER {HEADER_TEXT}",
        "RESULT rejected AckWriteError",
    ]
