from __future__ import annotations

import io
import socket
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional

import pytest

from client.resolver import Endpoint
from config.settings import ServerConfig
from server.server import BounceServer, ExchangeResult, StatusWriter


def local_endpoint(port: int) -> Endpoint:
    return Endpoint(
        family=socket.AF_INET,
        socktype=socket.SOCK_STREAM,
        proto=0,
        sockaddr=("127.0.0.1", port),
    )


def unused_port() -> int:
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    s.bind(("127.0.0.1", 0))
    port = s.getsockname()[1]
    s.close()
    return port


class FakeResolver:
    def __init__(self, endpoints: List[Endpoint]):
        self.endpoints = endpoints
        self.calls: list[tuple[str, int]] = []

    def resolve(self, host: str, port: int) -> List[Endpoint]:
        self.calls.append((host, port))
        return list(self.endpoints)


class ServerThread:
    """Reference server bound to an ephemeral port, serving in the background."""

    def __init__(self, **overrides):
        self.status = io.StringIO()
        config = ServerConfig(listen="127.0.0.1:0", **overrides)
        self.server = BounceServer(config, StatusWriter(self.status))
        self.host, self.port = self.server.listen()
        self.result: Optional[ExchangeResult] = None
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def _run(self) -> None:
        self.result = self.server.serve()

    @property
    def address(self) -> str:
        return f"127.0.0.1:{self.port}"

    def join(self, timeout: float = 5.0) -> ExchangeResult:
        self._thread.join(timeout)
        assert not self._thread.is_alive(), "server did not finish"
        assert self.result is not None
        return self.result

    def status_lines(self) -> list[str]:
        return self.status.getvalue().splitlines()


@pytest.fixture
def server_thread():
    started: list[ServerThread] = []

    def start(**overrides) -> ServerThread:
        st = ServerThread(**overrides)
        started.append(st)
        return st

    yield start

    for st in started:
        st.server.close()


@contextmanager
def raw_peer(handler: Callable[[socket.socket], None]) -> Iterator[int]:
    """Accept one connection on an ephemeral port and hand it to ``handler``."""
    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    listener.bind(("127.0.0.1", 0))
    listener.listen(1)
    port = listener.getsockname()[1]

    def run():
        conn, _ = listener.accept()
        with conn:
            handler(conn)

    t = threading.Thread(target=run, daemon=True)
    t.start()
    try:
        yield port
    finally:
        t.join(5.0)
        listener.close()


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "BOUNCE_SERVER",
        "BOUNCE_FROM",
        "BOUNCE_TO",
        "BOUNCE_KIND",
        "BOUNCE_SOURCE",
        "BOUNCE_TIMEOUT_SECS",
        "BOUNCE_MAX_BODY_BYTES",
        "BOUNCE_LISTEN",
        "BOUNCE_SERVER_MAX_HEADER_BYTES",
        "BOUNCE_SERVER_MAX_BODY_BYTES",
        "BOUNCE_SERVER_READ_TIMEOUT_SECS",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
