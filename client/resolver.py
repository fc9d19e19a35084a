"""Address resolution for the bounce sender."""

from dataclasses import dataclass
from typing import Any, List, Protocol, Tuple
import socket

from utils.addresses import format_host_port, split_host_port as _split
from utils.exceptions import ResolutionError
from utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Endpoint:
    """One connectable candidate returned by a resolver."""

    family: int
    socktype: int
    proto: int
    sockaddr: Tuple[Any, ...]

    def __str__(self) -> str:
        return format_host_port(self.sockaddr[0], self.sockaddr[1])


class Resolver(Protocol):
    """Maps a host and port to connectable endpoints."""

    def resolve(self, host: str, port: int) -> List[Endpoint]:
        ...


class SystemResolver:
    """Resolver backed by socket.getaddrinfo."""

    def resolve(self, host: str, port: int) -> List[Endpoint]:
        try:
            infos = socket.getaddrinfo(host, port, socket.AF_UNSPEC, socket.SOCK_STREAM)
        except (socket.gaierror, UnicodeError) as e:
            raise ResolutionError(f"Failed to resolve {host}:{port}: {e}") from e

        endpoints = [
            Endpoint(family=family, socktype=socktype, proto=proto, sockaddr=sockaddr)
            for family, socktype, proto, _canonname, sockaddr in infos
        ]
        logger.debug(f"Resolved {host}:{port} to {len(endpoints)} endpoint(s)")
        return endpoints


def split_host_port(address: str) -> Tuple[str, int]:
    """
    Split a target address into host and port.

    Raises:
        ResolutionError: If the address is malformed
    """
    try:
        return _split(address)
    except ValueError as e:
        raise ResolutionError(str(e)) from e
