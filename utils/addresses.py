"""host:port address parsing shared by client, server and config."""

from typing import Tuple


def split_host_port(address: str) -> Tuple[str, int]:
    """
    Split a ``host:port`` string on its last colon.

    IPv6 literals may be bracketed (``[::1]:25``); the brackets are
    stripped from the returned host.

    Args:
        address: Address in host:port form

    Returns:
        Tuple of (host, port)

    Raises:
        ValueError: If the separator, host or port is missing, or the
            port is not a number in 0..65535
    """
    host, sep, port_str = (address or "").rpartition(':')
    if not sep:
        raise ValueError(f"Address {address!r} is missing a ':port' suffix")
    if host.startswith('[') and host.endswith(']'):
        host = host[1:-1]
    if not host:
        raise ValueError(f"Address {address!r} has no host")
    if not port_str.isdigit():
        raise ValueError(f"Address {address!r} has an invalid port {port_str!r}")
    port = int(port_str)
    if port > 65535:
        raise ValueError(f"Port {port} out of range in {address!r}")
    return host, port


def format_host_port(host: str, port: int) -> str:
    """Join host and port, bracketing IPv6 literals."""
    if ':' in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"
