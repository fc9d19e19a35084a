"""Configuration management for bounce delivery."""

from dataclasses import dataclass
from typing import Any, Optional
import os
from pathlib import Path

from dotenv import load_dotenv

from protocol.constants import (
    DEFAULT_LISTEN,
    DEFAULT_TIMEOUT_SECS,
    MAX_BODY_BYTES,
    MAX_HEADER_BYTES,
    SENDER_MAX_BODY_BYTES,
    U32_MAX,
)
from utils.addresses import split_host_port
from utils.exceptions import ConfigurationError


# Load .env file from project root
# This is called at module import time to ensure env vars are available
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(dotenv_path=env_path, override=False)


def _check_address(name: str, address: str) -> None:
    try:
        split_host_port(address)
    except ValueError as e:
        raise ConfigurationError(f"{name}: {e}") from e


@dataclass
class ClientConfig:
    """Configuration for the bounce sender."""

    server: str
    from_addr: str
    to_addr: str
    timeout_secs: float = DEFAULT_TIMEOUT_SECS
    max_body_bytes: int = SENDER_MAX_BODY_BYTES
    kind: Optional[str] = None
    source: Optional[str] = None

    def validate(self) -> None:
        """Validate client configuration parameters."""
        if not self.server:
            raise ConfigurationError("Server address is required (host:port)")
        _check_address("Server address", self.server)
        if not self.from_addr:
            raise ConfigurationError("Sender address (--from) is required")
        if not self.to_addr:
            raise ConfigurationError("Recipient address (--to) is required")
        if self.timeout_secs <= 0:
            raise ConfigurationError("Timeout must be a positive number of seconds")
        if self.max_body_bytes < 0:
            raise ConfigurationError("Maximum body size must not be negative")


@dataclass
class ServerConfig:
    """Configuration for the reference receiver."""

    listen: str = DEFAULT_LISTEN
    max_header_bytes: int = MAX_HEADER_BYTES
    max_body_bytes: int = MAX_BODY_BYTES
    read_timeout_secs: Optional[float] = None

    def validate(self) -> None:
        """Validate server configuration parameters."""
        if not self.listen:
            raise ConfigurationError("Listen address is required (host:port)")
        _check_address("Listen address", self.listen)
        if not 0 < self.max_header_bytes <= U32_MAX:
            raise ConfigurationError(
                f"Maximum header size must be between 1 and {U32_MAX}"
            )
        if self.max_body_bytes < 0:
            raise ConfigurationError("Maximum body size must not be negative")
        if self.read_timeout_secs is not None and self.read_timeout_secs <= 0:
            raise ConfigurationError("Read timeout must be a positive number of seconds")


def _env_number(name: str, default: Any, cast=int) -> Any:
    value = os.getenv(name)
    if value is None or value == '':
        return default
    try:
        return cast(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be a valid number, got: {value}")


def _pick(override: Any, fallback: Any) -> Any:
    return fallback if override is None else override


class Config:
    """Main configuration loader and manager."""

    def __init__(self):
        """Initialize configuration manager."""
        self.client: Optional[ClientConfig] = None
        self.server: Optional[ServerConfig] = None

    def load_client_config(
        self,
        server: Optional[str] = None,
        from_addr: Optional[str] = None,
        to_addr: Optional[str] = None,
        timeout_secs: Optional[float] = None,
        max_body_bytes: Optional[int] = None,
        kind: Optional[str] = None,
        source: Optional[str] = None,
    ) -> ClientConfig:
        """
        Load client configuration from environment variables.

        Arguments that are not None (command-line values) take
        precedence over the environment.

        Environment variables:
            BOUNCE_SERVER: Receiver address host:port (required)
            BOUNCE_FROM: Sender address (required)
            BOUNCE_TO: Recipient address (required)
            BOUNCE_TIMEOUT_SECS: Socket timeout (default: 10)
            BOUNCE_MAX_BODY_BYTES: Body size limit (default: 51200)
            BOUNCE_KIND: Classification tag (optional)
            BOUNCE_SOURCE: Origin tag (optional)

        Returns:
            Validated ClientConfig instance

        Raises:
            ConfigurationError: If required configuration is missing or invalid
        """
        config = ClientConfig(
            server=_pick(server, os.getenv('BOUNCE_SERVER', '')),
            from_addr=_pick(from_addr, os.getenv('BOUNCE_FROM', '')),
            to_addr=_pick(to_addr, os.getenv('BOUNCE_TO', '')),
            timeout_secs=_pick(
                timeout_secs,
                _env_number('BOUNCE_TIMEOUT_SECS', DEFAULT_TIMEOUT_SECS, float),
            ),
            max_body_bytes=_pick(
                max_body_bytes,
                _env_number('BOUNCE_MAX_BODY_BYTES', SENDER_MAX_BODY_BYTES),
            ),
            kind=_pick(kind, os.getenv('BOUNCE_KIND') or None),
            source=_pick(source, os.getenv('BOUNCE_SOURCE') or None),
        )
        config.validate()
        self.client = config
        return config

    def load_server_config(
        self,
        listen: Optional[str] = None,
        max_header_bytes: Optional[int] = None,
        max_body_bytes: Optional[int] = None,
        read_timeout_secs: Optional[float] = None,
    ) -> ServerConfig:
        """
        Load server configuration from environment variables.

        Environment variables:
            BOUNCE_LISTEN: Listen address host:port (default: 127.0.0.1:32147)
            BOUNCE_SERVER_MAX_HEADER_BYTES: Header size limit (default: 16384)
            BOUNCE_SERVER_MAX_BODY_BYTES: Body size limit (default: 2097152)
            BOUNCE_SERVER_READ_TIMEOUT_SECS: Per-read timeout (default: none)

        Returns:
            Validated ServerConfig instance

        Raises:
            ConfigurationError: If configuration is invalid
        """
        config = ServerConfig(
            listen=_pick(listen, os.getenv('BOUNCE_LISTEN', DEFAULT_LISTEN)),
            max_header_bytes=_pick(
                max_header_bytes,
                _env_number('BOUNCE_SERVER_MAX_HEADER_BYTES', MAX_HEADER_BYTES),
            ),
            max_body_bytes=_pick(
                max_body_bytes,
                _env_number('BOUNCE_SERVER_MAX_BODY_BYTES', MAX_BODY_BYTES),
            ),
            read_timeout_secs=_pick(
                read_timeout_secs,
                _env_number('BOUNCE_SERVER_READ_TIMEOUT_SECS', None, float),
            ),
        )
        config.validate()
        self.server = config
        return config
