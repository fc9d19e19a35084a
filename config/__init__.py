"""Configuration module for managing system settings."""

from config.settings import (
    ClientConfig,
    ServerConfig,
    Config,
)

__all__ = [
    'ClientConfig',
    'ServerConfig',
    'Config',
]
