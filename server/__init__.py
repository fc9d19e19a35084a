"""Server transport: single-shot reference receiver."""

from server.server import BounceServer, ExchangeResult, ServerState, StatusWriter, serve_once

__all__ = [
    'BounceServer',
    'ExchangeResult',
    'ServerState',
    'StatusWriter',
    'serve_once',
]
