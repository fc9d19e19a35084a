"""Client transport: resolve, connect, send one frame, await the ACK."""

from client.resolver import Endpoint, Resolver, SystemResolver, split_host_port
from client.sender import BounceClient, ClientState, SendReport, read_body, send_bounce

__all__ = [
    'Endpoint',
    'Resolver',
    'SystemResolver',
    'split_host_port',
    'BounceClient',
    'ClientState',
    'SendReport',
    'read_body',
    'send_bounce',
]
