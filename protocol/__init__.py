"""Protocol module for bounce frame encoding and decoding."""

from protocol.constants import (
    ACK,
    ACK_SIZE,
    MAGIC,
    MAGIC_SIZE,
    MAX_BODY_BYTES,
    MAX_HEADER_BYTES,
    PREFIX_FORMAT,
    PREFIX_SIZE,
    SENDER_MAX_BODY_BYTES,
)
from protocol.encoding import (
    be_to_u32,
    be_to_u64,
    parse_header,
    serialize_header,
    u32_to_be,
    u64_to_be,
)
from protocol.messages import (
    BounceHeader,
    DecodedFrame,
    FramePrefix,
    decode_frame,
    encode_frame,
    read_exact,
)

__all__ = [
    'ACK',
    'ACK_SIZE',
    'MAGIC',
    'MAGIC_SIZE',
    'MAX_BODY_BYTES',
    'MAX_HEADER_BYTES',
    'PREFIX_FORMAT',
    'PREFIX_SIZE',
    'SENDER_MAX_BODY_BYTES',
    'be_to_u32',
    'be_to_u64',
    'parse_header',
    'serialize_header',
    'u32_to_be',
    'u64_to_be',
    'BounceHeader',
    'DecodedFrame',
    'FramePrefix',
    'decode_frame',
    'encode_frame',
    'read_exact',
]
