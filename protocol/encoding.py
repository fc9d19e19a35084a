"""Fixed-width integer and header encoding functions."""

import json
from typing import TYPE_CHECKING, Union

from protocol.constants import HEADER_FIELDS, U32_MAX, U64_MAX

if TYPE_CHECKING:
    from protocol.messages import BounceHeader


def _to_be(value: int, width: int, limit: int) -> bytes:
    if not 0 <= value <= limit:
        raise ValueError(f"Value {value} does not fit in {width} unsigned bytes")
    return value.to_bytes(width, byteorder='big', signed=False)


def _from_be(data: bytes, width: int) -> int:
    if len(data) != width:
        raise ValueError(f"Expected {width} bytes, got {len(data)}")
    return int.from_bytes(data, byteorder='big', signed=False)


def u32_to_be(value: int) -> bytes:
    """Encode an unsigned 32-bit integer as 4 big-endian bytes."""
    return _to_be(value, 4, U32_MAX)


def be_to_u32(data: bytes) -> int:
    """Decode 4 big-endian bytes into an unsigned integer."""
    return _from_be(data, 4)


def u64_to_be(value: int) -> bytes:
    """Encode an unsigned 64-bit integer as 8 big-endian bytes."""
    return _to_be(value, 8, U64_MAX)


def be_to_u64(data: bytes) -> int:
    """Decode 8 big-endian bytes into an unsigned integer."""
    return _from_be(data, 8)


def serialize_header(header: 'BounceHeader') -> bytes:
    """
    Serialize a header to its compact JSON wire form.

    Keys are written in wire order with no whitespace, e.g.
    ``{"from":"a@x.com","to":"b@y.com","kind":null,"source":null}``.
    Quotes, backslashes and control characters inside values are
    escaped by the JSON encoder. Undecodable argv bytes (lone
    surrogates U+DC80..U+DCFF) are written back as the original bytes.

    Args:
        header: Header to serialize

    Returns:
        UTF-8 encoded header text

    Raises:
        UnicodeEncodeError: If a value holds any other lone surrogate
    """
    fields = header.to_dict()
    ordered = {key: fields.get(key) for key in HEADER_FIELDS}
    text = json.dumps(ordered, separators=(',', ':'), ensure_ascii=False)
    return text.encode('utf-8', errors='surrogateescape')


def parse_header(text: Union[str, bytes]) -> 'BounceHeader':
    """
    Best-effort extraction of header fields from wire text.

    Unknown keys are ignored and missing keys become None. Values that
    are not strings are converted with ``str()``.

    Args:
        text: Header text as received

    Returns:
        Parsed BounceHeader instance

    Raises:
        ValueError: If the text is not a JSON object
    """
    from protocol.messages import BounceHeader

    if isinstance(text, bytes):
        text = text.decode('utf-8', errors='replace')

    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError("Header is not a JSON object")

    def field(key: str):
        value = data.get(key)
        return None if value is None else str(value)

    return BounceHeader(
        from_addr=field('from') or "",
        to_addr=field('to') or "",
        kind=field('kind'),
        source=field('source'),
    )
