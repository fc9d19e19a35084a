"""Frame structure definitions and the frame codec."""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Union
import struct

from protocol.constants import (
    LENGTHS_SIZE,
    MAGIC,
    MAGIC_SIZE,
    MAX_BODY_BYTES,
    MAX_HEADER_BYTES,
    PREFIX_FORMAT,
    PREFIX_SIZE,
    READ_CHUNK_SIZE,
)
from protocol.encoding import parse_header, serialize_header, u32_to_be, u64_to_be
from utils.exceptions import (
    BadMagicError,
    InvalidLengthError,
    OutOfMemoryError,
    TruncatedFrameError,
)

# read(n) returns at most n bytes, b'' at end of stream
Reader = Callable[[int], bytes]


@dataclass
class BounceHeader:
    """Header describing where a bounce came from and where it goes."""

    from_addr: str
    to_addr: str
    kind: Optional[str] = None
    source: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Return the header as a mapping keyed by wire field names."""
        return {
            'from': self.from_addr,
            'to': self.to_addr,
            'kind': self.kind,
            'source': self.source,
        }

    def to_bytes(self) -> bytes:
        """Serialize header to its wire text."""
        return serialize_header(self)

    @classmethod
    def from_bytes(cls, data: Union[str, bytes]) -> 'BounceHeader':
        """Parse header fields from wire text (best effort)."""
        return parse_header(data)


@dataclass
class FramePrefix:
    """Fixed 16-byte frame prefix: magic plus both length fields."""

    header_len: int
    body_len: int
    magic: bytes = MAGIC

    @classmethod
    def from_bytes(cls, data: bytes) -> 'FramePrefix':
        """
        Parse a frame prefix from bytes.

        Args:
            data: Exactly PREFIX_SIZE bytes

        Returns:
            Parsed FramePrefix instance

        Raises:
            BadMagicError: If the magic does not match
            TruncatedFrameError: If fewer than PREFIX_SIZE bytes are given
        """
        if len(data) < PREFIX_SIZE:
            raise TruncatedFrameError(
                f"Prefix needs {PREFIX_SIZE} bytes, got {len(data)}"
            )
        magic, header_len, body_len = struct.unpack(PREFIX_FORMAT, data[:PREFIX_SIZE])
        if magic != MAGIC:
            raise BadMagicError(f"Bad magic {magic!r}")
        return cls(header_len=header_len, body_len=body_len, magic=magic)

    def to_bytes(self) -> bytes:
        """Serialize prefix to bytes."""
        return self.magic + u32_to_be(self.header_len) + u64_to_be(self.body_len)

    def validate(
        self,
        max_header_bytes: int = MAX_HEADER_BYTES,
        max_body_bytes: int = MAX_BODY_BYTES,
    ) -> None:
        """
        Check declared lengths against the receiver limits.

        Raises:
            InvalidLengthError: If the header length is zero or too large,
                or the body length is too large
        """
        if (
            self.header_len == 0
            or self.header_len > max_header_bytes
            or self.body_len > max_body_bytes
        ):
            raise InvalidLengthError(
                f"Invalid lengths header={self.header_len} body={self.body_len}"
            )


@dataclass
class DecodedFrame:
    """Frame as read from the wire."""

    header_bytes: bytes
    body: bytes

    @property
    def header_len(self) -> int:
        return len(self.header_bytes)

    @property
    def body_len(self) -> int:
        return len(self.body)

    @property
    def header_text(self) -> str:
        """Raw header text, undecodable bytes replaced."""
        return self.header_bytes.decode('utf-8', errors='replace')

    def header(self) -> BounceHeader:
        """
        Extract header fields from the raw text.

        Raises:
            ValueError: If the header text is not a JSON object
        """
        return parse_header(self.header_bytes)


def encode_frame(header: Union[BounceHeader, bytes], body: bytes) -> bytes:
    """
    Build a wire frame from a header and body.

    No size limits are applied here; callers enforce them before
    reading or sending the body.

    Args:
        header: Header fields, or header text already serialized
        body: Raw body bytes

    Returns:
        magic + u32 header length + u64 body length + header + body

    Raises:
        OutOfMemoryError: If the frame buffer cannot be allocated
    """
    try:
        header_bytes = header if isinstance(header, bytes) else header.to_bytes()
        prefix = FramePrefix(header_len=len(header_bytes), body_len=len(body))
        return b''.join((prefix.to_bytes(), header_bytes, bytes(body)))
    except MemoryError as e:
        raise OutOfMemoryError("Failed to allocate frame buffer") from e


def read_exact(read: Reader, size: int, what: str = "frame") -> bytes:
    """
    Read exactly ``size`` bytes, looping over short reads.

    Args:
        read: Read function returning at most n bytes, b'' at end of stream
        size: Number of bytes required
        what: Name of the part being read, for error messages

    Returns:
        Exactly ``size`` bytes

    Raises:
        TruncatedFrameError: If the stream ends or fails first
        OutOfMemoryError: If the buffer cannot be allocated
    """
    try:
        buf = bytearray()
        while len(buf) < size:
            chunk = read(min(size - len(buf), READ_CHUNK_SIZE))
            if not chunk:
                raise TruncatedFrameError(
                    f"Stream closed mid-{what}: got {len(buf)} of {size} bytes"
                )
            buf += chunk
        return bytes(buf)
    except MemoryError as e:
        raise OutOfMemoryError(f"Failed to allocate {size} bytes for {what}") from e
    except OSError as e:
        raise TruncatedFrameError(f"Read failed mid-{what}: {e}") from e


def read_prefix(
    read: Reader,
    max_header_bytes: int = MAX_HEADER_BYTES,
    max_body_bytes: int = MAX_BODY_BYTES,
) -> FramePrefix:
    """
    Read and validate the frame prefix.

    The magic is checked before the length fields are read, so bytes
    following a bad magic are never interpreted as lengths.

    Raises:
        BadMagicError: If the magic does not match
        InvalidLengthError: If the declared lengths are out of bounds
        TruncatedFrameError: If the stream ends inside the prefix
    """
    magic = read_exact(read, MAGIC_SIZE, "magic")
    if magic != MAGIC:
        raise BadMagicError(f"Bad magic {magic!r}")

    prefix = FramePrefix.from_bytes(magic + read_exact(read, LENGTHS_SIZE, "prefix"))
    prefix.validate(max_header_bytes, max_body_bytes)
    return prefix


def read_payload(read: Reader, prefix: FramePrefix) -> DecodedFrame:
    """
    Read the header and body declared by an already validated prefix.

    Raises:
        TruncatedFrameError: If the stream ends before both are complete
        OutOfMemoryError: If a buffer cannot be allocated
    """
    header_bytes = read_exact(read, prefix.header_len, "header")
    body = read_exact(read, prefix.body_len, "body")
    return DecodedFrame(header_bytes=header_bytes, body=body)


def decode_frame(
    read: Reader,
    max_header_bytes: int = MAX_HEADER_BYTES,
    max_body_bytes: int = MAX_BODY_BYTES,
) -> DecodedFrame:
    """
    Read exactly one frame from a stream.

    Nothing past the declared header and body lengths is consumed.

    Args:
        read: Read function, e.g. ``sock.recv`` or ``BytesIO.read``
        max_header_bytes: Largest accepted header length
        max_body_bytes: Largest accepted body length

    Returns:
        DecodedFrame with the raw header bytes and the body
    """
    prefix = read_prefix(read, max_header_bytes, max_body_bytes)
    return read_payload(read, prefix)
