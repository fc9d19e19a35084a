"""Protocol constants for bounce frame handling.

These are protocol-level constants that should not be changed
without updating both client and server implementations.
"""

import struct

# Fixed marker at the start of every frame
MAGIC = b"BNCE"
MAGIC_SIZE = len(MAGIC)

# Acknowledgement literal sent by the receiver after a complete frame
ACK = b"OK\n"
ACK_SIZE = len(ACK)

# Frame prefix: magic + u32 header length + u64 body length
# Format: '>' = big-endian, '4s' = magic, 'I' = uint32, 'Q' = uint64
PREFIX_FORMAT = '>4sIQ'

# Size of the frame prefix in bytes
PREFIX_SIZE = struct.calcsize(PREFIX_FORMAT)

# Length fields alone, read after the magic has been checked
LENGTHS_SIZE = PREFIX_SIZE - MAGIC_SIZE

U32_MAX = 0xFFFFFFFF
U64_MAX = 0xFFFFFFFFFFFFFFFF

# Receiver-side limits
MAX_HEADER_BYTES = 16 * 1024
MAX_BODY_BYTES = 2 * 1024 * 1024

# Sender-side body limit.
# MUST SYNC with 'bounce_size_limit' in Postfix main.cf (default 50000).
# A smaller Postfix limit truncates the MIME part before it reaches us.
SENDER_MAX_BODY_BYTES = 50 * 1024

DEFAULT_TIMEOUT_SECS = 10
DEFAULT_LISTEN = "127.0.0.1:32147"

# Header keys in wire order
HEADER_FIELDS = ("from", "to", "kind", "source")

# Bytes requested per recv() while reading a payload
READ_CHUNK_SIZE = 64 * 1024
