"""Custom exception classes for bounce delivery.

Every exception carries a ``reason`` (the failure code reported to
observers) and a ``category`` that decides how the entry points log it
and which exit code the invoking mail system sees.
"""

from enum import Enum
from typing import Optional


class FailureReason(str, Enum):
    """Why a send or receive exchange ended without success."""

    BAD_MAGIC = "BadMagic"
    INVALID_LENGTH = "InvalidLength"
    TRUNCATED = "Truncated"
    OUT_OF_MEMORY = "OutOfMemory"
    BODY_TOO_LARGE = "BodyTooLarge"
    RESOLUTION_ERROR = "ResolutionError"
    CONNECT_ERROR = "ConnectError"
    SEND_ERROR = "SendError"
    NO_ACK = "NoAck"
    BAD_ACK = "BadAck"
    BIND_ERROR = "BindError"
    ACCEPT_ERROR = "AcceptError"
    ACK_WRITE_ERROR = "AckWriteError"
    CONFIGURATION = "ConfigurationError"


class ErrorCategory(str, Enum):
    """Coarse error classes."""

    CONFIGURATION = "configuration"
    RESOURCE = "resource"
    TRANSPORT = "transport"
    PROTOCOL = "protocol"


class BounceError(Exception):
    """Base exception class for all bounce delivery errors."""

    reason: FailureReason = FailureReason.SEND_ERROR
    category: ErrorCategory = ErrorCategory.TRANSPORT

    def __init__(self, message: str = "", reason: Optional[FailureReason] = None):
        super().__init__(message or self.__class__.__doc__)
        if reason is not None:
            self.reason = reason

    @property
    def is_protocol_error(self) -> bool:
        """True when the failure points at a misconfigured or corrupt peer."""
        return self.category is ErrorCategory.PROTOCOL


class ConfigurationError(BounceError):
    """Exception raised when configuration is invalid or missing."""
    reason = FailureReason.CONFIGURATION
    category = ErrorCategory.CONFIGURATION


# Frame codec errors

class FrameError(BounceError):
    """Exception raised when a frame cannot be encoded or decoded."""
    pass


class BadMagicError(FrameError):
    """Frame does not start with the protocol magic."""
    reason = FailureReason.BAD_MAGIC
    category = ErrorCategory.PROTOCOL


class InvalidLengthError(FrameError):
    """Declared header or body length is out of bounds."""
    reason = FailureReason.INVALID_LENGTH
    category = ErrorCategory.PROTOCOL


class TruncatedFrameError(FrameError):
    """Stream ended before the declared frame was complete."""
    reason = FailureReason.TRUNCATED
    category = ErrorCategory.TRANSPORT


class OutOfMemoryError(FrameError):
    """Buffer allocation failed."""
    reason = FailureReason.OUT_OF_MEMORY
    category = ErrorCategory.RESOURCE


# Client transport errors

class BodyTooLargeError(BounceError):
    """Message body exceeds the configured maximum."""
    reason = FailureReason.BODY_TOO_LARGE
    category = ErrorCategory.RESOURCE


class ResolutionError(BounceError):
    """Target address is malformed or did not resolve."""
    reason = FailureReason.RESOLUTION_ERROR
    category = ErrorCategory.TRANSPORT


class ConnectError(BounceError):
    """No resolved endpoint accepted the connection."""
    reason = FailureReason.CONNECT_ERROR
    category = ErrorCategory.TRANSPORT


class SendError(BounceError):
    """Writing the frame to the connection failed."""
    reason = FailureReason.SEND_ERROR
    category = ErrorCategory.TRANSPORT


class NoAckError(BounceError):
    """Connection ended or timed out before the acknowledgement arrived."""
    reason = FailureReason.NO_ACK
    category = ErrorCategory.TRANSPORT


class BadAckError(BounceError):
    """Peer answered with something other than the acknowledgement."""
    reason = FailureReason.BAD_ACK
    category = ErrorCategory.PROTOCOL


# Server transport errors

class BindError(BounceError):
    """Listen address is unparsable or unavailable."""
    reason = FailureReason.BIND_ERROR
    category = ErrorCategory.TRANSPORT


class AcceptError(BounceError):
    """Accepting the peer connection failed."""
    reason = FailureReason.ACCEPT_ERROR
    category = ErrorCategory.TRANSPORT


class AckWriteError(BounceError):
    """Writing the acknowledgement failed."""
    reason = FailureReason.ACK_WRITE_ERROR
    category = ErrorCategory.TRANSPORT
