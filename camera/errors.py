"""
Error types raised by the AIBO raw camera pipeline.

Only ConfigurationError and the RetryExhaustedError family can end the
acquisition loop, and only when a bounded retry policy was configured.
Everything else is recovered inside the loop.
"""


class RawCamError(Exception):
    """Base class for raw camera errors."""


class TransportError(RawCamError):
    """Socket-level send/receive failure on the raw camera connection."""


class ConfigurationError(RawCamError):
    """The raw camera endpoint could not be resolved or connected."""


class RetryExhaustedError(RawCamError):
    """A bounded retry policy ran out of attempts or time."""

    def __init__(self, message, attempts=0, elapsed=0.0):
        super().__init__(message)
        self.attempts = attempts
        self.elapsed = elapsed


class HandshakeError(RetryExhaustedError):
    """The Raw Cam Server never answered the connection request."""


class AcquisitionCancelled(RawCamError):
    """Stop was requested while the connection was still being set up."""


class FrameDecodeError(RawCamError):
    """Raised when a datagram does not contain a decodable image."""


class CommandChannelError(RawCamError):
    """The AIBO command channel could not deliver a message."""
