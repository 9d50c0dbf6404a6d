"""
Custom exceptions for livecheck operations.

Every fatal condition of a validation run is a LiveCheckError. The ``kind``
attribute is a stable tag that callers can branch on without isinstance checks.
"""


class LiveCheckError(Exception):
    """Base exception for all livecheck errors."""

    kind = "error"


class ParseError(LiveCheckError):
    """Raised when a required attribute is missing or cannot be parsed."""

    kind = "parse_error"


class UnsupportedFeature(LiveCheckError):
    """Raised when the stream uses something this validator cannot check."""

    kind = "unsupported_feature"


class TransportFailure(LiveCheckError):
    """Raised when a manifest or time sync fetch fails."""

    kind = "transport_failure"
