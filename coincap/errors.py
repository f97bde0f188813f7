"""
CoinCap client exceptions.
Request-shape errors are raised synchronously; stream transport/decode errors
are captured by the pump and exposed through Stream.last_error().
"""

from __future__ import annotations
from typing import Optional


class CoinCapError(Exception):
    """Base class for all client errors."""


class ConnectError(CoinCapError):
    """Socket transport failed to establish."""


class ReadError(CoinCapError):
    """Socket closed or faulted mid-stream."""


class DecodeError(CoinCapError):
    """Payload could not be decoded into the expected type."""


class ValidationError(CoinCapError):
    """Caller-supplied identifiers are invalid."""


class UnsupportedError(CoinCapError):
    """Feature not offered by the chosen exchange."""


class NotFoundError(CoinCapError):
    """REST lookup returned no resource."""


class APIError(CoinCapError):
    """Unexpected REST response."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class RequestError(CoinCapError, ValueError):
    """Local request-shape error."""


class InvalidInterval(RequestError):
    pass


class InvalidTimeSpan(RequestError):
    pass


class IntervalTooCoarse(RequestError):
    pass
