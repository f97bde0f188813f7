"""Async CoinCap market-data client."""

from coincap.errors import (
    APIError,
    CoinCapError,
    ConnectError,
    DecodeError,
    IntervalTooCoarse,
    InvalidInterval,
    InvalidTimeSpan,
    NotFoundError,
    ReadError,
    UnsupportedError,
    ValidationError,
)
from coincap.intervals import Interval, IntervalParams, TrimParams
from coincap.models import Direction, Trade
from coincap.rest import CandlesRequest, CoinCapRestClient, MarketsRequest
from coincap.stream import Stream
from coincap.ws import CoinCapWSClient

__all__ = [
    "APIError",
    "CandlesRequest",
    "CoinCapError",
    "CoinCapRestClient",
    "CoinCapWSClient",
    "ConnectError",
    "DecodeError",
    "Direction",
    "Interval",
    "IntervalParams",
    "IntervalTooCoarse",
    "InvalidInterval",
    "InvalidTimeSpan",
    "MarketsRequest",
    "NotFoundError",
    "ReadError",
    "Stream",
    "Trade",
    "TrimParams",
    "UnsupportedError",
    "ValidationError",
]
