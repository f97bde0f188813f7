"""
Data models for the CoinCap API.
CoinCap returns most numbers as JSON strings; every numeric field here is a
plain float and accepts either encoding on the way in.
"""

from __future__ import annotations
import json
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional

from coincap.errors import DecodeError


# ==================== Numeric decoding ====================

def to_float(value: Any, default: Optional[float] = 0.0) -> Optional[float]:
    """Decode a quoted or bare JSON number. null maps to `default`."""
    if value is None:
        return default
    if isinstance(value, bool):
        raise DecodeError(f"expected number, got bool: {value!r}")
    if isinstance(value, (int, float)):
        try:
            result = float(value)
        except OverflowError:
            raise DecodeError(f"number out of range: {value!r}") from None
    elif isinstance(value, str):
        try:
            result = float(value)
        except ValueError:
            raise DecodeError(f"invalid numeric string: {value!r}") from None
    else:
        raise DecodeError(f"expected number or numeric string, got {type(value).__name__}")
    if not math.isfinite(result):
        raise DecodeError(f"non-finite number: {value!r}")
    return result


def to_int(value: Any, default: int = 0) -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        raise DecodeError(f"expected integer, got bool: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, (str, float)):
        try:
            return int(value) if isinstance(value, float) else int(value, 10)
        except (ValueError, OverflowError):
            raise DecodeError(f"invalid integer: {value!r}") from None
    raise DecodeError(f"expected integer, got {type(value).__name__}")


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_ms(moment: datetime) -> int:
    """datetime -> CoinCap timestamp (unix ms). Naive values are local time."""
    if moment.tzinfo is None:
        moment = moment.astimezone()
    return (moment - _EPOCH) // timedelta(milliseconds=1)


def from_ms(timestamp: int) -> datetime:
    """CoinCap timestamp (unix ms) -> aware UTC datetime."""
    return datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc)


def _reject_constant(token: str):
    raise DecodeError(f"invalid JSON constant: {token}")


def _load_object(raw: Any) -> Dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    try:
        data = json.loads(raw, parse_constant=_reject_constant)
    except (TypeError, ValueError) as e:
        raise DecodeError(f"invalid JSON frame: {e}") from e
    if not isinstance(data, dict):
        raise DecodeError(f"expected JSON object, got {type(data).__name__}")
    return data


# ==================== Resources ====================

@dataclass(frozen=True)
class Currency:
    id: str
    symbol: str


USD = Currency("united-states-dollar", "USD")
BTC = Currency("bitcoin", "BTC")
ETH = Currency("ethereum", "ETH")


class Direction(Enum):
    BUY = "buy"
    SELL = "sell"


@dataclass
class Asset:
    """Asset summary as listed by /assets."""
    id: str
    rank: int
    symbol: str
    name: str
    supply: float
    max_supply: Optional[float]     # null for uncapped assets
    market_cap_usd: float
    volume_usd_24h: float
    price_usd: float
    change_percent_24h: float
    vwap_24h: float

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Asset":
        return cls(
            id=d["id"],
            rank=to_int(d.get("rank")),
            symbol=d.get("symbol", ""),
            name=d.get("name", ""),
            supply=to_float(d.get("supply")),
            max_supply=to_float(d.get("maxSupply"), default=None),
            market_cap_usd=to_float(d.get("marketCapUsd")),
            volume_usd_24h=to_float(d.get("volumeUsd24Hr")),
            price_usd=to_float(d.get("priceUsd")),
            change_percent_24h=to_float(d.get("changePercent24Hr")),
            vwap_24h=to_float(d.get("vwap24Hr")),
        )


@dataclass
class AssetHistory:
    price_usd: float
    time: int               # Unix ms

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "AssetHistory":
        return cls(price_usd=to_float(d.get("priceUsd")), time=to_int(d.get("time")))


@dataclass
class AssetMarket:
    exchange_id: str
    base_id: str
    quote_id: str
    base_symbol: str
    quote_symbol: str
    volume_usd_24h: float
    price_usd: float
    volume_percent: float

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "AssetMarket":
        return cls(
            exchange_id=d.get("exchangeId", ""),
            base_id=d.get("baseId", ""),
            quote_id=d.get("quoteId", ""),
            base_symbol=d.get("baseSymbol", ""),
            quote_symbol=d.get("quoteSymbol", ""),
            volume_usd_24h=to_float(d.get("volumeUsd24Hr")),
            price_usd=to_float(d.get("priceUsd")),
            volume_percent=to_float(d.get("volumePercent")),
        )


@dataclass
class Rate:
    """USD conversion rate for a fiat or crypto currency."""
    id: str
    symbol: str
    currency_symbol: Optional[str]
    rate_usd: float
    type: str               # "fiat" or "crypto"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Rate":
        return cls(
            id=d["id"],
            symbol=d.get("symbol", ""),
            currency_symbol=d.get("currencySymbol"),
            rate_usd=to_float(d.get("rateUsd")),
            type=d.get("type", ""),
        )


@dataclass
class Exchange:
    id: str
    name: str
    rank: int
    percent_total_volume: float
    volume_usd: float
    trading_pairs: int
    socket: bool            # trade socket available
    url: str
    updated: int            # Unix ms

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Exchange":
        return cls(
            id=d["exchangeId"],
            name=d.get("name", ""),
            rank=to_int(d.get("rank")),
            percent_total_volume=to_float(d.get("percentTotalVolume")),
            volume_usd=to_float(d.get("volumeUsd", d.get("volumeUSD"))),
            trading_pairs=to_int(d.get("tradingPairs")),
            socket=bool(d.get("socket")),
            url=d.get("exchangeUrl", ""),
            updated=to_int(d.get("updated")),
        )


@dataclass
class Market:
    exchange_id: str
    rank: int
    base_symbol: str
    base_id: str
    quote_symbol: str
    quote_id: str
    price_quote: float
    price_usd: float
    volume_usd_24h: float
    percent_exchange_volume: float
    trades_count_24h: int
    updated: int

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Market":
        return cls(
            exchange_id=d.get("exchangeId", ""),
            rank=to_int(d.get("rank")),
            base_symbol=d.get("baseSymbol", ""),
            base_id=d.get("baseId", ""),
            quote_symbol=d.get("quoteSymbol", ""),
            quote_id=d.get("quoteId", ""),
            price_quote=to_float(d.get("priceQuote")),
            price_usd=to_float(d.get("priceUsd")),
            volume_usd_24h=to_float(d.get("volumeUsd24Hr")),
            percent_exchange_volume=to_float(d.get("percentExchangeVolume")),
            trades_count_24h=to_int(d.get("tradesCount24Hr")),
            updated=to_int(d.get("updated")),
        )


@dataclass
class Candle:
    """OHLCV candle for one exchange market."""
    open: float
    high: float
    low: float
    close: float
    volume: float
    period: int             # Unix ms, start of period

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Candle":
        return cls(
            open=to_float(d.get("open")),
            high=to_float(d.get("high")),
            low=to_float(d.get("low")),
            close=to_float(d.get("close")),
            volume=to_float(d.get("volume")),
            period=to_int(d.get("period")),
        )


# ==================== Stream values ====================

@dataclass(frozen=True)
class Trade:
    """A single executed trade from an exchange trade socket."""
    exchange: str
    base: str
    quote: str
    direction: Direction
    price: float
    volume: float
    timestamp: int          # Unix ms
    price_usd: float

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Trade":
        try:
            return cls(
                exchange=d["exchange"],
                base=d["base"],
                quote=d["quote"],
                direction=Direction(d["direction"]),
                price=to_float(d["price"]),
                volume=to_float(d["volume"]),
                timestamp=to_int(d["timestamp"]),
                price_usd=to_float(d.get("priceUsd")),
            )
        except KeyError as e:
            raise DecodeError(f"trade missing field {e}") from None
        except ValueError as e:
            raise DecodeError(f"invalid trade: {e}") from None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "exchange": self.exchange,
            "base": self.base,
            "quote": self.quote,
            "direction": self.direction.value,
            "price": self.price,
            "volume": self.volume,
            "timestamp": self.timestamp,
            "priceUsd": self.price_usd,
        }


def parse_trade(raw: Any) -> Trade:
    """Decode one trade socket frame."""
    return Trade.from_dict(_load_object(raw))


def parse_price_snapshot(raw: Any) -> Dict[str, float]:
    """Decode one price socket frame: {asset_id: price} with quoted or bare numbers."""
    data = _load_object(raw)
    snapshot: Dict[str, float] = {}
    for asset_id, value in data.items():
        if value is None:
            raise DecodeError(f"null price for {asset_id}")
        snapshot[asset_id] = to_float(value)
    return snapshot


def dump_price_snapshot(snapshot: Dict[str, float]) -> str:
    """Encode a snapshot the way the price socket does (quoted numbers)."""
    out = {}
    for asset_id, price in snapshot.items():
        if not math.isfinite(price):
            raise ValueError(f"non-finite price for {asset_id}: {price}")
        out[asset_id] = repr(float(price))
    return json.dumps(out)
