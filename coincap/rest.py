"""
CoinCap v2 REST API Client.
Every call is a GET that returns the `data` payload of the response envelope
together with the envelope `timestamp` (unix ms).
"""

from __future__ import annotations
import json
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple
import aiohttp
import logging

from coincap.errors import APIError, DecodeError, NotFoundError, ValidationError
from coincap.intervals import IntervalParams, TrimParams, interval_query
from coincap.models import (
    Asset,
    AssetHistory,
    AssetMarket,
    Candle,
    Exchange,
    Market,
    Rate,
)

logger = logging.getLogger(__name__)


@dataclass
class MarketsRequest:
    """Filters for /markets. Empty fields are not sent."""
    exchange_id: str = ""
    base_symbol: str = ""
    base_id: str = ""
    quote_symbol: str = ""
    quote_id: str = ""
    asset_symbol: str = ""
    asset_id: str = ""

    def to_query(self) -> Dict[str, str]:
        fields = {
            "exchange": self.exchange_id,
            "baseSymbol": self.base_symbol,
            "baseId": self.base_id,
            "quoteSymbol": self.quote_symbol,
            "quoteId": self.quote_id,
            "assetSymbol": self.asset_symbol,
            "assetId": self.asset_id,
        }
        return {k: v for k, v in fields.items() if v}


@dataclass
class CandlesRequest:
    """Market to fetch candles for. All three ids are required."""
    exchange_id: str = ""
    base_id: str = ""
    quote_id: str = ""

    def to_query(self) -> Dict[str, str]:
        if not self.exchange_id:
            raise ValidationError("exchange_id is required")
        if not self.base_id:
            raise ValidationError("base_id is required")
        if not self.quote_id:
            raise ValidationError("quote_id is required")
        return {
            "exchange": self.exchange_id,
            "baseId": self.base_id,
            "quoteId": self.quote_id,
        }


def _trim(query: Dict[str, str], trim: Optional[TrimParams]) -> Dict[str, str]:
    if trim is not None:
        query.update(trim.to_query())
    return query


def _decode_list(cls, data: Any) -> List[Any]:
    if not isinstance(data, list):
        raise DecodeError(f"expected list for {cls.__name__}, got {type(data).__name__}")
    try:
        return [cls.from_dict(item) for item in data]
    except (KeyError, TypeError) as e:
        raise DecodeError(f"invalid {cls.__name__} payload: {e}") from e


def _decode_one(cls, data: Any) -> Any:
    try:
        return cls.from_dict(data)
    except (KeyError, TypeError) as e:
        raise DecodeError(f"invalid {cls.__name__} payload: {e}") from e


class CoinCapRestClient:
    """Async CoinCap REST API wrapper."""

    def __init__(self, base_url: str = "https://api.coincap.io/v2", timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={"Accept-Encoding": "gzip"},
            )
        return self._session

    async def close(self):
        if self._session and not self._session.closed:
            await self._session.close()

    async def _request(
        self,
        endpoint: str,
        params: Optional[Dict[str, str]] = None,
    ) -> Tuple[Any, int]:
        """GET an endpoint and unwrap the {data, timestamp} envelope."""
        session = await self._get_session()
        url = f"{self.base_url}/{endpoint}"

        try:
            async with session.get(url, params=params or None) as resp:
                if resp.status == 404:
                    raise NotFoundError(f"{endpoint} not found")
                if resp.status != 200:
                    body = await resp.text()
                    raise APIError(
                        f"unexpected response (code {resp.status}) for {endpoint}: {body[:200]}",
                        status=resp.status,
                    )
                try:
                    body = await resp.json(content_type=None)
                except json.JSONDecodeError as e:
                    raise DecodeError(f"{endpoint}: invalid JSON body: {e}") from e

        except (NotFoundError, APIError, DecodeError):
            raise
        except Exception as e:
            logger.error(f"[REST] GET {endpoint} Exception: {e}")
            raise

        if not isinstance(body, dict) or "data" not in body:
            logger.error(f"[REST] GET {endpoint} Error: unexpected body {str(body)[:100]}")
            raise APIError(f"unexpected response body for {endpoint}")
        if body["data"] is None:
            raise NotFoundError(f"{endpoint} not found")

        try:
            timestamp = int(body.get("timestamp") or 0)
        except (TypeError, ValueError, OverflowError) as e:
            raise DecodeError(f"{endpoint}: invalid timestamp {body.get('timestamp')!r}") from e

        return body["data"], timestamp

    # ==================== Assets ====================

    async def assets(
        self,
        search: str = "",
        trim: Optional[TrimParams] = None,
    ) -> Tuple[List[Asset], int]:
        """List assets, optionally filtered by a search term (symbol or id)."""
        query = {"search": search} if search else {}
        data, ts = await self._request("assets", _trim(query, trim))
        return _decode_list(Asset, data), ts

    async def assets_by_ids(self, ids: Iterable[str]) -> Tuple[List[Asset], int]:
        """Batch lookup. Unknown ids are silently absent from the result."""
        ids = list(ids)
        if not ids:
            return [], 0
        data, ts = await self._request("assets", {"ids": ",".join(ids)})
        return _decode_list(Asset, data), ts

    async def asset_by_id(self, asset_id: str) -> Tuple[Asset, int]:
        data, ts = await self._request(f"assets/{asset_id}")
        return _decode_one(Asset, data), ts

    async def asset_history(
        self,
        asset_id: str,
        interval: Optional[IntervalParams] = None,
    ) -> Tuple[List[AssetHistory], int]:
        """
        USD price history of an asset.
        Extended intervals (4h, 8h, 1w) are rejected with InvalidInterval.
        """
        query = interval_query(interval, allow_extended=False)
        data, ts = await self._request(f"assets/{asset_id}/history", query)
        return _decode_list(AssetHistory, data), ts

    async def asset_markets(
        self,
        asset_id: str,
        trim: Optional[TrimParams] = None,
    ) -> Tuple[List[AssetMarket], int]:
        data, ts = await self._request(f"assets/{asset_id}/markets", _trim({}, trim))
        return _decode_list(AssetMarket, data), ts

    # ==================== Rates ====================

    async def rates(self) -> Tuple[List[Rate], int]:
        data, ts = await self._request("rates")
        return _decode_list(Rate, data), ts

    async def rate_by_id(self, rate_id: str) -> Tuple[Rate, int]:
        data, ts = await self._request(f"rates/{rate_id}")
        return _decode_one(Rate, data), ts

    # ==================== Exchanges ====================

    async def exchanges(self) -> Tuple[List[Exchange], int]:
        data, ts = await self._request("exchanges")
        return _decode_list(Exchange, data), ts

    async def exchange_by_id(self, exchange_id: str) -> Tuple[Exchange, int]:
        """Raises NotFoundError for an unknown exchange."""
        data, ts = await self._request(f"exchanges/{exchange_id}")
        return _decode_one(Exchange, data), ts

    # ==================== Markets / Candles ====================

    async def markets(
        self,
        request: Optional[MarketsRequest] = None,
        trim: Optional[TrimParams] = None,
    ) -> Tuple[List[Market], int]:
        query = request.to_query() if request else {}
        data, ts = await self._request("markets", _trim(query, trim))
        return _decode_list(Market, data), ts

    async def candles(
        self,
        request: CandlesRequest,
        interval: Optional[IntervalParams] = None,
        trim: Optional[TrimParams] = None,
    ) -> Tuple[List[Candle], int]:
        """Candles for one market. Accepts all twelve intervals."""
        query = request.to_query()
        query.update(interval_query(interval, allow_extended=True))
        data, ts = await self._request("candles", _trim(query, trim))
        return _decode_list(Candle, data), ts
