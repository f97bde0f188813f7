"""
CoinCap WebSocket subscriptions.
Validates the request over REST, then opens one Stream per subscription:
  - trades: every trade executed on one exchange
  - prices: aggregated USD price updates for some or ALL assets
"""

from __future__ import annotations
from typing import Dict, Optional
import logging

from coincap.errors import UnsupportedError, ValidationError
from coincap.models import Trade, parse_price_snapshot, parse_trade
from coincap.rest import CoinCapRestClient
from coincap.stream import Connector, Stream, websocket_connector

logger = logging.getLogger(__name__)

ALL_ASSETS = "ALL"


class CoinCapWSClient:
    """Opens CoinCap push streams."""

    def __init__(
        self,
        rest: CoinCapRestClient,
        ws_url: str = "wss://ws.coincap.io",
        connect: Optional[Connector] = None,
    ):
        self.rest = rest
        self.ws_url = ws_url.rstrip("/")
        self._connect = connect or websocket_connector()

    async def trades(self, exchange_id: str) -> Stream[Trade]:
        """
        Stream trades from one exchange.
        Raises NotFoundError for an unknown exchange and UnsupportedError
        when the exchange has no trade socket.
        """
        exchange, _ = await self.rest.exchange_by_id(exchange_id)
        if not exchange.socket:
            raise UnsupportedError(f"exchange {exchange_id} does not provide a trade socket")

        url = f"{self.ws_url}/trades/{exchange_id}"
        logger.info(f"[WS] Subscribing to trades on {exchange_id}")
        return await Stream.open(self._connect, url, parse_trade)

    async def prices(self, *asset_ids: str) -> Stream[Dict[str, float]]:
        """
        Stream price snapshots {asset_id: usd_price}.
        No ids subscribes to every asset. Raises ValidationError when any id
        is unknown (the API does not say which one).
        """
        assets = ALL_ASSETS
        if asset_ids:
            found, _ = await self.rest.assets_by_ids(asset_ids)
            if len(found) != len(asset_ids):
                raise ValidationError(
                    f"unknown asset id in request: expected {len(asset_ids)} assets, found {len(found)}"
                )
            assets = ",".join(asset_ids)

        url = f"{self.ws_url}/prices?assets={assets}"
        logger.info(f"[WS] Subscribing to prices for {assets}")
        return await Stream.open(self._connect, url, parse_price_snapshot)
