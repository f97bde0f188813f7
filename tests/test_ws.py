"""Tests for the trade and price subscription drivers."""

import asyncio
import os

import pytest

from coincap.errors import NotFoundError, UnsupportedError, ValidationError
from coincap.models import Direction, Trade
from coincap.rest import CoinCapRestClient
from coincap.ws import CoinCapWSClient
from tests.fakes import FakeConnection, FakeConnector


def _client(fake_rest, conn=None):
    connector = FakeConnector(conn)
    return CoinCapWSClient(fake_rest, ws_url="wss://ws.coincap.io/", connect=connector), connector


# ---------------------------------------------------------------------------
# trades
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_trades_unknown_exchange(fake_rest):
    client, connector = _client(fake_rest)
    with pytest.raises(NotFoundError):
        await client.trades("zxcvzxvzv")
    assert connector.urls == []


@pytest.mark.asyncio
async def test_trades_exchange_without_socket(fake_rest):
    client, connector = _client(fake_rest)
    with pytest.raises(UnsupportedError):
        await client.trades("quiet-exchange")
    assert connector.urls == []


@pytest.mark.asyncio
async def test_trades_stream(fake_rest, trade_frame):
    client, connector = _client(fake_rest, FakeConnection([trade_frame, trade_frame], end="block"))
    stream = await client.trades("binance")
    assert connector.urls == ["wss://ws.coincap.io/trades/binance"]

    trade = await asyncio.wait_for(stream.__anext__(), 1.0)
    assert trade == Trade(
        exchange="binance",
        base="bitcoin",
        quote="tether",
        direction=Direction.BUY,
        price=67001.12,
        volume=0.0153,
        timestamp=1700000001234,
        price_usd=67010.5,
    )

    closing = asyncio.ensure_future(stream.close())
    await asyncio.sleep(0)
    connector.conn.remote_close()
    await asyncio.wait_for(closing, 1.0)
    assert stream.last_error() is None


# ---------------------------------------------------------------------------
# prices
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_prices_invalid_asset(fake_rest):
    client, connector = _client(fake_rest)
    with pytest.raises(ValidationError):
        await client.prices("asdasdasasdasd")
    assert connector.urls == []


@pytest.mark.asyncio
async def test_prices_one_bad_id_among_good(fake_rest):
    client, connector = _client(fake_rest)
    with pytest.raises(ValidationError) as exc:
        await client.prices("bitcoin", "nope", "ethereum")
    assert "nope" not in str(exc.value)
    assert connector.urls == []


@pytest.mark.asyncio
async def test_prices_all_assets(fake_rest, price_frames):
    client, connector = _client(fake_rest, FakeConnection(price_frames))
    stream = await client.prices()

    assert connector.urls == ["wss://ws.coincap.io/prices?assets=ALL"]
    assert ("assets_by_ids", []) not in fake_rest.calls

    snapshot = await asyncio.wait_for(stream.__anext__(), 1.0)
    assert snapshot["bitcoin"] == 67012.41
    await stream.close()


@pytest.mark.asyncio
async def test_prices_selected_assets(fake_rest, price_frames):
    client, connector = _client(fake_rest, FakeConnection(price_frames))
    stream = await client.prices("bitcoin", "ethereum")

    assert fake_rest.calls == [("assets_by_ids", ["bitcoin", "ethereum"])]
    assert connector.urls == ["wss://ws.coincap.io/prices?assets=bitcoin,ethereum"]

    values = [v async for v in stream.values()]
    assert [sorted(v) for v in values] == [["bitcoin", "ethereum"], ["bitcoin"], ["monero"]]


# ---------------------------------------------------------------------------
# live
# ---------------------------------------------------------------------------

@pytest.mark.live
@pytest.mark.skipif(os.getenv("COINCAP_LIVE") != "1", reason="set COINCAP_LIVE=1 to hit CoinCap")
@pytest.mark.asyncio
async def test_live_prices_all():
    rest = CoinCapRestClient()
    client = CoinCapWSClient(rest)
    try:
        stream = await client.prices()
        found = False
        async with stream:
            async def wait_for_bitcoin():
                async for snapshot in stream.values():
                    if "bitcoin" in snapshot:
                        return True
                return False

            found = await asyncio.wait_for(wait_for_bitcoin(), 30.0)
        assert found, stream.last_error()
    finally:
        await rest.close()
