# tests/conftest.py
import json

import pytest

from tests.fakes import FakeRest


@pytest.fixture
def fake_rest():
    return FakeRest(
        exchanges={"binance": True, "bitstamp": True, "quiet-exchange": False},
        assets=["bitcoin", "ethereum", "monero"],
    )


@pytest.fixture
def price_frames():
    return [
        '{"bitcoin":"67012.41","ethereum":"3501.08"}',
        '{"bitcoin":67013.5}',
        '{"monero":"162.330000000000000"}',
    ]


@pytest.fixture
def trade_frame():
    return json.dumps({
        "exchange": "binance",
        "base": "bitcoin",
        "quote": "tether",
        "direction": "buy",
        "price": 67001.12,
        "volume": 0.0153,
        "timestamp": 1700000001234,
        "priceUsd": 67010.5,
    })
