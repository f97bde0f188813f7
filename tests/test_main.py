"""Tests for the command-line orchestrator."""

import asyncio
import json
import signal

import pytest

from coincap.models import parse_price_snapshot, parse_trade
from coincap.stream import Stream
from config import AppConfig
from main import App, parse_args
from tests.fakes import FakeConnection, FakeConnector


@pytest.fixture
def app():
    return App(AppConfig())


def test_parse_args():
    args = parse_args(["prices", "bitcoin", "ethereum", "--count", "3"])
    assert args.command == "prices"
    assert args.assets == ["bitcoin", "ethereum"]
    assert args.count == 3

    args = parse_args(["trades", "binance"])
    assert args.exchange == "binance"
    assert args.count == 0


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("COINCAP_WS_URL", "wss://example.test")
    monkeypatch.setenv("COINCAP_TIMEOUT", "2.5")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    config = AppConfig.from_env()
    assert config.api.ws_url == "wss://example.test"
    assert config.api.request_timeout == 2.5
    assert config.log_level == "DEBUG"
    assert config.log_file is None


@pytest.mark.asyncio
async def test_run_stream_stops_after_count(app, capsys):
    conn = FakeConnection(endless=True)
    stream = await Stream.open(FakeConnector(conn), "wss://example/p", lambda raw: {"bitcoin": 1.0})

    assert await app.run_stream(stream, count=2) == 0

    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 2
    assert parse_price_snapshot(lines[0]) == {"bitcoin": 1.0}
    assert conn.close_calls == 1


@pytest.mark.asyncio
async def test_run_stream_reports_error(app, capsys, trade_frame):
    conn = FakeConnection([trade_frame])
    stream = await Stream.open(FakeConnector(conn), "wss://example/t", parse_trade)

    assert await app.run_stream(stream, count=0) == 1

    out = capsys.readouterr().out.splitlines()
    assert json.loads(out[0])["exchange"] == "binance"


# ---------------------------------------------------------------------------
# signals
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_signal_without_stream_cancels_command(app):
    started = asyncio.Event()

    async def rest_phase():
        started.set()
        await asyncio.Event().wait()

    task = asyncio.ensure_future(rest_phase())
    await started.wait()

    app.handle_signal(signal.SIGINT, task)

    with pytest.raises(asyncio.CancelledError):
        await task
    await app.rest.close()


@pytest.mark.asyncio
async def test_signal_with_stream_closes_it(app):
    conn = FakeConnection(endless=True)
    stream = await Stream.open(FakeConnector(conn), "wss://example/p", lambda raw: {"bitcoin": 1.0})
    app.stream = stream
    main_task = asyncio.ensure_future(asyncio.Event().wait())

    app.handle_signal(signal.SIGTERM, main_task)
    await asyncio.wait_for(stream._done.wait(), 1.0)

    assert stream.closed
    assert stream.last_error() is None
    assert conn.close_calls == 1
    assert not main_task.done()
    main_task.cancel()
    await asyncio.gather(main_task, return_exceptions=True)
    await app.rest.close()
