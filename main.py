"""
CoinCap client — command-line entry point.
Streams prices or trades to stdout as JSON lines, or lists assets.

    python main.py prices bitcoin ethereum --count 10
    python main.py trades binance
    python main.py assets --search btc --limit 5
"""

from __future__ import annotations
import argparse
import asyncio
import json
import signal
import sys
from typing import List, Optional
import logging

from dotenv import load_dotenv

from config import AppConfig
from coincap.errors import CoinCapError
from coincap.intervals import TrimParams
from coincap.models import Trade, dump_price_snapshot
from coincap.rest import CoinCapRestClient
from coincap.stream import Stream, websocket_connector
from coincap.ws import CoinCapWSClient

logger = logging.getLogger(__name__)


def setup_logging(config: AppConfig):
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if config.log_file:
        handlers.append(logging.FileHandler(config.log_file))
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-7s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
    )


class App:
    """Owns the REST and socket clients for one command."""

    def __init__(self, config: AppConfig):
        self.config = config
        self.rest = CoinCapRestClient(
            base_url=config.api.rest_url,
            timeout=config.api.request_timeout,
        )
        self.ws = CoinCapWSClient(
            rest=self.rest,
            ws_url=config.api.ws_url,
            connect=websocket_connector(
                ping_interval=config.api.ping_interval,
                ping_timeout=config.api.ping_timeout,
                close_timeout=config.api.close_timeout,
            ),
        )
        self.stream: Optional[Stream] = None

    def handle_signal(self, sig, main_task: asyncio.Task):
        """Close the open stream, or cancel the command when no stream is open yet."""
        if self.stream is not None:
            logger.info(f"[MAIN] Received signal {sig}. Closing stream...")
            asyncio.ensure_future(self.stream.close())
        else:
            logger.info(f"[MAIN] Received signal {sig}. Cancelling...")
            main_task.cancel()

    async def stop(self):
        """Graceful shutdown."""
        if self.stream is not None:
            await self.stream.close()
        await self.rest.close()

    async def run_stream(self, stream: Stream, count: int) -> int:
        self.stream = stream
        received = 0
        async for value in stream.values():
            if isinstance(value, Trade):
                print(json.dumps(value.to_dict()), flush=True)
            else:
                print(dump_price_snapshot(value), flush=True)
            received += 1
            if count and received >= count:
                await stream.close()

        err = stream.last_error()
        if err is not None:
            logger.error(f"[MAIN] Stream ended with error: {err}")
            return 1
        logger.info(f"[MAIN] Stream closed after {received} messages")
        return 0

    async def list_assets(self, search: str, limit: int) -> int:
        assets, ts = await self.rest.assets(search=search, trim=TrimParams(limit=limit))
        for asset in assets:
            print(f"{asset.rank:>4}  {asset.symbol:<8} {asset.id:<24} ${asset.price_usd:,.4f}")
        logger.info(f"[MAIN] {len(assets)} assets (timestamp {ts})")
        return 0

    async def run(self, args: argparse.Namespace) -> int:
        if args.command == "assets":
            return await self.list_assets(args.search, args.limit)
        if args.command == "trades":
            stream = await self.ws.trades(args.exchange)
        else:
            stream = await self.ws.prices(*args.assets)
        return await self.run_stream(stream, args.count)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="CoinCap market data client")
    sub = parser.add_subparsers(dest="command", required=True)

    prices = sub.add_parser("prices", help="stream USD price updates")
    prices.add_argument("assets", nargs="*", help="asset ids (default: all)")
    prices.add_argument("--count", type=int, default=0, help="stop after N updates")

    trades = sub.add_parser("trades", help="stream trades from one exchange")
    trades.add_argument("exchange", help="exchange id, e.g. binance")
    trades.add_argument("--count", type=int, default=0, help="stop after N trades")

    assets = sub.add_parser("assets", help="list assets")
    assets.add_argument("--search", default="")
    assets.add_argument("--limit", type=int, default=20)

    return parser.parse_args(argv)


async def main(argv: Optional[List[str]] = None) -> int:
    """Entry point."""
    load_dotenv()
    config = AppConfig.from_env()
    setup_logging(config)
    args = parse_args(argv)

    app = App(config)

    if sys.platform != "win32":
        loop = asyncio.get_running_loop()
        main_task = asyncio.current_task()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, lambda s=sig: app.handle_signal(s, main_task))

    try:
        return await app.run(args)
    except CoinCapError as e:
        logger.error(f"[MAIN] {type(e).__name__}: {e}")
        return 1
    except asyncio.CancelledError:
        logger.info("[MAIN] Cancelled")
        return 130
    finally:
        await app.stop()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
