"""
Generic long-lived socket subscription.

A Stream owns one socket connection and one pump task. The pump reads frames,
decodes them and hands each value to the consumer through a single-slot
channel. The pump is the only writer of that channel, the only task that
closes it, and the only task that closes the connection.

close() is cooperative: it sets the stop signal and waits for the pump to
finish. A pump blocked in a frame read is not interrupted, so close latency
is bounded by the transport (ping timeout / remote close), not by the Stream.
"""

from __future__ import annotations
import asyncio
from collections import deque
from typing import (
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    Deque,
    Generic,
    Optional,
    Protocol,
    TypeVar,
    Union,
)
import websockets
import logging

from coincap.errors import ConnectError, DecodeError, ReadError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Frame = Union[str, bytes]
Decoder = Callable[[Frame], T]


class Connection(Protocol):
    """Duplex message connection yielding raw frames."""

    async def next_frame(self) -> Frame:
        """Return the next frame. Raises ReadError on closure or protocol error."""
        ...

    async def close(self) -> None:
        ...


Connector = Callable[[str], Awaitable[Connection]]


class WebSocketConnection:
    """Connection over a `websockets` client protocol."""

    def __init__(self, ws: Any, url: str):
        self._ws = ws
        self.url = url

    async def next_frame(self) -> Frame:
        try:
            return await self._ws.recv()
        except websockets.ConnectionClosed as e:
            raise ReadError(f"connection closed: {e}") from e
        except OSError as e:
            raise ReadError(f"socket error: {e}") from e

    async def close(self) -> None:
        await self._ws.close()


def websocket_connector(
    ping_interval: Optional[float] = 20,
    ping_timeout: Optional[float] = 10,
    close_timeout: Optional[float] = 5,
) -> Connector:
    """Build the production connector: url -> open WebSocketConnection."""

    async def connect(url: str) -> WebSocketConnection:
        try:
            ws = await websockets.connect(
                url,
                ping_interval=ping_interval,
                ping_timeout=ping_timeout,
                close_timeout=close_timeout,
            )
        except (OSError, asyncio.TimeoutError, websockets.InvalidHandshake, websockets.InvalidURI) as e:
            raise ConnectError(f"failed to connect to {url}: {e}") from e
        logger.info(f"[WS] Connected to {url}")
        return WebSocketConnection(ws, url)

    return connect


class Stream(Generic[T]):
    """
    Subscription handle: iterate values, then read last_error().

        stream = await client.prices("bitcoin")
        async for snapshot in stream:
            ...
        if stream.last_error():
            ...

    Iteration ends when the pump stops, whether through close(), a read
    failure or a decode failure. Values are never replayed; a second
    iteration continues where the first one left off.
    """

    def __init__(self, conn: Connection, decode: Decoder, url: str = ""):
        self.url = url
        self._conn = conn
        self._decode = decode

        # Delivery channel: one slot plus a closed flag, written by the pump only.
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=1)
        # Value taken from the queue by a consumer that was cancelled before it resumed.
        self._pending: Deque[T] = deque()
        self._closed = asyncio.Event()

        self._stop = asyncio.Event()
        self._done = asyncio.Event()
        self._error: Optional[BaseException] = None
        self._task: Optional[asyncio.Task] = None

    @classmethod
    async def open(cls, connect: Connector, url: str, decode: Decoder) -> "Stream":
        """Open a connection to `url` and start the pump. Raises ConnectError."""
        try:
            conn = await connect(url)
        except ConnectError:
            raise
        except (OSError, asyncio.TimeoutError) as e:
            raise ConnectError(f"failed to connect to {url}: {e}") from e

        stream = cls(conn, decode, url)
        stream._start()
        return stream

    def _start(self):
        if self._task is not None:
            raise RuntimeError("stream already started")
        self._task = asyncio.get_running_loop().create_task(self._pump())

    # ==================== Consumer side ====================

    async def _next(self) -> T:
        if self._pending:
            return self._pending.popleft()
        # Drain buffered values before reporting exhaustion.
        if not self._queue.empty():
            return self._queue.get_nowait()
        if self._closed.is_set():
            raise StopAsyncIteration

        get = asyncio.ensure_future(self._queue.get())
        closed = asyncio.ensure_future(self._closed.wait())
        try:
            await asyncio.wait({get, closed}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            if get.done() and not get.cancelled() and not self._stop.is_set():
                self._pending.append(get.result())
            raise
        finally:
            closed.cancel()
            if not get.done():
                get.cancel()

        if get.done() and not get.cancelled():
            return get.result()
        if not self._queue.empty():
            return self._queue.get_nowait()
        raise StopAsyncIteration

    def __aiter__(self) -> "Stream[T]":
        return self

    async def __anext__(self) -> T:
        return await self._next()

    async def values(self) -> AsyncIterator[T]:
        """Receive-only sequence of decoded values, in arrival order."""
        while True:
            try:
                value = await self._next()
            except StopAsyncIteration:
                return
            yield value

    async def close(self):
        """Request stop and wait until the pump has released the connection."""
        if not self._stop.is_set():
            logger.info(f"[WS] Closing stream {self.url}")
            self._stop.set()
        if self._task is None:
            return
        await self._done.wait()

    def last_error(self) -> Optional[BaseException]:
        """Terminal error, or None after a clean close. Meaningful once iteration ended."""
        return self._error

    @property
    def closed(self) -> bool:
        return self._done.is_set()

    async def __aenter__(self) -> "Stream[T]":
        return self

    async def __aexit__(self, *exc):
        await self.close()

    # ==================== Pump ====================

    def _fail(self, error: BaseException):
        # Failures observed after stop was requested belong to the shutdown.
        if self._stop.is_set():
            return
        self._error = error
        logger.warning(f"[PUMP] {self.url}: stream ended with {type(error).__name__}: {error}")

    async def _deliver(self, value: T) -> bool:
        """Hand a value to the consumer unless stop wins. Returns False on stop."""
        if self._stop.is_set():
            return False

        put = asyncio.ensure_future(self._queue.put(value))
        stop = asyncio.ensure_future(self._stop.wait())
        try:
            await asyncio.wait({put, stop}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stop.cancel()
            if not put.done():
                put.cancel()

        return not self._stop.is_set()

    async def _pump(self):
        try:
            while True:
                try:
                    frame = await self._conn.next_frame()
                except ReadError as e:
                    self._fail(e)
                    break
                except (OSError, EOFError) as e:
                    self._fail(ReadError(str(e)))
                    break

                try:
                    value = self._decode(frame)
                except DecodeError as e:
                    self._fail(e)
                    break
                except (ValueError, TypeError, KeyError) as e:
                    self._fail(DecodeError(f"invalid frame: {e}"))
                    break

                if not await self._deliver(value):
                    self._error = None
                    break
        except Exception as e:
            logger.error(f"[PUMP] {self.url}: unexpected error: {e}", exc_info=True)
            self._fail(e)
        finally:
            await self._shutdown()

    async def _shutdown(self):
        try:
            await self._conn.close()
        except Exception as e:
            logger.warning(f"[PUMP] {self.url}: error closing connection: {e}")
        finally:
            if self._stop.is_set():
                # Stop won: nothing buffered reaches the consumer after close().
                while not self._queue.empty():
                    self._queue.get_nowait()
                self._pending.clear()
            self._closed.set()
            self._done.set()
            logger.debug(f"[PUMP] {self.url}: stopped")
