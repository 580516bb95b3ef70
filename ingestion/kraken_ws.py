"""
Kraken WebSocket (v2) market data handler.
Streams best bid/offer ticks and level 2 books into asyncio queues.
"""
import asyncio
import json
import logging
from typing import Any, Dict, List, Optional, Set

import aiohttp
import websockets

import config
from errors import AuthenticationError, DecodeError, SubscriptionError
from ingestion.kraken_api import WebSocketToken, fetch_websocket_token, get_ssl_context
from ingestion.messages import BookMessage, Tick, parse_pair
from ingestion.provider import MarketDataProvider
from state.book_model import Level

logger = logging.getLogger(__name__)


def _number(item: Dict[str, Any], key: str) -> float:
    value = item.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise DecodeError(f"Missing or invalid {key!r}: {value!r}")
    try:
        return float(value)
    except ValueError as e:
        raise DecodeError(f"Invalid {key!r}: {value!r}") from e


def decode_ticker(data: Dict[str, Any]) -> List[Tick]:
    """
    Decode a ticker channel message.

    Expected format:
    {
        "channel": "ticker",
        "type": "update",
        "data": [{"symbol": "BTC/USD", "bid": 50000.0, "bid_qty": 1.2,
                  "ask": 50010.0, "ask_qty": 0.8, ...}]
    }
    """
    ticks = []
    for item in data.get("data") or []:
        if not isinstance(item, dict):
            raise DecodeError(f"Unexpected ticker entry: {item!r}")
        symbol = item.get("symbol")
        parse_pair(symbol)
        ticks.append(Tick(
            symbol=symbol,
            bid=_number(item, "bid"),
            bid_qty=_number(item, "bid_qty"),
            ask=_number(item, "ask"),
            ask_qty=_number(item, "ask_qty"),
        ))
    return ticks


def _decode_levels(levels: Any) -> List[Level]:
    if levels is None:
        return []
    if not isinstance(levels, list):
        raise DecodeError(f"Book levels must be a list, got {levels!r}")
    decoded = []
    for level in levels:
        if not isinstance(level, dict):
            raise DecodeError(f"Unexpected book level: {level!r}")
        decoded.append(Level(price=_number(level, "price"), volume=_number(level, "qty")))
    return decoded


def decode_book(data: Dict[str, Any]) -> List[BookMessage]:
    """
    Decode a book channel message.

    Expected format:
    {
        "channel": "book",
        "type": "snapshot" | "update",
        "data": [{"symbol": "BTC/USD",
                  "bids": [{"price": 49990.0, "qty": 0.5}, ...],
                  "asks": [{"price": 50010.0, "qty": 0.0}, ...],
                  "checksum": 123456789}]
    }

    A zero qty in an update removes the level.
    """
    message_type = data.get("type")
    if message_type not in ("snapshot", "update"):
        raise DecodeError(f"Unknown book message type: {message_type!r}")

    books = []
    for item in data.get("data") or []:
        if not isinstance(item, dict):
            raise DecodeError(f"Unexpected book entry: {item!r}")
        symbol = item.get("symbol")
        parse_pair(symbol)
        books.append(BookMessage(
            symbol=symbol,
            is_snapshot=message_type == "snapshot",
            bids=_decode_levels(item.get("bids")),
            asks=_decode_levels(item.get("asks")),
        ))
    return books


class KrakenWebSocket(MarketDataProvider):
    """
    Handles the WebSocket connection to Kraken.

    A background task reads the socket and hands decoded events to the
    consumer through two queues. Subscriptions are remembered and re-sent
    after a reconnect.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
        url: str = config.KRAKEN_WS_URL,
        book_depth: int = config.BOOK_DEPTH
    ):
        """
        Initialize Kraken WebSocket handler.

        Args:
            api_key: Kraken API key (optional, public channels work without it)
            api_secret: Base64 encoded API secret
            url: WebSocket endpoint
            book_depth: Depth requested for book subscriptions
        """
        self.api_key = api_key
        self.api_secret = api_secret
        self.url = url
        self.book_depth = book_depth

        self.ticks: asyncio.Queue = asyncio.Queue()
        self.books: asyncio.Queue = asyncio.Queue()

        self.ticker_symbols: Set[str] = set()
        self.book_symbols: Set[str] = set()

        self.ws = None
        self.session: Optional[aiohttp.ClientSession] = None
        self.token: Optional[WebSocketToken] = None
        self.running = False
        self.closed = False
        self.reconnect_delay = config.RECONNECT_DELAY
        self.max_reconnect_delay = config.MAX_RECONNECT_DELAY
        self.dropped_messages = 0

        self._reader_task: Optional[asyncio.Task] = None
        self._connected = asyncio.Event()

    async def start(self, timeout: Optional[float] = None):
        """Start the connection loop and wait until the socket is open."""
        self._reader_task = asyncio.create_task(self.connect())
        await asyncio.wait_for(self._connected.wait(), timeout)

    async def authenticate(self):
        """Fetch a WebSocket token if credentials are set and the token is stale."""
        if not (self.api_key and self.api_secret):
            return
        if self.token and not self.token.is_expired():
            return

        if self.session is None:
            self.session = aiohttp.ClientSession(
                connector=aiohttp.TCPConnector(ssl=get_ssl_context())
            )
        self.token = await fetch_websocket_token(self.session, self.api_key, self.api_secret)

    async def connect(self):
        """Connect, resubscribe and read until closed, reconnecting on failure."""
        while not self.closed:
            try:
                try:
                    await self.authenticate()
                except AuthenticationError as e:
                    logger.error(f"Error authenticating with Kraken: {e}")

                logger.info(f"Connecting to Kraken WebSocket at {self.url}")
                self.ws = await websockets.connect(
                    self.url,
                    ssl=get_ssl_context() if self.url.startswith("wss") else None,
                    ping_interval=20,
                    ping_timeout=10
                )

                self.running = True
                self.reconnect_delay = config.RECONNECT_DELAY
                self._connected.set()
                logger.info("Connected to Kraken WebSocket")

                await self._resubscribe()
                await self._handle_messages()

            except asyncio.CancelledError:
                raise
            except websockets.exceptions.ConnectionClosed:
                logger.warning("Kraken WebSocket connection closed, reconnecting...")
            except Exception as e:
                logger.error(f"Kraken WebSocket error: {e}", exc_info=True)
            finally:
                self.running = False
                self._connected.clear()

            if not self.closed:
                await asyncio.sleep(self.reconnect_delay)
                self.reconnect_delay = min(self.reconnect_delay * 2, self.max_reconnect_delay)

    async def _resubscribe(self):
        for symbol in sorted(self.ticker_symbols):
            await self._send(self._request("subscribe", "ticker", symbol))
        for symbol in sorted(self.book_symbols):
            await self._send(self._request("subscribe", "book", symbol))

    async def _handle_messages(self):
        """Process incoming WebSocket messages."""
        async for message in self.ws:
            try:
                data = json.loads(message)
            except json.JSONDecodeError as e:
                self.dropped_messages += 1
                logger.warning(f"Failed to parse Kraken message: {e}")
                continue
            self.process_message(data)

    def process_message(self, data: Any):
        """Route a decoded JSON message; bad market data is dropped."""
        if not isinstance(data, dict):
            logger.warning(f"Unexpected message type: {type(data)}")
            return

        if "method" in data:
            self._handle_method_response(data)
            return

        channel = data.get("channel")
        try:
            if channel == "ticker":
                for tick in decode_ticker(data):
                    self.ticks.put_nowait(tick)
            elif channel == "book":
                for book in decode_book(data):
                    self.books.put_nowait(book)
            elif channel in ("heartbeat", "status"):
                logger.debug(f"Kraken {channel}: {data.get('data')}")
            else:
                logger.debug(f"Unknown Kraken channel: {channel}, keys: {list(data.keys())[:5]}")
        except DecodeError as e:
            self.dropped_messages += 1
            logger.warning(f"Dropping {channel} message: {e}")

    def _handle_method_response(self, data: Dict[str, Any]):
        method = data.get("method")
        result = data.get("result") or {}
        if data.get("success", True):
            logger.info(f"{method} confirmed: {result.get('channel')} {result.get('symbol')}")
        else:
            logger.error(f"{method} failed: {data.get('error')}")

    def _request(self, method: str, channel: str, symbol: str) -> Dict[str, Any]:
        params: Dict[str, Any] = {"channel": channel, "symbol": [symbol]}
        if channel == "book":
            params["depth"] = self.book_depth
        return {"method": method, "params": params}

    async def _send(self, payload: Dict[str, Any]):
        await self.ws.send(json.dumps(payload))

    async def _update_subscription(self, method: str, channel: str, symbol: str, symbols: Set[str]):
        if self.closed:
            raise SubscriptionError(symbol, "provider is closed")
        try:
            parse_pair(symbol)
        except DecodeError as e:
            raise SubscriptionError(symbol, str(e)) from e

        if method == "subscribe":
            symbols.add(symbol)
        else:
            symbols.discard(symbol)

        # Not connected yet: the connect loop sends active subscriptions
        if not self.running:
            return

        try:
            await self._send(self._request(method, channel, symbol))
        except websockets.exceptions.WebSocketException as e:
            raise SubscriptionError(symbol, f"{method} {channel} failed: {e}") from e
        logger.debug(f"Sent {method} {channel} {symbol}")

    async def subscribe(self, symbol: str) -> None:
        await self._update_subscription("subscribe", "ticker", symbol, self.ticker_symbols)

    async def unsubscribe(self, symbol: str) -> None:
        await self._update_subscription("unsubscribe", "ticker", symbol, self.ticker_symbols)

    async def subscribe_book(self, symbol: str) -> None:
        await self._update_subscription("subscribe", "book", symbol, self.book_symbols)

    async def unsubscribe_book(self, symbol: str) -> None:
        await self._update_subscription("unsubscribe", "book", symbol, self.book_symbols)

    async def next_tick(self) -> Optional[Tick]:
        if self.closed and self.ticks.empty():
            return None
        return await self.ticks.get()

    async def next_book(self) -> Optional[BookMessage]:
        if self.closed and self.books.empty():
            return None
        return await self.books.get()

    async def close(self) -> None:
        """Close the connection and wake up consumers."""
        if self.closed:
            return
        self.closed = True
        self.running = False

        if self._reader_task:
            self._reader_task.cancel()
            try:
                await self._reader_task
            except asyncio.CancelledError:
                pass
        if self.ws:
            await self.ws.close()
        if self.session:
            await self.session.close()

        self.ticks.put_nowait(None)
        self.books.put_nowait(None)
        logger.info("Disconnected from Kraken WebSocket")

    def is_connected(self) -> bool:
        return self.running and self.ws is not None
