"""
Tests for the bot consumption loops, driven by an in-memory provider.
Run: python -m unittest tests/test_bots.py
"""
import asyncio
import sys
import unittest
from pathlib import Path
from typing import Optional, get_type_hints
sys.path.insert(0, str(Path(__file__).parent.parent))

from bots.pressure_bot import PressureBot
from bots.triangle_bot import TriangleBot
import prebot
import tabot
from config import BotContext
from errors import SubscriptionError
from execution import MockPortfolio, TriangleExecutor
from ingestion.messages import BookMessage, Tick
from ingestion.provider import MarketDataProvider
from state.book_model import Level
from state.position_state import PositionSide


class FakeProvider(MarketDataProvider):
    """Queues fed by the test; subscriptions tracked in sets."""

    def __init__(self, reject=()):
        self.reject = set(reject)
        self.ticks = asyncio.Queue()
        self.books = asyncio.Queue()
        self.tickers = set()
        self.book_symbols = set()
        self.reads = 0

    async def subscribe(self, symbol):
        if symbol in self.reject:
            raise SubscriptionError(symbol, "rejected")
        self.tickers.add(symbol)

    async def unsubscribe(self, symbol):
        self.tickers.discard(symbol)

    async def subscribe_book(self, symbol):
        if symbol in self.reject:
            raise SubscriptionError(symbol, "rejected")
        self.book_symbols.add(symbol)

    async def unsubscribe_book(self, symbol):
        self.book_symbols.discard(symbol)

    async def next_tick(self):
        self.reads += 1
        return await self.ticks.get()

    async def next_book(self):
        self.reads += 1
        return await self.books.get()

    async def close(self):
        self.ticks.put_nowait(None)
        self.books.put_nowait(None)


async def wait_until(predicate):
    for _ in range(100):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition never became true")


def tick(symbol, price):
    return Tick(symbol=symbol, bid=price, bid_qty=1.0, ask=price, ask_qty=1.0)


class TestTriangleBot(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.context = BotContext(basket=("USD", "BTC", "ETH"))
        self.provider = FakeProvider()

    async def test_run_until_provider_closes(self):
        portfolio = MockPortfolio(capital=10000.0)
        bot = TriangleBot(self.context, self.provider, TriangleExecutor(self.context, portfolio))

        for t in (tick("BTC/USD", 50000.0), tick("ETH/USD", 2500.0), tick("ETH/BTC", 0.049)):
            self.provider.ticks.put_nowait(t)
        await self.provider.close()

        await bot.run()

        self.assertEqual(bot.detector.ticks_processed, 3)
        self.assertEqual(bot.signal_count, 1)
        self.assertGreater(portfolio.total_capital(), 10000.0)
        self.assertEqual(self.provider.tickers, set())
        self.assertFalse(bot.running)

    async def test_subscribes_every_pair(self):
        bot = TriangleBot(self.context, self.provider)
        task = asyncio.create_task(bot.run())
        await wait_until(lambda: self.provider.reads == 1)

        self.assertEqual(self.provider.tickers, {"BTC/USD", "ETH/USD", "ETH/BTC"})

        await self.provider.close()
        await task

    async def test_subscription_failure_is_not_fatal(self):
        provider = FakeProvider(reject={"ETH/BTC"})
        bot = TriangleBot(self.context, provider)
        provider.ticks.put_nowait(tick("BTC/USD", 50000.0))
        await provider.close()

        await bot.run()

        self.assertEqual(bot.detector.ticks_processed, 1)
        self.assertEqual(provider.tickers, set())

    async def test_bad_ticks_are_counted(self):
        bot = TriangleBot(self.context, self.provider)
        self.provider.ticks.put_nowait(tick("DOGE/USD", 0.1))
        self.provider.ticks.put_nowait(tick("BTC/USD", 50000.0))
        await self.provider.close()

        await bot.run()

        self.assertEqual(bot.dropped_ticks, 1)
        self.assertEqual(bot.detector.ticks_processed, 1)

    async def test_stop_after_current_tick(self):
        bot = TriangleBot(self.context, self.provider)
        self.provider.ticks.put_nowait(tick("BTC/USD", 50000.0))
        task = asyncio.create_task(bot.run())
        await wait_until(lambda: self.provider.reads == 2)

        bot.stop()
        self.provider.ticks.put_nowait(tick("ETH/USD", 2500.0))
        self.provider.ticks.put_nowait(tick("ETH/BTC", 0.049))
        await task

        self.assertEqual(bot.detector.ticks_processed, 2)
        self.assertEqual(self.provider.tickers, set())

    async def test_cancellation_releases_subscriptions(self):
        bot = TriangleBot(self.context, self.provider)
        task = asyncio.create_task(bot.run())
        await wait_until(lambda: self.provider.reads == 1)
        self.assertEqual(len(self.provider.tickers), 3)

        task.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await task

        self.assertEqual(self.provider.tickers, set())
        self.assertFalse(bot.running)


class TestPressureBot(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.context = BotContext(symbol="BTC/USD")
        self.provider = FakeProvider()

    def book(self, bids, asks, is_snapshot=True, symbol="BTC/USD"):
        return BookMessage(
            symbol=symbol,
            is_snapshot=is_snapshot,
            bids=[Level(p, v) for p, v in bids],
            asks=[Level(p, v) for p, v in asks],
        )

    async def test_run_enters_position(self):
        bot = PressureBot(self.context, self.provider)
        self.provider.books.put_nowait(self.book([(100.0, 50.0)], [(101.0, 10.0)]))
        await self.provider.close()

        await bot.run()

        self.assertEqual(bot.books_processed, 1)
        self.assertEqual(bot.event_count, 1)
        self.assertEqual(bot.machine.state, PositionSide.LONG)
        self.assertEqual(self.provider.book_symbols, set())
        self.assertFalse(bot.subscribed)

    async def test_subscription_failure_returns(self):
        provider = FakeProvider(reject={"BTC/USD"})
        bot = PressureBot(self.context, provider)

        await bot.run()

        self.assertEqual(provider.reads, 0)
        self.assertFalse(bot.subscribed)

    async def test_bad_books_are_dropped(self):
        bot = PressureBot(self.context, self.provider)
        self.provider.books.put_nowait(self.book([(100.0, 50.0)], [(101.0, 10.0)], symbol="ETH/USD"))
        self.provider.books.put_nowait(self.book([(100.0, -1.0)], []))
        await self.provider.close()

        await bot.run()

        self.assertEqual(bot.dropped_books, 2)
        self.assertEqual(bot.books_processed, 0)
        self.assertEqual(bot.machine.state, PositionSide.FLAT)
        self.assertTrue(bot.machine.book.is_empty())

    async def test_cancellation_releases_subscription(self):
        bot = PressureBot(self.context, self.provider)
        task = asyncio.create_task(bot.run())
        await wait_until(lambda: self.provider.reads == 1)
        self.assertEqual(self.provider.book_symbols, {"BTC/USD"})

        task.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await task

        self.assertEqual(self.provider.book_symbols, set())


class StalledProvider(FakeProvider):
    """Provider whose connect never completes."""

    def __init__(self):
        super().__init__()
        self.connecting = False

    async def start(self):
        self.connecting = True
        await asyncio.Event().wait()


class TestEntryScripts(unittest.IsolatedAsyncioTestCase):
    async def test_cancel_while_connecting(self):
        """Shutdown works before the feed has ever connected."""
        for script, bot_class in ((tabot, TriangleBot), (prebot, PressureBot)):
            provider = StalledProvider()
            bot = bot_class(BotContext(), provider)

            task = asyncio.create_task(script.run(provider, bot))
            await wait_until(lambda: provider.connecting)

            task.cancel()
            with self.assertRaises(asyncio.CancelledError):
                await task

            self.assertEqual(provider.reads, 0)
            self.assertEqual(provider.tickers, set())
            self.assertEqual(provider.book_symbols, set())

    def test_time_limit_is_optional(self):
        for script in (tabot, prebot):
            self.assertEqual(get_type_hints(script.main)["max_seconds"], Optional[int])


if __name__ == '__main__':
    unittest.main()
