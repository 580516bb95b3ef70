"""
Triangular arbitrage bot.

Subscribes every basket pair, feeds ticks into the ArbitrageDetector and
hands signals to an optional executor.
"""
import logging
from typing import List, Optional

from config import BotContext
from errors import DecodeError, SubscriptionError
from execution.triangle_executor import TriangleExecutor
from ingestion.messages import Tick
from ingestion.provider import MarketDataProvider
from strategy.signals import ArbitrageSignal
from strategy.triangular_arb import ArbitrageDetector

logger = logging.getLogger(__name__)


class TriangleBot:
    """
    Single consumer loop over a provider's ticks.

    run() returns when stop() is called, when the provider closes, or when
    the task is cancelled. Subscriptions are released on the way out.
    """

    def __init__(
        self,
        context: BotContext,
        market_data: MarketDataProvider,
        executor: Optional[TriangleExecutor] = None
    ):
        self.context = context
        self.market_data = market_data
        self.executor = executor
        self.detector = ArbitrageDetector(context)

        self.running = False
        self.subscribed: List[str] = []
        self.dropped_ticks = 0
        self.signal_count = 0

    async def subscribe(self):
        """Subscribe each basket pair once; failures are logged and skipped."""
        for pair in self.detector.subscription_pairs():
            try:
                await self.market_data.subscribe(pair)
            except SubscriptionError as e:
                logger.error(f"Failed to subscribe to {pair}: {e}")
                continue
            self.subscribed.append(pair)
            logger.info(f"Subscribed to {pair}")

    async def unsubscribe(self):
        for pair in self.subscribed:
            try:
                await self.market_data.unsubscribe(pair)
            except SubscriptionError as e:
                logger.warning(f"Failed to unsubscribe from {pair}: {e}")
        self.subscribed.clear()

    async def handle_tick(self, tick: Tick) -> List[ArbitrageSignal]:
        try:
            signals = self.detector.on_tick(tick)
        except DecodeError as e:
            self.dropped_ticks += 1
            logger.warning(f"Dropping tick for {tick.symbol}: {e}")
            return []

        self.signal_count += len(signals)
        if self.executor:
            for signal in signals:
                await self.executor.on_signal(signal)
        return signals

    async def run(self):
        """Subscribe and consume ticks until stopped."""
        self.running = True
        logger.info(f"Starting triangular arbitrage bot: basket={','.join(self.context.basket)}")
        try:
            await self.subscribe()
            while self.running:
                tick = await self.market_data.next_tick()
                if tick is None:
                    logger.info("Market data closed")
                    break
                await self.handle_tick(tick)
        finally:
            self.running = False
            await self.unsubscribe()
            logger.info(
                f"Triangular arbitrage bot stopped: ticks={self.detector.ticks_processed} "
                f"signals={self.signal_count} dropped={self.dropped_ticks}"
            )

    def stop(self):
        """End the loop after the current tick."""
        self.running = False
