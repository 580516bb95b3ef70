"""
Order book pressure bot.

Streams the book of one symbol into the PositionStateMachine.
"""
import logging
from typing import List, Optional

from config import BotContext
from errors import DecodeError, SubscriptionError
from ingestion.messages import BookMessage
from ingestion.provider import MarketDataProvider
from strategy.pressure import PositionStateMachine
from strategy.signals import PositionEvent

logger = logging.getLogger(__name__)


class PressureBot:
    """Single consumer loop over a provider's book messages."""

    def __init__(self, context: BotContext, market_data: MarketDataProvider):
        self.context = context
        self.symbol = context.symbol
        self.market_data = market_data
        self.machine = PositionStateMachine(context)

        self.running = False
        self.subscribed = False
        self.books_processed = 0
        self.dropped_books = 0
        self.event_count = 0
        self.last_event: Optional[PositionEvent] = None

    def handle_book(self, message: BookMessage) -> List[PositionEvent]:
        try:
            events = self.machine.on_book(message)
        except DecodeError as e:
            self.dropped_books += 1
            logger.warning(f"Dropping book message for {message.symbol}: {e}")
            return []

        self.books_processed += 1
        if events:
            self.event_count += len(events)
            self.last_event = events[-1]
        return events

    async def run(self):
        """Subscribe to the book and consume it until stopped."""
        try:
            await self.market_data.subscribe_book(self.symbol)
        except SubscriptionError as e:
            logger.error(f"Failed to subscribe to {self.symbol} book: {e}")
            return
        self.subscribed = True

        self.running = True
        logger.info(f"Starting pressure bot: symbol={self.symbol} depth={self.context.book_depth}")
        try:
            while self.running:
                message = await self.market_data.next_book()
                if message is None:
                    logger.info("Market data closed")
                    break
                self.handle_book(message)
        finally:
            self.running = False
            await self._release()
            logger.info(
                f"Pressure bot stopped: books={self.books_processed} events={self.event_count} "
                f"dropped={self.dropped_books} pnl={self.machine.pnl:.4f}"
            )

    async def _release(self):
        try:
            await self.market_data.unsubscribe_book(self.symbol)
        except SubscriptionError as e:
            logger.warning(f"Failed to unsubscribe from {self.symbol} book: {e}")
        self.subscribed = False

    def stop(self):
        """End the loop after the current book message."""
        self.running = False
