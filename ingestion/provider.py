"""
Market data provider contract consumed by the bots.
"""
from abc import ABC, abstractmethod
from typing import Optional

from ingestion.messages import BookMessage, Tick


class MarketDataProvider(ABC):
    """
    Source of ticks and book messages.

    Producers may run their own background loop; consumers block on
    next_tick()/next_book() until an event arrives. Both return None once the
    provider has been closed. Subscription failures raise SubscriptionError.
    """

    @abstractmethod
    async def subscribe(self, symbol: str) -> None:
        """Start the ticker stream for a pair."""

    @abstractmethod
    async def unsubscribe(self, symbol: str) -> None:
        """Stop the ticker stream for a pair."""

    @abstractmethod
    async def subscribe_book(self, symbol: str) -> None:
        """Start the level 2 book stream for a pair."""

    @abstractmethod
    async def unsubscribe_book(self, symbol: str) -> None:
        """Stop the level 2 book stream for a pair."""

    @abstractmethod
    async def next_tick(self) -> Optional[Tick]:
        """Wait for the next tick."""

    @abstractmethod
    async def next_book(self) -> Optional[BookMessage]:
        """Wait for the next book message."""

    @abstractmethod
    async def close(self) -> None:
        """Release the connection and wake up any waiting consumer."""
