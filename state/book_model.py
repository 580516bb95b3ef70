"""
Order book state - bounded bid/ask ladders for a single instrument.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from sortedcontainers import SortedDict

import config


class BookSide(Enum):
    """Side of the book a level belongs to."""
    BID = "bid"
    ASK = "ask"


@dataclass(frozen=True)
class Level:
    """A single price level."""
    price: float
    volume: float


class BookModel:
    """
    Bid and ask ladders for one instrument, keyed by price.

    Both sides are SortedDicts ascending by price ({price: volume}). After
    every mutation each side is trimmed back to `depth` levels, keeping the
    highest bids and the lowest asks. A level with zero volume is never
    stored.
    """

    def __init__(self, symbol: str, depth: int = config.BOOK_DEPTH):
        """
        Initialize an empty book.

        Args:
            symbol: Instrument symbol, e.g. "BTC/USD"
            depth: Maximum number of levels kept per side
        """
        self.symbol = symbol
        self.depth = depth

        self._bids = SortedDict()  # {price: volume}
        self._asks = SortedDict()  # {price: volume}

    def _side(self, side: BookSide) -> SortedDict:
        return self._bids if side is BookSide.BID else self._asks

    def apply_snapshot(self, bids: Iterable[Level], asks: Iterable[Level]):
        """Replace the whole book with the given levels."""
        self._bids.clear()
        self._asks.clear()

        for level in bids:
            if level.volume > 0:
                self._bids[level.price] = level.volume
        for level in asks:
            if level.volume > 0:
                self._asks[level.price] = level.volume

        self.trim(self.depth)

    def upsert(self, side: BookSide, price: float, volume: float, trim: bool = True):
        """
        Set the volume at a price level.

        A zero volume removes the level (no-op if it is not there). With
        trim=False the side may grow past depth until the caller trims.
        """
        levels = self._side(side)
        if volume == 0:
            levels.pop(price, None)
        else:
            levels[price] = volume

        if trim:
            self.trim(self.depth)

    def trim(self, depth: int):
        """Drop the worst-priced levels beyond `depth` on each side."""
        while len(self._bids) > depth:
            self._bids.popitem(0)  # Lowest bid
        while len(self._asks) > depth:
            self._asks.popitem(-1)  # Highest ask

    def best_bid(self) -> Tuple[Optional[float], float]:
        """Highest bid price (None if no bids) and total bid volume."""
        if not self._bids:
            return None, 0.0
        return self._bids.peekitem(-1)[0], sum(self._bids.values())

    def best_ask(self) -> Tuple[Optional[float], float]:
        """Lowest ask price (None if no asks) and total ask volume."""
        if not self._asks:
            return None, 0.0
        return self._asks.peekitem(0)[0], sum(self._asks.values())

    def bids(self) -> List[Level]:
        return [Level(price, volume) for price, volume in self._bids.items()]

    def asks(self) -> List[Level]:
        return [Level(price, volume) for price, volume in self._asks.items()]

    def is_empty(self) -> bool:
        return not self._bids and not self._asks

    def clear(self):
        self._bids.clear()
        self._asks.clear()

    def snapshot(self) -> "BookModel":
        """Copy of the book for observers that must not see later mutations."""
        snapshot = BookModel(self.symbol, self.depth)
        snapshot._bids = SortedDict(self._bids)
        snapshot._asks = SortedDict(self._asks)
        return snapshot
