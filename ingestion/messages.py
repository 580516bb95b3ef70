"""
Market data messages handed from a provider to the engines.
"""
from dataclasses import dataclass, field
from typing import List, Tuple

from errors import DecodeError
from state.book_model import Level


@dataclass(frozen=True)
class Tick:
    """Best bid/offer for a pair such as "BTC/USD"."""
    symbol: str
    bid: float
    bid_qty: float
    ask: float
    ask_qty: float


@dataclass(frozen=True)
class BookMessage:
    """
    Level 2 book message.

    A snapshot (is_snapshot=True) replaces the whole book; otherwise levels
    are applied one by one and a zero volume removes the level.
    """
    symbol: str
    is_snapshot: bool
    bids: List[Level] = field(default_factory=list)
    asks: List[Level] = field(default_factory=list)


def parse_pair(pair: str) -> Tuple[str, str]:
    """
    Split "BTC/USD" into ("BTC", "USD").

    Raises:
        DecodeError: if the symbol is not exactly two non-empty currencies
    """
    tickers = pair.split("/") if isinstance(pair, str) else []
    if len(tickers) != 2 or not tickers[0] or not tickers[1]:
        raise DecodeError(f"Cannot split pair {pair!r} into instrument/base")
    return tickers[0], tickers[1]


def format_pair(instrument: str, base: str) -> str:
    return f"{instrument}/{base}"
