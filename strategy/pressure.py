"""
Order Book Pressure Strategy.

Goal: follow the side of the book carrying more volume.
      Go long when resting bids outweigh asks, short when asks outweigh bids.

Rules run in a fixed order on every book update, each one seeing the state
left by the rules before it:
1. Enter long      FLAT  and bid_volume - ask_volume > entry_threshold
2. Enter short     FLAT  and ask_volume - bid_volume > entry_threshold
3. Exit long       LONG  and best_bid >= entry + target
4. Exit short      SHORT and best_ask <= entry - target
5. Stop loss long  LONG  and best_ask < entry
6. Stop loss short SHORT and best_bid > entry
"""
import logging
import math
from dataclasses import dataclass
from typing import Callable, List, NamedTuple, Optional

from config import BotContext
from errors import DecodeError
from ingestion.messages import BookMessage
from state.book_model import BookModel, BookSide, Level
from state.position_state import PositionSide, PositionState
from strategy.signals import PositionAction, PositionEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookTotals:
    """Aggregates of the book after an update."""
    total_bid: float
    best_bid: float
    total_ask: float
    best_ask: float

    @property
    def delta(self) -> float:
        return self.total_bid - self.total_ask


class Rule(NamedTuple):
    action: PositionAction
    predicate: Callable[[BookTotals], bool]
    apply: Callable[[BookTotals], float]  # Returns the price the transition happened at


class PositionStateMachine:
    """
    FLAT / LONG / SHORT state machine over a single instrument's book.
    """

    def __init__(self, context: BotContext, symbol: Optional[str] = None):
        self.context = context
        self.symbol = symbol or context.symbol

        self.book = BookModel(self.symbol, context.book_depth)
        self.position = PositionState(self.symbol)

        self.fee = context.fee
        self.trade_size = context.trade_size
        self.entry_threshold = context.entry_threshold
        self.target_fraction = context.target_fraction

        self.rules: List[Rule] = [
            Rule(PositionAction.ENTER_LONG, self._should_enter_long, self._enter_long),
            Rule(PositionAction.ENTER_SHORT, self._should_enter_short, self._enter_short),
            Rule(PositionAction.EXIT_LONG, self._should_exit_long, self._exit_long),
            Rule(PositionAction.EXIT_SHORT, self._should_exit_short, self._exit_short),
            Rule(PositionAction.STOP_LONG, self._should_stop_long, self._stop_long),
            Rule(PositionAction.STOP_SHORT, self._should_stop_short, self._stop_short),
        ]

    @property
    def state(self) -> PositionSide:
        return self.position.side

    @property
    def pnl(self) -> float:
        return self.position.pnl

    @property
    def fee_cost(self) -> float:
        return self.trade_size * self.fee

    @property
    def target(self) -> float:
        """Take-profit distance from the current entry price."""
        return self.target_fraction * self.position.entry_price

    # =========================================================================
    # BOOK
    # =========================================================================

    def _validate(self, message: BookMessage):
        if message.symbol != self.symbol:
            raise DecodeError(f"Book for {message.symbol} sent to {self.symbol} strategy")

        for level in list(message.bids) + list(message.asks):
            if not isinstance(level, Level):
                raise DecodeError(f"Unexpected book level {level!r}")
            if not math.isfinite(level.price) or level.price <= 0:
                raise DecodeError(f"Invalid price {level.price!r} in {message.symbol} book")
            if not math.isfinite(level.volume) or level.volume < 0:
                raise DecodeError(f"Invalid volume {level.volume!r} in {message.symbol} book")

    def apply_book(self, message: BookMessage):
        """Fold a snapshot or an incremental update into the book."""
        self._validate(message)

        if message.is_snapshot:
            self.book.apply_snapshot(message.bids, message.asks)
            return

        # Trim once, after every level of the message is applied
        for level in message.bids:
            self.book.upsert(BookSide.BID, level.price, level.volume, trim=False)
        for level in message.asks:
            self.book.upsert(BookSide.ASK, level.price, level.volume, trim=False)
        self.book.trim(self.book.depth)

    def totals(self) -> Optional[BookTotals]:
        """Current aggregates, None while either side of the book is empty."""
        best_bid, total_bid = self.book.best_bid()
        best_ask, total_ask = self.book.best_ask()
        if best_bid is None or best_ask is None:
            return None
        return BookTotals(total_bid, best_bid, total_ask, best_ask)

    # =========================================================================
    # UPDATE
    # =========================================================================

    def on_book(self, message: BookMessage) -> List[PositionEvent]:
        """
        Apply a book message and run the rules once.

        Raises:
            DecodeError: if the message is malformed (book and position untouched)
        """
        self.apply_book(message)

        totals = self.totals()
        if totals is None:
            logger.debug(f"Book for {self.symbol} is one-sided, skipping rules")
            return []

        logger.debug(
            f"Book {self.symbol}: total_bid={totals.total_bid:.4f} total_ask={totals.total_ask:.4f} "
            f"bid={totals.best_bid} ask={totals.best_ask} delta={totals.delta:.4f}"
        )

        return self.evaluate(totals)

    def evaluate(self, totals: BookTotals) -> List[PositionEvent]:
        """Run every rule in order against the given aggregates."""
        events = []
        for rule in self.rules:
            if not rule.predicate(totals):
                continue

            entry_price = self.position.entry_price
            size = self.position.size
            price = rule.apply(totals)
            event = PositionEvent(
                action=rule.action,
                symbol=self.symbol,
                price=price,
                size=self.position.size or size,
                pnl=self.position.pnl,
            )
            events.append(event)

            logger.info(
                f"{rule.action.value}: price={price} entry={entry_price or price} "
                f"bid={totals.best_bid} ask={totals.best_ask} "
                f"delta={totals.delta:.4f} pnl={self.position.pnl:.4f}"
            )
        return events

    # =========================================================================
    # PREDICATES
    # =========================================================================

    def _should_enter_long(self, t: BookTotals) -> bool:
        return self.position.is_flat() and t.total_bid - t.total_ask > self.entry_threshold

    def _should_enter_short(self, t: BookTotals) -> bool:
        return self.position.is_flat() and t.total_ask - t.total_bid > self.entry_threshold

    def _should_exit_long(self, t: BookTotals) -> bool:
        return self.position.is_long() and t.best_bid >= self.position.entry_price + self.target

    def _should_exit_short(self, t: BookTotals) -> bool:
        return self.position.is_short() and t.best_ask <= self.position.entry_price - self.target

    def _should_stop_long(self, t: BookTotals) -> bool:
        return self.position.is_long() and t.best_ask < self.position.entry_price

    def _should_stop_short(self, t: BookTotals) -> bool:
        return self.position.is_short() and t.best_bid > self.position.entry_price

    # =========================================================================
    # ACTIONS
    # =========================================================================

    def _enter_long(self, t: BookTotals) -> float:
        self.position.open(self.trade_size / t.best_ask, t.best_ask, self.fee_cost)
        return t.best_ask

    def _enter_short(self, t: BookTotals) -> float:
        self.position.open(-self.trade_size / t.best_bid, t.best_bid, self.fee_cost)
        return t.best_bid

    def _exit_long(self, t: BookTotals) -> float:
        p = self.position
        p.close(p.size * (t.best_bid - p.entry_price), self.fee_cost)
        return t.best_bid

    def _exit_short(self, t: BookTotals) -> float:
        p = self.position
        p.close(p.size * (p.entry_price - t.best_ask), self.fee_cost)
        return t.best_ask

    def _stop_long(self, t: BookTotals) -> float:
        p = self.position
        p.close(p.size * (t.best_bid - p.entry_price), self.fee_cost)
        return t.best_bid

    def _stop_short(self, t: BookTotals) -> float:
        # size is negative here
        p = self.position
        p.close(p.size * (p.entry_price - t.best_ask), self.fee_cost)
        return t.best_ask
