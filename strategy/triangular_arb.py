"""
Triangular Arbitrage Detector.

Goal: find conversion cycles base -> A -> B -> base that return more than
      they cost, after the bid/ask spread.

Core Logic:
1. Every tick on INSTRUMENT/BASE writes two cells of the rate matrix:
   base -> instrument = 1 / ask   (lift the ask)
   instrument -> base = bid       (hit the bid)
2. Re-evaluate only the cycles that go through the instrument just updated
3. A cycle is tradeable when R(l1->l2) * R(l2->l3) * R(l3->l1) * 100 > threshold
"""
import logging
import math
from itertools import combinations
from typing import List, Tuple

from config import BotContext
from errors import DecodeError
from ingestion.messages import Tick, format_pair, parse_pair
from state.rate_matrix import RateMatrix
from strategy.signals import ArbitrageSignal

logger = logging.getLogger(__name__)


class ArbitrageDetector:
    """
    Maintains the all-pairs rate matrix over the basket and scans
    triangular cycles starting at the base currency.
    """

    def __init__(self, context: BotContext):
        self.context = context
        self.basket = context.basket
        self.threshold = context.arb_threshold
        self.rates = RateMatrix(self.basket)
        self.base_idx = self.rates.index(context.base_currency)

        self.ticks_processed = 0
        self.signals_emitted = 0

    def subscription_pairs(self) -> List[str]:
        """
        Every unordered pair of basket currencies, once.

        The later currency in the basket is the instrument, the earlier one
        the base: ("USD", "BTC", "ETH") -> BTC/USD, ETH/USD, ETH/BTC.
        """
        return [
            format_pair(self.basket[j], self.basket[i])
            for i, j in combinations(range(len(self.basket)), 2)
        ]

    def _decode(self, tick: Tick) -> Tuple[str, int, int]:
        """Validate a tick and resolve its basket indices before any mutation."""
        instrument, base = parse_pair(tick.symbol)

        instrument_idx = self.rates.index(instrument)
        base_idx = self.rates.index(base)
        if instrument_idx < 0 or base_idx < 0:
            raise DecodeError(f"Pair {tick.symbol} is not in basket {self.basket}")
        if instrument_idx == base_idx:
            raise DecodeError(f"Pair {tick.symbol} converts a currency into itself")

        for name, value in (("bid", tick.bid), ("ask", tick.ask)):
            if not isinstance(value, (int, float)) or not math.isfinite(value) or value <= 0:
                raise DecodeError(f"Invalid {name} {value!r} for {tick.symbol}")

        return instrument, instrument_idx, base_idx

    def on_tick(self, tick: Tick) -> List[ArbitrageSignal]:
        """
        Absorb a tick and return the cycles it made tradeable.

        Raises:
            DecodeError: if the tick cannot be applied (the matrix is untouched)
        """
        instrument, instrument_idx, base_idx = self._decode(tick)

        logger.debug(
            f"Received tick instrument={instrument} base={self.basket[base_idx]} "
            f"bid={tick.bid} ask={tick.ask}"
        )

        self.rates.set(base_idx, instrument_idx, 1 / tick.ask)
        self.rates.set(instrument_idx, base_idx, tick.bid)
        self.ticks_processed += 1

        return self.scan(instrument_idx)

    def scan(self, instrument_idx: int) -> List[ArbitrageSignal]:
        """Evaluate every base-currency cycle that passes through instrument_idx."""
        leg1 = self.base_idx
        signals = []

        for leg2 in range(self.rates.size):
            for leg3 in range(self.rates.size):
                if leg2 == leg3 or leg2 == leg1 or leg3 == leg1:
                    continue
                if instrument_idx not in (leg1, leg2, leg3):
                    continue

                signal = self.evaluate_cycle(leg1, leg2, leg3)
                if signal:
                    signals.append(signal)

        self.signals_emitted += len(signals)
        return signals

    def evaluate_cycle(self, leg1: int, leg2: int, leg3: int):
        """
        Compounded return of leg1 -> leg2 -> leg3 -> leg1.

        Returns:
            ArbitrageSignal if the cycle beats the threshold, None otherwise
            (including when any leg rate is still unknown)
        """
        rates = (
            self.rates.get(leg1, leg2),
            self.rates.get(leg2, leg3),
            self.rates.get(leg3, leg1),
        )
        names = (self.basket[leg1], self.basket[leg2], self.basket[leg3])

        if 0.0 in rates:
            return None

        compounded = rates[0] * rates[1] * rates[2]

        logger.debug(
            f"Calculated rates for {names[0]}/{names[1]}/{names[2]}: "
            f"return={compounded * 100:.4f}%"
        )

        if compounded * 100 <= self.threshold:
            return None

        signal = ArbitrageSignal(
            leg1=names[0],
            leg2=names[1],
            leg3=names[2],
            edge=compounded * 100 - 100,
            compounded_return=compounded,
            rates=rates,
        )
        logger.info(
            f"Arbitrage {signal.path}: edge={signal.edge:.4f}% "
            f"rates={rates[0]:.8f},{rates[1]:.8f},{rates[2]:.8f}"
        )
        return signal
