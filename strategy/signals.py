"""
Signals produced by the strategy engines.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple
import time


@dataclass(frozen=True)
class ArbitrageSignal:
    """
    A tradeable triangular cycle leg1 -> leg2 -> leg3 -> leg1.

    Attributes:
        leg1, leg2, leg3: Currencies of the cycle, leg1 is the base currency
        edge: Percentage profit of one round trip (compounded_return * 100 - 100)
        compounded_return: Product of the three leg rates
        rates: Rates of the three conversions, in cycle order
    """
    leg1: str
    leg2: str
    leg3: str
    edge: float
    compounded_return: float
    rates: Tuple[float, float, float]
    timestamp_ms: int = field(default_factory=lambda: int(time.time() * 1000))

    @property
    def path(self) -> str:
        return f"{self.leg1}/{self.leg2}/{self.leg3}"


class PositionAction(Enum):
    """Transitions of the pressure state machine."""
    ENTER_LONG = "enter long"
    ENTER_SHORT = "enter short"
    EXIT_LONG = "exit long"
    EXIT_SHORT = "exit short"
    STOP_LONG = "stop loss long"
    STOP_SHORT = "stop loss short"


@dataclass(frozen=True)
class PositionEvent:
    """A state transition with the price it happened at and the PnL after it."""
    action: PositionAction
    symbol: str
    price: float
    size: float
    pnl: float
    timestamp_ms: int = field(default_factory=lambda: int(time.time() * 1000))
