"""
Position state management - tracks the single open position and realized PnL.
"""
from enum import Enum


class PositionSide(Enum):
    """Direction of the open position."""
    FLAT = "FLAT"
    LONG = "LONG"
    SHORT = "SHORT"


class PositionState:
    """
    Tracks what we hold in one instrument.
    Updated only by the pressure state machine on state transitions.
    """

    def __init__(self, symbol: str):
        self.symbol = symbol

        self.size: float = 0.0  # Signed: > 0 long, < 0 short
        self.entry_price: float = 0.0
        self.pnl: float = 0.0  # Running realized PnL, fees included

    @property
    def side(self) -> PositionSide:
        if self.size > 0:
            return PositionSide.LONG
        if self.size < 0:
            return PositionSide.SHORT
        return PositionSide.FLAT

    def is_flat(self) -> bool:
        return self.size == 0.0

    def is_long(self) -> bool:
        return self.size > 0.0

    def is_short(self) -> bool:
        return self.size < 0.0

    def open(self, size: float, price: float, fee_cost: float):
        """Open a position and charge the entry fee."""
        if not self.is_flat():
            raise ValueError(f"Position already open in {self.symbol}: {self.size}")
        if size == 0:
            raise ValueError("Cannot open a zero-size position")
        self.size = size
        self.entry_price = price
        self.pnl -= fee_cost

    def close(self, realized: float, fee_cost: float):
        """Book the realized result and exit fee, then go flat."""
        self.pnl += realized
        self.pnl -= fee_cost
        self.reset()

    def reset(self):
        """Go flat without touching the PnL accumulator."""
        self.size = 0.0
        self.entry_price = 0.0
