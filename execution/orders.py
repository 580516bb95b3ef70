"""
Order request and execution backend contract.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True)
class ExecutionInput:
    """
    A single conversion on pair symbol/base.

    Attributes:
        symbol: Instrument currency ("BTC")
        base: Quote currency the instrument is priced in ("USD")
        side: "buy" converts base into symbol, "sell" converts symbol into base
        rate: Conversion rate from the rate matrix for this direction
        qty: Amount of the instrument bought or sold
    """
    symbol: str
    base: str
    side: Literal["buy", "sell"]
    rate: float
    qty: float

    @property
    def pair(self) -> str:
        return f"{self.symbol}/{self.base}"


class ExecutionProvider(ABC):
    """Backend that turns ExecutionInputs into trades."""

    @abstractmethod
    async def execute(self, order: ExecutionInput) -> None:
        """
        Execute one conversion.

        Raises:
            ExecutionError: if the order is rejected
        """

    @abstractmethod
    def total_capital(self) -> float:
        """Balance of the account's settlement currency."""
