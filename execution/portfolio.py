"""
Simulated portfolio used as the execution backend in paper mode.
"""
import logging
from collections import defaultdict
from typing import Dict

import config
from errors import ExecutionError
from execution.orders import ExecutionInput, ExecutionProvider

logger = logging.getLogger(__name__)

BALANCE_TOLERANCE = 1e-9


class MockPortfolio(ExecutionProvider):
    """
    Fills every order immediately at the requested rate.

    Features:
    - Per-currency balances, seeded with capital in the settlement currency
    - Fee charged on the proceeds of every conversion
    - Rejects orders the balances cannot cover
    """

    def __init__(
        self,
        capital: float = config.STARTING_CAPITAL,
        currency: str = config.BASE_CURRENCY,
        fee: float = config.FEE
    ):
        """
        Initialize the portfolio.

        Args:
            capital: Starting balance in the settlement currency
            currency: Settlement currency
            fee: Fee fraction deducted from what each conversion receives
        """
        self.currency = currency
        self.fee = fee
        self.balances: Dict[str, float] = defaultdict(float)
        self.balances[currency] = capital
        self.fill_count = 0

    def total_capital(self) -> float:
        return self.balances[self.currency]

    def balance(self, currency: str) -> float:
        return self.balances.get(currency, 0.0)

    async def execute(self, order: ExecutionInput) -> None:
        if order.qty <= 0:
            raise ExecutionError(f"Quantity must be positive, got {order.qty} for {order.pair}")
        if order.rate <= 0:
            raise ExecutionError(f"Rate must be positive, got {order.rate} for {order.pair}")

        if order.side == "buy":
            # rate is base -> symbol, so one unit of symbol costs 1 / rate base
            spend_currency, spend = order.base, order.qty / order.rate
            receive_currency, receive = order.symbol, order.qty
        elif order.side == "sell":
            spend_currency, spend = order.symbol, order.qty
            receive_currency, receive = order.base, order.qty * order.rate
        else:
            raise ExecutionError(f"Unknown side {order.side!r} for {order.pair}")

        available = self.balance(spend_currency)
        # Allow float rounding from qty / rate
        if spend - available > BALANCE_TOLERANCE * max(available, 1.0):
            raise ExecutionError(
                f"Insufficient {spend_currency}: need {spend:.8f}, have {available:.8f}"
            )

        self.balances[spend_currency] = max(available - spend, 0.0)
        self.balances[receive_currency] += receive * (1 - self.fee)
        self.fill_count += 1

        logger.info(
            f"Fill: {order.side} {order.qty:.8f} {order.pair} @ {order.rate:.8f} "
            f"({spend_currency} {self.balances[spend_currency]:.8f}, "
            f"{receive_currency} {self.balances[receive_currency]:.8f})"
        )
