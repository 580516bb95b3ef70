"""
Turns arbitrage signals into three sequential conversions.
"""
import logging
from typing import List, Optional

from config import BotContext
from errors import ExecutionError
from execution.orders import ExecutionInput, ExecutionProvider
from strategy.signals import ArbitrageSignal

logger = logging.getLogger(__name__)


class TriangleExecutor:
    """
    Signal consumer for the triangular arbitrage detector.

    A signal leg1 -> leg2 -> leg3 -> leg1 becomes three orders, each at the
    rate that produced the signal. Pairs are oriented like the subscriptions:
    the currency later in the basket is the instrument. Converting into the
    instrument is a buy, converting out of it a sell.

    Execution is best effort: a rejected leg is logged and the rest of the
    cycle is skipped. Nothing computed by the detector is rolled back.
    """

    def __init__(self, context: BotContext, provider: ExecutionProvider):
        self.basket = context.basket
        self.fee = context.fee
        self.trade_capital = context.trade_capital
        self.provider = provider

        self.cycles_attempted = 0
        self.cycles_completed = 0
        self.failures = 0

    def build_order(self, source: str, target: str, amount: float, rate: float) -> ExecutionInput:
        """
        Order converting `amount` of source into target at `rate`.

        Returns:
            ExecutionInput on the basket-oriented pair
        """
        if self.basket.index(target) > self.basket.index(source):
            # target/source: buy target with source
            return ExecutionInput(symbol=target, base=source, side="buy", rate=rate, qty=amount * rate)
        # source/target: sell source for target
        return ExecutionInput(symbol=source, base=target, side="sell", rate=rate, qty=amount)

    def plan(self, signal: ArbitrageSignal, capital: float) -> List[ExecutionInput]:
        """The three orders for a signal, sized from `capital` of leg1."""
        path = [signal.leg1, signal.leg2, signal.leg3, signal.leg1]
        orders = []
        amount = capital
        for (source, target), rate in zip(zip(path, path[1:]), signal.rates):
            orders.append(self.build_order(source, target, amount, rate))
            amount = amount * rate * (1 - self.fee)
        return orders

    async def on_signal(self, signal: ArbitrageSignal) -> Optional[List[ExecutionInput]]:
        """
        Execute a signal.

        Returns:
            The orders that were filled, or None if the cycle could not start
        """
        capital = min(self.trade_capital, self.provider.total_capital())
        if capital <= 0:
            logger.warning(f"No {signal.leg1} capital available for {signal.path}")
            return None

        self.cycles_attempted += 1
        filled = []
        # Leg n + 1 spends what leg n received, so legs run strictly in order
        for order in self.plan(signal, capital):
            try:
                await self.provider.execute(order)
            except ExecutionError as e:
                self.failures += 1
                logger.error(
                    f"Execution failed on leg {len(filled) + 1} of {signal.path} "
                    f"({order.side} {order.pair}): {e}"
                )
                return filled
            filled.append(order)

        self.cycles_completed += 1
        logger.info(f"Executed {signal.path}: capital={capital:.4f} edge={signal.edge:.4f}%")
        return filled
