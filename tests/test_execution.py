"""
Tests for the mock portfolio and the triangle executor.
Run: python -m unittest tests/test_execution.py
"""
import sys
import unittest
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import BotContext
from errors import ExecutionError
from execution import TriangleExecutor, create_execution_provider
from execution.orders import ExecutionInput, ExecutionProvider
from execution.portfolio import MockPortfolio
from strategy.signals import ArbitrageSignal


def usd_btc_eth_signal():
    rates = (1 / 50000.0, 1 / 0.049, 2500.0)
    compounded = rates[0] * rates[1] * rates[2]
    return ArbitrageSignal(
        leg1="USD", leg2="BTC", leg3="ETH",
        edge=compounded * 100 - 100,
        compounded_return=compounded,
        rates=rates,
    )


class FailingProvider(ExecutionProvider):
    """Fills the first `fills` orders, then rejects everything."""

    def __init__(self, fills: int, capital: float = 10000.0):
        self.fills = fills
        self.capital = capital
        self.orders = []

    async def execute(self, order):
        if len(self.orders) >= self.fills:
            raise ExecutionError(f"rejected {order.pair}")
        self.orders.append(order)

    def total_capital(self):
        return self.capital


class TestMockPortfolio(unittest.IsolatedAsyncioTestCase):
    async def test_buy(self):
        portfolio = MockPortfolio(capital=1000.0, currency="USD", fee=0.0)
        await portfolio.execute(ExecutionInput("BTC", "USD", "buy", rate=1 / 50000.0, qty=0.02))

        self.assertAlmostEqual(portfolio.balance("BTC"), 0.02)
        self.assertAlmostEqual(portfolio.total_capital(), 0.0)
        self.assertEqual(portfolio.fill_count, 1)

    async def test_sell_charges_fee(self):
        portfolio = MockPortfolio(capital=0.0, currency="USD", fee=0.0025)
        portfolio.balances["BTC"] = 0.01
        await portfolio.execute(ExecutionInput("BTC", "USD", "sell", rate=50000.0, qty=0.01))

        self.assertAlmostEqual(portfolio.balance("BTC"), 0.0)
        self.assertAlmostEqual(portfolio.total_capital(), 500.0 * 0.9975)

    async def test_insufficient_balance(self):
        portfolio = MockPortfolio(capital=100.0, currency="USD")
        with self.assertRaises(ExecutionError):
            await portfolio.execute(ExecutionInput("BTC", "USD", "buy", rate=1 / 50000.0, qty=0.02))
        self.assertEqual(portfolio.total_capital(), 100.0)
        self.assertEqual(portfolio.balance("BTC"), 0.0)
        self.assertEqual(portfolio.fill_count, 0)

    async def test_rejects_bad_orders(self):
        portfolio = MockPortfolio()
        for order in (
            ExecutionInput("BTC", "USD", "buy", rate=0.0, qty=1.0),
            ExecutionInput("BTC", "USD", "buy", rate=1.0, qty=0.0),
            ExecutionInput("BTC", "USD", "hold", rate=1.0, qty=1.0),
        ):
            with self.assertRaises(ExecutionError):
                await portfolio.execute(order)

    def test_factory(self):
        self.assertIsInstance(create_execution_provider("mock", capital=5.0), MockPortfolio)
        with self.assertRaises(ValueError):
            create_execution_provider("live")


class TestTriangleExecutor(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.context = BotContext(basket=("USD", "BTC", "ETH"))

    def test_plan_orients_pairs_like_subscriptions(self):
        executor = TriangleExecutor(self.context, MockPortfolio())
        orders = executor.plan(usd_btc_eth_signal(), 1000.0)

        self.assertEqual([(o.pair, o.side) for o in orders], [
            ("BTC/USD", "buy"),
            ("ETH/BTC", "buy"),
            ("ETH/USD", "sell"),
        ])
        self.assertAlmostEqual(orders[0].qty, 0.02)
        self.assertAlmostEqual(orders[1].qty, 0.02 * 0.9975 / 0.049)
        self.assertAlmostEqual(orders[2].qty, 0.02 * 0.9975 / 0.049 * 0.9975)

    async def test_full_cycle_on_mock_portfolio(self):
        portfolio = MockPortfolio(capital=10000.0, currency="USD", fee=0.0025)
        executor = TriangleExecutor(self.context, portfolio)

        filled = await executor.on_signal(usd_btc_eth_signal())

        self.assertEqual(len(filled), 3)
        self.assertEqual(executor.cycles_completed, 1)
        self.assertAlmostEqual(portfolio.balance("BTC"), 0.0, places=9)
        self.assertAlmostEqual(portfolio.balance("ETH"), 0.0, places=9)
        expected = 9000.0 + 1000.0 * (0.05 / 0.049) * 0.9975 ** 3
        self.assertAlmostEqual(portfolio.total_capital(), expected, places=6)
        self.assertGreater(portfolio.total_capital(), 10000.0)

    async def test_failed_leg_stops_cycle(self):
        provider = FailingProvider(fills=1)
        executor = TriangleExecutor(self.context, provider)

        filled = await executor.on_signal(usd_btc_eth_signal())

        self.assertEqual([o.pair for o in filled], ["BTC/USD"])
        self.assertEqual(executor.failures, 1)
        self.assertEqual(executor.cycles_completed, 0)
        self.assertEqual(executor.cycles_attempted, 1)

    async def test_no_capital(self):
        executor = TriangleExecutor(self.context, FailingProvider(fills=3, capital=0.0))
        self.assertIsNone(await executor.on_signal(usd_btc_eth_signal()))
        self.assertEqual(executor.cycles_attempted, 0)

    async def test_capital_is_capped(self):
        provider = FailingProvider(fills=3, capital=500.0)
        executor = TriangleExecutor(self.context, provider)
        await executor.on_signal(usd_btc_eth_signal())
        self.assertAlmostEqual(provider.orders[0].qty, 500.0 / 50000.0)


if __name__ == '__main__':
    unittest.main()
