"""
Execution layer: order contract, simulated portfolio and the arbitrage executor.
"""
from execution.orders import ExecutionInput, ExecutionProvider
from execution.portfolio import MockPortfolio
from execution.triangle_executor import TriangleExecutor

__all__ = [
    "ExecutionInput",
    "ExecutionProvider",
    "MockPortfolio",
    "TriangleExecutor",
]


def create_execution_provider(mode: str = "mock", **kwargs) -> ExecutionProvider:
    """
    Factory function to create an execution backend.

    Args:
        mode: "mock" is the only backend currently available
        **kwargs: Passed to the backend constructor

    Returns:
        ExecutionProvider instance
    """
    if mode == "mock":
        return MockPortfolio(**kwargs)
    raise ValueError(f"Unknown execution mode: {mode}")
