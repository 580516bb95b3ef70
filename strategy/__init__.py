"""
Strategy engines for the bots.
Contains the signal logic that turns market data into trade signals.
"""

from strategy.signals import ArbitrageSignal, PositionAction, PositionEvent
from strategy.triangular_arb import ArbitrageDetector
from strategy.pressure import PositionStateMachine

__all__ = [
    'ArbitrageSignal',
    'PositionAction',
    'PositionEvent',
    'ArbitrageDetector',
    'PositionStateMachine',
]
