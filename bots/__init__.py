"""
Bots wiring a market data provider to a strategy engine.
"""
from bots.triangle_bot import TriangleBot
from bots.pressure_bot import PressureBot

__all__ = ["TriangleBot", "PressureBot"]
