"""
State objects owned by the engines: rate matrix, order book and position.
"""
from state.rate_matrix import RateMatrix
from state.book_model import BookModel, BookSide, Level
from state.position_state import PositionState, PositionSide

__all__ = [
    "RateMatrix",
    "BookModel",
    "BookSide",
    "Level",
    "PositionState",
    "PositionSide",
]
