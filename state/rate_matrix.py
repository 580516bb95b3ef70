"""
Exchange rate matrix over a fixed currency basket.
"""
from typing import Sequence

import numpy as np


class RateMatrix:
    """
    N x N table of conversion rates. Row is the "from" currency, column the
    "to" currency: get(i, j) is the amount of j received for one unit of i.

    The diagonal is fixed at 1. Off-diagonal cells start at 0, which means
    "no rate known yet". (i, j) and (j, i) are written independently since
    they come from opposite sides of the same quote.
    """

    def __init__(self, basket: Sequence[str]):
        self.basket = tuple(basket)
        self.size = len(self.basket)
        self._rates = np.eye(self.size, dtype=float)

    def _check(self, i: int, j: int):
        if not (0 <= i < self.size and 0 <= j < self.size):
            raise IndexError(f"Rate index ({i}, {j}) out of range for {self.size} currencies")

    def set(self, i: int, j: int, rate: float):
        """Store the rate for converting currency i into currency j."""
        self._check(i, j)
        if i == j:
            raise ValueError(f"Cannot overwrite self-conversion rate at ({i}, {j})")
        self._rates[i, j] = rate

    def get(self, i: int, j: int) -> float:
        """Stored rate, 1 on the diagonal, 0 if never written."""
        self._check(i, j)
        return float(self._rates[i, j])

    def is_known(self, i: int, j: int) -> bool:
        return self.get(i, j) != 0.0

    def index(self, currency: str) -> int:
        """Basket position of a currency, -1 if it is not in the basket."""
        try:
            return self.basket.index(currency)
        except ValueError:
            return -1

    def to_array(self) -> np.ndarray:
        """Copy of the underlying table."""
        return self._rates.copy()
