"""
Configuration constants for the signal bots.
"""
import os
from dataclasses import dataclass, field
from typing import Optional, Tuple

from errors import ConfigError

# Pressure strategy constants
BOOK_DEPTH = 10  # Price levels retained per side of the book
FEE = 0.0025  # Taker fee charged on every entry and exit
ENTRY_THRESHOLD = 30.0  # Bid/ask volume imbalance needed to open a position
TRADE_SIZE = 1000.0  # Notional per position, in quote currency
TARGET_FRACTION = 0.008  # Take profit at 0.8% away from entry

# Triangular arbitrage constants
ARB_THRESHOLD = 100.2  # Compounded return (in %) a cycle must beat
TRADE_CAPITAL = 1000.0  # Amount of base currency sent around a cycle
BASE_CURRENCY = "USD"  # Every cycle starts and ends here

# Mock portfolio
STARTING_CAPITAL = 10000.0

# Defaults when nothing is set in the environment
DEFAULT_SYMBOLS = ("USD", "BTC", "ETH")
DEFAULT_SYMBOL = "BTC/USD"
DEFAULT_LOG_LEVEL = "DEBUG"

# Kraken endpoints
KRAKEN_WS_URL = "wss://ws.kraken.com/v2"
KRAKEN_API_URL = "https://api.kraken.com"
KRAKEN_TOKEN_PATH = "/0/private/GetWebSocketsToken"

# Transport
HTTP_TIMEOUT = 10  # Seconds
RECONNECT_DELAY = 1.0  # Initial WebSocket reconnect delay (seconds)
MAX_RECONNECT_DELAY = 60.0


@dataclass(frozen=True)
class BotContext:
    """
    Everything an engine needs to know, built once at startup and handed to
    each engine constructor.

    Attributes:
        basket: Ordered currency basket for the rate matrix
        base_currency: Settlement currency, first leg of every cycle
        symbol: Instrument traded by the pressure strategy ("BTC/USD")
        book_depth: Levels kept per side of the book
        fee: Fee fraction charged per trade
        entry_threshold: Volume imbalance needed to open a position
        trade_size: Notional per position
        target_fraction: Take-profit distance as a fraction of entry price
        arb_threshold: Minimum compounded return (percent) for a signal
        trade_capital: Base-currency amount sent around an arbitrage cycle
        log_level: Logging level name
        api_key / api_secret: Kraken credentials (optional)
    """
    basket: Tuple[str, ...] = DEFAULT_SYMBOLS
    base_currency: str = BASE_CURRENCY
    symbol: str = DEFAULT_SYMBOL
    book_depth: int = BOOK_DEPTH
    fee: float = FEE
    entry_threshold: float = ENTRY_THRESHOLD
    trade_size: float = TRADE_SIZE
    target_fraction: float = TARGET_FRACTION
    arb_threshold: float = ARB_THRESHOLD
    trade_capital: float = TRADE_CAPITAL
    log_level: str = DEFAULT_LOG_LEVEL
    api_key: Optional[str] = field(default=None, repr=False)
    api_secret: Optional[str] = field(default=None, repr=False)

    def __post_init__(self):
        if len(set(self.basket)) != len(self.basket):
            raise ConfigError(f"Duplicate currency in basket: {self.basket}")
        if self.base_currency not in self.basket:
            raise ConfigError(f"Base currency {self.base_currency} not in basket {self.basket}")
        if self.book_depth <= 0:
            raise ConfigError(f"Book depth must be positive, got {self.book_depth}")
        if self.trade_size <= 0:
            raise ConfigError(f"Trade size must be positive, got {self.trade_size}")

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key and self.api_secret)

    @classmethod
    def from_env(cls, **overrides) -> "BotContext":
        """
        Build a context from environment variables.

        Reads LOGLEVEL, KRAKEN_API_KEY, KRAKEN_API_SECRET, SYMBOLS (comma
        separated basket) and SYMBOL. Keyword overrides win over the
        environment.
        """
        values = {
            "log_level": os.environ.get("LOGLEVEL", DEFAULT_LOG_LEVEL),
            "api_key": os.environ.get("KRAKEN_API_KEY"),
            "api_secret": os.environ.get("KRAKEN_API_SECRET"),
            "symbol": os.environ.get("SYMBOL", DEFAULT_SYMBOL),
        }

        symbols = os.environ.get("SYMBOLS")
        if symbols:
            values["basket"] = parse_basket(symbols)

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def parse_basket(symbols: str) -> Tuple[str, ...]:
    """Split "USD,BTC,ETH" into an upper-cased basket tuple."""
    basket = tuple(s.strip().upper() for s in symbols.split(",") if s.strip())
    if not basket:
        raise ConfigError(f"Empty currency basket: {symbols!r}")
    return basket
