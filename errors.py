"""
Exception types shared by the engines, the market-data adapter and execution.
"""


class TabotError(Exception):
    """Base exception for all bot errors."""
    pass


class ConfigError(TabotError):
    """Invalid startup configuration."""
    pass


class SubscriptionError(TabotError):
    """A subscribe or unsubscribe request failed."""

    def __init__(self, symbol: str, message: str):
        self.symbol = symbol
        self.message = message
        super().__init__(f"{symbol}: {message}")


class DecodeError(TabotError):
    """Malformed or incomplete market data; the event is dropped."""
    pass


class AuthenticationError(TabotError):
    """Exchange rejected the credentials or the token request."""
    pass


class ExecutionError(TabotError):
    """An order could not be executed."""
    pass
