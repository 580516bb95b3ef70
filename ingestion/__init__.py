"""
Market data ingestion: provider contract, messages and the Kraken feed.
"""
from ingestion.messages import BookMessage, Tick, format_pair, parse_pair
from ingestion.provider import MarketDataProvider
from ingestion.kraken_ws import KrakenWebSocket

__all__ = [
    "BookMessage",
    "Tick",
    "format_pair",
    "parse_pair",
    "MarketDataProvider",
    "KrakenWebSocket",
]
