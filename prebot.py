#!/usr/bin/env python3
"""
Order book pressure bot for Kraken.

Maintains the top of the book for one symbol and tracks a simulated position
that follows bid/ask volume imbalance.

Usage:
    python prebot.py                  # BTC/USD, run until Ctrl-C
    python prebot.py --symbol ETH/USD
    python prebot.py -s 120           # Stop after 2 minutes
"""
import argparse
import asyncio
import logging
import signal
from typing import Optional

from config import BotContext
from bots.pressure_bot import PressureBot
from errors import ConfigError
from ingestion.kraken_ws import KrakenWebSocket
from tabot import setup_logging

logger = logging.getLogger(__name__)


async def run(market_data: KrakenWebSocket, bot: PressureBot):
    """Connect, then consume until the bot stops."""
    await market_data.start()
    await bot.run()


async def main(context: BotContext, max_seconds: Optional[int] = None):
    market_data = KrakenWebSocket(
        api_key=context.api_key,
        api_secret=context.api_secret,
        book_depth=context.book_depth
    )
    bot = PressureBot(context, market_data)

    task = asyncio.create_task(run(market_data, bot))

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, task.cancel)

    try:
        await asyncio.wait_for(task, timeout=max_seconds)
    except asyncio.TimeoutError:
        logger.info(f"Reached {max_seconds} second time limit")
    except asyncio.CancelledError:
        logger.info("Shutting down...")
    finally:
        await market_data.close()

    position = bot.machine.position
    logger.info("=" * 60)
    logger.info(f"Symbol: {bot.symbol}")
    logger.info(f"State: {position.side.value}")
    logger.info(f"Events: {bot.event_count}")
    logger.info(f"P&L: {position.pnl:.4f}")
    logger.info("=" * 60)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Order book pressure signals for Kraken")
    parser.add_argument(
        "--symbol",
        type=str,
        default=None,
        help="Pair to trade, e.g. BTC/USD (default: SYMBOL env or BTC/USD)"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Logging level (default: LOGLEVEL env or DEBUG)"
    )
    parser.add_argument(
        "-s", "--seconds",
        type=int,
        default=None,
        help="Stop after this many seconds (default: unlimited)"
    )
    args = parser.parse_args()

    try:
        context = BotContext.from_env(
            symbol=args.symbol.upper() if args.symbol else None,
            log_level=args.log_level,
        )
    except ConfigError as e:
        parser.error(str(e))

    setup_logging(context.log_level)
    asyncio.run(main(context, max_seconds=args.seconds))
