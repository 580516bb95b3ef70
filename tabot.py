#!/usr/bin/env python3
"""
Triangular arbitrage signal bot for Kraken.

Streams best bid/offer for every pair in the basket and reports cycles whose
compounded return beats the threshold. Signals are executed against a mock
portfolio; no real orders are placed.

Usage:
    python tabot.py                          # USD,BTC,ETH basket, run until Ctrl-C
    python tabot.py --symbols USD,BTC,ETH,SOL
    python tabot.py -s 60                    # Stop after 60 seconds
    python tabot.py --no-execute             # Signals only
"""
import argparse
import asyncio
import logging
import signal
from typing import Optional

from config import BotContext, parse_basket
from bots.triangle_bot import TriangleBot
from errors import ConfigError
from execution import TriangleExecutor, create_execution_provider
from ingestion.kraken_ws import KrakenWebSocket

logger = logging.getLogger(__name__)


def setup_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.DEBUG),
        format='%(asctime)s | %(levelname)s | %(name)s | %(message)s',
        datefmt='%H:%M:%S'
    )
    # Reduce noise from libraries
    logging.getLogger("websockets").setLevel(logging.WARNING)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)


async def run(market_data: KrakenWebSocket, bot: TriangleBot):
    """Connect, then consume until the bot stops."""
    await market_data.start()
    await bot.run()


async def main(context: BotContext, max_seconds: Optional[int] = None, execute: bool = True):
    market_data = KrakenWebSocket(
        api_key=context.api_key,
        api_secret=context.api_secret,
        book_depth=context.book_depth
    )

    executor = None
    if execute:
        portfolio = create_execution_provider("mock", currency=context.base_currency, fee=context.fee)
        executor = TriangleExecutor(context, portfolio)

    bot = TriangleBot(context, market_data, executor=executor)

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

    if executor:
        logger.info(
            f"Cycles attempted={executor.cycles_attempted} completed={executor.cycles_completed} "
            f"failures={executor.failures} capital={executor.provider.total_capital():.4f}"
        )


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Triangular arbitrage signals for Kraken")
    parser.add_argument(
        "--symbols",
        type=str,
        default=None,
        help="Comma separated currency basket (default: SYMBOLS env or USD,BTC,ETH)"
    )
    parser.add_argument(
        "--base",
        type=str,
        default=None,
        help="Currency every cycle starts from (default: USD)"
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
    parser.add_argument(
        "--no-execute",
        action="store_true",
        help="Log signals without sending them to the mock portfolio"
    )
    args = parser.parse_args()

    try:
        context = BotContext.from_env(
            basket=parse_basket(args.symbols) if args.symbols else None,
            base_currency=args.base.upper() if args.base else None,
            log_level=args.log_level,
        )
    except ConfigError as e:
        parser.error(str(e))

    setup_logging(context.log_level)
    asyncio.run(main(context, max_seconds=args.seconds, execute=not args.no_execute))
