#!/usr/bin/env python3
"""Signal Desk - Main Entry Point.

Runs the price, signal and indicator loops against the OKX public API until
interrupted.

Usage:
    python main.py
    python main.py --config config/config.json --once
"""

import argparse
import asyncio
import logging
import signal
import sys
from datetime import datetime
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from signal_desk.config import ConfigManager, ConfigValidationError
from signal_desk.engine import TradingOrchestrator
from signal_desk.errors import FormatError, NetworkError
from signal_desk.market import OKXMarketClient
from signal_desk.persistence import TradeStore
from signal_desk.presentation import LogPresenter

logger = logging.getLogger(__name__)


def setup_logging(level: str) -> None:
    Path("logs").mkdir(exist_ok=True)
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='%(asctime)s | %(levelname)-8s | %(name)-40s | %(message)s',
        datefmt='%H:%M:%S',
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(f"logs/signal_desk_{datetime.now():%Y%m%d_%H%M%S}.log"),
        ],
    )
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Signal Desk - BTC/USDT signal engine")
    parser.add_argument("--config", default=None, help="Path to config JSON (default: config/config.json)")
    parser.add_argument("--once", action="store_true", help="Run a single analysis pass and exit")
    return parser.parse_args(argv)


async def main(argv=None) -> int:
    """Main entry point for Signal Desk."""
    args = parse_args(argv)

    # Load configuration
    try:
        config = ConfigManager(args.config).load()
    except ConfigValidationError as e:
        setup_logging("INFO")
        logger.error(f"❌ Configuration error: {e}")
        return 1

    setup_logging(config.log_level)
    logger.info("=" * 70)
    logger.info("🚀 SIGNAL DESK")
    logger.info("=" * 70)
    logger.info("✅ Configuration loaded and validated")

    client = OKXMarketClient(config.market.base_url, config.market.request_timeout)
    store = TradeStore(config.storage.db_path, config.trading.history_limit)
    orchestrator = TradingOrchestrator(config, client, store=store, presenter=LogPresenter())
    orchestrator.restore_state()

    try:
        await asyncio.to_thread(client.check_connection)
        await orchestrator.load_initial_data()
    except (NetworkError, FormatError) as e:
        logger.error(f"❌ Failed to reach market data API: {e}")
        if args.once:
            client.close()
            return 1
        logger.warning("⚠️  Continuing - the loops will retry")

    if args.once:
        await orchestrator.refresh_price()
        await orchestrator.check_signal()
        orchestrator.save_state()
        client.close()
        return 0

    # Setup signal handlers
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def signal_handler(sig):
        logger.info(f"👋 Received signal {sig.name}, initiating shutdown...")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, signal_handler, sig)
        except NotImplementedError:
            signal.signal(sig, lambda s, f: loop.call_soon_threadsafe(stop_event.set))

    await orchestrator.start()
    try:
        await stop_event.wait()
    finally:
        await orchestrator.stop()
        client.close()

    logger.info("👋 Signal Desk shutdown complete")
    return 0


if __name__ == "__main__":
    exit_code = asyncio.run(main())
    sys.exit(exit_code)
