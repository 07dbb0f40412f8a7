"""
Watchtower Bots - Entry Point
Run this script to start monitoring blocks
"""

import argparse
import asyncio
import logging
import sys

# Load environment variables from .env before config is imported
from dotenv import load_dotenv
load_dotenv()

from infrastructure.config import get_config
from infrastructure.errors import ConfigurationError, ProviderError
from infrastructure.rpc import get_web3, verify_chain
from agents import build_bots, collect_signatures
from data_sources.chain_provider import create_provider
from services.emitter import create_emitter
from services.reporter import MonitorState
from services.runner import BotRunner
from sentry_config import init_sentry

logger = logging.getLogger("run_bot")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Run Watchtower monitoring bots against a block range")
    parser.add_argument("--from-block", type=int, help="First block to process (default: chain head)")
    parser.add_argument("--to-block", type=int, help="Last block to process (default: chain head)")
    parser.add_argument("--follow", action="store_true", help="Keep polling for new blocks")
    return parser.parse_args(argv)


async def main(argv=None) -> int:
    """
    Main entry point
    """
    args = parse_args(argv)
    config = get_config()

    logging.basicConfig(
        level=getattr(logging, config.monitoring.log_level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    init_sentry()

    w3 = get_web3(config.blockchain.rpc_url, config.blockchain.request_timeout)
    state = MonitorState()

    # Bots validate their own settings; a bad config must stop us here
    try:
        config.validate()
        verify_chain(w3, config.blockchain.chain_id)
        provider = create_provider(w3, max_attempts=config.blockchain.max_attempts)
        bots = build_bots(config, provider, state)
    except ConfigurationError as e:
        logger.error(f"❌ Refusing to start: {e.message}")
        return 2

    provider.register_signatures(collect_signatures(bots))
    emitter = create_emitter(config.monitoring.alert_webhook_url)
    runner = BotRunner(bots, provider, emitter)

    try:
        try:
            from_block = args.from_block
            if from_block is None:
                from_block = await provider.get_latest_block_number()

            logger.info(f"🏛️ Starting Watchtower bots at block {from_block}")
            initial = await runner.initialize(from_block)
        except ProviderError as e:
            logger.error(f"❌ Startup failed, chain data unavailable: {e.message}")
            return 1

        for bot_name, values in initial.items():
            if values:
                logger.info(f"[{bot_name}] {values}")

        await runner.run(
            from_block,
            to_block=args.to_block,
            follow=args.follow,
            poll_interval=config.blockchain.poll_interval,
        )
    finally:
        await emitter.close()
        logger.info(f"Stats: {runner.get_stats()}")

    return 0


def cli():
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        logger.info("👋 Bots stopped")


if __name__ == "__main__":
    cli()
