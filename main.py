import argparse
import asyncio
import logging

from colorama import Fore, init

from bot import MODES, TradingBot
from config import load_config
from log_utils import setup_logging

init(autoreset=True)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Solana Memecoin Discovery & Trading Bot")
    parser.add_argument("--config", default=None,
                        help="YAML file overriding the defaults (keys: bot, trading, discovery)")
    parser.add_argument("--mode", choices=MODES, default=None,
                        help="trading = open and manage positions, monitoring = discovery only")
    parser.add_argument("--paper", action="store_true",
                        help="Trade against the simulated wallet instead of a live swap service")
    parser.add_argument("--once", action="store_true",
                        help="Run a single discovery cycle, print the ranked candidates and exit")
    parser.add_argument("--log-level", default=None,
                        help="DEBUG, INFO, WARNING or ERROR (default: LOG_LEVEL env or INFO)")
    return parser


async def main(argv=None):
    args = build_parser().parse_args(argv)
    config = load_config(args.config)
    if args.mode:
        config['bot']['mode'] = args.mode
    if args.paper:
        config['bot']['paper_trading'] = True
    setup_logging(args.log_level or config['bot'].get('log_level', 'INFO'),
                  config['bot'].get('log_file') or None)

    bot = TradingBot(config)
    try:
        if args.once:
            await bot.run_once()
        else:
            await bot.start()
    finally:
        await bot.stop()
        print(f"{Fore.YELLOW}Bot stopped. Stats: {bot.get_stats()['lifecycle']}")


def cli():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print(f"\n{Fore.YELLOW}Monitoring stopped.")


if __name__ == "__main__":
    cli()
