"""Command-line interface for the Peridot liquidator."""
from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys

from .config import load_config
from .logging_setup import configure_logging
from .services import LiquidationBot

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="peridot-liquidator",
        description="Liquidation bot for Peridot lending markets on Soroban",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command")

    run_parser = sub.add_parser("run", help="Watch events and liquidate continuously")
    run_parser.add_argument(
        "--rounds",
        type=int,
        default=None,
        help="Stop after this many poll rounds (default: run until interrupted)",
    )

    check_parser = sub.add_parser(
        "check", help="Evaluate one borrower and print its plan (no transaction)"
    )
    check_parser.add_argument("address", help="Borrower account id (G...)")

    return parser


def _install_stop_handlers(stop: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows event loops have no signal handler support.
            pass


async def _run(args: argparse.Namespace) -> int:
    """Execute the selected command."""
    configure_logging(args.log_level)
    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        logger.error("Invalid configuration: %s", e)
        return 1

    bot = LiquidationBot(config)
    try:
        if args.command == "run":
            stop = asyncio.Event()
            _install_stop_handlers(stop)
            await bot.run(stop=stop, max_rounds=args.rounds)
        elif args.command == "check":
            plan = await bot.check_borrower(args.address)
            if plan is None:
                print(f"{args.address}: no liquidation available")
            else:
                print(
                    f"{plan.borrower}: shortfall {plan.shortfall}, "
                    f"repay {plan.repay_amount} {plan.repay_market.symbol}, "
                    f"seize {plan.seize_amount} p{plan.collateral_market.symbol}"
                )
    finally:
        await bot.close()
    return 0


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    sys.exit(asyncio.run(_run(args)))
