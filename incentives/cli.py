"""Command-line interface for the lending incentives distributor."""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from .config import load_config
from .errors import RewardError
from .interfaces import PayoutSink
from .logging_setup import configure_logging
from .services import RewardDistributor
from .services.distributor import COMMANDS
from .sinks import JsonPayoutSink

logger = logging.getLogger(__name__)

_COMMAND_HELP = {
    "lp": "Calculate liquidity provider rewards",
    "minter": "Calculate minter (borrower) rewards",
    "all": "Calculate both programs and combine them per token",
}


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="lending-incentives",
        description="Reward accrual for lending and LP incentive campaigns",
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
    for command in COMMANDS:
        command_parser = sub.add_parser(command, help=_COMMAND_HELP[command])
        command_parser.add_argument(
            "--output",
            default=None,
            help="Payout JSON file (overrides output.path in config)",
        )

    return parser


async def _run(args: argparse.Namespace) -> None:
    """Execute the selected command and write the payout table."""
    configure_logging(args.log_level)
    config = load_config(args.config)
    distributor = RewardDistributor(config)

    table = await distributor.run(args.command)
    sink: PayoutSink = JsonPayoutSink(args.output or config.output.path)
    sink.write(table)


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        asyncio.run(_run(args))
    except RewardError as e:
        logger.error("Reward calculation failed: %s", e)
        sys.exit(1)
