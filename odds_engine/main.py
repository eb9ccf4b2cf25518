#!/usr/bin/env python3
"""
Odds Engine - command line entry point.

Quick access to the odds math without the surrounding application:
1. Convert a raw price into every odds format
2. Split a stake across outcomes for a sure bet
3. Check whether a price movement counts as dropping odds

Usage:
    odds-engine convert +150
    odds-engine convert 2.5 --to fractional
    odds-engine arb 2.1 3.4 4.0 --stake 100
    odds-engine drop 2.5 2.0 --threshold 20
"""

import argparse
import logging
import sys
from typing import Optional

from loguru import logger as loguru_logger
from rich.console import Console
from rich.table import Table

from odds_engine.betting.arbitrage import distribute_stakes
from odds_engine.betting.movement import classify, compute_drop
from odds_engine.betting.odds_converter import (
    decimal_to_implied_probability,
    format_in_format,
    to_decimal,
)
from odds_engine.config.constants import OddsFormat
from odds_engine.config.settings import get_settings
from odds_engine.exceptions import OddsEngineError

# Configure logging before other work
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

console = Console()


def configure_logging(debug: bool = False) -> None:
    """Align stdlib and loguru levels with settings."""
    settings = get_settings()
    level = "DEBUG" if debug or settings.debug else settings.log_level
    logging.getLogger().setLevel(logging.DEBUG if level in ("TRACE", "DEBUG") else logging.INFO)
    loguru_logger.remove()
    loguru_logger.add(sys.stderr, level=level)


def cmd_convert(args: argparse.Namespace) -> int:
    """Show a raw price in every format (or only --to)."""
    source = OddsFormat(args.source) if args.source else None
    decimal_odds = to_decimal(args.odds, source)
    if decimal_odds is None:
        console.print(f"[red]Invalid odds:[/red] {args.odds!r}")
        return 1

    formats = [OddsFormat(args.to)] if args.to else list(OddsFormat)

    table = Table(title=f"Odds {args.odds}")
    table.add_column("Format", style="cyan")
    table.add_column("Value", justify="right")
    for fmt in formats:
        table.add_row(fmt.value, format_in_format(decimal_odds, fmt))
    if not args.to:
        implied = decimal_to_implied_probability(decimal_odds)
        table.add_row("implied", f"{implied:.1%}")
    console.print(table)
    return 0


def cmd_arb(args: argparse.Namespace) -> int:
    """Distribute a stake across outcomes for equal return."""
    odds = [to_decimal(o) for o in args.odds]
    if any(o is None for o in odds):
        console.print(f"[red]Invalid odds in:[/red] {' '.join(args.odds)}")
        return 1

    stake = args.stake if args.stake is not None else get_settings().arbitrage.default_stake
    arb = distribute_stakes(odds, stake)

    table = Table(title="Sure bet" if arb.is_sure_bet else "No sure bet")
    table.add_column("Outcome", style="cyan")
    table.add_column("Odds", justify="right")
    table.add_column("Stake", justify="right")
    table.add_column("Return", justify="right")
    for i, (o, s) in enumerate(zip(arb.odds_per_outcome, arb.stake_per_outcome), start=1):
        table.add_row(str(i), f"{o:.2f}", f"{s:.2f}", f"{s * o:.2f}")
    console.print(table)

    style = "green" if arb.is_sure_bet else "red"
    console.print(
        f"Total stake {arb.total_stake:.2f} | guaranteed return "
        f"{arb.guaranteed_return:.2f} | [{style}]profit {arb.profit_percent:.2f}%[/{style}]"
    )
    return 0


def cmd_drop(args: argparse.Namespace) -> int:
    """Report the drop between two prices."""
    threshold = (
        args.threshold if args.threshold is not None
        else get_settings().movement.default_threshold
    )
    drop = compute_drop(args.previous, args.current)
    if drop is None:
        console.print("[red]Both prices must be valid decimal odds[/red]")
        return 1

    flagged = classify(drop, threshold)
    verdict = "[green]DROPPING[/green]" if flagged else "not dropping"
    console.print(f"{args.previous} -> {args.current}: {drop:.2f}% ({verdict} at {threshold}%)")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Odds Engine - odds conversion, sure bets and dropping odds",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    odds-engine convert +150                 Show +150 in every format
    odds-engine convert 2.5 --to fractional  Only the fractional form
    odds-engine arb 2.1 3.4 4.0 --stake 100  Stake split for a 1X2 market
    odds-engine drop 2.5 2.0 --threshold 30  Is 2.5 -> 2.0 a 30% drop?
        """,
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    convert = subparsers.add_parser("convert", help="Convert odds between formats")
    convert.add_argument("odds", help="Raw odds, e.g. 2.5, +150, 3/2")
    convert.add_argument("--source", choices=[f.value for f in OddsFormat], default=None)
    convert.add_argument("--to", choices=[f.value for f in OddsFormat], default=None)
    convert.set_defaults(func=cmd_convert)

    arb = subparsers.add_parser("arb", help="Sure bet stake distribution")
    arb.add_argument("odds", nargs="+", help="Best odds for each outcome")
    arb.add_argument("--stake", type=float, default=None, help="Total stake")
    arb.set_defaults(func=cmd_arb)

    drop = subparsers.add_parser("drop", help="Dropping odds check")
    drop.add_argument("previous", type=float)
    drop.add_argument("current", type=float)
    drop.add_argument("--threshold", type=float, default=None)
    drop.set_defaults(func=cmd_drop)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for CLI."""
    args = build_parser().parse_args(argv)
    configure_logging(args.debug)

    try:
        return args.func(args)
    except OddsEngineError as e:
        logger.error(str(e))
        console.print(f"[red]{e}[/red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
