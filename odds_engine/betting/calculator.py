"""
Stake and return calculations for a single wager.

Formula: total return = stake x decimal odds, profit = total return - stake.
Every entry point converts to decimal odds first, so the same price always
yields the same profit regardless of how it was quoted.
"""
import math
from dataclasses import dataclass

from odds_engine.exceptions import InvalidOddsError, InvalidStakeError

from .odds_converter import RawOdds, american_to_decimal, to_decimal, validate_decimal


@dataclass(frozen=True)
class BettingCalculation:
    """Return and profit of a winning bet."""

    stake: float
    total_return: float
    profit: float
    decimal_odds: float  # Odds actually used, kept for auditing

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "stake": self.stake,
            "total_return": self.total_return,
            "profit": self.profit,
            "decimal_odds": self.decimal_odds,
        }


def validate_stake(stake: float) -> float:
    """Return stake as float, raising InvalidStakeError unless finite and > 0."""
    if isinstance(stake, bool):
        raise InvalidStakeError(stake)
    try:
        value = float(stake)
    except (TypeError, ValueError) as e:
        raise InvalidStakeError(stake) from e
    if not math.isfinite(value) or value <= 0:
        raise InvalidStakeError(stake)
    return value


def calculate_return(stake: float, decimal_odds: float) -> BettingCalculation:
    """
    Calculate total return and profit for a winning bet.

    Args:
        stake: Amount wagered (> 0)
        decimal_odds: Decimal odds (>= 1.01)

    Returns:
        BettingCalculation

    Raises:
        InvalidStakeError: If stake is not a positive finite number
        InvalidOddsError: If decimal_odds is below 1.01 or not finite

    Examples:
        >>> calculate_return(10, 2.5).total_return
        25.0
    """
    stake = validate_stake(stake)
    odds = validate_decimal(decimal_odds)
    total_return = stake * odds
    return BettingCalculation(
        stake=stake,
        total_return=total_return,
        profit=total_return - stake,
        decimal_odds=odds,
    )


def calculate_return_from_american(stake: float, american_odds: float) -> BettingCalculation:
    """
    Calculate returns from American odds.

    Examples:
        >>> calculate_return_from_american(10, 150).profit
        15.0
        >>> calculate_return_from_american(10, -200).decimal_odds
        1.5
    """
    return calculate_return(stake, american_to_decimal(american_odds))


def calculate_return_from_raw(stake: float, raw_odds: RawOdds) -> BettingCalculation:
    """
    Calculate returns from a feed value of unknown format ("2.5", "+150").

    Raises:
        InvalidOddsError: If raw_odds does not parse to a valid price
    """
    decimal_odds = to_decimal(raw_odds)
    if decimal_odds is None:
        raise InvalidOddsError(raw_odds)
    return calculate_return(stake, decimal_odds)
