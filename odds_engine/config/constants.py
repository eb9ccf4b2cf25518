"""
Constants and enumerations for the odds engine.

Contains odds formats, market outcomes, validity bounds and the
placeholder strings bookmaker feeds use for missing prices.
"""
from enum import Enum
from typing import Final


# =============================================================================
# ODDS FORMATS
# =============================================================================
class OddsFormat(str, Enum):
    """Supported odds display formats."""

    MONEYLINE = "moneyline"  # American, e.g. +150 / -200
    DECIMAL = "decimal"  # e.g. 2.50
    FRACTIONAL = "fractional"  # e.g. 3/2


# =============================================================================
# MARKET OUTCOMES
# =============================================================================
class Outcome(str, Enum):
    """Mutually exclusive outcomes of a 1X2 (or two-way) market."""

    HOME = "home"
    DRAW = "draw"
    AWAY = "away"

    @classmethod
    def parse(cls, value: "str | Outcome") -> "Outcome":
        """
        Parse an outcome from its name or its 1X2 column label.

        Examples:
            >>> Outcome.parse("X")
            <Outcome.DRAW: 'draw'>
            >>> Outcome.parse("Home")
            <Outcome.HOME: 'home'>
        """
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        if key in OUTCOME_ALIASES:
            return OUTCOME_ALIASES[key]
        return cls(key)


OUTCOME_ALIASES: Final[dict[str, Outcome]] = {
    "1": Outcome.HOME,
    "x": Outcome.DRAW,
    "2": Outcome.AWAY,
}

# Column order of a three-way market table
THREE_WAY_OUTCOMES: Final[tuple[Outcome, ...]] = (
    Outcome.HOME,
    Outcome.DRAW,
    Outcome.AWAY,
)
TWO_WAY_OUTCOMES: Final[tuple[Outcome, ...]] = (Outcome.HOME, Outcome.AWAY)


# =============================================================================
# ODDS BOUNDS
# =============================================================================
# Smallest price a bookmaker can quote; anything lower is not a real price
MIN_DECIMAL_ODDS: Final[float] = 1.01

# Decimal odds at which American odds switch from negative to positive
EVEN_MONEY_DECIMAL: Final[float] = 2.0

# Unsigned whole numbers at or above this are read as moneyline prices
MONEYLINE_GUESS_FLOOR: Final[float] = 100.0

# decimal -> fractional rounds the profit ratio to this many places
FRACTIONAL_PRECISION: Final[int] = 2
FRACTIONAL_MAX_DENOMINATOR: Final[int] = 10**FRACTIONAL_PRECISION

# Raw cell values that mean "no price available"
EMPTY_ODDS_MARKERS: Final[frozenset[str]] = frozenset(
    {"", "-", "--", "n/a", "na", "none", "null"}
)


# =============================================================================
# DROPPING ODDS
# =============================================================================
DROP_THRESHOLD_PRESETS: Final[tuple[float, ...]] = (20.0, 30.0, 50.0)


# =============================================================================
# BETSLIP
# =============================================================================
DEFAULT_STAKE: Final[str] = "10"
QUICK_STAKE_AMOUNTS: Final[tuple[str, ...]] = ("5", "10", "25", "50", "100")
