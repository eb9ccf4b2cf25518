"""
Odds conversion and formatting utilities.

Decimal odds are the canonical representation: every other format is
converted to decimal on the way in and rendered from decimal on the way
out. Strict converters raise InvalidOddsError; the parsing and display
helpers (to_decimal, format_in_format) never raise and report bad input
with the None / "" sentinels instead.
"""
import math
from fractions import Fraction
from typing import NamedTuple, Optional, Union

from odds_engine.config.constants import (
    EMPTY_ODDS_MARKERS,
    EVEN_MONEY_DECIMAL,
    FRACTIONAL_MAX_DENOMINATOR,
    FRACTIONAL_PRECISION,
    MIN_DECIMAL_ODDS,
    MONEYLINE_GUESS_FLOOR,
    OddsFormat,
)
from odds_engine.config.settings import get_settings
from odds_engine.exceptions import InvalidOddsError

RawOdds = Union[str, int, float, None]


class FractionalOdds(NamedTuple):
    """Fractional odds as a reduced profit/stake ratio."""

    numerator: int
    denominator: int

    def __str__(self) -> str:
        return f"{self.numerator}/{self.denominator}"


class OddsFormats(NamedTuple):
    """Container for one price in every supported format."""

    decimal: float
    american: float
    fractional: FractionalOdds
    implied_probability: float


def is_valid_decimal(decimal_odds: Optional[float]) -> bool:
    """True when decimal_odds is a finite price of at least MIN_DECIMAL_ODDS."""
    if decimal_odds is None or isinstance(decimal_odds, bool):
        return False
    try:
        value = float(decimal_odds)
    except (TypeError, ValueError):
        return False
    return math.isfinite(value) and value >= MIN_DECIMAL_ODDS


def validate_decimal(decimal_odds: float) -> float:
    """Return decimal_odds as float, raising InvalidOddsError if out of domain."""
    if not is_valid_decimal(decimal_odds):
        raise InvalidOddsError(decimal_odds)
    return float(decimal_odds)


def decimal_to_american(decimal_odds: float) -> float:
    """
    Convert decimal odds to American odds.

    The result is not rounded so that converting back is lossless;
    use format_american_odds for display.

    Args:
        decimal_odds: Decimal odds (>= 1.01)

    Returns:
        American odds (positive for d >= 2.0, negative otherwise)

    Examples:
        >>> decimal_to_american(2.5)
        150.0
        >>> decimal_to_american(1.5)
        -200.0
    """
    d = validate_decimal(decimal_odds)
    if d >= EVEN_MONEY_DECIMAL:
        return (d - 1) * 100
    return -100 / (d - 1)


def american_to_decimal(american: float) -> float:
    """
    Convert American odds to decimal odds.

    Args:
        american: American odds (e.g., -110, +150)

    Returns:
        Decimal odds (e.g., 1.909, 2.5)

    Raises:
        InvalidOddsError: If american is zero or not a finite number

    Examples:
        >>> american_to_decimal(150)
        2.5
        >>> american_to_decimal(-200)
        1.5
    """
    try:
        a = float(american)
    except (TypeError, ValueError) as e:
        raise InvalidOddsError(american) from e
    if not math.isfinite(a) or a == 0:
        raise InvalidOddsError(american)

    if a > 0:
        return a / 100 + 1
    return 100 / abs(a) + 1


def decimal_to_fractional(decimal_odds: float) -> FractionalOdds:
    """
    Convert decimal odds to fractional odds.

    This is an approximation, not a rational reconstruction: the profit
    ratio (d - 1) is rounded to FRACTIONAL_PRECISION decimal places and
    the resulting n/100 is reduced by its GCD, so the denominator is
    never larger than FRACTIONAL_MAX_DENOMINATOR.

    Examples:
        >>> str(decimal_to_fractional(2.5))
        '3/2'
        >>> str(decimal_to_fractional(1.91))
        '91/100'
    """
    d = validate_decimal(decimal_odds)
    hundredths = round((d - 1) * FRACTIONAL_MAX_DENOMINATOR)
    ratio = Fraction(hundredths, FRACTIONAL_MAX_DENOMINATOR)
    return FractionalOdds(ratio.numerator, ratio.denominator)


def fractional_to_decimal(numerator: float, denominator: float) -> float:
    """
    Convert fractional odds to decimal odds.

    Examples:
        >>> fractional_to_decimal(3, 2)
        2.5
    """
    try:
        num = float(numerator)
        den = float(denominator)
    except (TypeError, ValueError) as e:
        raise InvalidOddsError(f"{numerator}/{denominator}") from e
    if den == 0 or not math.isfinite(num) or not math.isfinite(den):
        raise InvalidOddsError(f"{numerator}/{denominator}")
    return 1 + num / den


def decimal_to_implied_probability(decimal_odds: float) -> float:
    """
    Convert decimal odds to implied probability.

    Examples:
        >>> decimal_to_implied_probability(2.0)
        0.5
    """
    return 1 / validate_decimal(decimal_odds)


def convert_all(decimal_odds: float) -> OddsFormats:
    """Convert a decimal price to all formats."""
    d = validate_decimal(decimal_odds)
    return OddsFormats(
        decimal=d,
        american=decimal_to_american(d),
        fractional=decimal_to_fractional(d),
        implied_probability=decimal_to_implied_probability(d),
    )


def convert_odds(
    value: float,
    from_format: OddsFormat,
    to_format: OddsFormat,
) -> Union[float, FractionalOdds]:
    """
    Convert a numeric price between formats via decimal.

    Fractional input is taken as the profit ratio (numerator/denominator
    already divided out); fractional output is a FractionalOdds.

    Examples:
        >>> convert_odds(150, OddsFormat.MONEYLINE, OddsFormat.DECIMAL)
        2.5
    """
    from_format = OddsFormat(from_format)
    to_format = OddsFormat(to_format)

    if from_format == OddsFormat.MONEYLINE:
        decimal_odds = american_to_decimal(value)
    elif from_format == OddsFormat.FRACTIONAL:
        decimal_odds = fractional_to_decimal(value, 1)
    else:
        decimal_odds = float(value)
    decimal_odds = validate_decimal(decimal_odds)

    if to_format == OddsFormat.MONEYLINE:
        return decimal_to_american(decimal_odds)
    if to_format == OddsFormat.FRACTIONAL:
        return decimal_to_fractional(decimal_odds)
    return decimal_odds


def _is_empty_marker(raw: RawOdds) -> bool:
    if raw is None:
        return True
    if isinstance(raw, str):
        return raw.strip().lower() in EMPTY_ODDS_MARKERS
    return False


def _guess_format(text: str) -> OddsFormat:
    """Guess the format of a non-empty odds string."""
    if "/" in text:
        return OddsFormat.FRACTIONAL
    if text.startswith(("+", "-")):
        return OddsFormat.MONEYLINE
    if "." in text:
        return OddsFormat.DECIMAL
    try:
        magnitude = float(text)
    except ValueError:
        return OddsFormat.DECIMAL
    if magnitude >= MONEYLINE_GUESS_FLOOR:
        return OddsFormat.MONEYLINE
    return OddsFormat.DECIMAL


def _parse(raw: RawOdds, source_format: Optional[OddsFormat]) -> float:
    if isinstance(raw, bool):
        raise InvalidOddsError(raw)

    if isinstance(raw, (int, float)):
        if source_format is None:
            source_format = OddsFormat.MONEYLINE if raw < 0 else OddsFormat.DECIMAL
        if source_format == OddsFormat.MONEYLINE:
            return american_to_decimal(raw)
        if source_format == OddsFormat.FRACTIONAL:
            return fractional_to_decimal(raw, 1)
        return float(raw)

    text = str(raw).strip()
    fmt = OddsFormat(source_format) if source_format else _guess_format(text)

    try:
        if fmt == OddsFormat.FRACTIONAL:
            if "/" in text:
                num, _, den = text.partition("/")
                return fractional_to_decimal(float(num), float(den))
            return fractional_to_decimal(float(text), 1)
        if fmt == OddsFormat.MONEYLINE:
            return american_to_decimal(float(text))
        return float(text)
    except ValueError as e:
        raise InvalidOddsError(raw) from e


def to_decimal(
    raw: RawOdds,
    source_format: Optional[OddsFormat] = None,
) -> Optional[float]:
    """
    Parse a raw odds value of unknown format into canonical decimal odds.

    Without a source_format the format is guessed: "a/b" is fractional,
    a leading sign is moneyline, a decimal point is decimal, and a bare
    whole number of 100 or more is moneyline. Numbers passed as int/float
    are decimal unless negative.

    Args:
        raw: String or number from a bookmaker feed
        source_format: Known format of raw, if any

    Returns:
        Decimal odds, or None if raw is empty, a placeholder ("-", "N/A",
        "0"), unparseable, or below MIN_DECIMAL_ODDS

    Examples:
        >>> to_decimal("+150")
        2.5
        >>> to_decimal("N/A") is None
        True
    """
    if _is_empty_marker(raw):
        return None
    try:
        decimal_odds = _parse(raw, source_format)
    except (InvalidOddsError, ValueError):
        return None
    return decimal_odds if is_valid_decimal(decimal_odds) else None


def format_american_odds(odds: float) -> str:
    """
    Format American odds with proper sign.

    Examples:
        >>> format_american_odds(-110)
        '-110'
        >>> format_american_odds(150)
        '+150'
    """
    rounded = int(round(odds))
    if rounded > 0:
        return f"+{rounded}"
    return str(rounded)


def format_in_format(
    value: RawOdds,
    target_format: Optional[OddsFormat] = None,
    source_format: Optional[OddsFormat] = None,
) -> str:
    """
    Render a price for display in the target format.

    value may be canonical decimal odds or a raw feed value. Any invalid
    input renders as "" (never "-" or "1.0"); callers use the empty
    string to disable the corresponding odds button. Without a
    target_format the configured default display format is used.

    Examples:
        >>> format_in_format(2.5, OddsFormat.MONEYLINE)
        '+150'
        >>> format_in_format("0", OddsFormat.DECIMAL)
        ''
    """
    if isinstance(value, str) or source_format is not None:
        decimal_odds = to_decimal(value, source_format)
    elif is_valid_decimal(value):
        decimal_odds = float(value)
    else:
        decimal_odds = None

    if decimal_odds is None:
        return ""

    if target_format is None:
        target_format = get_settings().odds.default_format
    target_format = OddsFormat(target_format)
    if target_format == OddsFormat.MONEYLINE:
        return format_american_odds(decimal_to_american(decimal_odds))
    if target_format == OddsFormat.FRACTIONAL:
        return str(decimal_to_fractional(decimal_odds))
    return f"{decimal_odds:.2f}"
