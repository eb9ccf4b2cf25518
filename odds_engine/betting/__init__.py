"""
Odds math and betslip logic.

Provides tools for:
- Odds conversion between decimal, moneyline and fractional formats
- Stake/return calculation for single wagers
- Dropping odds detection
- Sure bet stake distribution and cross-book scanning
- Betslip aggregation, validation and confirmation
"""

from .odds_converter import (
    FractionalOdds,
    OddsFormats,
    american_to_decimal,
    convert_all,
    convert_odds,
    decimal_to_american,
    decimal_to_fractional,
    decimal_to_implied_probability,
    format_american_odds,
    format_in_format,
    fractional_to_decimal,
    is_valid_decimal,
    to_decimal,
)

from .calculator import (
    BettingCalculation,
    calculate_return,
    calculate_return_from_american,
    calculate_return_from_raw,
)

from .movement import (
    DroppingOdds,
    DroppingOddsQuery,
    OddsMovementDetector,
    OddsSnapshot,
    Page,
    classify,
    compute_drop,
)

from .arbitrage import (
    ArbitrageOpportunity,
    ArbitrageScanner,
    BestLine,
    ScanResult,
    distribute_stakes,
)

from .betslip import (
    BetSlip,
    BetSlipManager,
    Confirmation,
    Selection,
    SettlementRecord,
    SlipState,
    is_duplicate_against_existing,
    parse_stake,
)

__all__ = [
    # Odds converter
    "FractionalOdds",
    "OddsFormats",
    "american_to_decimal",
    "convert_all",
    "convert_odds",
    "decimal_to_american",
    "decimal_to_fractional",
    "decimal_to_implied_probability",
    "format_american_odds",
    "format_in_format",
    "fractional_to_decimal",
    "is_valid_decimal",
    "to_decimal",
    # Calculator
    "BettingCalculation",
    "calculate_return",
    "calculate_return_from_american",
    "calculate_return_from_raw",
    # Movement
    "DroppingOdds",
    "DroppingOddsQuery",
    "OddsMovementDetector",
    "OddsSnapshot",
    "Page",
    "classify",
    "compute_drop",
    # Arbitrage
    "ArbitrageOpportunity",
    "ArbitrageScanner",
    "BestLine",
    "ScanResult",
    "distribute_stakes",
    # Betslip
    "BetSlip",
    "BetSlipManager",
    "Confirmation",
    "Selection",
    "SettlementRecord",
    "SlipState",
    "is_duplicate_against_existing",
    "parse_stake",
]
