"""
Sure bet (arbitrage) stake distribution and cross-book scanning.

Identifies guaranteed return opportunities by combining the best odds
for every outcome of a market across different bookmakers.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

from loguru import logger

from odds_engine.config.constants import THREE_WAY_OUTCOMES, Outcome
from odds_engine.config.settings import get_settings
from odds_engine.exceptions import InvalidOddsError

from .calculator import validate_stake
from .odds_converter import to_decimal, validate_decimal


@dataclass
class ArbitrageOpportunity:
    """
    Stake split across n mutually exclusive outcomes.

    stake_per_outcome[i] * odds_per_outcome[i] equals guaranteed_return
    for every i, up to floating point rounding.
    """

    odds_per_outcome: list[float]
    stake_per_outcome: list[float]
    total_stake: float
    guaranteed_return: float
    profit_percent: float

    # Context (None for bare distributions)
    match_id: Optional[str] = None
    description: str = ""
    outcomes: list[Outcome] = field(default_factory=list)
    bookmakers: list[str] = field(default_factory=list)
    detected_at: datetime = field(default_factory=datetime.now)

    @property
    def inverse_probability_sum(self) -> float:
        """Sum of implied probabilities (< 1 means a sure bet)."""
        return sum(1 / o for o in self.odds_per_outcome)

    @property
    def is_sure_bet(self) -> bool:
        return self.inverse_probability_sum < 1

    @property
    def guaranteed_profit(self) -> float:
        return self.guaranteed_return - self.total_stake

    def scale_stakes(self, target_total: float) -> "ArbitrageOpportunity":
        """
        Redistribute a different total stake over the same odds.

        Args:
            target_total: Desired total stake

        Returns:
            New ArbitrageOpportunity with the same context
        """
        scaled = distribute_stakes(self.odds_per_outcome, target_total)
        scaled.match_id = self.match_id
        scaled.description = self.description
        scaled.outcomes = list(self.outcomes)
        scaled.bookmakers = list(self.bookmakers)
        return scaled

    def to_dict(self) -> dict:
        """Record with the same field set remote sure bet rows use."""
        return {
            "odds_per_outcome": list(self.odds_per_outcome),
            "stake_per_outcome": list(self.stake_per_outcome),
            "total_stake": self.total_stake,
            "guaranteed_return": self.guaranteed_return,
            "profit_percent": self.profit_percent,
        }

    @classmethod
    def from_record(cls, data: Mapping[str, Any]) -> "ArbitrageOpportunity":
        """
        Build from a pre-computed row (e.g. served by a remote API).

        Raises:
            InvalidOddsError: If any odds value is invalid
            KeyError: If a required field is missing
        """
        odds = [validate_decimal(o) for o in data["odds_per_outcome"]]
        stakes = [float(s) for s in data["stake_per_outcome"]]
        if len(odds) != len(stakes):
            raise ValueError("odds_per_outcome and stake_per_outcome differ in length")
        return cls(
            odds_per_outcome=odds,
            stake_per_outcome=stakes,
            total_stake=float(data["total_stake"]),
            guaranteed_return=float(data["guaranteed_return"]),
            profit_percent=float(data["profit_percent"]),
        )


def distribute_stakes(odds: Sequence[float], total_stake: float) -> ArbitrageOpportunity:
    """
    Split total_stake so every outcome returns the same amount.

    inv = sum(1 / o_i)
    stake_i = T * (1 / o_i) / inv
    guaranteed_return = T / inv
    profit_percent = (1 / inv - 1) * 100

    Works for any number of outcomes; values are returned even when
    inv >= 1, callers check is_sure_bet before labelling it one.

    Raises:
        InvalidOddsError: If fewer than two outcomes or any odds < 1.01
        InvalidStakeError: If total_stake <= 0

    Examples:
        >>> arb = distribute_stakes([2.1, 3.4, 4.0], 100)
        >>> round(arb.stake_per_outcome[0] * 2.1, 6) == round(arb.guaranteed_return, 6)
        True
    """
    if len(odds) < 2:
        raise InvalidOddsError(list(odds), "At least two outcomes are required")
    validated = [validate_decimal(o) for o in odds]
    total_stake = validate_stake(total_stake)

    inverses = [1 / o for o in validated]
    inv_sum = sum(inverses)

    return ArbitrageOpportunity(
        odds_per_outcome=validated,
        stake_per_outcome=[total_stake * inv / inv_sum for inv in inverses],
        total_stake=total_stake,
        guaranteed_return=total_stake / inv_sum,
        profit_percent=(1 / inv_sum - 1) * 100,
    )


@dataclass
class BestLine:
    """Best available price for one outcome from any bookmaker."""

    outcome: Outcome
    bookmaker: str
    odds: float


@dataclass
class ScanResult:
    """Results from scanning for sure bets."""

    opportunities: list[ArbitrageOpportunity] = field(default_factory=list)
    best_lines: dict[str, dict[Outcome, BestLine]] = field(
        default_factory=dict
    )  # match_id -> outcome -> best_line
    scanned_matches: int = 0
    scanned_books: int = 0
    scan_time: datetime = field(default_factory=datetime.now)

    @property
    def has_opportunities(self) -> bool:
        return len(self.opportunities) > 0

    def get_top_opportunities(self, n: int = 5) -> list[ArbitrageOpportunity]:
        """Get top N opportunities sorted by profit percentage."""
        return sorted(
            self.opportunities, key=lambda x: x.profit_percent, reverse=True
        )[:n]


class ArbitrageScanner:
    """
    Scanner for cross-book sure bets.

    For each match the best price per outcome is taken from any
    bookmaker; if the implied probabilities of those prices sum to
    less than 100% a stake split with a guaranteed return exists.

    Example:
        Book A: Home @ 2.10   Book B: Draw @ 3.60   Book C: Away @ 4.20
        1/2.10 + 1/3.60 + 1/4.20 = 0.992 < 1  ->  ~0.8% guaranteed profit

    Usage:
        >>> scanner = ArbitrageScanner()
        >>> result = scanner.scan(markets_by_book)
        >>> for arb in result.opportunities:
        ...     print(f"{arb.profit_percent:.2f}% on {arb.description}")
    """

    def __init__(
        self,
        min_profit_pct: Optional[float] = None,
        total_stake: Optional[float] = None,
        outcomes: Sequence[Outcome] = THREE_WAY_OUTCOMES,
        excluded_bookmakers: Optional[Sequence[str]] = None,
    ):
        """
        Initialize the arbitrage scanner.

        Args:
            min_profit_pct: Minimum profit percentage to report
            total_stake: Total stake distributed per opportunity
            outcomes: Outcomes making up the market (1X2 or two-way)
            excluded_bookmakers: Bookmakers to ignore
        """
        settings = get_settings().arbitrage
        self.min_profit_pct = (
            settings.min_profit_percent if min_profit_pct is None else min_profit_pct
        )
        self.total_stake = validate_stake(
            settings.default_stake if total_stake is None else total_stake
        )
        self.outcomes = tuple(Outcome.parse(o) for o in outcomes)
        self.excluded_bookmakers = set(
            settings.excluded_bookmakers if excluded_bookmakers is None else excluded_bookmakers
        )
        self.logger = logger.bind(component="arbitrage_scanner")

    def find_best_lines(
        self,
        markets_by_book: Mapping[str, Sequence[Mapping[str, Any]]],
    ) -> tuple[dict[str, dict[Outcome, BestLine]], dict[str, dict]]:
        """
        Pick the highest valid price per outcome for every match.

        Args:
            markets_by_book: Bookmaker name -> list of market dicts, each with
                match_id, optional home_team / away_team, and one raw price
                per outcome keyed by outcome name ("home", "draw", "away")

        Returns:
            Tuple of (match_id -> outcome -> BestLine, match_id -> meta)
        """
        best_lines: dict[str, dict[Outcome, BestLine]] = {}
        meta: dict[str, dict] = {}

        for book, markets in markets_by_book.items():
            if book in self.excluded_bookmakers:
                continue
            for market in markets:
                match_id = str(market["match_id"])
                lines = best_lines.setdefault(match_id, {})
                meta.setdefault(
                    match_id,
                    {
                        "home_team": market.get("home_team", ""),
                        "away_team": market.get("away_team", ""),
                    },
                )
                for outcome in self.outcomes:
                    price = to_decimal(market.get(outcome.value))
                    if price is None:
                        continue
                    current = lines.get(outcome)
                    if current is None or price > current.odds:
                        lines[outcome] = BestLine(outcome=outcome, bookmaker=book, odds=price)

        return best_lines, meta

    def scan(
        self,
        markets_by_book: Mapping[str, Sequence[Mapping[str, Any]]],
    ) -> ScanResult:
        """
        Scan all matches for sure bets.

        Matches missing a valid price for any outcome are skipped.

        Returns:
            ScanResult with opportunities sorted by profit percentage
        """
        best_lines, meta = self.find_best_lines(markets_by_book)
        opportunities: list[ArbitrageOpportunity] = []

        for match_id, lines in best_lines.items():
            if any(outcome not in lines for outcome in self.outcomes):
                continue

            chosen = [lines[outcome] for outcome in self.outcomes]
            arb = distribute_stakes([line.odds for line in chosen], self.total_stake)
            if not arb.is_sure_bet or arb.profit_percent < self.min_profit_pct:
                continue

            home = meta[match_id].get("home_team") or "Home"
            away = meta[match_id].get("away_team") or "Away"
            arb.match_id = match_id
            arb.description = f"{home} vs {away}"
            arb.outcomes = list(self.outcomes)
            arb.bookmakers = [line.bookmaker for line in chosen]
            opportunities.append(arb)

        if opportunities:
            self.logger.info(
                f"Found {len(opportunities)} sure bets across {len(best_lines)} matches"
            )

        return ScanResult(
            opportunities=sorted(opportunities, key=lambda x: x.profit_percent, reverse=True),
            best_lines=best_lines,
            scanned_matches=len(best_lines),
            scanned_books=len(markets_by_book),
        )
