"""
Betslip state and confirmation.

A BetSlip is an immutable value; add/remove/stake edits return a new
slip. BetSlipManager owns the current slip for one session and drives
the confirmation flow against external funds and persistence calls.

Two return figures exist and are never reconciled:
- aggregate_preview_return(): total pooled stake x product of all odds,
  the "potential win" shown before confirming.
- per-selection settlements: stake_i x odds_i, used when confirming.
"""
import asyncio
import math
from collections import Counter
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable, Optional

from loguru import logger

from odds_engine.config.constants import Outcome
from odds_engine.config.settings import get_settings
from odds_engine.exceptions import (
    BetSlipError,
    DuplicateBetError,
    ExternalFailureError,
    InsufficientFundsError,
    InvalidSlipError,
    InvalidStakeError,
    SlipStateError,
    ZeroStakeError,
)

from .calculator import BettingCalculation, calculate_return
from .odds_converter import validate_decimal

SelectionKey = tuple[str, Outcome]


def parse_stake(stake: Optional[str]) -> float:
    """
    Parse a free-text stake; anything non-numeric counts as 0.

    Examples:
        >>> parse_stake("12.5")
        12.5
        >>> parse_stake("abc")
        0.0
    """
    if stake is None:
        return 0.0
    try:
        value = float(str(stake).strip())
    except ValueError:
        return 0.0
    return value if math.isfinite(value) else 0.0


@dataclass(frozen=True)
class Selection:
    """One outcome of one match chosen for wagering."""

    match_id: str
    outcome: Outcome
    odds_decimal: float
    stake: str = field(default_factory=lambda: get_settings().betslip.default_stake)
    teams: str = ""
    league: str = ""

    # Display and audit context
    raw_odds: Optional[str] = None
    match_date: Optional[datetime] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "match_id", str(self.match_id))
        object.__setattr__(self, "outcome", Outcome.parse(self.outcome))
        object.__setattr__(self, "odds_decimal", validate_decimal(self.odds_decimal))

    @property
    def key(self) -> SelectionKey:
        return (self.match_id, self.outcome)

    @property
    def stake_amount(self) -> float:
        return parse_stake(self.stake)

    @property
    def selected_team(self) -> Optional[str]:
        """Team backed by this selection, from a "Home vs Away" label."""
        if self.outcome == Outcome.DRAW or " vs " not in self.teams:
            return None
        home, _, away = self.teams.partition(" vs ")
        return home if self.outcome == Outcome.HOME else away


@dataclass(frozen=True)
class BetSlip:
    """Ordered selections, unique by (match_id, outcome)."""

    selections: tuple[Selection, ...] = ()

    def __len__(self) -> int:
        return len(self.selections)

    def __iter__(self):
        return iter(self.selections)

    @property
    def is_empty(self) -> bool:
        return not self.selections

    # ------------------------------------------------------------------
    # Reducers
    # ------------------------------------------------------------------
    def add_or_toggle(self, selection: Selection) -> "BetSlip":
        """Add selection, or remove it if the same match+outcome is present."""
        if self.is_selected(selection.match_id, selection.outcome):
            return self.remove_selection(selection.match_id, selection.outcome)
        return BetSlip(self.selections + (selection,))

    def remove_selection(self, match_id: str, outcome: Outcome) -> "BetSlip":
        """Remove a selection; returns the same slip if it is absent."""
        key = (str(match_id), Outcome.parse(outcome))
        if not self.is_selected(*key):
            return self
        return BetSlip(tuple(s for s in self.selections if s.key != key))

    def set_stake(self, match_id: str, outcome: Outcome, stake: str) -> "BetSlip":
        """Replace the stake text of one selection. Not validated here."""
        key = (str(match_id), Outcome.parse(outcome))
        return BetSlip(
            tuple(replace(s, stake=stake) if s.key == key else s for s in self.selections)
        )

    def set_all_stakes(self, stake: str) -> "BetSlip":
        """Apply one stake to every selection (quick-stake buttons)."""
        return BetSlip(tuple(replace(s, stake=stake) for s in self.selections))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def is_selected(self, match_id: str, outcome: Outcome) -> bool:
        key = (str(match_id), Outcome.parse(outcome))
        return any(s.key == key for s in self.selections)

    def invalid_match_ids(self) -> list[str]:
        """Match ids that appear in more than one selection."""
        counts = Counter(s.match_id for s in self.selections)
        return [match_id for match_id, n in counts.items() if n > 1]

    def is_valid(self) -> bool:
        """True iff no match appears in more than one selection."""
        return not self.invalid_match_ids()

    def total_stake(self) -> float:
        return sum(s.stake_amount for s in self.selections)

    def combined_odds(self) -> float:
        """Product of all selections' decimal odds (1.0 for an empty slip)."""
        return math.prod(s.odds_decimal for s in self.selections)

    def aggregate_preview_return(self) -> float:
        """
        Pooled preview: total stake x product of every selection's odds.

        This is not the sum of per-selection returns and is not meant to
        match settlement.
        """
        return self.total_stake() * self.combined_odds()


def is_duplicate_against_existing(
    existing_outcome_keys: Iterable[tuple[str, Any]],
    selection: Selection,
) -> bool:
    """
    True if the user already holds a bet on this match and outcome.

    Keys from other markets (e.g. "over_2.5") cannot collide with a 1X2
    selection and are ignored.
    """
    for match_id, outcome in existing_outcome_keys:
        if str(match_id) != selection.match_id:
            continue
        try:
            if Outcome.parse(outcome) == selection.outcome:
                return True
        except ValueError:
            continue
    return False


class SlipState(str, Enum):
    """Lifecycle of a betslip."""

    EMPTY = "empty"
    VALID = "valid"
    INVALID = "invalid"
    CONFIRMING = "confirming"
    SETTLED = "settled"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class SettlementRecord:
    """Per-selection record produced by a confirmed slip."""

    match_id: str
    outcome: Outcome
    teams: str
    league: str
    stake: float
    potential_return: float
    profit: float
    decimal_odds_used: float
    raw_odds: Optional[str] = None
    selected_team: Optional[str] = None
    match_date: Optional[datetime] = None

    @classmethod
    def from_calculation(
        cls, selection: Selection, calculation: BettingCalculation
    ) -> "SettlementRecord":
        return cls(
            match_id=selection.match_id,
            outcome=selection.outcome,
            teams=selection.teams,
            league=selection.league,
            stake=calculation.stake,
            potential_return=calculation.total_return,
            profit=calculation.profit,
            decimal_odds_used=calculation.decimal_odds,
            raw_odds=selection.raw_odds,
            selected_team=selection.selected_team,
            match_date=selection.match_date,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "match_id": self.match_id,
            "outcome": self.outcome.value,
            "teams": self.teams,
            "league": self.league,
            "stake": self.stake,
            "potential_return": self.potential_return,
            "profit": self.profit,
            "decimal_odds_used": self.decimal_odds_used,
            "raw_odds": self.raw_odds,
            "selected_team": self.selected_team,
            "match_date": self.match_date.isoformat() if self.match_date else None,
        }


@dataclass(frozen=True)
class Confirmation:
    """Result of a successful confirmation."""

    settlements: list[SettlementRecord]
    total_deducted: float
    confirmed_at: datetime = field(default_factory=datetime.now)

    @property
    def total_potential_return(self) -> float:
        return sum(s.potential_return for s in self.settlements)


DeductFunds = Callable[[float], Awaitable[Any]]
PersistSettlement = Callable[[SettlementRecord], Awaitable[Any]]


class BetSlipManager:
    """
    Owns one session's betslip and its confirmation lifecycle.

    Single writer: edits are not locked, but confirm() rejects a second
    call while the first is still awaiting funds or persistence.

    Usage:
        manager = BetSlipManager()
        manager.add_or_toggle(Selection("m1", Outcome.HOME, 2.0, stake="10"))
        manager.state  # SlipState.VALID
        confirmation = await manager.confirm(balance, placed_keys, wallet.deduct)
    """

    def __init__(self, slip: Optional[BetSlip] = None):
        self._slip = slip or BetSlip()
        self._phase: Optional[SlipState] = None  # CONFIRMING / SETTLED / CANCELLED
        self._confirm_in_flight = False
        self.logger = logger.bind(component="betslip")

    @property
    def slip(self) -> BetSlip:
        return self._slip

    @property
    def state(self) -> SlipState:
        if self._phase is not None:
            return self._phase
        if self._slip.is_empty:
            return SlipState.EMPTY
        return SlipState.VALID if self._slip.is_valid() else SlipState.INVALID

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def _apply(self, slip: BetSlip) -> None:
        if self._phase == SlipState.CONFIRMING:
            raise SlipStateError("Betslip cannot be edited while a confirmation is in progress")
        self._phase = None
        self._slip = slip

    def add_or_toggle(self, selection: Selection) -> None:
        self._apply(self._slip.add_or_toggle(selection))

    def remove_selection(self, match_id: str, outcome: Outcome) -> None:
        self._apply(self._slip.remove_selection(match_id, outcome))

    def set_stake(self, match_id: str, outcome: Outcome, stake: str) -> None:
        self._apply(self._slip.set_stake(match_id, outcome, stake))

    def set_all_stakes(self, stake: str) -> None:
        self._apply(self._slip.set_all_stakes(stake))

    @property
    def quick_stake_amounts(self) -> list[str]:
        return list(get_settings().betslip.quick_stake_amounts)

    def apply_quick_stake(self, amount: str) -> None:
        """
        Set every selection's stake to one of the quick-stake amounts.

        Raises:
            InvalidStakeError: If amount is not an offered quick stake
        """
        if amount not in self.quick_stake_amounts:
            raise InvalidStakeError(amount, f"Not a quick stake amount: {amount!r}")
        self.set_all_stakes(amount)

    def clear(self) -> None:
        self._apply(BetSlip())

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def is_valid(self) -> bool:
        return self._slip.is_valid()

    def compute_total_stake(self) -> float:
        return self._slip.total_stake()

    def compute_aggregate_preview_return(self) -> float:
        return self._slip.aggregate_preview_return()

    def validate(
        self,
        available_funds: float,
        existing_outcome_keys: Iterable[tuple[str, Any]] = (),
    ) -> Optional[BetSlipError]:
        """
        Check confirmation preconditions.

        Returns:
            The first failing precondition as a BetSlipError, or None
        """
        slip = self._slip

        invalid = slip.invalid_match_ids()
        if invalid:
            return InvalidSlipError(invalid)

        existing = list(existing_outcome_keys)
        duplicates = [s.key for s in slip if is_duplicate_against_existing(existing, s)]
        if duplicates:
            return DuplicateBetError(duplicates)

        total = slip.total_stake()
        unstaked = [s.key for s in slip if s.stake_amount <= 0]
        if total <= 0 or unstaked:
            return ZeroStakeError(unstaked)

        if total > available_funds:
            return InsufficientFundsError(total, available_funds)

        return None

    # ------------------------------------------------------------------
    # Confirmation
    # ------------------------------------------------------------------
    def begin_confirmation(
        self,
        available_funds: float,
        existing_outcome_keys: Iterable[tuple[str, Any]] = (),
    ) -> None:
        """
        Validate and enter CONFIRMING (the "review your bet" step).

        Raises:
            BetSlipError: If a precondition fails; state is unchanged
        """
        if self._phase == SlipState.CONFIRMING:
            raise SlipStateError("Confirmation already in progress")
        error = self.validate(available_funds, existing_outcome_keys)
        if error is not None:
            raise error
        self._phase = SlipState.CONFIRMING

    def cancel(self) -> None:
        """Leave CONFIRMING without placing anything; the slip is kept."""
        if self._confirm_in_flight:
            raise SlipStateError("Cannot cancel while the bets are being placed")
        if self._phase != SlipState.CONFIRMING:
            raise SlipStateError(f"Nothing to cancel in state {self.state.value}")
        self._phase = SlipState.CANCELLED

    def settle_preview(self) -> list[SettlementRecord]:
        """Per-selection settlement records for the current slip."""
        records = []
        for selection in self._slip:
            try:
                calculation = calculate_return(selection.stake_amount, selection.odds_decimal)
            except InvalidStakeError as e:
                raise ZeroStakeError([selection.key]) from e
            records.append(SettlementRecord.from_calculation(selection, calculation))
        return records

    async def confirm(
        self,
        available_funds: float,
        existing_outcome_keys: Iterable[tuple[str, Any]],
        deduct_funds: DeductFunds,
        persist: Optional[PersistSettlement] = None,
    ) -> Confirmation:
        """
        Place every selection as an individual bet.

        Preconditions are re-checked, then deduct_funds(total) is awaited,
        then persist(record) for each settlement. If either external call
        fails nothing is emitted and the slip and state are left exactly as
        they were; ExternalFailureError.deducted_amount reports funds already
        taken when only persistence failed.

        Args:
            available_funds: User's current balance
            existing_outcome_keys: (match_id, outcome) of bets already placed
            deduct_funds: Async call charging the total stake
            persist: Optional async call storing one settlement record

        Returns:
            Confirmation with one SettlementRecord per selection

        Raises:
            BetSlipError: Validation failure or ExternalFailureError
            SlipStateError: If another confirm() is still in progress
        """
        if self._confirm_in_flight:
            raise SlipStateError("Confirmation already in progress")

        previous_phase = self._phase
        error = self.validate(available_funds, existing_outcome_keys)
        if error is not None:
            self.logger.info(f"Confirmation blocked: {error.reason.value}")
            raise error

        slip = self._slip
        settlements = self.settle_preview()
        total = slip.total_stake()
        self._phase = SlipState.CONFIRMING
        self._confirm_in_flight = True
        deducted = 0.0

        try:
            await deduct_funds(total)
            deducted = total
            if persist is not None:
                for record in settlements:
                    await persist(record)
        except asyncio.CancelledError:
            self._phase = previous_phase
            self._slip = slip
            raise
        except Exception as e:
            self._phase = previous_phase
            self._slip = slip
            self.logger.error(
                f"Confirmation failed after validation (deducted ${deducted:.2f}): {e}"
            )
            raise ExternalFailureError(
                str(e), original_error=e, deducted_amount=deducted
            ) from e
        finally:
            self._confirm_in_flight = False

        self._slip = BetSlip()
        self._phase = SlipState.SETTLED
        self.logger.info(
            f"Confirmed {len(settlements)} selections, deducted ${total:.2f}"
        )
        return Confirmation(settlements=settlements, total_deducted=total)
