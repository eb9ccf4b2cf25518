"""
Exception hierarchy for the odds engine.

Math-level errors (bad odds, bad stakes) are ValueErrors so callers that
only care about "bad input" can catch them generically. Betslip errors
carry a machine-readable reason and the message shown to the user.
"""
from enum import Enum
from typing import Optional


class OddsEngineError(Exception):
    """Base exception for all odds engine errors."""


class InvalidOddsError(OddsEngineError, ValueError):
    """Odds are missing, non-numeric, non-finite or below the minimum."""

    def __init__(self, value: object, message: Optional[str] = None):
        super().__init__(message or f"Invalid odds: {value!r}")
        self.value = value


class InvalidStakeError(OddsEngineError, ValueError):
    """Stake is zero, negative or not a finite number."""

    def __init__(self, value: object, message: Optional[str] = None):
        super().__init__(message or f"Invalid stake: {value!r}")
        self.value = value


class SlipErrorReason(str, Enum):
    """Why a betslip cannot be confirmed."""

    INVALID_SLIP = "invalid_slip"
    DUPLICATE_EXISTING_BET = "duplicate_existing_bet"
    ZERO_STAKE = "zero_stake"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    EXTERNAL_FAILURE = "external_failure"


class BetSlipError(OddsEngineError):
    """Base class for betslip confirmation failures."""

    reason: SlipErrorReason

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidSlipError(BetSlipError):
    """Two or more selections share the same match."""

    reason = SlipErrorReason.INVALID_SLIP

    def __init__(self, match_ids: list[str]):
        super().__init__("Cannot place multiple bets on the same match")
        self.match_ids = match_ids


class DuplicateBetError(BetSlipError):
    """The user already holds a bet on the same match and outcome."""

    reason = SlipErrorReason.DUPLICATE_EXISTING_BET

    def __init__(self, keys: list[tuple[str, str]]):
        super().__init__("Bet Placed Already!")
        self.keys = keys


class ZeroStakeError(BetSlipError):
    """Total stake is not positive, or a selection has no usable stake."""

    reason = SlipErrorReason.ZERO_STAKE

    def __init__(self, keys: Optional[list[tuple[str, str]]] = None):
        super().__init__("Amount must be greater than 0")
        self.keys = keys or []


class InsufficientFundsError(BetSlipError):
    """Total stake exceeds the available funds."""

    reason = SlipErrorReason.INSUFFICIENT_FUNDS

    def __init__(self, required: float, available: float):
        super().__init__(
            f"Insufficient funds. Required: ${required:.2f}, "
            f"available: ${available:.2f}"
        )
        self.required = required
        self.available = available


class ExternalFailureError(BetSlipError):
    """Funds deduction or persistence failed after local validation passed."""

    reason = SlipErrorReason.EXTERNAL_FAILURE

    def __init__(
        self,
        message: str,
        original_error: Optional[Exception] = None,
        deducted_amount: float = 0.0,
    ):
        super().__init__(message)
        self.original_error = original_error
        # Non-zero when funds were taken before persistence failed
        self.deducted_amount = deducted_amount


class SlipStateError(OddsEngineError):
    """Operation not allowed in the betslip's current state."""
