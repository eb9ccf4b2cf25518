"""
Tests for calculator.py

Run with: pytest tests/test_calculator.py -v
"""

import pytest
from odds_engine.betting.calculator import (
    calculate_return,
    calculate_return_from_american,
    calculate_return_from_raw,
)
from odds_engine.exceptions import InvalidOddsError, InvalidStakeError


class TestCalculateReturn:
    """Test stake x decimal odds math."""

    def test_settlement_scenario(self):
        calc = calculate_return(10, 2.5)
        assert calc.total_return == pytest.approx(25.0)
        assert calc.profit == pytest.approx(15.0)
        assert calc.decimal_odds == 2.5

    def test_same_odds_same_profit_ratio(self):
        assert calculate_return(20, 2.5).profit == pytest.approx(2 * calculate_return(10, 2.5).profit)

    @pytest.mark.parametrize("stake", [0, -5, float("nan"), "ten"])
    def test_invalid_stake(self, stake):
        with pytest.raises(InvalidStakeError):
            calculate_return(stake, 2.0)

    @pytest.mark.parametrize("odds", [1.0, 0, float("inf"), None])
    def test_invalid_odds(self, odds):
        with pytest.raises(InvalidOddsError):
            calculate_return(10, odds)


class TestAmericanInput:
    """Test the moneyline overload."""

    def test_positive_moneyline(self):
        calc = calculate_return_from_american(10, 150)
        assert calc.decimal_odds == pytest.approx(2.5)
        assert calc.total_return == pytest.approx(25.0)

    def test_negative_moneyline(self):
        calc = calculate_return_from_american(10, -200)
        assert calc.decimal_odds == pytest.approx(1.5)
        assert calc.profit == pytest.approx(5.0)


class TestRawInput:
    """Test feed strings of unknown format."""

    def test_decimal_and_moneyline_strings(self):
        assert calculate_return_from_raw(10, "2.5").total_return == pytest.approx(25.0)
        assert calculate_return_from_raw(10, "+150").total_return == pytest.approx(25.0)

    def test_placeholder_is_invalid(self):
        with pytest.raises(InvalidOddsError):
            calculate_return_from_raw(10, "N/A")
