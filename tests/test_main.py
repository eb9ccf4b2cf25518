"""
Tests for the command line entry point

Run with: pytest tests/test_main.py -v
"""

import pytest
from odds_engine.main import build_parser, main


class TestConvert:
    def test_all_formats(self, capsys):
        assert main(["convert", "+150"]) == 0
        out = capsys.readouterr().out
        assert "2.50" in out
        assert "3/2" in out
        assert "40.0%" in out

    def test_single_format(self, capsys):
        assert main(["convert", "2.5", "--to", "fractional"]) == 0
        out = capsys.readouterr().out
        assert "3/2" in out
        assert "moneyline" not in out

    def test_invalid_odds(self, capsys):
        assert main(["convert", "abc"]) == 1
        assert "Invalid odds" in capsys.readouterr().out


class TestArb:
    def test_no_sure_bet(self, capsys):
        assert main(["arb", "2.1", "3.4", "4.0", "--stake", "100"]) == 0
        assert "No sure bet" in capsys.readouterr().out

    def test_sure_bet(self, capsys):
        assert main(["arb", "2.2", "3.8", "4.5"]) == 0
        out = capsys.readouterr().out
        assert "Sure bet" in out
        assert "Total stake 100.00" in out

    def test_bad_stake_is_reported(self, capsys):
        assert main(["arb", "2.2", "3.8", "--stake", "0"]) == 1
        assert "Invalid stake" in capsys.readouterr().out

    def test_invalid_odds(self):
        assert main(["arb", "2.2", "-"]) == 1


class TestDrop:
    def test_dropping(self, capsys):
        assert main(["drop", "2.5", "2.0", "--threshold", "20"]) == 0
        out = capsys.readouterr().out
        assert "20.00%" in out
        assert "DROPPING" in out

    def test_below_threshold(self, capsys):
        assert main(["drop", "2.5", "2.0", "--threshold", "30"]) == 0
        assert "not dropping" in capsys.readouterr().out

    def test_zero_previous(self):
        assert main(["drop", "0", "2.0"]) == 1


def test_command_required():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])
