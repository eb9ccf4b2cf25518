"""
Tests for movement.py (dropping odds)

Run with: pytest tests/test_movement.py -v
"""

from datetime import datetime

import polars as pl
import pytest
from pydantic import ValidationError

from odds_engine.betting.movement import (
    DroppingOddsQuery,
    OddsMovementDetector,
    OddsSnapshot,
    classify,
    compute_drop,
    paginate,
)
from odds_engine.config.constants import Outcome


class TestComputeDrop:
    """Test the percentage drop formula."""

    def test_twenty_percent_drop(self):
        assert compute_drop(2.5, 2.0) == pytest.approx(20.0)

    def test_drift_is_negative(self):
        assert compute_drop(2.0, 2.5) == pytest.approx(-25.0)

    @pytest.mark.parametrize("previous, current", [
        (0, 2.0), (-1.5, 1.2), (None, 2.0), (2.0, None), (float("nan"), 2.0),
        (2.5, 0), (2.5, 1.0), (2.5, float("inf")),
    ])
    def test_undefined(self, previous, current):
        assert compute_drop(previous, current) is None


class TestClassify:
    """Test threshold classification."""

    def test_threshold_boundaries(self):
        assert classify(20.0, 20) is True
        assert classify(20.0, 30) is False
        assert classify(55.0, 50) is True

    def test_negative_and_missing_drops_never_flag(self):
        assert classify(-25.0, 20) is False
        assert classify(None, 20) is False


class TestSnapshot:

    def test_drop_properties(self):
        snapshot = OddsSnapshot(previous=2.5, current=2.0)
        assert snapshot.drop_percent == pytest.approx(20.0)
        assert snapshot.is_drop

    def test_drift_is_not_a_drop(self):
        assert not OddsSnapshot(previous=2.0, current=2.5).is_drop


def _snapshots():
    return [
        OddsSnapshot(2.5, 2.0, "m1", Outcome.HOME, kickoff=datetime(2024, 8, 16, 14, 30)),
        OddsSnapshot(4.0, 2.0, "m2", Outcome.AWAY, kickoff=datetime(2024, 8, 17, 2, 0)),
        OddsSnapshot(3.0, 2.0, "m3", Outcome.DRAW, kickoff=datetime(2024, 8, 18, 20, 0)),
        OddsSnapshot(2.0, 2.2, "m4", Outcome.HOME, kickoff=datetime(2024, 8, 17, 2, 0)),
        OddsSnapshot(0.0, 2.2, "m5", Outcome.HOME),
    ]


class TestDetector:
    """Test OddsMovementDetector."""

    def test_detect_sorted_by_drop(self):
        detector = OddsMovementDetector(threshold_percent=20)
        drops = detector.detect(_snapshots())

        assert [d.snapshot.match_id for d in drops] == ["m2", "m3", "m1"]
        assert drops[0].drop_percent == pytest.approx(50.0)

    def test_threshold_override(self):
        detector = OddsMovementDetector(threshold_percent=20)
        drops = detector.detect(_snapshots(), threshold_percent=50)
        assert [d.snapshot.match_id for d in drops] == ["m2"]

    def test_default_threshold_from_settings(self):
        assert OddsMovementDetector().threshold_percent == 20.0

    def test_query_filters_dates_and_paginates(self):
        detector = OddsMovementDetector()
        query = DroppingOddsQuery(
            min_drop_percent=30,
            date_from=datetime(2024, 8, 17),
            date_to=datetime(2024, 8, 19),
            page=1,
            size=1,
        )
        page = detector.query(_snapshots(), query)

        assert page.total == 2
        assert page.total_pages == 2
        assert page.has_next
        assert page.items[0].snapshot.match_id == "m2"

    def test_scan_frame(self):
        frame = pl.DataFrame({
            "match_id": ["m1", "m2", "m3", "m4"],
            "previous": [2.5, 4.0, 0.0, 2.0],
            "current": [2.0, 3.6, 1.5, 2.4],
        })
        result = OddsMovementDetector(threshold_percent=20).scan_frame(frame)

        assert result["match_id"].to_list() == ["m1"]
        assert result["drop_percent"][0] == pytest.approx(20.0)

    def test_suspended_price_is_not_a_drop(self):
        detector = OddsMovementDetector(threshold_percent=50)
        assert detector.detect([OddsSnapshot(previous=2.5, current=0.0, match_id="m1")]) == []

    def test_scan_frame_skips_suspended_prices(self):
        frame = pl.DataFrame({
            "match_id": ["m1", "m2", "m3"],
            "previous": [2.5, 2.5, 1.0],
            "current": [0.0, 1.0, 0.5],
        })
        result = OddsMovementDetector(threshold_percent=20).scan_frame(frame)
        assert result.height == 0

    def test_scan_frame_requires_columns(self):
        with pytest.raises(ValueError):
            OddsMovementDetector().scan_frame(pl.DataFrame({"previous": [2.0]}))


class TestQuery:

    def test_threshold_must_be_a_preset(self):
        with pytest.raises(ValidationError):
            DroppingOddsQuery(min_drop_percent=25)

    def test_date_range_order(self):
        with pytest.raises(ValidationError):
            DroppingOddsQuery(date_from=datetime(2024, 8, 2), date_to=datetime(2024, 8, 1))

    def test_queries_are_hashable_values(self):
        assert DroppingOddsQuery(min_drop_percent=30) == DroppingOddsQuery(min_drop_percent=30)
        assert len({DroppingOddsQuery(page=2), DroppingOddsQuery(page=2)}) == 1


def test_paginate_past_end():
    page = paginate([1, 2, 3], page=3, size=2)
    assert page.items == []
    assert page.total_pages == 2
