"""
Dropping odds detection.

Compares a previous and current price for the same outcome and flags
outcomes whose odds shortened by at least a threshold percentage.
A shortening price means money is coming in on that outcome.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Generic, Iterable, Optional, TypeVar

import polars as pl
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, model_validator

from odds_engine.config.constants import MIN_DECIMAL_ODDS, Outcome
from odds_engine.config.settings import get_settings

from .odds_converter import is_valid_decimal

T = TypeVar("T")


def compute_drop(previous: Optional[float], current: Optional[float]) -> Optional[float]:
    """
    Percentage drop from previous to current odds.

    Positive values are drops, negative values mean the price drifted out.

    Returns:
        (previous - current) / previous * 100, or None if either price is
        missing or not a valid decimal price (e.g. a suspended market's 0)

    Examples:
        >>> compute_drop(2.5, 2.0)
        20.0
    """
    if not (is_valid_decimal(previous) and is_valid_decimal(current)):
        return None
    previous = float(previous)
    current = float(current)
    return (previous - current) / previous * 100


def classify(drop_percent: Optional[float], threshold_percent: float) -> bool:
    """
    True when the drop meets the threshold.

    Examples:
        >>> classify(20.0, 20)
        True
        >>> classify(20.0, 30)
        False
    """
    if drop_percent is None:
        return False
    return drop_percent >= threshold_percent


@dataclass(frozen=True)
class OddsSnapshot:
    """Previous and current decimal price of one outcome."""

    previous: float
    current: float

    match_id: Optional[str] = None
    outcome: Optional[Outcome] = None
    bookmaker: Optional[str] = None
    kickoff: Optional[datetime] = None

    @property
    def drop_percent(self) -> Optional[float]:
        return compute_drop(self.previous, self.current)

    @property
    def is_drop(self) -> bool:
        """True only for genuine shortening (current < previous)."""
        drop = self.drop_percent
        return drop is not None and drop > 0


@dataclass(frozen=True)
class DroppingOdds:
    """A snapshot that met the drop threshold."""

    snapshot: OddsSnapshot
    drop_percent: float
    threshold_percent: float


class DroppingOddsQuery(BaseModel):
    """Filter and pagination parameters for a dropping odds listing."""

    model_config = ConfigDict(frozen=True)

    min_drop_percent: float = Field(default_factory=lambda: get_settings().movement.default_threshold)
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    page: int = Field(default=1, ge=1)
    size: int = Field(default_factory=lambda: get_settings().movement.default_page_size, gt=0)

    @model_validator(mode="after")
    def validate_query(self) -> "DroppingOddsQuery":
        presets = get_settings().movement.threshold_presets
        if self.min_drop_percent not in presets:
            raise ValueError(f"min_drop_percent must be one of {presets}")
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("date_from must not be after date_to")
        return self


@dataclass
class Page(Generic[T]):
    """One page of results."""

    items: list[T]
    page: int
    size: int
    total: int

    @property
    def total_pages(self) -> int:
        return max(1, math.ceil(self.total / self.size))

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


def paginate(items: list[T], page: int, size: int) -> Page[T]:
    """Slice items into the requested 1-based page."""
    start = (page - 1) * size
    return Page(items=items[start : start + size], page=page, size=size, total=len(items))


class OddsMovementDetector:
    """
    Flags outcomes whose odds dropped by at least a threshold.

    Thresholds come from MovementSettings presets (20/30/50 by default);
    the detector itself holds no fixed value.

    Usage:
        >>> detector = OddsMovementDetector(threshold_percent=20)
        >>> drops = detector.detect([OddsSnapshot(previous=2.5, current=2.0)])
        >>> drops[0].drop_percent
        20.0
    """

    def __init__(self, threshold_percent: Optional[float] = None):
        settings = get_settings().movement
        self.threshold_percent = (
            settings.default_threshold if threshold_percent is None else threshold_percent
        )
        self.logger = logger.bind(component="odds_movement")

    def detect(
        self,
        snapshots: Iterable[OddsSnapshot],
        threshold_percent: Optional[float] = None,
    ) -> list[DroppingOdds]:
        """
        Find snapshots that dropped by at least the threshold.

        Returns:
            DroppingOdds sorted by drop percentage, largest first
        """
        threshold = self.threshold_percent if threshold_percent is None else threshold_percent
        drops: list[DroppingOdds] = []
        skipped = 0

        for snapshot in snapshots:
            drop = snapshot.drop_percent
            if drop is None:
                skipped += 1
                continue
            if classify(drop, threshold):
                drops.append(DroppingOdds(snapshot, drop, threshold))

        if skipped:
            self.logger.debug(f"Skipped {skipped} snapshots without valid prices")

        drops.sort(key=lambda d: d.drop_percent, reverse=True)
        return drops

    def query(
        self,
        snapshots: Iterable[OddsSnapshot],
        query: DroppingOddsQuery,
    ) -> Page[DroppingOdds]:
        """Apply a DroppingOddsQuery (threshold, kickoff range, page)."""
        selected = []
        for snapshot in snapshots:
            if query.date_from and (snapshot.kickoff is None or snapshot.kickoff < query.date_from):
                continue
            if query.date_to and (snapshot.kickoff is None or snapshot.kickoff > query.date_to):
                continue
            selected.append(snapshot)

        drops = self.detect(selected, query.min_drop_percent)
        self.logger.info(
            f"{len(drops)} dropping odds >= {query.min_drop_percent}% "
            f"(page {query.page}, size {query.size})"
        )
        return paginate(drops, query.page, query.size)

    def scan_frame(
        self,
        frame: pl.DataFrame,
        threshold_percent: Optional[float] = None,
    ) -> pl.DataFrame:
        """
        Vectorised detect over a table of prices.

        Args:
            frame: Columns previous and current, plus any identifying
                columns (match_id, outcome, kickoff, ...) which are kept

        Returns:
            Rows that dropped by at least the threshold with a
            drop_percent column, largest drop first. Rows where either
            price is below MIN_DECIMAL_ODDS are dropped.
        """
        threshold = self.threshold_percent if threshold_percent is None else threshold_percent
        missing = {"previous", "current"} - set(frame.columns)
        if missing:
            raise ValueError(f"Missing columns: {sorted(missing)}")

        previous = pl.col("previous").cast(pl.Float64)
        current = pl.col("current").cast(pl.Float64)

        return (
            frame.with_columns(
                pl.when((previous >= MIN_DECIMAL_ODDS) & (current >= MIN_DECIMAL_ODDS))
                .then((previous - current) / previous * 100)
                .otherwise(None)
                .alias("drop_percent")
            )
            .filter(pl.col("drop_percent").is_not_null() & pl.col("drop_percent").is_finite())
            .filter(pl.col("drop_percent") >= threshold)
            .sort("drop_percent", descending=True)
        )
