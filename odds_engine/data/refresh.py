"""
Single-flight refresh of odds listings.

Odds tables (match lists, sure bets, dropping odds) are fetched
asynchronously for a set of filter parameters. At most one fetch runs
at a time per refresher:
- a request for the parameters already in flight joins that fetch
- a request for different parameters cancels the in-flight fetch, whose
  result is then discarded instead of applied
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Hashable, Optional, TypeVar

from loguru import logger

Q = TypeVar("Q", bound=Hashable)
T = TypeVar("T")


@dataclass
class _InFlight(Generic[Q, T]):
    query: Q
    task: asyncio.Task[T]


class SingleFlightRefresher(Generic[Q, T]):
    """
    Runs fetch(query) with a single-flight policy per parameter set.

    Queries must be hashable values (frozen dataclasses or pydantic
    models) so that "same parameters" means value equality.

    Example:
        >>> refresher = SingleFlightRefresher(api.fetch_dropping_odds, on_result=table.update)
        >>> await refresher.request(DroppingOddsQuery(min_drop_percent=30))
    """

    def __init__(
        self,
        fetch: Callable[[Q], Awaitable[T]],
        on_result: Optional[Callable[[Q, T], None]] = None,
        name: str = "odds",
    ):
        """
        Args:
            fetch: Coroutine function performing the actual request
            on_result: Called with (query, result) for current results only
            name: Label used in log messages
        """
        self._fetch = fetch
        self._on_result = on_result
        self._inflight: Optional[_InFlight[Q, T]] = None
        self._last_query: Optional[Q] = None
        self.logger = logger.bind(component="refresh", refresher=name)

    @property
    def is_fetching(self) -> bool:
        return self._inflight is not None and not self._inflight.task.done()

    @property
    def current_query(self) -> Optional[Q]:
        """Parameters of the latest request that was not superseded."""
        return self._last_query

    def cancel(self) -> None:
        """Cancel the in-flight fetch, if any."""
        if self.is_fetching:
            self.logger.debug(f"Cancelling fetch for {self._inflight.query!r}")
            self._inflight.task.cancel()
        self._inflight = None

    async def request(self, query: Q) -> Optional[T]:
        """
        Fetch for query under the single-flight policy.

        Returns:
            The fetched result, or None if this request was superseded
            by one with different parameters

        Raises:
            Whatever fetch raised, for the request that started it
        """
        inflight = self._inflight
        joined = False

        if inflight is not None and not inflight.task.done():
            if inflight.query == query:
                self.logger.debug(f"Fetch for {query!r} already in flight, joining")
                joined = True
            else:
                self.logger.info(f"Superseding fetch for {inflight.query!r} with {query!r}")
                inflight.task.cancel()
                inflight = None

        if not joined:
            task = asyncio.ensure_future(self._fetch(query))
            inflight = _InFlight(query=query, task=task)
            self._inflight = inflight
            self._last_query = query

        task = inflight.task
        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            if not joined and self._inflight is inflight:
                task.cancel()
            raise

        if self._inflight is not inflight or task.cancelled():
            self.logger.debug(f"Discarding superseded result for {query!r}")
            return None

        result = task.result()
        if not joined and self._on_result is not None:
            self._on_result(query, result)
        return result
