"""
Tests for refresh.py (single-flight fetch policy)

Run with: pytest tests/test_refresh.py -v
"""

import asyncio

import pytest
from odds_engine.betting.movement import DroppingOddsQuery
from odds_engine.data.refresh import SingleFlightRefresher


class FakeSource:
    """Fetch double that blocks until released."""

    def __init__(self, error=None):
        self.gate = asyncio.Event()
        self.calls = []
        self.error = error

    async def fetch(self, query):
        self.calls.append(query)
        await self.gate.wait()
        if self.error is not None:
            raise self.error
        return f"rows-{query}"


class TestSingleFlight:
    def test_same_query_joins(self):
        applied = []

        async def scenario():
            source = FakeSource()
            refresher = SingleFlightRefresher(source.fetch, on_result=lambda q, r: applied.append((q, r)))
            first = asyncio.create_task(refresher.request("page-1"))
            second = asyncio.create_task(refresher.request("page-1"))
            await asyncio.sleep(0)
            assert refresher.is_fetching
            source.gate.set()
            return await first, await second, source.calls

        first, second, calls = asyncio.run(scenario())

        assert first == second == "rows-page-1"
        assert calls == ["page-1"]
        assert applied == [("page-1", "rows-page-1")]

    def test_equal_queries_join_by_value(self):
        async def scenario():
            source = FakeSource()
            refresher = SingleFlightRefresher(source.fetch)
            first = asyncio.create_task(refresher.request(DroppingOddsQuery(min_drop_percent=30)))
            second = asyncio.create_task(refresher.request(DroppingOddsQuery(min_drop_percent=30)))
            await asyncio.sleep(0)
            source.gate.set()
            await asyncio.gather(first, second)
            return source.calls

        assert len(asyncio.run(scenario())) == 1

    def test_different_query_supersedes(self):
        applied = []

        async def scenario():
            source = FakeSource()
            refresher = SingleFlightRefresher(source.fetch, on_result=lambda q, r: applied.append(q))
            first = asyncio.create_task(refresher.request("threshold-20"))
            await asyncio.sleep(0)
            second = asyncio.create_task(refresher.request("threshold-30"))
            await asyncio.sleep(0)
            source.gate.set()
            return await first, await second, refresher.current_query

        first, second, current = asyncio.run(scenario())

        assert first is None
        assert second == "rows-threshold-30"
        assert current == "threshold-30"
        assert applied == ["threshold-30"]

    def test_sequential_requests_fetch_again(self):
        async def scenario():
            source = FakeSource()
            source.gate.set()
            refresher = SingleFlightRefresher(source.fetch)
            await refresher.request("a")
            await refresher.request("a")
            return source.calls, refresher.is_fetching

        calls, fetching = asyncio.run(scenario())
        assert calls == ["a", "a"]
        assert not fetching

    def test_fetch_error_reaches_all_waiters(self):
        async def scenario():
            source = FakeSource(error=ConnectionError("feed down"))
            refresher = SingleFlightRefresher(source.fetch)
            first = asyncio.create_task(refresher.request("q"))
            second = asyncio.create_task(refresher.request("q"))
            await asyncio.sleep(0)
            source.gate.set()
            return await asyncio.gather(first, second, return_exceptions=True)

        results = asyncio.run(scenario())
        assert all(isinstance(r, ConnectionError) for r in results)

    def test_cancel_discards_result(self):
        async def scenario():
            source = FakeSource()
            refresher = SingleFlightRefresher(source.fetch)
            pending = asyncio.create_task(refresher.request("q"))
            await asyncio.sleep(0)
            refresher.cancel()
            return await pending, refresher.is_fetching

        result, fetching = asyncio.run(scenario())
        assert result is None
        assert not fetching

    def test_cancelled_caller_cancels_fetch(self):
        async def scenario():
            source = FakeSource()
            refresher = SingleFlightRefresher(source.fetch)
            pending = asyncio.create_task(refresher.request("q"))
            await asyncio.sleep(0)
            pending.cancel()
            with pytest.raises(asyncio.CancelledError):
                await pending
            await asyncio.sleep(0)
            return refresher.is_fetching

        assert asyncio.run(scenario()) is False
