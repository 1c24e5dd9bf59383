"""Tests for the aggregation trigger debouncer."""

import asyncio

import pytest

from score_aggregation.application.services.trigger_debouncer import TriggerDebouncer


class TestTriggerDebouncer:
    """Test coalescing of aggregation triggers."""

    def setup_method(self):
        self.calls = []

    def _factory(self, label):
        async def run():
            self.calls.append(label)
            return label

        return run

    @pytest.mark.asyncio
    async def test_burst_runs_latest_factory_once(self):
        debouncer = TriggerDebouncer(window_seconds=0.02)

        results = await asyncio.gather(
            debouncer.submit("exec-1", self._factory("first")),
            debouncer.submit("exec-1", self._factory("second")),
            debouncer.submit("exec-1", self._factory("third")),
        )

        assert results == ["third", "third", "third"]
        assert self.calls == ["third"]

    @pytest.mark.asyncio
    async def test_keys_are_independent(self):
        debouncer = TriggerDebouncer(window_seconds=0.01)

        results = await asyncio.gather(
            debouncer.submit("exec-1", self._factory("a")),
            debouncer.submit("exec-2", self._factory("b")),
        )

        assert results == ["a", "b"]
        assert sorted(self.calls) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_new_window_after_firing(self):
        debouncer = TriggerDebouncer(window_seconds=0)

        first = await debouncer.submit("exec-1", self._factory("a"))
        second = await debouncer.submit("exec-1", self._factory("b"))

        assert (first, second) == ("a", "b")
        assert self.calls == ["a", "b"]

    @pytest.mark.asyncio
    async def test_exception_reaches_every_caller(self):
        debouncer = TriggerDebouncer(window_seconds=0.01)

        async def failing():
            raise RuntimeError("store unavailable")

        results = await asyncio.gather(
            debouncer.submit("exec-1", self._factory("ignored")),
            debouncer.submit("exec-1", failing),
            return_exceptions=True,
        )

        assert all(isinstance(result, RuntimeError) for result in results)
        assert self.calls == []

    @pytest.mark.asyncio
    async def test_pending_and_drain(self):
        debouncer = TriggerDebouncer(window_seconds=0.01)

        task = asyncio.create_task(debouncer.submit("exec-1", self._factory("a")))
        await asyncio.sleep(0)
        assert debouncer.is_pending("exec-1")

        await debouncer.drain()

        assert not debouncer.is_pending("exec-1")
        assert await task == "a"

    def test_negative_window_rejected(self):
        with pytest.raises(ValueError):
            TriggerDebouncer(window_seconds=-1)
