"""Tests for the exactly-once resolution and batching helpers."""

from __future__ import annotations

import asyncio

import pytest

from photo_sweep.concurrency import ResolutionGuard, run_in_batches, with_timeout


def test_guard_resolves_only_once() -> None:
    async def _run() -> tuple[list[bool], str]:
        future: asyncio.Future[str] = asyncio.get_running_loop().create_future()
        guard: ResolutionGuard[str] = ResolutionGuard(future)
        outcomes = [guard.resolve("first"), guard.resolve("second"), guard.reject(RuntimeError("late"))]
        return outcomes, await future

    outcomes, value = asyncio.run(_run())

    assert outcomes == [True, False, False]
    assert value == "first"


def test_guard_factory_runs_only_for_the_winner() -> None:
    calls: list[str] = []

    def factory() -> str:
        calls.append("called")
        return "timeout"

    async def _run() -> str:
        future: asyncio.Future[str] = asyncio.get_running_loop().create_future()
        guard: ResolutionGuard[str] = ResolutionGuard(future)
        guard.resolve("done")
        assert not guard.resolve_with(factory)
        assert guard.resolved
        return await future

    assert asyncio.run(_run()) == "done"
    assert calls == []


def test_with_timeout_returns_fallback_when_timer_wins() -> None:
    timeouts: list[str] = []

    async def slow() -> str:
        await asyncio.sleep(5)
        return "late"

    def on_timeout() -> str:
        timeouts.append("fired")
        return "fallback"

    result = asyncio.run(with_timeout(slow, 0.01, on_timeout))

    assert result == "fallback"
    assert timeouts == ["fired"]


def test_with_timeout_returns_result_when_work_wins() -> None:
    timeouts: list[str] = []

    async def fast() -> str:
        return "value"

    result = asyncio.run(with_timeout(fast, 1.0, lambda: timeouts.append("fired") or "fallback"))

    assert result == "value"
    assert timeouts == []


def test_with_timeout_propagates_operation_errors() -> None:
    async def broken() -> str:
        raise KeyError("boom")

    with pytest.raises(KeyError):
        asyncio.run(with_timeout(broken, 1.0, lambda: "fallback"))


def test_run_in_batches_caps_concurrency_and_keeps_order() -> None:
    in_flight = 0
    peak = 0

    async def worker(index: int, item: str) -> str:
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        # Later items finish first inside each batch.
        await asyncio.sleep(0.001 * (10 - index))
        in_flight -= 1
        return f"{index}:{item}"

    items = [f"item{i}" for i in range(10)]
    results = asyncio.run(run_in_batches(items, worker, 4))

    assert results == [f"{i}:item{i}" for i in range(10)]
    assert peak == 4


def test_run_in_batches_rejects_non_positive_size() -> None:
    async def worker(index: int, item: int) -> int:
        return item

    with pytest.raises(ValueError):
        asyncio.run(run_in_batches([1], worker, 0))
