"""Small asyncio helpers: exactly-once resolution, per-call timeouts, batched fan-out."""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Awaitable, Callable, Sequence
from typing import Generic, TypeVar

T = TypeVar("T")
R = TypeVar("R")


class ResolutionGuard(Generic[T]):
    """Resolve an :class:`asyncio.Future` at most once.

    Several tasks may race to resolve the same future (for example a timer and
    a worker). Only the first call to :meth:`resolve`, :meth:`resolve_with` or
    :meth:`reject` takes effect; later calls return ``False``.
    """

    def __init__(self, future: asyncio.Future[T]) -> None:
        self._future = future
        self._lock = threading.Lock()
        self._resolved = False

    @property
    def resolved(self) -> bool:
        return self._resolved

    def _claim(self) -> bool:
        with self._lock:
            if self._resolved:
                return False
            self._resolved = True
            return True

    def resolve(self, value: T) -> bool:
        if not self._claim():
            return False
        if not self._future.done():
            self._future.set_result(value)
        return True

    def resolve_with(self, factory: Callable[[], T]) -> bool:
        """Resolve with ``factory()``; the factory only runs if this call wins."""

        if not self._claim():
            return False
        try:
            value = factory()
        except Exception as exc:
            if not self._future.done():
                self._future.set_exception(exc)
            return True
        if not self._future.done():
            self._future.set_result(value)
        return True

    def reject(self, exc: BaseException) -> bool:
        if not self._claim():
            return False
        if not self._future.done():
            self._future.set_exception(exc)
        return True


async def with_timeout(
    operation: Callable[[], Awaitable[T]],
    seconds: float,
    on_timeout: Callable[[], T],
) -> T:
    """Race ``operation`` against a timer and return whichever finishes first.

    When the timer wins, ``on_timeout()`` supplies the result and the work task
    is cancelled; its eventual result (for example from a worker thread that
    cannot be interrupted) is discarded. If ``operation`` raises first, the
    exception propagates to the caller.
    """

    loop = asyncio.get_running_loop()
    future: asyncio.Future[T] = loop.create_future()
    guard: ResolutionGuard[T] = ResolutionGuard(future)

    async def _timer() -> None:
        await asyncio.sleep(seconds)
        guard.resolve_with(on_timeout)

    async def _work() -> None:
        try:
            result = await operation()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            guard.reject(exc)
            return
        guard.resolve(result)

    tasks = [asyncio.ensure_future(_timer()), asyncio.ensure_future(_work())]
    try:
        return await future
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()


async def run_in_batches(
    items: Sequence[T],
    worker: Callable[[int, T], Awaitable[R]],
    batch_size: int,
) -> list[R]:
    """Run ``worker(index, item)`` with at most ``batch_size`` calls in flight.

    Batches run strictly one after another; results are returned in input order.
    """

    if batch_size <= 0:
        raise ValueError("batch_size must be positive")

    results: list[R] = []
    for start in range(0, len(items), batch_size):
        batch = items[start : start + batch_size]
        outcomes = await asyncio.gather(*(worker(start + offset, item) for offset, item in enumerate(batch)))
        results.extend(outcomes)
    return results


__all__ = ["ResolutionGuard", "with_timeout", "run_in_batches"]
