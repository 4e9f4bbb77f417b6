"""Single-flight guard: collapse concurrent fetches of the same key.

While an operation for a key is running, later callers for that key do
not start a second one; they await the first call's outcome and receive
the identical value or exception. The key is unregistered as soon as the
operation settles, whatever the outcome, so the next call starts afresh.

The guard belongs to one event loop. Looking a key up and registering it
happen in the same synchronous step, with no ``await`` in between, so two
tasks can never both observe "not running" for the same key.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Generic, Hashable, Iterable, Mapping, Optional, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")


def _mark_retrieved(future: asyncio.Future) -> None:
    # Leaders re-raise directly, so a failed future may have no waiters.
    if not future.cancelled():
        future.exception()


class SingleFlight(Generic[K, T]):
    """Map from key to the shared pending result of its in-flight operation.

    Example::

        guard: SingleFlight[int, Character] = SingleFlight()
        character = await guard.run(42, lambda: fetcher.fetch_entity(42))
    """

    def __init__(self) -> None:
        self._inflight: dict[K, asyncio.Future[T]] = {}

    def in_flight(self, key: K) -> bool:
        """Whether an operation for *key* is currently running."""
        return key in self._inflight

    def keys(self) -> frozenset[K]:
        """All keys with an operation currently running."""
        return frozenset(self._inflight)

    async def run(self, key: K, operation: Callable[[], Awaitable[T]]) -> T:
        """Run *operation* for *key*, or join the run already in flight.

        Args:
            key: Deduplication key.
            operation: Zero-argument coroutine factory; only called when no
                run for *key* is in flight.

        Returns:
            The operation's result (shared with every concurrent caller).

        Raises:
            Whatever the operation raised, to every concurrent caller.
        """
        pending = self._inflight.get(key)
        if pending is not None:
            logger.debug("Joining in-flight operation for %r", key)
            return await asyncio.shield(pending)

        future = self._register(key)
        try:
            result = await operation()
        except BaseException as exc:
            self._fail(future, exc)
            raise
        else:
            future.set_result(result)
            return result
        finally:
            self._unregister(key, future)

    async def run_batch(
        self,
        keys: Iterable[K],
        operation: Callable[[list[K]], Awaitable[Mapping[K, T]]],
    ) -> dict[K, Optional[T]]:
        """Run one *operation* on behalf of every key in *keys* not already in flight.

        Each claimed key is registered individually, so a concurrent
        :meth:`run` for any of them joins this batch. Keys already in flight
        are skipped and absent from the result.

        Args:
            keys: Candidate keys; duplicates are ignored.
            operation: Called once with the claimed keys; returns a mapping
                from key to result. Keys it leaves out resolve to ``None``.

        Returns:
            ``{key: result_or_None}`` for the claimed keys.
        """
        claimed = [key for key in dict.fromkeys(keys) if key not in self._inflight]
        if not claimed:
            return {}

        futures = {key: self._register(key) for key in claimed}
        try:
            results = await operation(claimed)
        except BaseException as exc:
            for future in futures.values():
                self._fail(future, exc)
            raise
        else:
            resolved: dict[K, Optional[T]] = {key: results.get(key) for key in claimed}
            for key, future in futures.items():
                future.set_result(resolved[key])  # type: ignore[arg-type]
            return resolved
        finally:
            for key, future in futures.items():
                self._unregister(key, future)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _register(self, key: K) -> asyncio.Future[T]:
        future: asyncio.Future[T] = asyncio.get_running_loop().create_future()
        future.add_done_callback(_mark_retrieved)
        self._inflight[key] = future
        return future

    def _unregister(self, key: K, future: asyncio.Future[T]) -> None:
        if self._inflight.get(key) is future:
            del self._inflight[key]

    @staticmethod
    def _fail(future: asyncio.Future[T], exc: BaseException) -> None:
        if future.done():
            return
        if isinstance(exc, asyncio.CancelledError):
            future.cancel()
        else:
            future.set_exception(exc)
