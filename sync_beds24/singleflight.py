"""
Duplicate call suppression.

SingleFlight.do(key, fn) runs fn once per key at a time. Callers arriving
while a call for the same key is in flight block until it finishes and get the
same return value, or the same exception re-raised.
"""

from __future__ import annotations

import threading
from typing import Callable, Generic, Hashable, TypeVar

T = TypeVar("T")


class _Call(Generic[T]):
    def __init__(self) -> None:
        self.done = threading.Event()
        self.result: T | None = None
        self.error: BaseException | None = None


class SingleFlight(Generic[T]):
    """
    Coalesce concurrent calls that share a key.

    Example:
        >>> flight: SingleFlight[str] = SingleFlight()
        >>> flight.do(("conn-1", "read"), lambda: mint_token("conn-1"))
        'new-token'
    """

    def __init__(self, wait_timeout: float | None = None):
        """
        Args:
            wait_timeout: Seconds a follower waits for the leader before raising
                TimeoutError. None waits for as long as the leader runs.
        """
        self.wait_timeout = wait_timeout
        self._lock = threading.Lock()
        self._calls: dict[Hashable, _Call[T]] = {}

    def do(self, key: Hashable, fn: Callable[[], T]) -> T:
        with self._lock:
            call = self._calls.get(key)
            leader = call is None
            if call is None:
                call = _Call()
                self._calls[key] = call

        if not leader:
            if not call.done.wait(self.wait_timeout):
                raise TimeoutError(f"Timed out waiting for in-flight call {key!r}")
            if call.error is not None:
                raise call.error
            return call.result  # type: ignore[return-value]

        try:
            call.result = fn()
            return call.result
        except BaseException as e:
            call.error = e
            raise
        finally:
            with self._lock:
                del self._calls[key]
            call.done.set()

    def in_flight(self, key: Hashable) -> bool:
        """Return True while a call for key is running."""
        with self._lock:
            return key in self._calls
