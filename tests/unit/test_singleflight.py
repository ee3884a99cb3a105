"""
Unit tests for SingleFlight call coalescing.
"""

from __future__ import annotations

import threading
import time

import pytest

from sync_beds24.singleflight import SingleFlight


@pytest.mark.unit
def test_single_caller_gets_result() -> None:
    flight: SingleFlight[int] = SingleFlight()

    assert flight.do("key", lambda: 42) == 42
    assert not flight.in_flight("key")


@pytest.mark.unit
def test_concurrent_callers_share_one_call() -> None:
    """Test that N threads with the same key run the function once and see the same value."""
    flight: SingleFlight[str] = SingleFlight()
    calls = []
    barrier = threading.Barrier(5)
    results: list[str] = []

    def slow() -> str:
        calls.append(1)
        time.sleep(0.2)
        return "shared"

    def worker() -> None:
        barrier.wait()
        results.append(flight.do(("conn-1", "read"), slow))

    threads = [threading.Thread(target=worker) for _ in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(calls) == 1
    assert results == ["shared"] * 5


@pytest.mark.unit
def test_error_is_delivered_to_every_waiter() -> None:
    flight: SingleFlight[str] = SingleFlight()
    barrier = threading.Barrier(3)
    errors: list[BaseException] = []

    def failing() -> str:
        time.sleep(0.2)
        raise RuntimeError("boom")

    def worker() -> None:
        barrier.wait()
        try:
            flight.do("key", failing)
        except RuntimeError as e:
            errors.append(e)

    threads = [threading.Thread(target=worker) for _ in range(3)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(errors) == 3
    assert all(str(e) == "boom" for e in errors)


@pytest.mark.unit
def test_different_keys_do_not_coalesce() -> None:
    flight: SingleFlight[str] = SingleFlight()

    assert flight.do("a", lambda: "first") == "first"
    assert flight.do("b", lambda: "second") == "second"


@pytest.mark.unit
def test_key_is_released_after_failure() -> None:
    flight: SingleFlight[int] = SingleFlight()

    with pytest.raises(ValueError):
        flight.do("key", lambda: int("not a number"))

    assert flight.do("key", lambda: 7) == 7
