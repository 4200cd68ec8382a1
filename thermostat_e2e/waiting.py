"""Bounded polling used in place of fixed sleeps."""

from __future__ import annotations

import time
from typing import Callable, TypeVar

T = TypeVar("T")


def poll_until(read: Callable[[], T],
               predicate: Callable[[T], bool],
               timeout: float,
               initial_delay: float = 0.0,
               interval: float = 0.25,
               backoff: float = 1.5,
               max_interval: float = 2.0,
               clock: Callable[[], float] = time.monotonic,
               sleep: Callable[[float], None] = time.sleep) -> T:
    """Call read() until predicate(value) holds or timeout elapses.

    Returns the last value read either way; the caller asserts on it so a
    failure message shows what was actually observed. The first read happens
    after initial_delay, and reading always happens at least once.
    """
    if initial_delay > 0:
        sleep(initial_delay)
    deadline = clock() + timeout
    wait = interval
    while True:
        value = read()
        if predicate(value):
            return value
        remaining = deadline - clock()
        if remaining <= 0:
            return value
        sleep(min(wait, remaining))
        wait = min(wait * backoff, max_interval)
