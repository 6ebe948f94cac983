"""Timing capture for workload invocations.

A clock is any zero-argument callable returning monotonic seconds as a
float.  The default is :func:`time.perf_counter`, the highest-resolution
monotonic clock available to Python.  Tests substitute a fake clock to
get deterministic durations.

:func:`measure` is the only timed region in sweepbench.  Nothing inside
it logs, reports progress, or allocates beyond the running sum.
"""

from __future__ import annotations

import math
import time
from typing import Callable

from sweepbench.bench.errors import DeadCodeEliminationSuspected

Clock = Callable[[], float]
Workload = Callable[[], float]

default_clock: Clock = time.perf_counter


def measure(
    invoke: Workload,
    iterations: int,
    *,
    clock: Clock = default_clock,
    name: str = "workload",
) -> float:
    """Time *iterations* consecutive calls of *invoke*.

    Every return value is added to a running sum that is checked once
    the clock has stopped.

    Args:
        invoke: The workload callable.
        iterations: Number of consecutive calls to time.
        clock: Monotonic clock returning seconds.
        name: Workload name used in error messages.

    Returns:
        Elapsed seconds for the whole batch, never negative.

    Raises:
        DeadCodeEliminationSuspected: If the accumulated return value is
            not a number.
    """
    total = 0.0
    start = clock()
    for _ in range(iterations):
        value = invoke()
        try:
            total += value
        except TypeError as exc:
            raise DeadCodeEliminationSuspected(
                f"{name}: workload function did not return a number (got {value!r})"
            ) from exc
    elapsed = clock() - start

    if not isinstance(total, (int, float)) or math.isnan(total):
        raise DeadCodeEliminationSuspected(f"{name}: workload function did not return a number")

    return max(elapsed, 0.0)