"""Sweep sampling.

Sample ``i`` runs ``base_iterations * (1 + i % sweep_width)`` consecutive
invocations, so invocation counts cycle through ``sweep_width`` distinct
scales.  Varying the count is what gives the regression its independent
variable; samples taken at a single scale would all sit on one x value.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from sweepbench.bench.calibrate import Calibration
from sweepbench.bench.config import DEFAULT_PROGRESS_STEPS, WorkloadSpec
from sweepbench.bench.stats import Sample
from sweepbench.bench.timing import Clock, default_clock, measure

log = logging.getLogger("sweepbench")


# ---------------------------------------------------------------------------
# Progress events
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SampleProgress:
    """Progress info passed to the progress sink."""

    workload: str
    sample_index: int  # 1-based index of the sample just taken
    sample_count: int
    total_iterations: int  # invocations timed so far
    expected_iterations: int  # invocations the full sweep will time

    @property
    def fraction(self) -> float:
        """Completed share of the sweep, between 0.0 and 1.0."""
        if self.expected_iterations <= 0:
            return 1.0
        return min(self.total_iterations / self.expected_iterations, 1.0)


# Sinks are called outside the timed region and must not raise.
ProgressSink = Optional[Callable[[SampleProgress], None]]


# ---------------------------------------------------------------------------
# Sampling
# ---------------------------------------------------------------------------


def sweep_iterations(spec: WorkloadSpec, base_iterations: int) -> list[int]:
    """Invocation counts for every sample of the sweep, in order."""
    return [base_iterations * (1 + (i % spec.sweep_width)) for i in range(spec.samples)]


def collect_samples(
    spec: WorkloadSpec,
    calibration: Calibration,
    *,
    clock: Clock = default_clock,
    progress: ProgressSink = None,
    progress_steps: int = DEFAULT_PROGRESS_STEPS,
) -> list[Sample]:
    """Take exactly ``spec.samples`` timed samples across the sweep.

    Progress is reported whenever the running invocation total crosses
    another tick, where one tick is the number of invocations expected
    to fill ``1 / progress_steps`` of the time budget.

    Args:
        spec: The workload being measured.
        calibration: Result of :func:`~sweepbench.bench.calibrate.calibrate`.
        clock: Monotonic clock returning seconds.
        progress: Optional sink for progress events.
        progress_steps: Number of ticks the time budget is divided into.

    Returns:
        The samples in the order they were taken.

    Raises:
        DeadCodeEliminationSuspected: If the workload stops returning
            numbers.
    """
    plan = sweep_iterations(spec, calibration.base_iterations)
    expected_iterations = sum(plan)

    if calibration.per_iteration_time > 0:
        tick = (spec.duration / progress_steps) / calibration.per_iteration_time
    else:
        tick = float(expected_iterations) / progress_steps
    tick = max(tick, 1.0)
    next_tick = tick

    log.debug(
        "%s: sweeping %d samples over %d scales, %d invocations expected",
        spec.name,
        spec.samples,
        spec.sweep_width,
        expected_iterations,
    )

    samples: list[Sample] = []
    total_iterations = 0
    for index, iterations in enumerate(plan):
        duration = measure(spec.invoke, iterations, clock=clock, name=spec.name)
        samples.append(Sample(iterations=iterations, duration=duration))

        total_iterations += iterations
        if progress is not None and total_iterations >= next_tick:
            while next_tick <= total_iterations:
                next_tick += tick
            progress(
                SampleProgress(
                    workload=spec.name,
                    sample_index=index + 1,
                    sample_count=spec.samples,
                    total_iterations=total_iterations,
                    expected_iterations=expected_iterations,
                )
            )

    return samples
