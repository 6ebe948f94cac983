"""Calibration of the base invocation count.

Before sampling, each workload is warmed up and then probed with a
geometric search to find how many consecutive invocations fit into one
base-sized sample.  The sweep multiplies this count by 1..sweep_width,
so the base sample must be small enough that the whole sweep stays
within the workload's time budget.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sweepbench.bench.config import DEFAULT_MAX_CALIBRATION_ITERATIONS, WorkloadSpec
from sweepbench.bench.errors import CalibrationError
from sweepbench.bench.timing import Clock, default_clock, measure

log = logging.getLogger("sweepbench")


@dataclass(frozen=True)
class Calibration:
    """Outcome of calibrating one workload."""

    base_iterations: int
    per_iteration_time: float  # seconds, rough estimate

    def to_dict(self) -> dict[str, float | int]:
        return {
            "base_iterations": self.base_iterations,
            "per_iteration_time": self.per_iteration_time,
        }


def warm_up(spec: WorkloadSpec) -> None:
    """Run the workload ``warm_up_iterations`` times without timing it."""
    invoke = spec.invoke
    for _ in range(spec.warm_up_iterations):
        invoke()


def calibrate(
    spec: WorkloadSpec,
    *,
    clock: Clock = default_clock,
    max_iterations: int = DEFAULT_MAX_CALIBRATION_ITERATIONS,
) -> Calibration:
    """Warm up a workload and find its base invocation count.

    Doubles the invocation count, starting from 1, until one batch takes
    longer than ``spec.max_sample_duration``.  The final count is then
    interpolated back between the last two doublings instead of simply
    halved.

    Args:
        spec: The workload to calibrate.
        clock: Monotonic clock returning seconds.
        max_iterations: Ceiling on the probed invocation count.  A
            workload still unmeasurable beyond it is faster than the
            clock can resolve.

    Returns:
        Calibration with the base invocation count (at least 1) and the
        per-invocation time seen at the final step.

    Raises:
        CalibrationError: If the invocation count exceeds *max_iterations*
            before a batch outlasts the sample ceiling.
        DeadCodeEliminationSuspected: If the workload stops returning
            numbers during calibration.
    """
    warm_up(spec)

    max_sample_duration = spec.max_sample_duration
    log.debug(
        "%s: sweep total %d, max sample duration %.3gs",
        spec.name,
        spec.sweep_total,
        max_sample_duration,
    )

    iterations = 1
    duration = measure(spec.invoke, iterations, clock=clock, name=spec.name)
    while duration <= max_sample_duration:
        iterations *= 2
        if iterations > max_iterations:
            raise CalibrationError(
                f"{spec.name}: calibration exceeded {max_iterations} invocations "
                f"without a batch taking longer than {max_sample_duration:.3g}s; "
                f"the clock cannot resolve this workload"
            )
        duration = measure(spec.invoke, iterations, clock=clock, name=spec.name)

    per_iteration_time = duration / iterations
    scaled = (max_sample_duration / duration) * iterations
    base_iterations = max(1, round(max(iterations / 2, scaled)))

    log.debug(
        "%s: calibrated at %d invocations (%.3gs each), base %d",
        spec.name,
        iterations,
        per_iteration_time,
        base_iterations,
    )
    return Calibration(base_iterations=base_iterations, per_iteration_time=per_iteration_time)
