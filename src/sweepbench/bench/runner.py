"""Benchmark execution engine.

Orchestrates, for each workload in declaration order:
1. Warm-up and calibration of the base invocation count
2. Sweep sampling with progress reporting
3. Outlier classification per invocation-count bin
4. Least-squares fit over the retained samples
5. Result synthesis

Workloads run strictly one after another on the calling thread.  No
two measurements overlap and nothing else runs while a sample is being
timed.  Any error aborts the whole run; cancellation takes effect
between workloads only.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from sweepbench.bench.calibrate import calibrate
from sweepbench.bench.config import RunSettings, WorkloadSpec, validate_settings
from sweepbench.bench.errors import ConfigurationError
from sweepbench.bench.results import BenchmarkResult, synthesize_result
from sweepbench.bench.sampler import ProgressSink, collect_samples
from sweepbench.bench.stats import classify_samples, filter_outliers, fit_regression
from sweepbench.bench.timing import Clock, default_clock

log = logging.getLogger("sweepbench")

ResultCallback = Optional[Callable[[BenchmarkResult], None]]


class BenchRunner:
    """Measures a sequence of workloads according to RunSettings.

    Usage::

        runner = BenchRunner(RunSettings())
        results = runner.run(specs)
    """

    def __init__(
        self,
        settings: RunSettings | None = None,
        *,
        clock: Clock = default_clock,
        progress_callback: ProgressSink = None,
        result_callback: ResultCallback = None,
    ) -> None:
        self.settings = settings or RunSettings()
        self.clock = clock
        self.progress = progress_callback
        self.on_result = result_callback
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Stop before the next workload starts.

        A workload already being measured runs to completion.
        """
        self._cancelled = True

    def run(self, specs: Sequence[WorkloadSpec]) -> list[BenchmarkResult]:
        """Measure every workload in order.

        Returns:
            One result per workload measured.  Shorter than *specs* only
            if the run was cancelled.

        Raises:
            ConfigurationError: If the run settings are invalid.
            BenchError: The first measurement or statistical failure;
                no later workload is measured.
        """
        errors = validate_settings(self.settings)
        if errors:
            raise ConfigurationError(errors)

        results: list[BenchmarkResult] = []
        for index, spec in enumerate(specs):
            if self._cancelled:
                log.warning(
                    "Run cancelled; %d of %d workloads not measured",
                    len(specs) - index,
                    len(specs),
                )
                break
            result = self.run_one(spec)
            results.append(result)
            if self.on_result is not None:
                self.on_result(result)
        return results

    def run_one(self, spec: WorkloadSpec) -> BenchmarkResult:
        """Run calibration, sweep, fit and synthesis for one workload."""
        settings = self.settings
        log.info(
            "Benchmarking %s (%.3gs budget, %d samples)",
            spec.name,
            spec.duration,
            spec.samples,
        )

        calibration = calibrate(
            spec,
            clock=self.clock,
            max_iterations=settings.max_calibration_iterations,
        )
        samples = collect_samples(
            spec,
            calibration,
            clock=self.clock,
            progress=self.progress,
            progress_steps=settings.progress_steps,
        )

        classification = classify_samples(
            samples,
            mild=settings.mild_fence,
            severe=settings.severe_fence,
        )
        if settings.filter_outliers:
            retained = filter_outliers(classification)
            dropped = len(samples) - len(retained)
            if dropped:
                log.warning(
                    "%s: excluded %d of %d samples as outliers (%d severe)",
                    spec.name,
                    dropped,
                    len(samples),
                    classification.severe_outlier_count,
                )
        else:
            retained = list(samples)

        fit = fit_regression(retained, t_value=settings.t_value)
        log.debug(
            "%s: slope %.6gs/op, intercept %.6gs, se %.3g",
            spec.name,
            fit.slope,
            fit.intercept,
            fit.standard_error,
        )

        result = synthesize_result(
            spec.name,
            fit,
            classification,
            significance=settings.significance,
            base_iterations=calibration.base_iterations,
        )
        log.info(
            "Finished %s: %.1f ops/sec (±%.1f)",
            spec.name,
            result.ops_per_second,
            result.error_margin,
        )
        return result
