"""Tests for sweepbench.bench.calibrate — warm-up and base count search."""

from __future__ import annotations

import math
import unittest

from bench_test_helpers import COST, FakeClock, make_costed_workload, make_spec

from sweepbench.bench.calibrate import Calibration, calibrate, warm_up
from sweepbench.bench.errors import CalibrationError, DeadCodeEliminationSuspected


class TestWarmUp(unittest.TestCase):
    """Tests for warm_up()."""

    def test_warm_up_invokes_configured_times(self) -> None:
        calls = []

        def invoke() -> float:
            calls.append(1)
            return 0.0

        warm_up(make_spec(invoke, warm_up_iterations=7))
        self.assertEqual(len(calls), 7)

    def test_warm_up_ignores_results(self) -> None:
        """Warm-up results are discarded, so non-numbers pass silently."""
        warm_up(make_spec(lambda: None, warm_up_iterations=3))


class TestCalibrate(unittest.TestCase):
    """Tests for calibrate()."""

    def test_calibrate_interpolates_base_count(self) -> None:
        """Known values: budget 1s over a sweep total of 60.

        The max sample duration is 1/60s.  Doubling stops at 2**15
        invocations (2**-5 s), and the base count interpolates to
        (1/60) / 2**-5 * 2**15 = 17476.27, rounded to 17476.
        """
        clock = FakeClock()
        spec = make_spec(make_costed_workload(clock))
        self.assertEqual(spec.sweep_total, 60)

        cal = calibrate(spec, clock=clock)
        self.assertEqual(cal.base_iterations, 17476)
        self.assertEqual(cal.per_iteration_time, COST)

    def test_calibrate_base_sample_fits_budget(self) -> None:
        """The base sample stays close to the per-sample ceiling."""
        clock = FakeClock()
        spec = make_spec(make_costed_workload(clock), duration=2.0, samples=40, sweep_width=4)
        cal = calibrate(spec, clock=clock)
        base_duration = cal.base_iterations * COST
        self.assertLessEqual(base_duration, spec.max_sample_duration + COST)
        self.assertGreater(base_duration, spec.max_sample_duration / 2)

    def test_calibrate_base_at_least_one(self) -> None:
        """A single invocation over the ceiling still yields a base of 1."""
        clock = FakeClock()
        # One invocation takes a full second against a tiny ceiling.
        spec = make_spec(make_costed_workload(clock, cost=1.0), duration=0.5)
        cal = calibrate(spec, clock=clock)
        self.assertEqual(cal.base_iterations, 1)
        self.assertEqual(cal.per_iteration_time, 1.0)

    def test_calibrate_slow_workload_stops_at_first_probe(self) -> None:
        clock = FakeClock()
        spec = make_spec(make_costed_workload(clock, cost=0.25), duration=1.0)
        cal = calibrate(spec, clock=clock)
        # 0.25s > 1/60s already at one invocation.
        self.assertEqual(cal.base_iterations, 1)
        self.assertEqual(cal.per_iteration_time, 0.25)

    def test_calibrate_runs_warm_up_first(self) -> None:
        reads_at_call: list[int] = []
        clock = FakeClock()

        def invoke() -> float:
            reads_at_call.append(clock.reads)
            clock.advance(COST)
            return 1.0

        spec = make_spec(invoke, warm_up_iterations=5)
        calibrate(spec, clock=clock)
        # Warm-up calls happen before the first clock read.
        self.assertEqual(reads_at_call[:5], [0] * 5)
        self.assertEqual(reads_at_call[5], 1)

    def test_calibrate_unresolvable_clock(self) -> None:
        """A workload the clock never sees hits the ceiling."""
        clock = FakeClock()
        spec = make_spec(make_costed_workload(clock, cost=0.0), name="too-fast")
        with self.assertRaises(CalibrationError) as ctx:
            calibrate(spec, clock=clock, max_iterations=1024)
        self.assertIn("too-fast", str(ctx.exception))
        self.assertIn("1024", str(ctx.exception))

    def test_calibrate_zero_readings_keep_doubling(self) -> None:
        """Durations of zero at small counts do not stop the search."""
        clock = FakeClock()
        calls = [0]

        def invoke() -> float:
            calls[0] += 1
            # Only every 1000th call is visible to the clock.
            if calls[0] % 1000 == 0:
                clock.advance(2.0**-10)
            return 1.0

        spec = make_spec(invoke, warm_up_iterations=1)
        cal = calibrate(spec, clock=clock)
        self.assertGreater(cal.base_iterations, 1000)
        self.assertTrue(math.isfinite(cal.per_iteration_time))

    def test_calibrate_checks_results(self) -> None:
        clock = FakeClock()
        spec = make_spec(make_costed_workload(clock, value=math.nan))
        with self.assertRaises(DeadCodeEliminationSuspected):
            calibrate(spec, clock=clock)

    def test_calibration_to_dict(self) -> None:
        cal = Calibration(base_iterations=10, per_iteration_time=0.5)
        self.assertEqual(cal.to_dict(), {"base_iterations": 10, "per_iteration_time": 0.5})


if __name__ == "__main__":
    unittest.main()
