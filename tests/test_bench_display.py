"""Tests for sweepbench.bench.display — terminal formatting for benchmarks."""

from __future__ import annotations

import io
import math
import unittest

from bench_test_helpers import make_spec

from sweepbench.bench.display import (
    ProgressIndicator,
    _format_time,
    format_result_detail,
    format_result_line,
    format_spec_table,
)
from sweepbench.bench.results import BenchmarkResult
from sweepbench.bench.sampler import SampleProgress
from sweepbench.bench.stats import RegressionFit


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_result(**kwargs: object) -> BenchmarkResult:
    """Create a BenchmarkResult with sensible defaults."""
    defaults: dict[str, object] = {
        "name": "sum",
        "ops_per_second": 27.4,
        "error_margin": 0.3,
        "retained_sample_count": 96,
        "outlier_count": 0,
        "severe_outlier_count": 0,
        "significance": 0.05,
        "fit": RegressionFit(
            intercept=2e-6,
            slope=0.0365,
            standard_error=2e-5,
            confidence_radius=4e-4,
            n=96,
        ),
        "total_samples": 100,
        "base_iterations": 1,
    }
    defaults.update(kwargs)
    return BenchmarkResult(**defaults)  # type: ignore[arg-type]


def _progress(index: int, total_iterations: int) -> SampleProgress:
    return SampleProgress(
        workload="sum",
        sample_index=index,
        sample_count=20,
        total_iterations=total_iterations,
        expected_iterations=100,
    )


# ---------------------------------------------------------------------------
# _format_time
# ---------------------------------------------------------------------------


class TestFormatTime(unittest.TestCase):
    """Tests for _format_time()."""

    def test_units(self) -> None:
        self.assertEqual(_format_time(1.5e-9), "1.50ns")
        self.assertEqual(_format_time(2.5e-6), "2.50µs")
        self.assertEqual(_format_time(0.0125), "12.50ms")
        self.assertEqual(_format_time(1.5), "1.50s")

    def test_negative(self) -> None:
        self.assertEqual(_format_time(-0.5e-6), "-500.00ns")

    def test_precision(self) -> None:
        self.assertEqual(_format_time(0.25, precision=0), "250ms")

    def test_special_values(self) -> None:
        self.assertEqual(_format_time(math.nan), "N/A")
        self.assertEqual(_format_time(math.inf), "inf")


# ---------------------------------------------------------------------------
# Result lines
# ---------------------------------------------------------------------------


class TestFormatResultLine(unittest.TestCase):
    """Tests for format_result_line() and format_result_detail()."""

    def test_without_outliers(self) -> None:
        self.assertEqual(
            format_result_line(_make_result()),
            "sum: 27.4 ops/sec (±0.3, p=0.05, n=96)",
        )

    def test_with_outliers(self) -> None:
        line = format_result_line(_make_result(outlier_count=3, severe_outlier_count=1))
        self.assertEqual(line, "sum: 27.4 ops/sec (±0.3, p=0.05, n=96, o=3/1)")

    def test_severe_only(self) -> None:
        line = format_result_line(_make_result(severe_outlier_count=2))
        self.assertTrue(line.endswith(", o=0/2)"))

    def test_infinite_margin(self) -> None:
        line = format_result_line(_make_result(error_margin=math.inf, retained_sample_count=2))
        self.assertEqual(line, "sum: 27.4 ops/sec (±inf, p=0.05, n=2)")

    def test_other_significance(self) -> None:
        line = format_result_line(_make_result(significance=0.001))
        self.assertIn("p=0.001", line)

    def test_detail(self) -> None:
        text = format_result_detail(
            _make_result(outlier_count=3, severe_outlier_count=1, base_iterations=17476)
        )
        lines = text.splitlines()
        self.assertEqual(lines[0], "sum: 27.4 ops/sec (±0.3, p=0.05, n=96, o=3/1)")
        self.assertIn("time per op:   36.50ms", text)
        self.assertIn("base count:    17476 invocations", text)
        self.assertIn("96 fitted of 100 (3 outliers, 1 severe)", text)
        self.assertIn("relative err:  1.09%", text)

    def test_detail_infinite_margin(self) -> None:
        text = format_result_detail(_make_result(error_margin=math.inf))
        self.assertIn("relative err:  inf", text)


# ---------------------------------------------------------------------------
# Spec table
# ---------------------------------------------------------------------------


class TestFormatSpecTable(unittest.TestCase):
    """Tests for format_spec_table()."""

    def test_table(self) -> None:
        specs = [
            make_spec(lambda: 1.0, name="sum to a million"),
            make_spec(lambda: 1.0, name="sort", duration=0.5, samples=40),
        ]
        lines = format_spec_table(specs).splitlines()
        self.assertEqual(len(lines), 4)
        self.assertTrue(lines[0].startswith("Workload"))
        self.assertEqual(set(lines[1]), {"─"})
        self.assertTrue(lines[2].startswith("sum to a million"))
        self.assertIn("16.67ms", lines[2])
        self.assertIn("0.5s", lines[3])
        # Columns line up.
        self.assertEqual(len(lines[0]), len(lines[1]))

    def test_empty(self) -> None:
        self.assertEqual(len(format_spec_table([]).splitlines()), 2)


# ---------------------------------------------------------------------------
# ProgressIndicator
# ---------------------------------------------------------------------------


class TestProgressIndicator(unittest.TestCase):
    """Tests for ProgressIndicator."""

    def test_draws_bar(self) -> None:
        stream = io.StringIO()
        indicator = ProgressIndicator(stream, force=True)
        indicator(_progress(5, 50))
        self.assertEqual(stream.getvalue(), "\r| sum [##########..........] 5/20")

    def test_spinner_advances(self) -> None:
        stream = io.StringIO()
        indicator = ProgressIndicator(stream, force=True)
        indicator(_progress(1, 10))
        indicator(_progress(2, 20))
        self.assertIn("\r/ sum [####................] 2/20", stream.getvalue())

    def test_clear(self) -> None:
        stream = io.StringIO()
        indicator = ProgressIndicator(stream, force=True)
        indicator(_progress(20, 100))
        stream.truncate(0)
        stream.seek(0)
        indicator.clear()
        width = len("| sum [####################] 20/20")
        self.assertEqual(stream.getvalue(), "\r" + " " * width + "\r")

    def test_clear_without_drawing(self) -> None:
        stream = io.StringIO()
        ProgressIndicator(stream, force=True).clear()
        self.assertEqual(stream.getvalue(), "")

    def test_disabled_when_not_a_terminal(self) -> None:
        stream = io.StringIO()
        indicator = ProgressIndicator(stream)
        self.assertFalse(indicator.enabled)
        indicator(_progress(5, 50))
        indicator.clear()
        self.assertEqual(stream.getvalue(), "")


if __name__ == "__main__":
    unittest.main()
