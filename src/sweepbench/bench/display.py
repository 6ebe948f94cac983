"""Terminal display formatting for benchmark results.

The one-line summary printed per workload::

    sum to a million: 27.4 ops/sec (±0.3, p=0.05, n=96, o=3/1)

The ``o=`` part (outliers/severe outliers) only appears when the
classifier found any.  While a workload runs, an in-place indicator on
stderr shows sweep progress and is erased before the result line.
"""

from __future__ import annotations

import math
from typing import IO

import click

from sweepbench.bench.config import WorkloadSpec
from sweepbench.bench.results import BenchmarkResult
from sweepbench.bench.sampler import SampleProgress

_SPINNER = "|/-\\"
_BAR_WIDTH = 20


# ---------------------------------------------------------------------------
# Value formatting
# ---------------------------------------------------------------------------


def _format_time(seconds: float, precision: int = 2) -> str:
    """Format a time value with adaptive units."""
    if math.isnan(seconds):
        return "N/A"
    if math.isinf(seconds):
        return "inf"
    sign = "-" if seconds < 0 else ""
    seconds = abs(seconds)
    if seconds < 1e-6:
        return f"{sign}{seconds * 1e9:.{precision}f}ns"
    if seconds < 1e-3:
        return f"{sign}{seconds * 1e6:.{precision}f}µs"
    if seconds < 1:
        return f"{sign}{seconds * 1e3:.{precision}f}ms"
    return f"{sign}{seconds:.{precision}f}s"


def _format_margin(value: float) -> str:
    if math.isinf(value):
        return "inf"
    return f"{value:.1f}"


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


def format_result_line(result: BenchmarkResult) -> str:
    """Format the one-line summary for a workload."""
    line = (
        f"{result.name}: {result.ops_per_second:.1f} ops/sec "
        f"(±{_format_margin(result.error_margin)}, "
        f"p={result.significance:g}, n={result.retained_sample_count}"
    )
    if result.outlier_count or result.severe_outlier_count:
        line += f", o={result.outlier_count}/{result.severe_outlier_count}"
    return line + ")"


def format_result_detail(result: BenchmarkResult) -> str:
    """Format a multi-line breakdown of the fit behind a result."""
    fit = result.fit
    rel = result.relative_error
    rel_str = "inf" if math.isinf(rel) else f"{rel * 100:.2f}%"
    lines = [
        format_result_line(result),
        f"  time per op:   {_format_time(fit.slope)} ± {_format_time(fit.confidence_radius)}",
        f"  overhead:      {_format_time(fit.intercept)} per sample",
        f"  relative err:  {rel_str}",
        f"  base count:    {result.base_iterations} invocations",
        (
            f"  samples:       {result.retained_sample_count} fitted of {result.total_samples} "
            f"({result.outlier_count} outliers, {result.severe_outlier_count} severe)"
        ),
    ]
    return "\n".join(lines)


def format_spec_table(specs: list[WorkloadSpec]) -> str:
    """Format resolved workload options as an aligned table."""
    headers = ["Workload", "Duration", "Samples", "Sweep", "Warm-up", "Max sample"]
    rows = [
        [
            s.name,
            f"{s.duration:g}s",
            str(s.samples),
            str(s.sweep_width),
            str(s.warm_up_iterations),
            _format_time(s.max_sample_duration),
        ]
        for s in specs
    ]
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    def _line(cells: list[str]) -> str:
        first = cells[0].ljust(widths[0])
        rest = [c.rjust(w) for c, w in zip(cells[1:], widths[1:])]
        return "  ".join([first, *rest]).rstrip()

    lines = [_line(headers), "─" * (sum(widths) + 2 * (len(widths) - 1))]
    lines.extend(_line(r) for r in rows)
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Progress indicator
# ---------------------------------------------------------------------------


class ProgressIndicator:
    """In-place progress line for the workload being measured.

    Pass the instance as the runner's progress callback.  Writes only
    when the stream is a terminal, unless *force* is set.
    """

    def __init__(self, stream: IO[str] | None = None, *, force: bool = False) -> None:
        self.stream = stream if stream is not None else click.get_text_stream("stderr")
        self.enabled = force or self.stream.isatty()
        self._frame = 0
        self._width = 0

    def __call__(self, progress: SampleProgress) -> None:
        if not self.enabled:
            return
        filled = int(progress.fraction * _BAR_WIDTH)
        bar = "#" * filled + "." * (_BAR_WIDTH - filled)
        spin = _SPINNER[self._frame % len(_SPINNER)]
        self._frame += 1
        text = (
            f"{spin} {progress.workload} [{bar}] "
            f"{progress.sample_index}/{progress.sample_count}"
        )
        pad = " " * max(self._width - len(text), 0)
        self._width = len(text)
        click.echo(f"\r{text}{pad}", file=self.stream, nl=False)

    def clear(self) -> None:
        """Erase the indicator so the result line starts clean."""
        if not self.enabled or not self._width:
            return
        click.echo("\r" + " " * self._width + "\r", file=self.stream, nl=False)
        self._width = 0
        self._frame = 0
