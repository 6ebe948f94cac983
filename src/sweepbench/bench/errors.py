"""Exception hierarchy for benchmark runs.

Every failure is fatal for the whole run: a benchmark's only output is
a number, and a number computed from a broken measurement is worse
than none.  The CLI catches :class:`BenchError` at the top level.

Hierarchy::

    BenchError
      ConfigurationError          bad or inconsistent workload options
      WorkloadLoadError           a workload file cannot be loaded
      MeasurementError
        DeadCodeEliminationSuspected
        CalibrationError
      StatisticalError
        InsufficientSamples
        DegenerateSweep
        NonPositiveSlope
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sweepbench.bench.config import ValidationError


class BenchError(Exception):
    """Base class for all sweepbench failures."""


class ConfigurationError(BenchError, ValueError):
    """One or more workload options failed validation.

    Raised before any measurement starts.  ``errors`` holds every
    violation found, not only the first.
    """

    def __init__(self, errors: list[ValidationError]) -> None:
        self.errors = list(errors)
        lines = [f"  {e.workload}: options.{e.field}: {e.message}" for e in self.errors]
        super().__init__("Invalid benchmark configuration:\n" + "\n".join(lines))

    @property
    def fields(self) -> list[str]:
        """Names of the offending option fields, in report order."""
        return [e.field for e in self.errors]


class WorkloadLoadError(BenchError):
    """A workload definition could not be imported or is malformed."""


class MeasurementError(BenchError):
    """The timed measurement itself cannot be trusted."""


class DeadCodeEliminationSuspected(MeasurementError):
    """The accumulated workload return value is not a number.

    The workload must return a number on every call so that its result
    feeds a running sum.  A NaN or non-numeric sum means the workload is
    not doing the work being measured, or is itself broken.
    """


class CalibrationError(MeasurementError):
    """Calibration could not find a measurable invocation count."""


class StatisticalError(BenchError):
    """The collected samples cannot support a meaningful estimate."""


class InsufficientSamples(StatisticalError):
    """Fewer than two samples remain for the regression."""


class DegenerateSweep(StatisticalError):
    """All retained samples share one invocation count."""


class NonPositiveSlope(StatisticalError):
    """The fitted per-invocation cost is zero or negative."""
