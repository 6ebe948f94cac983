"""Outlier fencing and the linear cost model.

Two steps turn raw samples into a per-invocation cost:

1. Tukey fencing per invocation-count bin.  Durations grow with the
   invocation count, so fencing across all samples at once would mistake
   the sweep itself for noise.
2. Ordinary least squares of duration against invocation count.  The
   slope is the marginal cost of one invocation; the intercept absorbs
   fixed per-sample overhead such as reading the clock.

References:
    Tukey, J. W. (1977). "Exploratory Data Analysis." Addison-Wesley.
"""

from __future__ import annotations

import enum
import logging
import math
from dataclasses import dataclass, field
from typing import Sequence

from sweepbench.bench.config import DEFAULT_MILD_FENCE, DEFAULT_SEVERE_FENCE
from sweepbench.bench.errors import DegenerateSweep, InsufficientSamples

log = logging.getLogger("sweepbench")


# ---------------------------------------------------------------------------
# Samples
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Sample:
    """One timed batch of consecutive invocations."""

    iterations: int
    duration: float  # seconds for the whole batch

    def to_dict(self) -> dict[str, float | int]:
        return {"iterations": self.iterations, "duration": round(self.duration, 9)}


class SampleClass(enum.Enum):
    """Where a sample falls relative to its bin's fences."""

    NORMAL = "normal"
    OUTLIER = "outlier"  # between the mild and severe fences
    SEVERE_OUTLIER = "severe_outlier"  # beyond the severe fence


# ---------------------------------------------------------------------------
# Tukey fencing
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FenceResult:
    """Fences computed for one invocation-count bin."""

    iterations: int
    q1: float
    q3: float
    lower_mild: float
    upper_mild: float
    lower_severe: float
    upper_severe: float

    @property
    def iqr(self) -> float:
        return self.q3 - self.q1

    def classify(self, duration: float) -> SampleClass:
        """Classify one duration against these fences."""
        if self.lower_mild <= duration <= self.upper_mild:
            return SampleClass.NORMAL
        if self.lower_severe <= duration <= self.upper_severe:
            return SampleClass.OUTLIER
        return SampleClass.SEVERE_OUTLIER


def rank_quartiles(sorted_durations: Sequence[float]) -> tuple[float, float]:
    """First and third quartiles by rank, without interpolation.

    Q1 is the value at rank ``floor(0.25 n)`` and Q3 the value at rank
    ``ceil(0.75 n)``, with ranks counted from 1.  Rank 0 does not exist:
    a missing Q1 is -inf and a missing Q3 is +inf, which widens the
    fences to the whole real line for bins too small to fence.
    """
    n = len(sorted_durations)
    q1_rank = math.floor(0.25 * n)
    q3_rank = math.ceil(0.75 * n)
    q1 = sorted_durations[q1_rank - 1] if q1_rank >= 1 else -math.inf
    q3 = sorted_durations[q3_rank - 1] if q3_rank >= 1 else math.inf
    return q1, q3


def compute_fences(
    iterations: int,
    durations: Sequence[float],
    *,
    mild: float = DEFAULT_MILD_FENCE,
    severe: float = DEFAULT_SEVERE_FENCE,
) -> FenceResult:
    """Compute mild and severe Tukey fences for one bin.

    Args:
        iterations: The bin's invocation count.
        durations: The bin's durations, in any order.
        mild: IQR multiplier for the mild (outlier) fence.
        severe: IQR multiplier for the severe fence.
    """
    q1, q3 = rank_quartiles(sorted(durations))
    iqr = q3 - q1
    return FenceResult(
        iterations=iterations,
        q1=q1,
        q3=q3,
        lower_mild=q1 - mild * iqr,
        upper_mild=q3 + mild * iqr,
        lower_severe=q1 - severe * iqr,
        upper_severe=q3 + severe * iqr,
    )


def bin_samples(samples: Sequence[Sample]) -> dict[int, list[Sample]]:
    """Group samples by invocation count, preserving first-seen order."""
    bins: dict[int, list[Sample]] = {}
    for sample in samples:
        bins.setdefault(sample.iterations, []).append(sample)
    return bins


@dataclass
class Classification:
    """Every sample annotated with its fence class.

    ``samples`` and ``classes`` are parallel lists in the original
    sample order.
    """

    samples: list[Sample] = field(default_factory=list)
    classes: list[SampleClass] = field(default_factory=list)
    fences: dict[int, FenceResult] = field(default_factory=dict)

    @property
    def normal(self) -> list[Sample]:
        """Samples inside their bin's mild fence."""
        return [s for s, c in zip(self.samples, self.classes) if c is SampleClass.NORMAL]

    @property
    def normal_count(self) -> int:
        return sum(1 for c in self.classes if c is SampleClass.NORMAL)

    @property
    def outlier_count(self) -> int:
        """Samples between the mild and severe fences."""
        return sum(1 for c in self.classes if c is SampleClass.OUTLIER)

    @property
    def severe_outlier_count(self) -> int:
        """Samples beyond the severe fence."""
        return sum(1 for c in self.classes if c is SampleClass.SEVERE_OUTLIER)


def classify_samples(
    samples: Sequence[Sample],
    *,
    mild: float = DEFAULT_MILD_FENCE,
    severe: float = DEFAULT_SEVERE_FENCE,
) -> Classification:
    """Annotate every sample with its class, fencing each bin separately.

    Nothing is removed; use :attr:`Classification.normal` or
    :func:`filter_outliers` to drop outliers.
    """
    fences = {
        iterations: compute_fences(
            iterations,
            [s.duration for s in members],
            mild=mild,
            severe=severe,
        )
        for iterations, members in bin_samples(samples).items()
    }

    result = Classification(fences=fences)
    for sample in samples:
        result.samples.append(sample)
        result.classes.append(fences[sample.iterations].classify(sample.duration))
    return result


def filter_outliers(classification: Classification) -> list[Sample]:
    """Return the samples to fit when outliers are excluded.

    Keeps only samples inside their bin's mild fence, in the original
    order.  The counts on *classification* are left untouched so they
    can still be reported.
    """
    kept = classification.normal
    for iterations, fence in classification.fences.items():
        dropped = sum(
            1
            for s, c in zip(classification.samples, classification.classes)
            if s.iterations == iterations and c is not SampleClass.NORMAL
        )
        if dropped:
            log.debug(
                "bin %d: dropped %d sample(s) outside [%.6g, %.6g]",
                iterations,
                dropped,
                fence.lower_mild,
                fence.upper_mild,
            )
    return kept


# ---------------------------------------------------------------------------
# Ordinary least squares
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RegressionFit:
    """Linear fit of duration against invocation count."""

    intercept: float  # seconds of fixed per-sample overhead
    slope: float  # seconds per invocation
    standard_error: float  # standard error of the slope
    confidence_radius: float  # critical value * standard error
    n: int  # samples fitted

    def to_dict(self) -> dict[str, float | int]:
        return {
            "intercept": self.intercept,
            "slope": self.slope,
            "standard_error": self.standard_error,
            "confidence_radius": self.confidence_radius,
            "n": self.n,
        }


def fit_regression(samples: Sequence[Sample], *, t_value: float) -> RegressionFit:
    """Fit ``duration = intercept + slope * iterations`` by least squares.

    The standard error of the slope is::

        se = sqrt( (sum(residual^2) / (n - 2)) / sum((x - mean_x)^2) )

    With exactly two samples the line passes through both points and no
    degrees of freedom remain, so the standard error is +inf.

    Args:
        samples: The samples to fit, at least two.
        t_value: Two-sided critical value for the confidence radius.

    Raises:
        InsufficientSamples: If fewer than two samples are given.
        DegenerateSweep: If every sample has the same invocation count.
    """
    n = len(samples)
    if n < 2:
        raise InsufficientSamples(f"need at least 2 samples for a linear fit, got {n}")

    mean_x = math.fsum(s.iterations for s in samples) / n
    mean_y = math.fsum(s.duration for s in samples) / n

    sxx = math.fsum((s.iterations - mean_x) ** 2 for s in samples)
    if sxx == 0:
        raise DegenerateSweep(
            f"all {n} samples ran {samples[0].iterations} invocations; "
            f"the slope is undefined without at least two distinct counts"
        )
    sxy = math.fsum((s.duration - mean_y) * (s.iterations - mean_x) for s in samples)

    slope = sxy / sxx
    intercept = mean_y - slope * mean_x

    if n > 2:
        rss = math.fsum((s.duration - intercept - slope * s.iterations) ** 2 for s in samples)
        standard_error = math.sqrt(rss / (n - 2) / sxx)
    else:
        standard_error = math.inf

    return RegressionFit(
        intercept=intercept,
        slope=slope,
        standard_error=standard_error,
        confidence_radius=t_value * standard_error,
        n=n,
    )
