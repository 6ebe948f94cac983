"""Benchmark result synthesis and serialization.

The regression works in duration space (seconds per invocation); the
result is reported in rate space (invocations per second).  Because
``1/x`` is not linear, a symmetric interval around the slope maps to an
asymmetric interval around the rate.  The reported margin is the larger
of the two one-sided gaps.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from sweepbench.bench.errors import NonPositiveSlope
from sweepbench.bench.stats import Classification, RegressionFit


@dataclass(frozen=True)
class BenchmarkResult:
    """Final throughput estimate for one workload."""

    name: str
    ops_per_second: float
    error_margin: float  # symmetric bound in ops/sec
    retained_sample_count: int  # samples used by the fit
    outlier_count: int
    severe_outlier_count: int
    significance: float
    fit: RegressionFit
    total_samples: int = 0
    base_iterations: int = 0

    @property
    def seconds_per_op(self) -> float:
        return self.fit.slope

    @property
    def relative_error(self) -> float:
        """Error margin as a fraction of the estimate."""
        if self.ops_per_second == 0:
            return math.inf
        return self.error_margin / self.ops_per_second

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict.

        Infinite margins become ``None`` since JSON has no infinity.
        """
        return {
            "name": self.name,
            "ops_per_second": round(self.ops_per_second, 3),
            "error_margin": None if math.isinf(self.error_margin) else round(self.error_margin, 3),
            "significance": self.significance,
            "retained_sample_count": self.retained_sample_count,
            "outlier_count": self.outlier_count,
            "severe_outlier_count": self.severe_outlier_count,
            "total_samples": self.total_samples,
            "base_iterations": self.base_iterations,
            "fit": {
                k: (None if isinstance(v, float) and math.isinf(v) else v)
                for k, v in self.fit.to_dict().items()
            },
        }


def rate_interval(slope: float, confidence_radius: float) -> tuple[float, float, float]:
    """Map a slope and its confidence radius to rates.

    Returns:
        ``(low_ops, ops, high_ops)``.  ``high_ops`` is +inf when the
        interval around the slope reaches zero.

    Raises:
        NonPositiveSlope: If the slope cannot be inverted into a rate.
    """
    if not slope > 0:
        raise NonPositiveSlope(
            f"fitted cost per invocation is {slope:.3g}s; "
            f"timing noise exceeds the workload's cost"
        )
    ops = 1.0 / slope
    low_ops = 1.0 / (slope + confidence_radius)
    fast_slope = slope - confidence_radius
    high_ops = 1.0 / fast_slope if fast_slope > 0 else math.inf
    return low_ops, ops, high_ops


def synthesize_result(
    name: str,
    fit: RegressionFit,
    classification: Classification,
    *,
    significance: float,
    base_iterations: int = 0,
) -> BenchmarkResult:
    """Assemble the final result from a fit and the outlier diagnostics.

    Args:
        name: Workload name.
        fit: The regression over the retained samples.
        classification: All samples annotated by the outlier classifier;
            supplies the outlier counts whether or not they were filtered.
        significance: Significance level the confidence radius was
            computed for.
        base_iterations: Calibrated base invocation count, for reporting.
    """
    low_ops, ops, high_ops = rate_interval(fit.slope, fit.confidence_radius)
    error_margin = max(high_ops - ops, ops - low_ops)

    return BenchmarkResult(
        name=name,
        ops_per_second=ops,
        error_margin=error_margin,
        retained_sample_count=fit.n,
        outlier_count=classification.outlier_count,
        severe_outlier_count=classification.severe_outlier_count,
        significance=significance,
        fit=fit,
        total_samples=len(classification.samples),
        base_iterations=base_iterations,
    )
