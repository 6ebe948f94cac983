"""Benchmark configuration and workload option resolution.

Handles:
- Run-level defaults (built-ins, optionally a YAML profile, then CLI flags).
- Statistical run settings (significance, fence multipliers, outlier policy).
- Merging each workload's own ``options`` over the run defaults.
- Validating the merged options before any measurement starts.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping

from sweepbench.bench.errors import ConfigurationError

log = logging.getLogger("sweepbench")

# Two-sided critical values of Student's t at 200 degrees of freedom.
# A fixed large-sample value stands in for a per-n lookup.
CRITICAL_VALUES: dict[float, float] = {
    0.05: 1.9719,
    0.01: 2.6006,
    0.001: 3.3398,
}

DEFAULT_SIGNIFICANCE = 0.05
DEFAULT_MILD_FENCE = 1.5
DEFAULT_SEVERE_FENCE = 3.0
DEFAULT_MAX_CALIBRATION_ITERATIONS = 2**32
DEFAULT_PROGRESS_STEPS = 50

WORKLOAD_OPTION_KEYS = ("duration", "samples", "sweep_width", "warm_up_iterations")


# ---------------------------------------------------------------------------
# Run defaults
# ---------------------------------------------------------------------------


@dataclass
class RunDefaults:
    """Workload options applied when a workload does not set its own."""

    duration: float = 5.0  # seconds of sampling budget
    samples: int = 100
    sweep_width: int = 10
    warm_up_iterations: int = 100

    def to_dict(self) -> dict[str, Any]:
        return {
            "duration": self.duration,
            "samples": self.samples,
            "sweep_width": self.sweep_width,
            "warm_up_iterations": self.warm_up_iterations,
        }


# ---------------------------------------------------------------------------
# Statistical settings
# ---------------------------------------------------------------------------


@dataclass
class RunSettings:
    """Parameters of the estimator shared by every workload in a run."""

    significance: float = DEFAULT_SIGNIFICANCE
    critical_value: float | None = None  # None = look up from significance
    mild_fence: float = DEFAULT_MILD_FENCE
    severe_fence: float = DEFAULT_SEVERE_FENCE
    filter_outliers: bool = True  # False = fit on all samples, count only
    max_calibration_iterations: int = DEFAULT_MAX_CALIBRATION_ITERATIONS
    progress_steps: int = DEFAULT_PROGRESS_STEPS

    @property
    def t_value(self) -> float:
        """Critical value used for the confidence radius.

        Raises:
            ConfigurationError: If no value is tabulated for the
                significance level and none was given explicitly.
        """
        if self.critical_value is not None:
            return self.critical_value
        if self.significance not in CRITICAL_VALUES:
            raise ConfigurationError(validate_settings(self))
        return CRITICAL_VALUES[self.significance]


def validate_settings(settings: RunSettings) -> list[ValidationError]:
    """Validate run-level statistical settings.

    Returns a list of validation errors.  Empty list means valid.
    """
    errors: list[ValidationError] = []

    def _err(name: str, message: str) -> None:
        errors.append(ValidationError(field=name, message=message, workload="<run>"))

    for name in ("significance", "mild_fence", "severe_fence"):
        value = getattr(settings, name)
        if not _is_number(value) or math.isnan(value):
            _err(name, f"must be a number (got {value!r}).")
    cv = settings.critical_value
    if cv is not None and (not _is_number(cv) or math.isnan(cv)):
        _err("critical_value", f"must be a number (got {cv!r}).")
    for name in ("max_calibration_iterations", "progress_steps"):
        value = getattr(settings, name)
        if not _is_integer(value):
            _err(name, f"must be an integer (got {value!r}).")
    if not isinstance(settings.filter_outliers, bool):
        _err("filter_outliers", f"must be true or false (got {settings.filter_outliers!r}).")
    if errors:
        # Range checks below assume the right types.
        return errors

    if not 0 < settings.significance < 1:
        _err("significance", f"must be between 0 and 1 (got {settings.significance}).")
    elif settings.critical_value is None and settings.significance not in CRITICAL_VALUES:
        _err(
            "significance",
            f"no critical value tabulated for p={settings.significance:g}; "
            f"use one of {', '.join(f'{p:g}' for p in CRITICAL_VALUES)}.",
        )
    if settings.critical_value is not None and not settings.critical_value > 0:
        _err("critical_value", f"must be positive (got {settings.critical_value}).")
    if not settings.mild_fence > 0:
        _err("mild_fence", f"must be positive (got {settings.mild_fence}).")
    if not settings.severe_fence >= settings.mild_fence:
        _err(
            "severe_fence",
            f"must be at least the mild fence {settings.mild_fence} "
            f"(got {settings.severe_fence}).",
        )
    if settings.max_calibration_iterations < 1:
        _err(
            "max_calibration_iterations",
            f"must be positive (got {settings.max_calibration_iterations}).",
        )
    if settings.progress_steps < 1:
        _err("progress_steps", f"must be positive (got {settings.progress_steps}).")

    return errors


# ---------------------------------------------------------------------------
# WorkloadSpec
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WorkloadSpec:
    """Fully resolved, validated description of one workload.

    Immutable so that nothing can change a workload's parameters once
    its measurement run has started.
    """

    name: str
    duration: float
    samples: int
    sweep_width: int
    warm_up_iterations: int
    invoke: Callable[[], float] = field(repr=False, compare=False)

    @property
    def sweep_total(self) -> int:
        """Sum of the sweep multipliers over every sample.

        This is how many base-sized batches the whole sweep executes.
        """
        return sum(1 + (i % self.sweep_width) for i in range(self.samples))

    @property
    def max_sample_duration(self) -> float:
        """Wall-clock ceiling for one base-sized sample."""
        return self.duration / self.sweep_total

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "duration": self.duration,
            "samples": self.samples,
            "sweep_width": self.sweep_width,
            "warm_up_iterations": self.warm_up_iterations,
        }


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@dataclass
class ValidationError:
    """A single configuration validation error."""

    field: str
    message: str
    workload: str = ""


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_integer(value: object) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and value.is_integer()


def validate_options(name: str, options: Mapping[str, Any]) -> list[ValidationError]:
    """Validate merged workload options.

    Checks types first; range checks only run for fields of the right
    type so each field is reported at most once.

    Returns a list of validation errors.  Empty list means valid.
    """
    errors: list[ValidationError] = []

    def _err(field_name: str, message: str) -> None:
        errors.append(ValidationError(field=field_name, message=message, workload=name))

    for key in options:
        if key not in WORKLOAD_OPTION_KEYS:
            _err(key, f"unknown option; valid options: {', '.join(WORKLOAD_OPTION_KEYS)}.")

    duration = options.get("duration")
    if not _is_number(duration) or math.isnan(duration):  # type: ignore[arg-type]
        _err("duration", f"must be a number (got {duration!r}).")
    elif duration <= 0 or math.isinf(duration):  # type: ignore[operator,arg-type]
        _err("duration", f"must be positive (got {duration}).")

    counts_ok = True
    for key in ("samples", "sweep_width", "warm_up_iterations"):
        if not _is_integer(options.get(key)):
            _err(key, f"must be an integer (got {options.get(key)!r}).")
            counts_ok = False

    samples = options.get("samples")
    sweep_width = options.get("sweep_width")
    warm_up = options.get("warm_up_iterations")

    if _is_integer(sweep_width) and sweep_width <= 1:  # type: ignore[operator]
        _err("sweep_width", f"must be greater than 1 (got {sweep_width}).")
        counts_ok = False
    if _is_integer(samples) and samples <= 0:  # type: ignore[operator]
        _err("samples", f"must be positive (got {samples}).")
        counts_ok = False
    if counts_ok and samples < 2 * sweep_width:  # type: ignore[operator]
        _err(
            "samples",
            f"must be at least 2 * sweep_width = {2 * sweep_width} "  # type: ignore[operator]
            f"(got {samples}).",
        )
    if _is_integer(warm_up) and warm_up <= 0:  # type: ignore[operator]
        _err("warm_up_iterations", f"must be positive (got {warm_up}).")

    return errors


# ---------------------------------------------------------------------------
# Option merging
# ---------------------------------------------------------------------------


def merge_options(
    defaults: RunDefaults,
    options: Mapping[str, Any] | None,
) -> dict[str, Any]:
    """Overlay a workload's own options on the run defaults.

    ``None`` values in *options* mean "not set" and fall through to the
    default.
    """
    merged = defaults.to_dict()
    for key, value in (options or {}).items():
        if value is not None:
            merged[key] = value
    return merged


def build_spec(
    name: str,
    invoke: Callable[[], float],
    options: Mapping[str, Any] | None,
    defaults: RunDefaults,
) -> WorkloadSpec:
    """Merge, validate and freeze one workload's configuration.

    Raises:
        ConfigurationError: If any merged option is invalid.
    """
    merged = merge_options(defaults, options)
    errors = validate_options(name, merged)
    if errors:
        raise ConfigurationError(errors)
    return WorkloadSpec(
        name=name,
        duration=float(merged["duration"]),
        samples=int(merged["samples"]),
        sweep_width=int(merged["sweep_width"]),
        warm_up_iterations=int(merged["warm_up_iterations"]),
        invoke=invoke,
    )


# ---------------------------------------------------------------------------
# YAML profile loading
# ---------------------------------------------------------------------------


_PROFILE_DEFAULT_KEYS = WORKLOAD_OPTION_KEYS
_PROFILE_SETTING_KEYS = (
    "significance",
    "critical_value",
    "mild_fence",
    "severe_fence",
    "filter_outliers",
    "max_calibration_iterations",
    "progress_steps",
)


def load_profile(profile_path: Path) -> dict[str, Any]:
    """Load run defaults and settings from a YAML file.

    Profile format::

        duration: 2.0
        samples: 60
        sweep_width: 6
        warm_up_iterations: 50
        significance: 0.01
        filter_outliers: true

    Returns:
        The parsed YAML as a dict.
    """
    import yaml

    if not profile_path.exists():
        raise FileNotFoundError(f"Profile not found: {profile_path}")

    try:
        data = yaml.safe_load(profile_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigurationError(
            [
                ValidationError(
                    field="profile",
                    message=f"not valid YAML: {exc}",
                    workload=str(profile_path),
                )
            ]
        ) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            [
                ValidationError(
                    field="profile",
                    message=f"must be a YAML mapping, got {type(data).__name__}.",
                    workload=str(profile_path),
                )
            ]
        )

    unknown = [k for k in data if k not in _PROFILE_DEFAULT_KEYS + _PROFILE_SETTING_KEYS]
    if unknown:
        raise ConfigurationError(
            [
                ValidationError(
                    field=k, message="unknown profile key.", workload=str(profile_path)
                )
                for k in unknown
            ]
        )

    return data


def config_from_profile(
    profile_data: Mapping[str, Any],
    *,
    cli_overrides: Mapping[str, Any] | None = None,
) -> tuple[RunDefaults, RunSettings]:
    """Build run defaults and settings from a profile plus CLI flags.

    CLI values that are not ``None`` take precedence over the profile,
    which takes precedence over the built-in defaults.
    """
    cli = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    merged = {**profile_data, **cli}

    defaults = RunDefaults()
    for key in _PROFILE_DEFAULT_KEYS:
        if key in merged:
            setattr(defaults, key, merged[key])

    settings = RunSettings()
    for key in _PROFILE_SETTING_KEYS:
        if key in merged:
            setattr(settings, key, merged[key])

    log.debug("Run defaults: %s", defaults.to_dict())
    return defaults, settings
