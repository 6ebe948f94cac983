"""Command-line interface for sweepbench.

Subcommands:
    sweepbench run        Measure workload files and print throughput
    sweepbench validate   Resolve and check workload options without measuring
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import click

from sweepbench import __version__
from sweepbench.bench.errors import BenchError
from sweepbench.logging import set_status_line, setup_logging


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """sweepbench — throughput micro-benchmarks with regression error bounds."""


def _workload_options(func: Any) -> Any:
    """Options shared by every command that resolves workloads."""
    decorators = [
        click.argument("files", nargs=-1, required=True, type=click.Path()),
        click.option(
            "--duration",
            type=float,
            default=None,
            help="Sampling time budget per workload in seconds (default: 5).",
        ),
        click.option(
            "--samples",
            type=int,
            default=None,
            help="Timed samples per workload (default: 100).",
        ),
        click.option(
            "--sweep-width",
            type=int,
            default=None,
            help="Distinct invocation-count scales in the sweep (default: 10).",
        ),
        click.option(
            "--warm-up-iterations",
            type=int,
            default=None,
            help="Untimed invocations before calibration (default: 100).",
        ),
        click.option(
            "--profile",
            "profile_path",
            type=click.Path(exists=True, dir_okay=False, path_type=Path),
            default=None,
            help="YAML profile with run defaults and settings.",
        ),
        click.option(
            "--workers",
            type=int,
            default=4,
            show_default=True,
            help="Threads used to load workload files.",
        ),
        click.option("-v", "--verbose", is_flag=True, help="Show debug output."),
        click.option("-q", "--quiet", is_flag=True, help="Only show warnings and errors."),
        click.option(
            "--log-file",
            type=click.Path(dir_okay=False, path_type=Path),
            default=None,
            help="Also write a DEBUG log to this file.",
        ),
    ]
    for decorator in reversed(decorators):
        func = decorator(func)
    return func


def _resolve(
    files: tuple[str, ...],
    profile_path: Path | None,
    workers: int,
    cli_overrides: dict[str, Any],
) -> tuple[list[Any], Any]:
    """Load profile and workload files, returning (specs, settings)."""
    from sweepbench.bench.config import config_from_profile, load_profile
    from sweepbench.bench.workloads import (
        FileWorkloadProvider,
        WorkloadProvider,
        resolve_workloads,
    )

    profile_data = load_profile(profile_path) if profile_path else {}
    defaults, settings = config_from_profile(profile_data, cli_overrides=cli_overrides)
    provider: WorkloadProvider = FileWorkloadProvider(files, workers=workers)
    definitions = provider.load()
    specs = resolve_workloads(definitions, defaults)
    return specs, settings


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------


@main.command()
@_workload_options
@click.option(
    "--significance",
    type=float,
    default=None,
    help="Significance level of the error margin: 0.05, 0.01 or 0.001 (default: 0.05).",
)
@click.option(
    "--critical-value",
    type=float,
    default=None,
    help="Explicit critical value, overriding the tabulated one.",
)
@click.option(
    "--keep-outliers",
    is_flag=True,
    default=False,
    help="Fit on all samples; outliers are only counted.",
)
@click.option("--json", "as_json", is_flag=True, help="Print one JSON object per workload.")
@click.option("--detail", is_flag=True, help="Print the fit behind each result.")
def run(  # noqa: PLR0913
    files: tuple[str, ...],
    duration: float | None,
    samples: int | None,
    sweep_width: int | None,
    warm_up_iterations: int | None,
    profile_path: Path | None,
    workers: int,
    verbose: bool,
    quiet: bool,
    log_file: Path | None,
    significance: float | None,
    critical_value: float | None,
    keep_outliers: bool,
    as_json: bool,
    detail: bool,
) -> None:
    """Measure the throughput of each workload file.

    Each FILE is a Python module defining a ``default()`` function that
    returns a number, plus optional ``name`` and ``options``.  Workload
    options override the command-line defaults.

    \b
    Examples:
        sweepbench run bench/sum.py bench/sort.py
        sweepbench run --duration 1 --samples 20 --sweep-width 5 bench/sum.py
        sweepbench run --profile quick.yaml --json bench/*.py
    """
    from sweepbench.bench.display import (
        ProgressIndicator,
        format_result_detail,
        format_result_line,
    )
    from sweepbench.bench.results import BenchmarkResult
    from sweepbench.bench.runner import BenchRunner

    setup_logging(verbose=verbose, quiet=quiet, log_file=log_file)

    cli_overrides: dict[str, Any] = {
        "duration": duration,
        "samples": samples,
        "sweep_width": sweep_width,
        "warm_up_iterations": warm_up_iterations,
        "significance": significance,
        "critical_value": critical_value,
        "filter_outliers": False if keep_outliers else None,
    }

    indicator = ProgressIndicator()
    set_status_line(indicator)

    def _emit(result: BenchmarkResult) -> None:
        indicator.clear()
        if as_json:
            click.echo(json.dumps(result.to_dict()))
        elif detail:
            click.echo(format_result_detail(result))
        else:
            click.echo(format_result_line(result))

    try:
        specs, settings = _resolve(files, profile_path, workers, cli_overrides)
        runner = BenchRunner(
            settings,
            progress_callback=None if (as_json or quiet) else indicator,
            result_callback=_emit,
        )
        runner.run(specs)
    except BenchError as exc:
        indicator.clear()
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc
    except KeyboardInterrupt:
        indicator.clear()
        click.echo("\nBenchmark interrupted.", err=True)
        raise SystemExit(130)  # noqa: B904
    finally:
        indicator.clear()
        set_status_line(None)


# ---------------------------------------------------------------------------
# validate
# ---------------------------------------------------------------------------


@main.command()
@_workload_options
def validate(
    files: tuple[str, ...],
    duration: float | None,
    samples: int | None,
    sweep_width: int | None,
    warm_up_iterations: int | None,
    profile_path: Path | None,
    workers: int,
    verbose: bool,
    quiet: bool,
    log_file: Path | None,
) -> None:
    """Load workload files and check their options without measuring.

    Prints the resolved options of every workload.
    """
    from sweepbench.bench.config import validate_settings
    from sweepbench.bench.display import format_spec_table
    from sweepbench.bench.errors import ConfigurationError

    setup_logging(verbose=verbose, quiet=quiet, log_file=log_file)

    cli_overrides: dict[str, Any] = {
        "duration": duration,
        "samples": samples,
        "sweep_width": sweep_width,
        "warm_up_iterations": warm_up_iterations,
    }
    try:
        specs, settings = _resolve(files, profile_path, workers, cli_overrides)
        errors = validate_settings(settings)
        if errors:
            raise ConfigurationError(errors)
    except BenchError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc

    click.echo(format_spec_table(specs))
    click.echo()
    click.echo(f"{len(specs)} workload(s) OK")
