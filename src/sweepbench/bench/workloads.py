"""Workload discovery and loading.

A workload file is a plain Python module::

    name = "sum to a million"          # optional, defaults to the path
    options = {"duration": 1.0}        # optional overrides

    def default():
        s = 0
        for i in range(1_000_000):
            s += i
        return s

The callable may also be called ``invoke``.  Loading happens before any
measurement, so files are imported on a thread pool; the returned list
keeps the order the files were given in.
"""

from __future__ import annotations

import importlib.util
import os
import sys
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping, Protocol, Sequence

from sweepbench.bench.config import (
    RunDefaults,
    WorkloadSpec,
    build_spec,
    merge_options,
    validate_options,
)
from sweepbench.bench.errors import ConfigurationError, WorkloadLoadError
from sweepbench.logging import get_logger

log = get_logger("workloads")

_CALLABLE_NAMES = ("default", "invoke")


@dataclass
class WorkloadDef:
    """An unresolved workload: a name, partial options and the callable."""

    name: str
    invoke: Callable[[], float]
    options: dict[str, Any] = field(default_factory=dict)
    source: str = ""  # file path, empty for in-memory definitions


class WorkloadProvider(Protocol):
    """Anything that can produce workload definitions in declaration order."""

    def load(self) -> list[WorkloadDef]: ...


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------


class StaticWorkloadProvider:
    """Provider over workload definitions built in code."""

    def __init__(self, workloads: Sequence[WorkloadDef]) -> None:
        self._workloads = list(workloads)

    def load(self) -> list[WorkloadDef]:
        return list(self._workloads)


class FileWorkloadProvider:
    """Provider that imports workload definitions from Python files."""

    def __init__(self, paths: Sequence[str | Path], *, workers: int = 4) -> None:
        self.paths = [str(p) for p in paths]
        self.workers = max(1, workers)

    def load(self) -> list[WorkloadDef]:
        """Import every file.

        Raises:
            WorkloadLoadError: For the first file, in the given order,
                that fails to load.
        """
        if not self.paths:
            return []
        workers = min(self.workers, len(self.paths))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(load_workload_file, p) for p in self.paths]
            # Collect in submission order so the first failing file wins.
            return [f.result() for f in futures]


# ---------------------------------------------------------------------------
# File loading
# ---------------------------------------------------------------------------


def _module_name(path: Path) -> str:
    stem = "".join(c if c.isalnum() else "_" for c in path.stem)
    return f"sweepbench_workload_{stem}_{abs(hash(str(path))):x}"


def load_workload_file(path: str | Path) -> WorkloadDef:
    """Import one workload file and extract its definition.

    Args:
        path: Path to the file, as given by the user.  Used verbatim as
            the default workload name.

    Raises:
        WorkloadLoadError: If the file is missing, fails to import, has
            no callable ``default``/``invoke``, or declares malformed
            ``name``/``options``.
    """
    display = str(path)
    try:
        real = Path(os.path.realpath(path))
    except OSError as exc:
        raise WorkloadLoadError(f"{display}: {exc}") from exc
    if not real.is_file():
        raise WorkloadLoadError(f"{display}: workload file not found")

    spec = importlib.util.spec_from_file_location(_module_name(real), real)
    if spec is None or spec.loader is None:
        raise WorkloadLoadError(f"{display}: not an importable Python file")
    module = importlib.util.module_from_spec(spec)
    # @dataclass and friends resolve the defining module through sys.modules.
    sys.modules[spec.name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        sys.modules.pop(spec.name, None)
        raise WorkloadLoadError(f"{display}: import failed: {type(exc).__name__}: {exc}") from exc

    invoke = None
    for attr in _CALLABLE_NAMES:
        candidate = getattr(module, attr, None)
        if callable(candidate):
            invoke = candidate
            break
    if invoke is None:
        raise WorkloadLoadError(
            f"{display}: no callable {' or '.join(repr(n) for n in _CALLABLE_NAMES)} found"
        )

    name = getattr(module, "name", None)
    if name is None:
        name = display
    elif not isinstance(name, str) or not name.strip():
        raise WorkloadLoadError(f"{display}: 'name' must be a non-empty string")

    options = getattr(module, "options", None)
    if options is None:
        options = {}
    elif not isinstance(options, Mapping):
        raise WorkloadLoadError(
            f"{display}: 'options' must be a mapping, got {type(options).__name__}"
        )

    log.debug("Loaded workload %r from %s", name, real)
    return WorkloadDef(name=name, invoke=invoke, options=dict(options), source=str(real))


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


def resolve_workloads(
    definitions: Sequence[WorkloadDef],
    defaults: RunDefaults,
) -> list[WorkloadSpec]:
    """Merge and validate every definition before anything is measured.

    All definitions are checked so that one error report covers every
    misconfigured workload.

    Raises:
        ConfigurationError: If any workload has invalid options.
    """
    errors = []
    for d in definitions:
        errors.extend(validate_options(d.name, merge_options(defaults, d.options)))
    if errors:
        raise ConfigurationError(errors)
    return [build_spec(d.name, d.invoke, d.options, defaults) for d in definitions]
