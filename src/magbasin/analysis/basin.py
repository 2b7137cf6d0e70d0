# src/magbasin/analysis/basin.py
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal, Optional
import time
import warnings
import numpy as np

from magbasin.analysis.classify import ClassifierConfig, IntegrationResult
from magbasin.runtime.runner_api import NAN_DETECTED, CONVERGED

if TYPE_CHECKING:
    from magbasin.runtime.model import Model
    from magbasin.steppers.cash_karp import CashKarp54
    from magbasin.systems.base import DifferentialSystem

__all__ = [
    "GridSpec",
    "BasinMap",
    "basin_map",
]

ParallelMode = Literal["auto", "numba", "threads", "none"]


@dataclass(frozen=True)
class GridSpec:
    """
    Square lattice of starting positions ``(i*resolution, j*resolution)``
    for integers ``i, j`` in ``[-dim, dim)`` with ``dim = int(extent/resolution)``.
    """
    resolution: float = 0.1
    extent: float = 7.5

    def __post_init__(self) -> None:
        if not float(self.resolution) > 0.0:
            raise ValueError(f"resolution must be positive; got {self.resolution}")
        if not float(self.extent) > 0.0:
            raise ValueError(f"extent must be positive; got {self.extent}")
        if self.dim == 0:
            raise ValueError(
                f"extent ({self.extent}) must be at least one resolution step ({self.resolution})"
            )

    @property
    def dim(self) -> int:
        return int(self.extent / self.resolution)

    @property
    def shape(self) -> tuple[int, int]:
        return (2 * self.dim, 2 * self.dim)

    @property
    def n_points(self) -> int:
        return 4 * self.dim * self.dim

    def indices(self) -> np.ndarray:
        """Lattice integers ``-dim .. dim-1``."""
        return np.arange(-self.dim, self.dim, dtype=np.int64)

    def coordinates(self) -> np.ndarray:
        return self.indices().astype(np.float64) * self.resolution

    def initial_states(self, n_state: int = 4) -> np.ndarray:
        """
        Starting states at rest, shape ``(n_points, n_state)``.

        Row ``(i + dim) * 2*dim + (j + dim)`` holds lattice point ``(i, j)``.
        """
        idx = self.indices().astype(np.float64)
        xs = np.repeat(idx, idx.size) * self.resolution
        ys = np.tile(idx, idx.size) * self.resolution
        states = np.zeros((xs.size, n_state), dtype=np.float64)
        states[:, 0] = xs
        states[:, 1] = ys
        return states


@dataclass
class BasinMap:
    """
    Classification of every lattice point.

    Arrays have shape ``grid.shape`` and are indexed ``[i + dim, j + dim]``.
    """
    codes: np.ndarray
    times: np.ndarray
    steps: np.ndarray
    status: np.ndarray
    grid: GridSpec
    meta: dict[str, object] = field(default_factory=dict)

    def result(self, i: int, j: int) -> IntegrationResult:
        """Result for lattice point ``(i, j)``."""
        d = self.grid.dim
        if not (-d <= i < d and -d <= j < d):
            raise IndexError(f"lattice point ({i}, {j}) outside [-{d}, {d})")
        r, c = i + d, j + d
        return IntegrationResult(
            converge_result=int(self.codes[r, c]),
            converge_time=float(self.times[r, c]),
            step_count=int(self.steps[r, c]),
            status=int(self.status[r, c]),
        )

    def counts(self) -> dict[int, int]:
        """Number of lattice points per region code."""
        values, counts = np.unique(self.codes, return_counts=True)
        return {int(v): int(n) for v, n in zip(values, counts)}

    @property
    def converged_fraction(self) -> float:
        return float(np.count_nonzero(self.status == CONVERGED)) / float(self.status.size)

    def to_image(self) -> np.ndarray:
        from magbasin.plot.basin import basin_image

        return basin_image(self)


def _resolve_backend(parallel_mode: str, jit: bool) -> str:
    if parallel_mode == "auto":
        return "numba" if jit else "threads"
    if parallel_mode not in ("numba", "threads", "none"):
        raise ValueError(f"Unknown parallel_mode {parallel_mode!r}")
    return parallel_mode


def _run_threads(
    model: Model,
    points: np.ndarray,
    cfg: np.ndarray,
    out: tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray],
    max_workers: Optional[int],
) -> None:
    codes, times, steps, status = out

    def _run(idx: int) -> None:
        region, t, n_steps, st = model.classify(
            points[idx], model.params, model.targets, cfg, model.stepper_config
        )
        # results land at the point's own index; completion order is irrelevant
        codes[idx] = region
        times[idx] = t
        steps[idx] = n_steps
        status[idx] = st

    with ThreadPoolExecutor(max_workers=max_workers) as ex:
        for _ in ex.map(_run, range(points.shape[0])):
            pass


def basin_map(
    system: DifferentialSystem,
    integrator: CashKarp54 | None = None,
    grid: GridSpec | None = None,
    *,
    config: ClassifierConfig | None = None,
    jit: bool = True,
    parallel_mode: ParallelMode = "auto",
    max_workers: Optional[int] = None,
) -> BasinMap:
    """
    Classify every lattice point of ``grid``.

    Parameters:
        system: Derivative model (e.g. PendulumSystem).
        integrator: Cash-Karp configuration (default ``CashKarp54()``).
        grid: Lattice definition (default resolution 0.1, extent 7.5).
        config: Classifier budget and tolerances.
        jit: Compile kernels with numba.
        parallel_mode: ``"numba"`` (prange batch kernel), ``"threads"``
            (thread pool over points), ``"none"`` (sequential) or ``"auto"``
            (numba when jit, else threads).
        max_workers: Thread count for ``"threads"``; 1 means sequential.

    Returns:
        BasinMap with per-point codes, times, step counts and statuses.
    """
    from magbasin.compiler.build import build

    grid = grid or GridSpec()
    cfg = (config or ClassifierConfig()).pack()
    backend = _resolve_backend(parallel_mode, jit)
    if max_workers == 1 and backend == "threads":
        backend = "none"

    model = build(system, integrator, jit=jit)
    points = grid.initial_states(system.n_state)
    n = points.shape[0]
    codes = np.empty(n, dtype=np.int64)
    times = np.empty(n, dtype=np.float64)
    steps = np.empty(n, dtype=np.int64)
    status = np.empty(n, dtype=np.int64)

    start = time.perf_counter()
    if backend == "numba":
        model.classify_batch(
            points, model.params, model.targets, cfg, model.stepper_config,
            codes, times, steps, status,
        )
    elif backend == "threads":
        _run_threads(model, points, cfg, (codes, times, steps, status), max_workers)
    else:
        for idx in range(n):
            region, t, n_steps, st = model.classify(
                points[idx], model.params, model.targets, cfg, model.stepper_config
            )
            codes[idx] = region
            times[idx] = t
            steps[idx] = n_steps
            status[idx] = st
    elapsed = time.perf_counter() - start

    n_nan = int(np.count_nonzero(status == NAN_DETECTED))
    if n_nan:
        warnings.warn(
            f"{n_nan} of {n} trajectories stopped on a non-finite error estimate "
            "(a trial step evaluated the derivative outside the pendulum sphere); "
            "they are reported with their last region and status NAN_DETECTED.",
            RuntimeWarning,
            stacklevel=2,
        )

    shape = grid.shape
    return BasinMap(
        codes=codes.reshape(shape),
        times=times.reshape(shape),
        steps=steps.reshape(shape),
        status=status.reshape(shape),
        grid=grid,
        meta={
            "n_points": n,
            "elapsed_s": elapsed,
            "parallel_mode": backend,
            "jit": model.jit,
        },
    )
