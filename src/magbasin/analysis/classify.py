# src/magbasin/analysis/classify.py
"""
Per-point convergence classifier.

Drives the stepper for a bounded number of attempts and decides, from the
bob's planar position after every attempt, which region the trajectory has
settled into. A region only counts once the trajectory has stayed classified
in it for longer than the dwell time.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable
import numpy as np
from numba import prange

from magbasin.runtime.runner_api import (
    OK, NAN_DETECTED, CONVERGED, BUDGET_EXHAUSTED, NEUTRAL_CENTER, UNRESOLVED,
)
from magbasin.steppers.cash_karp import WORKSPACE_ROWS
from magbasin.utils.arrays import as_state

if TYPE_CHECKING:
    from magbasin.steppers.cash_karp import CashKarp54
    from magbasin.systems.base import DifferentialSystem

__all__ = [
    "ClassifierConfig",
    "IntegrationResult",
    "classify_point",
    "make_classifier",
    "make_batch_classifier",
]


@dataclass(frozen=True)
class ClassifierConfig:
    """Trial budget and the tolerances of the region tests."""
    max_trials: int = 1000
    initial_step: float = 0.01
    position_tolerance: float = 0.5
    center_tolerance: float = 0.1
    dwell_time: float = 5.0

    def __post_init__(self) -> None:
        if int(self.max_trials) != self.max_trials or self.max_trials <= 0:
            raise ValueError(f"max_trials must be a positive integer; got {self.max_trials}")
        for name in ("initial_step", "position_tolerance", "center_tolerance"):
            value = getattr(self, name)
            if not float(value) > 0.0:
                raise ValueError(f"{name} must be positive; got {value}")
        if not float(self.dwell_time) >= 0.0:
            raise ValueError(f"dwell_time must be non-negative; got {self.dwell_time}")

    def pack(self) -> np.ndarray:
        """
        Layout (5 floats):
            [0] max_trials (as float)
            [1] initial_step
            [2] position_tolerance
            [3] center_tolerance
            [4] dwell_time
        """
        return np.array([
            float(self.max_trials),
            self.initial_step,
            self.position_tolerance,
            self.center_tolerance,
            self.dwell_time,
        ], dtype=np.float64)


@dataclass(frozen=True)
class IntegrationResult:
    """
    Outcome of one classification.

    ``converge_result`` is an attractor index, ``NEUTRAL_CENTER`` (-1), or
    ``UNRESOLVED`` (-2). When ``status`` is not CONVERGED it holds the region
    the trajectory last entered, which is not proof of convergence.
    """
    converge_result: int
    converge_time: float
    step_count: int
    status: int

    @property
    def converged(self) -> bool:
        return self.status == CONVERGED


def make_classifier(stepper: Callable, n_state: int) -> Callable:
    """
    Generate a jittable classifier around ``stepper``.

    Signature:
        region, t, step_count, status = classify(
            y0: float[:], params: float[:], targets: float[:, 2],
            classifier_config: float64[:], stepper_config: float64[:],
        )

    ``y0`` is copied; the caller's array is never written.
    """
    rows = WORKSPACE_ROWS

    def classify(y0, params, targets, classifier_config, stepper_config):
        max_trials = int(classifier_config[0])
        initial_step = classifier_config[1]
        pos_tol = classifier_config[2]
        mid_tol = classifier_config[3]
        dwell_time = classifier_config[4]

        y = y0.copy()
        ws = np.empty((rows, n_state), dtype=np.float64)
        y_prop = np.empty(n_state, dtype=np.float64)
        t_prop = np.empty(1, dtype=np.float64)
        dt_next = np.empty(1, dtype=np.float64)
        err_est = np.empty(1, dtype=np.float64)

        t = 0.0
        h = initial_step
        region = UNRESOLVED
        entry_time = 0.0
        step_count = 0
        n_targets = targets.shape[0]

        for _ in range(max_trials):
            status = stepper(t, h, y, params, ws, stepper_config, y_prop, t_prop, dt_next, err_est)
            if status == NAN_DETECTED:
                return region, t, step_count, NAN_DETECTED
            if status == OK:
                for i in range(n_state):
                    y[i] = y_prop[i]
                t = t_prop[0]
                step_count += 1
            h = dt_next[0]

            px = y[0]
            py = y[1]
            hit = UNRESOLVED
            found = False
            # first attractor whose box contains the bob wins
            for i in range(n_targets):
                ax = targets[i, 0]
                ay = targets[i, 1]
                if ax - pos_tol < px and px < ax + pos_tol and ay - pos_tol < py and py < ay + pos_tol:
                    hit = i
                    found = True
                    break
            if not found:
                if -mid_tol < px and px < mid_tol and -mid_tol < py and py < mid_tol:
                    hit = NEUTRAL_CENTER
                    found = True

            # no match keeps region and entry time untouched
            if found:
                if region == hit:
                    if t - entry_time > dwell_time:
                        return region, t, step_count, CONVERGED
                else:
                    region = hit
                    entry_time = t

        return region, t, step_count, BUDGET_EXHAUSTED

    return classify


def make_batch_classifier(classify: Callable) -> Callable:
    """
    Generate a jittable batch driver; compile with ``parallel=True``.

    Each point writes only its own slot, so iteration order is irrelevant.
    """

    def classify_batch(points, params, targets, classifier_config, stepper_config,
                       codes, times, steps, status):
        for idx in prange(points.shape[0]):
            region, t, n_steps, st = classify(
                points[idx], params, targets, classifier_config, stepper_config
            )
            codes[idx] = region
            times[idx] = t
            steps[idx] = n_steps
            status[idx] = st

    return classify_batch


def classify_point(
    system: DifferentialSystem,
    integrator: CashKarp54,
    initial_state,
    config: ClassifierConfig | None = None,
    *,
    jit: bool = True,
) -> IntegrationResult:
    """
    Classify a single starting state.

    Parameters:
        system: Derivative model; must expose ``attractor_positions()``.
        integrator: Step-size control configuration.
        initial_state: Length-``n_state`` sequence; copied, never mutated.
        config: Trial budget and tolerances (defaults: 1000 trials, dwell 5.0).
        jit: Compile kernels with numba.

    Returns:
        IntegrationResult for the trajectory.
    """
    from magbasin.compiler.build import build

    cfg = config or ClassifierConfig()
    model = build(system, integrator, jit=jit)
    y0 = as_state(initial_state, system.n_state, "initial_state")
    region, t, n_steps, status = model.classify(
        y0, model.params, model.targets, cfg.pack(), model.stepper_config
    )
    return IntegrationResult(
        converge_result=int(region),
        converge_time=float(t),
        step_count=int(n_steps),
        status=int(status),
    )
