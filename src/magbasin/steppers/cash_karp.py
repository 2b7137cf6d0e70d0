# src/magbasin/steppers/cash_karp.py
"""
Cash-Karp RK5(4) adaptive stepper.

Six-stage embedded pair: the 5th-order solution is propagated, the
difference to the embedded 4th-order solution is the local error estimate.
One attempt per call; the caller owns the retry loop.
"""
from __future__ import annotations
from dataclasses import dataclass
from fractions import Fraction as F
from typing import TYPE_CHECKING
import numpy as np

from .base import ButcherTableau, StepperMeta
from magbasin.runtime.runner_api import OK, REJECTED, NAN_DETECTED
from magbasin.utils.arrays import require_c_contig, require_dtype

if TYPE_CHECKING:
    from typing import Callable
    from magbasin.systems.base import DifferentialSystem

__all__ = ["CASH_KARP_TABLEAU", "CashKarp54", "StepResult", "WORKSPACE_ROWS"]


CASH_KARP_TABLEAU = ButcherTableau(
    c=(F(0), F(1, 5), F(3, 10), F(3, 5), F(1), F(7, 8)),
    a=(
        (),
        (F(1, 5),),
        (F(3, 40), F(9, 40)),
        (F(3, 10), F(-9, 10), F(6, 5)),
        (F(-11, 54), F(5, 2), F(-70, 27), F(35, 27)),
        (F(1631, 55296), F(175, 512), F(575, 13824), F(44275, 110592), F(253, 4096)),
    ),
    b=(F(37, 378), F(0), F(250, 621), F(125, 594), F(0), F(512, 1771)),
    b_embedded=(F(2825, 27648), F(0), F(18575, 48384), F(13525, 55296), F(277, 14336), F(1, 4)),
)

# ws rows 0..5 hold k1..k6, row 6 is the stage state
WORKSPACE_ROWS = CASH_KARP_TABLEAU.stages + 1


@dataclass(frozen=True)
class StepResult:
    accepted: bool
    t: float
    h: float
    error: float
    status: int


@dataclass(frozen=True)
class CashKarp54:
    """
    Integrator configuration plus the kernel factory for the Cash-Karp pair.

    Only ``rel_tol``, ``abs_tol`` and ``max_step_size`` are usually set; the
    step-control constants default to the classic values (shrink no further
    than 0.2x, grow no more than 5x, only grow when the error is below 0.5).
    """
    rel_tol: float = 1e-6
    abs_tol: float = 1e-6
    max_step_size: float = 0.1
    safety: float = 0.9
    min_factor: float = 0.2
    max_factor: float = 5.0
    grow_threshold: float = 0.5

    meta = StepperMeta(
        name="cashkarp54",
        time_control="adaptive",
        order=5,
        embedded_order=4,
        stages=6,
    )
    tableau = CASH_KARP_TABLEAU

    def __post_init__(self) -> None:
        for name in ("rel_tol", "abs_tol", "max_step_size", "safety", "min_factor", "max_factor", "grow_threshold"):
            value = getattr(self, name)
            if not float(value) > 0.0:
                raise ValueError(f"{name} must be positive; got {value}")
        if self.min_factor > 1.0:
            raise ValueError(f"min_factor must not exceed 1; got {self.min_factor}")
        if self.max_factor < 1.0:
            raise ValueError(f"max_factor must be at least 1; got {self.max_factor}")

    def pack_config(self) -> np.ndarray:
        """
        Pack into float64 array.

        Layout (7 floats):
            [0] rel_tol
            [1] abs_tol
            [2] max_step_size
            [3] safety
            [4] min_factor
            [5] max_factor
            [6] grow_threshold
        """
        return np.array([
            self.rel_tol,
            self.abs_tol,
            self.max_step_size,
            self.safety,
            self.min_factor,
            self.max_factor,
            self.grow_threshold,
        ], dtype=np.float64)

    @classmethod
    def emit(cls, rhs_fn: Callable) -> Callable:
        """
        Generate a jittable stepper specialised on ``rhs_fn``.

        Signature:
            status = stepper(
                t: float, h: float,
                y_curr: float[:], params: float[:],
                ws: float[7, n],
                stepper_config: float64[:],
                y_prop: float[:], t_prop: float[1], dt_next: float[1], err_est: float[1]
            ) -> int

        ``y_curr`` is never written. The caller commits ``y_prop`` and
        ``t_prop[0]`` when the status is OK and always adopts ``dt_next[0]``.

        NAN_DETECTED is returned when any stage derivative is non-finite. This
        includes an oversized trial step whose intermediate stage state leaves
        the sphere while ``y_curr`` itself is still valid.
        """
        c, a, b, e = cls.tableau.as_arrays()
        n_stages = cls.tableau.stages
        rhs = rhs_fn

        def cash_karp_stepper(
            t, h,
            y_curr, params,
            ws,
            stepper_config,
            y_prop, t_prop, dt_next, err_est,
        ):
            n = y_curr.size
            y_stage = ws[n_stages]

            rel_tol = stepper_config[0]
            abs_tol = stepper_config[1]
            max_step = stepper_config[2]
            safety = stepper_config[3]
            min_factor = stepper_config[4]
            max_factor = stepper_config[5]
            grow_threshold = stepper_config[6]

            # Stage 1 at the current state, later stages at y + h*sum(a_sj*k_j)
            rhs(t, y_curr, ws[0], params)
            for s in range(1, n_stages):
                for i in range(n):
                    acc = 0.0
                    for j in range(s):
                        acc += a[s, j] * ws[j, i]
                    y_stage[i] = y_curr[i] + h * acc
                rhs(t + c[s] * h, y_stage, ws[s], params)

            # 5th order candidate and max-norm of the scaled embedded error
            error = 0.0
            nan_seen = False
            for i in range(n):
                inc = 0.0
                diff = 0.0
                for s in range(n_stages):
                    inc += b[s] * ws[s, i]
                    diff += e[s] * ws[s, i]
                y_prop[i] = y_curr[i] + h * inc
                scaled = abs(h * diff) / (abs_tol + rel_tol * abs(y_prop[i]))
                if scaled != scaled:
                    nan_seen = True
                elif scaled > error:
                    error = scaled

            if nan_seen:
                t_prop[0] = t
                dt_next[0] = h
                err_est[0] = np.nan
                return NAN_DETECTED

            err_est[0] = error

            if error > 1.0:
                factor = safety * error ** -0.25
                if factor < min_factor:
                    factor = min_factor
                t_prop[0] = t
                dt_next[0] = h * factor
                return REJECTED

            t_prop[0] = t + h
            if error < grow_threshold:
                if error > 0.0:
                    factor = safety * error ** -0.20
                    if factor > max_factor:
                        factor = max_factor
                else:
                    factor = max_factor
                h_new = h * factor
                if h_new > max_step:
                    h_new = max_step
                dt_next[0] = h_new
            else:
                dt_next[0] = h
            return OK

        return cash_karp_stepper

    def step(
        self,
        system: DifferentialSystem,
        state: np.ndarray,
        t: float,
        h: float,
        *,
        jit: bool = False,
    ) -> StepResult:
        """
        Attempt one step of ``system`` from ``(state, t)`` with step size ``h``.

        On acceptance ``state`` is overwritten in place and the returned ``t``
        is ``t + h``. On rejection ``state`` is untouched, ``t`` is returned
        unchanged and the returned ``h`` is the shrunk step size.
        """
        from magbasin.compiler.build import build

        require_c_contig(state, "state")
        require_dtype(state, np.float64, "state")
        n = system.n_state
        if state.shape != (n,):
            raise ValueError(f"state shape must be ({n},), got {state.shape}")

        model = build(system, self, jit=jit)
        ws = np.empty((WORKSPACE_ROWS, n), dtype=np.float64)
        y_prop = np.empty(n, dtype=np.float64)
        t_prop = np.empty(1, dtype=np.float64)
        dt_next = np.empty(1, dtype=np.float64)
        err_est = np.empty(1, dtype=np.float64)

        status = int(model.stepper(
            float(t), float(h),
            state, model.params,
            ws,
            model.stepper_config,
            y_prop, t_prop, dt_next, err_est,
        ))
        accepted = status == OK
        if accepted:
            state[:] = y_prop
            t_out = float(t_prop[0])
        else:
            t_out = float(t)
        return StepResult(
            accepted=accepted,
            t=t_out,
            h=float(dt_next[0]),
            error=float(err_est[0]),
            status=status,
        )
