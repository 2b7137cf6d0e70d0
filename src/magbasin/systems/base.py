from __future__ import annotations
from typing import Callable, Protocol, runtime_checkable
import numpy as np

__all__ = ["DifferentialSystem"]


@runtime_checkable
class DifferentialSystem(Protocol):
    """
    Capability consumed by the integrator: "evaluate derivative given state and time".

    Implementations MUST:
      - expose `n_state` (length of the state vector)
      - expose `rhs`, a jittable kernel `rhs(t, y, dy, params) -> None` that
        writes the derivative of `y` into `dy` without allocating
      - provide `pack_params() -> np.ndarray` (float64 vector consumed by `rhs`)
      - provide `evaluate(state, t) -> np.ndarray` (convenience, allocates)

    The integrator specialises on `rhs` at emit time, so `rhs` must be a plain
    module-level function (numba freezes it into the stepper closure).
    """

    n_state: int

    @property
    def rhs(self) -> Callable: ...

    def pack_params(self) -> np.ndarray: ...

    def evaluate(self, state: np.ndarray, t: float = 0.0) -> np.ndarray: ...
