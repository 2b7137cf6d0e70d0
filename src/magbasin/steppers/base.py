from __future__ import annotations
from dataclasses import dataclass
from fractions import Fraction
from typing import Literal
import numpy as np

__all__ = ["StepperMeta", "ButcherTableau"]

TimeCtrl = Literal["fixed", "adaptive"]


@dataclass(frozen=True)
class StepperMeta:
    """
    Public metadata for a stepper.
    Fundamental classification + suitability.
    """
    name: str
    time_control: TimeCtrl = "fixed"
    order: int = 1
    embedded_order: int | None = None
    stages: int = 1


@dataclass(frozen=True)
class ButcherTableau:
    """
    Coefficient table of an explicit embedded Runge-Kutta pair.

    Stored as exact fractions so the embedded relationship
    (``error_weights = b - b_embedded``) can be audited; float64 arrays
    for the kernels are produced by :meth:`as_arrays`.
    """
    c: tuple[Fraction, ...]
    a: tuple[tuple[Fraction, ...], ...]   # strictly lower triangular rows
    b: tuple[Fraction, ...]               # high-order weights (propagated solution)
    b_embedded: tuple[Fraction, ...]      # low-order weights (error estimate only)

    def __post_init__(self) -> None:
        s = len(self.c)
        if len(self.a) != s or len(self.b) != s or len(self.b_embedded) != s:
            raise ValueError("tableau rows must all have length equal to the stage count")
        for i, row in enumerate(self.a):
            if len(row) != i:
                raise ValueError(f"row {i} of 'a' must have {i} entries; got {len(row)}")

    @property
    def stages(self) -> int:
        return len(self.c)

    @property
    def error_weights(self) -> tuple[Fraction, ...]:
        return tuple(hi - lo for hi, lo in zip(self.b, self.b_embedded))

    def as_arrays(self) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """Return ``(c, a, b, e)`` as float64 arrays; ``a`` is a dense square matrix."""
        s = self.stages
        c = np.array([float(v) for v in self.c], dtype=np.float64)
        a = np.zeros((s, s), dtype=np.float64)
        for i, row in enumerate(self.a):
            for j, v in enumerate(row):
                a[i, j] = float(v)
        b = np.array([float(v) for v in self.b], dtype=np.float64)
        e = np.array([float(v) for v in self.error_weights], dtype=np.float64)
        return c, a, b, e
