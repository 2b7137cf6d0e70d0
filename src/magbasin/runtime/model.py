# src/magbasin/runtime/model.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Callable
import numpy as np

__all__ = ["Model"]

@dataclass(frozen=True)
class Model:
    """
    Compiled kernels bound to one system/integrator pair, ready for execution.

    Attributes:
        stepper: Compiled single-attempt stepper callable
        classify: Compiled per-point classifier callable
        classify_batch: Compiled batch classifier (prange loop)
        params: Packed system parameters (float64)
        stepper_config: Packed integrator configuration (float64)
        targets: Attractor positions, shape (N, 2)
        jit: Whether the callables are numba dispatchers
    """
    stepper: Callable
    classify: Callable
    classify_batch: Callable
    params: np.ndarray
    stepper_config: np.ndarray
    targets: np.ndarray
    jit: bool
