# src/magbasin/compiler/build.py
"""
Assemble the kernel chain rhs -> stepper -> classifier -> batch classifier.

Kernels depend only on the rhs function, the state size and the integrator
class (through its tableau); every numeric value travels in packed arrays.
Compiled chains are therefore cached per ``(integrator class, rhs, n_state,
jit)`` and shared by every system and configuration that reuses them.
"""
from __future__ import annotations
from functools import lru_cache
from typing import Callable, Tuple

from magbasin.analysis.classify import make_batch_classifier, make_classifier
from magbasin.compiler.jit import jit_compile
from magbasin.runtime.model import Model
from magbasin.steppers.cash_karp import CashKarp54
from magbasin.systems.base import DifferentialSystem

__all__ = ["build"]


@lru_cache(maxsize=None)
def _compile_chain(
    integrator_cls: type,
    rhs_fn: Callable,
    n_state: int,
    jit: bool,
) -> Tuple[Callable, Callable, Callable]:
    rhs = jit_compile(rhs_fn, jit=jit, component="rhs").fn
    stepper = jit_compile(integrator_cls.emit(rhs), jit=jit, component="stepper").fn
    classify = jit_compile(make_classifier(stepper, n_state), jit=jit, component="classify").fn
    batch = jit_compile(
        make_batch_classifier(classify), jit=jit, parallel=True, component="classify_batch"
    ).fn
    return stepper, classify, batch


def build(
    system: DifferentialSystem,
    integrator: CashKarp54 | None = None,
    *,
    jit: bool = True,
) -> Model:
    """
    Bind compiled kernels to ``system`` and ``integrator``.

    Parameters:
        system: Derivative model exposing ``rhs``, ``n_state``, ``pack_params()``
            and ``attractor_positions()``.
        integrator: Step-size control configuration (default ``CashKarp54()``).
        jit: Compile with numba (True) or run the same kernels as plain Python.

    Returns:
        Model with kernels and packed parameter arrays.
    """
    if integrator is None:
        integrator = CashKarp54()
    stepper, classify, batch = _compile_chain(
        type(integrator), system.rhs, int(system.n_state), bool(jit)
    )
    return Model(
        stepper=stepper,
        classify=classify,
        classify_batch=batch,
        params=system.pack_params(),
        stepper_config=integrator.pack_config(),
        targets=system.attractor_positions(),
        jit=bool(jit),
    )
