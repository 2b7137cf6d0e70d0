# src/magbasin/compiler/jit.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Optional

from numba import njit

# JIT toggle applied *only here*.
# With jit=False we return original Python callables.

__all__ = ["JittedCallable", "jit_compile"]


@dataclass(frozen=True)
class JittedCallable:
    fn: Callable
    jitted: bool
    component: Optional[str] = None


def jit_compile(
    fn: Callable,
    *,
    jit: bool = True,
    parallel: bool = False,
    component: Optional[str] = None,
) -> JittedCallable:
    """
    Centralized JIT compilation with consistent error handling.

    Behavior:
        - If jit=False: returns original Python function
        - If jit=True: wraps with numba.njit (compilation is lazy, on first call)
        - If numba rejects the function outright: raises RuntimeError with details

    Args:
        fn: Function to compile
        jit: Whether to apply JIT compilation (default True)
        parallel: Enable numba's parallel backend (needed for prange loops)
        component: Optional label used in error messages

    Returns:
        JittedCallable wrapping the compiled (or original) function

    Raises:
        RuntimeError: If numba fails to wrap the function
    """
    if not jit:
        return JittedCallable(fn=fn, jitted=False, component=component)

    try:
        compiled = njit(cache=False, parallel=parallel)(fn)
    except Exception as e:
        label = component or getattr(fn, "__name__", "kernel")
        raise RuntimeError(
            f"JIT compilation of '{label}' with numba failed: {type(e).__name__}: {e}"
        ) from e
    return JittedCallable(fn=compiled, jitted=True, component=component)
