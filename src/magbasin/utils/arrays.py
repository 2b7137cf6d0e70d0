# src/magbasin/utils/arrays.py
from __future__ import annotations
import numpy as np

__all__ = [
    "require_c_contig", "require_dtype", "as_state",
]

def require_c_contig(a: np.ndarray, name: str = "array") -> np.ndarray:
    """
    Ensure 'a' is C-contiguous. Raise ValueError if not.
    (Guard only; not for hot loops.)
    """
    if not isinstance(a, np.ndarray):
        raise TypeError(f"{name} must be a numpy.ndarray")
    if not a.flags.c_contiguous:
        raise ValueError(f"{name} must be C-contiguous")
    return a

def require_dtype(a: np.ndarray, dtype: np.dtype, name: str = "array") -> np.ndarray:
    """
    Ensure 'a' dtype matches 'dtype' exactly. Raise TypeError if not.
    """
    if a.dtype != np.dtype(dtype):
        raise TypeError(f"{name} dtype must be {np.dtype(dtype).name}; got {a.dtype.name}")
    return a

def as_state(values, n_state: int, name: str = "state") -> np.ndarray:
    """
    Return a fresh C-contiguous float64 copy of 'values' with shape (n_state,).
    Callers own the copy; the input is never aliased.
    """
    arr = np.array(values, dtype=np.float64, copy=True)
    if arr.shape != (n_state,):
        raise ValueError(f"{name} shape must be ({n_state},), got {arr.shape}")
    return np.ascontiguousarray(arr)
