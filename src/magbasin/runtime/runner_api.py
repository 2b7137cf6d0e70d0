# src/magbasin/runtime/runner_api.py
from __future__ import annotations
from enum import IntEnum

__all__ = [
    "Status",
    # int constants (jit-friendly)
    "OK", "REJECTED", "NAN_DETECTED",
    "CONVERGED", "BUDGET_EXHAUSTED",
    "NEUTRAL_CENTER", "UNRESOLVED",
]

class Status(IntEnum):
    """Stable status codes for stepper and classifier."""
    OK = 0                # stepper: step accepted
    REJECTED = 1          # stepper: error too large, retry with smaller h
    NAN_DETECTED = 3      # stepper/classifier: non-finite error estimate
    CONVERGED = 4         # classifier: dwell time satisfied
    BUDGET_EXHAUSTED = 5  # classifier: trial budget used up

# Plain int constants for JIT friendliness in tests / kernels
OK: int = int(Status.OK)
REJECTED: int = int(Status.REJECTED)
NAN_DETECTED: int = int(Status.NAN_DETECTED)
CONVERGED: int = int(Status.CONVERGED)
BUDGET_EXHAUSTED: int = int(Status.BUDGET_EXHAUSTED)

# Region codes reported in IntegrationResult.converge_result
NEUTRAL_CENTER: int = -1
UNRESOLVED: int = -2


# ---- Canonical kernel contract (documentation) -------------------------------
__doc__ = (__doc__ or "") + r"""

FROZEN KERNEL CONTRACT

Stepper statuses (int32): OK=0 (accepted), REJECTED=1, NAN_DETECTED=3.
Classifier statuses: CONVERGED=4, BUDGET_EXHAUSTED=5, NAN_DETECTED=3.

Rules:
- RHS reads y and params, writes dy; never allocates.
- Stepper reads t, h, y_curr, params, stepper_config; writes y_prop, t_prop[0],
  dt_next[0], err_est[0]; uses ws as scratch. It never mutates y_curr.
  On REJECTED: t_prop[0] == t and dt_next[0] < h.
  On NAN_DETECTED: nothing is committed, dt_next[0] == h.
- Classifier owns its working state; commits y_prop into its copy of y0 on OK.
- Region codes: attractor index (0..N-1), NEUTRAL_CENTER=-1, UNRESOLVED=-2.
"""
