# src/magbasin/systems/pendulum.py
"""
Damped magnetic pendulum over a plane of point attractors.

The bob is constrained to a sphere of radius ``length``; the state is the
planar projection ``[x, y, vx, vy]``. Each attractor pulls with an
inverse-cube force measured through the bob's vertical separation from the
attractor plane.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable, Sequence
import math
import numpy as np

__all__ = ["Attractor", "PendulumSystem", "pendulum_rhs", "PARAM_HEADER"]

# Packed parameter layout (float64):
#   [0] height  [1] mass  [2] gravity  [3] drag  [4] length
#   [5] length**2  [6] gravity/length  [7] attractor count
#   [8 + 3*i : 11 + 3*i] (x_position, y_position, force_coefficient) of attractor i
PARAM_HEADER = 8


@dataclass(frozen=True)
class Attractor:
    x_position: float
    y_position: float
    force_coefficient: float = 1.0


def pendulum_rhs(t, y, dy, params):
    # autonomous: t is unused
    x = y[0]
    yy = y[1]
    vx = y[2]
    vy = y[3]

    height = params[0]
    mass = params[1]
    drag = params[3]
    length = params[4]
    length_squared = params[5]
    gravity_over_length = params[6]
    n_attr = int(params[7])

    radicand = 1.0 - (x * x + yy * yy) / length_squared
    if radicand < 0.0:
        # bob left the sphere: poison the derivative instead of raising
        sqrt_term = math.nan
    else:
        sqrt_term = math.sqrt(radicand)
    gravity_term = -gravity_over_length * sqrt_term

    plane_offset = height + length * (1.0 - sqrt_term)
    plane_offset_sq = plane_offset * plane_offset

    fx = 0.0
    fy = 0.0
    for i in range(n_attr):
        base = PARAM_HEADER + 3 * i
        ddx = x - params[base]
        ddy = yy - params[base + 1]
        factor = -params[base + 2] / (ddx * ddx + ddy * ddy + plane_offset_sq) ** 1.5
        fx += ddx * factor
        fy += ddy * factor

    dy[0] = vx
    dy[1] = vy
    dy[2] = x * gravity_term + (-drag * vx + fx) / mass
    dy[3] = yy * gravity_term + (-drag * vy + fy) / mass


@dataclass(frozen=True)
class PendulumSystem:
    """
    Physical configuration of the pendulum.

    ``length_squared`` and ``gravity_over_length`` are derived once at
    construction. The dataclass is frozen so they can never drift from
    ``length``/``gravity``; use ``dataclasses.replace`` to derive a variant.
    """
    height: float
    mass: float
    gravity: float
    drag: float
    length: float
    attractors: tuple[Attractor, ...] = ()
    length_squared: float = field(init=False, repr=False)
    gravity_over_length: float = field(init=False, repr=False)

    n_state = 4

    def __post_init__(self) -> None:
        if not self.length > 0.0:
            raise ValueError(f"length must be positive; got {self.length}")
        if not self.mass > 0.0:
            raise ValueError(f"mass must be positive; got {self.mass}")
        if not self.height > 0.0:
            raise ValueError(f"height must be positive; got {self.height}")
        attractors = tuple(self.attractors)
        for a in attractors:
            if not isinstance(a, Attractor):
                raise TypeError(f"attractors must be Attractor instances; got {type(a).__name__}")
        object.__setattr__(self, "attractors", attractors)
        object.__setattr__(self, "length_squared", float(self.length) * float(self.length))
        object.__setattr__(self, "gravity_over_length", float(self.gravity) / float(self.length))

    @classmethod
    def with_attractors(
        cls,
        positions: Sequence[Sequence[float]],
        *,
        height: float,
        mass: float,
        gravity: float,
        drag: float,
        length: float,
    ) -> "PendulumSystem":
        """Build from ``(x, y)`` or ``(x, y, force_coefficient)`` tuples."""
        attractors = tuple(Attractor(*map(float, p)) for p in positions)
        return cls(height=height, mass=mass, gravity=gravity, drag=drag, length=length, attractors=attractors)

    @property
    def rhs(self) -> Callable:
        return pendulum_rhs

    def pack_params(self) -> np.ndarray:
        """Pack into the float64 layout read by :func:`pendulum_rhs`."""
        out = np.empty(PARAM_HEADER + 3 * len(self.attractors), dtype=np.float64)
        out[:PARAM_HEADER] = (
            self.height,
            self.mass,
            self.gravity,
            self.drag,
            self.length,
            self.length_squared,
            self.gravity_over_length,
            float(len(self.attractors)),
        )
        for i, a in enumerate(self.attractors):
            base = PARAM_HEADER + 3 * i
            out[base:base + 3] = (a.x_position, a.y_position, a.force_coefficient)
        return out

    def attractor_positions(self) -> np.ndarray:
        """Attractor positions as a ``(N, 2)`` float64 array, in index order."""
        pos = np.zeros((len(self.attractors), 2), dtype=np.float64)
        for i, a in enumerate(self.attractors):
            pos[i, 0] = a.x_position
            pos[i, 1] = a.y_position
        return pos

    def evaluate(self, state, t: float = 0.0) -> np.ndarray:
        y = np.asarray(state, dtype=np.float64)
        if y.shape != (self.n_state,):
            raise ValueError(f"state shape must be ({self.n_state},), got {y.shape}")
        dy = np.empty(self.n_state, dtype=np.float64)
        pendulum_rhs(float(t), y, dy, self.pack_params())
        return dy
