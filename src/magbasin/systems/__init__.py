from .base import DifferentialSystem
from .pendulum import Attractor, PendulumSystem, pendulum_rhs

__all__ = ["DifferentialSystem", "Attractor", "PendulumSystem", "pendulum_rhs"]
