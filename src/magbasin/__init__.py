# src/magbasin/__init__.py
from __future__ import annotations

# Re-export frozen constants/types for stable imports
from magbasin.runtime.runner_api import (
    Status, OK, REJECTED, NAN_DETECTED, CONVERGED, BUDGET_EXHAUSTED,
    NEUTRAL_CENTER, UNRESOLVED,
)
from .errors import MagbasinError, ConfigError, ConfigNotFoundError

from .systems import Attractor, PendulumSystem, DifferentialSystem
from .steppers import CashKarp54, CASH_KARP_TABLEAU, StepResult
from .analysis import (
    ClassifierConfig, IntegrationResult, classify_point,
    GridSpec, BasinMap, basin_map,
)
from .compiler.build import build
from .config import RunConfig, default_config, load_config


__all__ = [
    # Core entry points
    "PendulumSystem", "Attractor", "DifferentialSystem",
    "CashKarp54", "CASH_KARP_TABLEAU", "StepResult",
    "ClassifierConfig", "IntegrationResult", "classify_point",
    "GridSpec", "BasinMap", "basin_map", "build",
    # Configuration
    "RunConfig", "default_config", "load_config",
    # Status and region codes
    "Status", "OK", "REJECTED", "NAN_DETECTED", "CONVERGED", "BUDGET_EXHAUSTED",
    "NEUTRAL_CENTER", "UNRESOLVED",
    # Errors
    "MagbasinError", "ConfigError", "ConfigNotFoundError",
]
