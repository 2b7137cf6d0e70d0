"""Classification of starting states into basins of attraction."""

from .classify import ClassifierConfig, IntegrationResult, classify_point
from .basin import BasinMap, GridSpec, basin_map

__all__ = [
    "ClassifierConfig",
    "IntegrationResult",
    "classify_point",
    "BasinMap",
    "GridSpec",
    "basin_map",
]
