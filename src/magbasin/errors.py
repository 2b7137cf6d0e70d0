# src/magbasin/errors.py
from __future__ import annotations
from typing import List

__all__ = [
    "MagbasinError",
    "ConfigError",
    "ConfigNotFoundError",
]

class MagbasinError(Exception):
    """Base error for the magbasin package."""


class ConfigError(MagbasinError):
    """Raised when a run configuration (TOML) is malformed or invalid."""
    def __init__(self, message: str):
        super().__init__(message)


class ConfigNotFoundError(ConfigError):
    """Raised when a configuration path cannot be resolved to an existing file."""
    def __init__(self, path: str, candidates: List[str]):
        self.path = path
        self.candidates = candidates
        msg = f"Config not found: {path}\n"
        if candidates:
            msg += "Searched locations:\n"
            for c in candidates:
                msg += f"  - {c}\n"
        super().__init__(msg)
