# src/magbasin/utils/timer.py
from __future__ import annotations
import sys
import time
from typing import Optional, TextIO

__all__ = ["Timer"]


class Timer:
    """
    Context manager that measures wall time and optionally reports it.

    Example::

        with Timer("Calculation time"):
            basin = basin_map(system, integrator, grid)
    """

    def __init__(self, label: Optional[str] = None, *, stream: Optional[TextIO] = None):
        self.label = label
        self.stream = stream
        self.start: float | None = None
        self.elapsed: float = 0.0

    def __enter__(self) -> "Timer":
        self.start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.elapsed = time.perf_counter() - (self.start or 0.0)
        if self.label is not None:
            out = self.stream if self.stream is not None else sys.stdout
            print(f"{self.label}: {self.milliseconds} ms", file=out)

    @property
    def milliseconds(self) -> int:
        return int(round(self.elapsed * 1000.0))
