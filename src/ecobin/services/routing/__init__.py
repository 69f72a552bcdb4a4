"""Route solvers consumed by the dispatch engine."""

from __future__ import annotations

from typing import Protocol, Sequence

from ...config import settings
from .models import SolverJob, SolverRoute, SolverVehicle


class RouteSolver(Protocol):
    def optimize(self, jobs: Sequence[SolverJob], vehicles: Sequence[SolverVehicle]) -> list[SolverRoute]:
        ...

    def solve(self, jobs: Sequence[SolverJob], vehicle: SolverVehicle) -> SolverRoute:
        ...


def build_solver(backend: str | None = None) -> RouteSolver:
    """Create the solver selected by ``ECOBIN_SOLVER_BACKEND``."""
    backend = backend or settings.solver_backend
    if backend == "local":
        from .local_solver import LocalSequenceSolver

        return LocalSequenceSolver()
    from .ors_client import ORSOptimizationClient

    return ORSOptimizationClient()


__all__ = ["RouteSolver", "build_solver"]
