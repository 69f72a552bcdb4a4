"""Routing domain models exchanged with the optimization solver."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from ...models.domain import Coordinate, StopId


@dataclass(slots=True)
class SolverJob:
    """One pickup handed to the solver.

    ``stop_id`` and ``name`` never leave the process; they map solver steps
    back to the stop they came from.
    """

    id: int
    location: Coordinate
    service: int
    stop_id: StopId
    name: str


@dataclass(slots=True)
class SolverVehicle:
    id: int
    start: Coordinate
    capacity: int
    profile: str
    end: Optional[Coordinate] = None


@dataclass(slots=True)
class SolverStep:
    type: Optional[str]
    location: Coordinate
    job_id: Optional[int] = None


@dataclass(slots=True)
class SolverRoute:
    vehicle_id: int
    steps: List[SolverStep]
    geometry: str
