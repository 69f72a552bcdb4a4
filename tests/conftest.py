from typing import Sequence

import pytest

from ecobin.services.dispatch.engine import DispatchConstraints
from ecobin.services.routing.exceptions import SolverTransportError
from ecobin.services.routing.models import SolverJob, SolverRoute, SolverStep, SolverVehicle
from ecobin.services.routing.polyline import encode_polyline

DEPOT = (75.7871, 26.9124)
PLANT = (75.9330, 26.9660)


class FakeSolver:
    """Visits jobs in the order given, from the vehicle start to its optional end."""

    def __init__(self, fail_vehicles: Sequence[int] = (), fail_all: bool = False) -> None:
        self.fail_vehicles = set(fail_vehicles)
        self.fail_all = fail_all
        self.calls: list[tuple[list[SolverJob], list[SolverVehicle]]] = []

    def _route(self, jobs: Sequence[SolverJob], vehicle: SolverVehicle) -> SolverRoute:
        steps = [SolverStep(type="start", location=vehicle.start)]
        steps.extend(SolverStep(type="job", location=job.location, job_id=job.id) for job in jobs)
        if vehicle.end is not None:
            steps.append(SolverStep(type="end", location=vehicle.end))
        geometry = encode_polyline([(lat, lon) for lon, lat in (step.location for step in steps)])
        return SolverRoute(vehicle_id=vehicle.id, steps=steps, geometry=geometry)

    def optimize(self, jobs, vehicles):
        self.calls.append((list(jobs), list(vehicles)))
        if self.fail_all:
            raise SolverTransportError("solver unavailable")
        # First vehicle takes everything, like a solver with plenty of capacity.
        return [self._route(jobs, vehicles[0])]

    def solve(self, jobs, vehicle):
        self.calls.append((list(jobs), [vehicle]))
        if self.fail_all or vehicle.id in self.fail_vehicles:
            raise SolverTransportError(f"solver unavailable for vehicle {vehicle.id}")
        return self._route(jobs, vehicle)


@pytest.fixture
def constraints() -> DispatchConstraints:
    return DispatchConstraints(
        max_capacity=1000,
        load_per_stop=100,
        max_detour_km=5,
        service_seconds=300,
        depot=DEPOT,
        treatment_plant=PLANT,
        profile="driving-hgv",
    )


@pytest.fixture
def fake_solver() -> FakeSolver:
    return FakeSolver()


@pytest.fixture
def solver_factory():
    return FakeSolver
