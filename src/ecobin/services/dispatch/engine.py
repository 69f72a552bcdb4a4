"""Dispatch engine: assigns collection requests to vehicles.

Each cycle is a state transition ``(new_point?, state) -> state'``. The
engine never mutates the state it receives, so a failed cycle leaves the
caller holding exactly what it passed in.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional, Sequence

from ...config import settings
from ...models.domain import CollectionPoint, Coordinate, FleetState, Route, Stop, StopId, Vehicle
from ..geospatial import distance_km, route_distance_km
from ..routing import RouteSolver, build_solver
from ..routing.exceptions import MalformedSolverResponse, SolverError
from ..routing.models import SolverJob, SolverRoute, SolverVehicle
from .exceptions import NoFeasibleVehicleError

logger = logging.getLogger(__name__)

PLANT_NAME = "Waste Treatment Plant"
PLACEHOLDER_NAME = "Vehicle position"


@dataclass(frozen=True, slots=True)
class DispatchConstraints:
    max_capacity: int = settings.max_capacity
    load_per_stop: int = settings.load_per_stop
    max_detour_km: float = settings.max_detour_km
    service_seconds: int = settings.service_seconds
    depot: Coordinate = settings.depot_location
    treatment_plant: Coordinate = settings.treatment_plant_location
    profile: str = settings.ors_profile


@dataclass(slots=True)
class Candidate:
    vehicle: Vehicle
    route: Route
    distance_km: float


def build_route(solved: SolverRoute, jobs: Sequence[SolverJob], *, to_plant: bool) -> Route:
    """Convert a solver route into a committed route.

    Job steps keep the identity of the job they came from. The start step is
    the vehicle's placeholder position; the end step is the treatment plant
    when the vehicle is being sent there this cycle.
    """
    job_lookup = {job.id: job for job in jobs}
    last_index = len(solved.steps) - 1
    stops: list[Stop] = []
    visited: set[int] = set()

    for index, step in enumerate(solved.steps):
        if step.job_id is not None:
            job = job_lookup.get(step.job_id)
            if job is None:
                raise MalformedSolverResponse(f"Solver returned unknown job id {step.job_id}.")
            visited.add(job.id)
            stops.append(Stop(location=step.location, stop_id=job.stop_id, name=job.name))
            continue
        is_end = step.type == "end" or (step.type is None and index == last_index and index > 0)
        if is_end and to_plant:
            stops.append(Stop(location=step.location, stop_id=StopId.plant(), name=PLANT_NAME))
        else:
            stops.append(
                Stop(location=step.location, stop_id=StopId.placeholder(solved.vehicle_id), name=PLACEHOLDER_NAME)
            )

    missing = set(job_lookup) - visited
    if missing:
        raise MalformedSolverResponse(f"Solver route skipped jobs {sorted(missing)}.")
    return Route(vehicle_id=solved.vehicle_id, stops=tuple(stops), geometry=solved.geometry)


class DispatchEngine:
    def __init__(
        self,
        solver: RouteSolver,
        constraints: DispatchConstraints | None = None,
        max_parallel_candidates: int = 1,
    ) -> None:
        self.solver = solver
        self.constraints = constraints or DispatchConstraints()
        self.max_parallel_candidates = max(1, max_parallel_candidates)

    def dispatch(self, new_point: Optional[CollectionPoint], state: FleetState) -> FleetState:
        """Run one cycle: refresh when there is no new point, assign otherwise."""
        if new_point is None:
            return self.refresh(state)
        return self.assign(new_point, state)

    def refresh(self, state: FleetState) -> FleetState:
        logger.debug(f"Refresh cycle for {len(state.routes)} route(s); no assignment changes")
        return state

    def assign(self, point: CollectionPoint, state: FleetState) -> FleetState:
        """Insert ``point`` into the best vehicle's route, provisioning one if needed.

        The winner's load grows by ``load_per_stop`` and saturates at
        ``max_capacity``: a vehicle at 950 commits as 1000, not 1050.
        """
        candidates = self.rank_candidates(state.vehicles)
        best = self._select_best(point, state, candidates)
        if best is None:
            best = self._provision_vehicle(point, state)

        limits = self.constraints
        committed = Vehicle(
            id=best.vehicle.id,
            capacity_used=min(best.vehicle.capacity_used + limits.load_per_stop, limits.max_capacity),
        )
        logger.info(
            f"Assigned {point.dustbin_id} to vehicle {committed.id} "
            f"(route {best.distance_km:.2f} km, load {committed.capacity_used}/{limits.max_capacity})"
        )
        return state.with_route(best.route).with_vehicle(committed)

    def rank_candidates(self, vehicles: Sequence[Vehicle]) -> list[Vehicle]:
        """Vehicles with spare capacity, most remaining capacity first."""
        max_capacity = self.constraints.max_capacity
        available = [vehicle for vehicle in vehicles if vehicle.capacity_used < max_capacity]
        return sorted(available, key=lambda vehicle: vehicle.remaining(max_capacity), reverse=True)

    def build_jobs(self, route: Optional[Route], point: CollectionPoint) -> list[SolverJob]:
        service = self.constraints.service_seconds
        # Everything but the plant goes back to the solver, placeholders included.
        stops = [stop for stop in route.stops if not stop.stop_id.is_plant] if route else []
        jobs = [
            SolverJob(id=index, location=stop.location, service=service, stop_id=stop.stop_id, name=stop.name)
            for index, stop in enumerate(stops, start=1)
        ]
        jobs.append(
            SolverJob(
                id=len(jobs) + 1,
                location=point.location,
                service=service,
                stop_id=StopId.real(point.dustbin_id),
                name=point.name,
            )
        )
        return jobs

    def _goes_to_plant(self, vehicle: Vehicle) -> bool:
        return vehicle.capacity_used + self.constraints.load_per_stop >= self.constraints.max_capacity

    def _solver_vehicle(self, vehicle: Vehicle, start: Coordinate, to_plant: bool) -> SolverVehicle:
        limits = self.constraints
        return SolverVehicle(
            id=vehicle.id,
            start=start,
            end=limits.treatment_plant if to_plant else None,
            capacity=limits.max_capacity,
            profile=limits.profile,
        )

    def _evaluate(self, point: CollectionPoint, vehicle: Vehicle, route: Optional[Route]) -> Optional[Candidate]:
        last_stop = route.last_stop if route else None
        if last_stop is not None:
            detour = distance_km(last_stop.location, point.location)
            if detour > self.constraints.max_detour_km:
                logger.debug(
                    f"Vehicle {vehicle.id} rejected for {point.dustbin_id}: "
                    f"{detour:.2f} km from last stop exceeds {self.constraints.max_detour_km} km"
                )
                return None

        jobs = self.build_jobs(route, point)
        to_plant = self._goes_to_plant(vehicle)
        start = last_stop.location if last_stop is not None else self.constraints.depot
        try:
            solved = self.solver.solve(jobs, self._solver_vehicle(vehicle, start, to_plant))
            new_route = build_route(solved, jobs, to_plant=to_plant)
        except SolverError as exc:
            logger.warning(f"Solver failed for vehicle {vehicle.id} and {point.dustbin_id}: {exc}")
            return None

        total = route_distance_km([stop.location for stop in new_route.stops])
        return Candidate(vehicle=vehicle, route=new_route, distance_km=total)

    def _select_best(
        self, point: CollectionPoint, state: FleetState, candidates: Sequence[Vehicle]
    ) -> Optional[Candidate]:
        if self.max_parallel_candidates > 1 and len(candidates) > 1:
            with ThreadPoolExecutor(max_workers=self.max_parallel_candidates) as executor:
                results = list(
                    executor.map(lambda vehicle: self._evaluate(point, vehicle, state.route_for(vehicle.id)), candidates)
                )
        else:
            results = [self._evaluate(point, vehicle, state.route_for(vehicle.id)) for vehicle in candidates]

        # Results are in candidate rank order; strict comparison keeps the first on ties.
        best: Optional[Candidate] = None
        for candidate in results:
            if candidate is not None and (best is None or candidate.distance_km < best.distance_km):
                best = candidate
        return best

    def _provision_vehicle(self, point: CollectionPoint, state: FleetState) -> Candidate:
        existing_ids = {vehicle.id for vehicle in state.vehicles}
        new_id = len(state.vehicles) + 1
        if new_id in existing_ids:
            new_id = max(existing_ids) + 1

        vehicle = Vehicle(id=new_id, capacity_used=0)
        jobs = self.build_jobs(None, point)
        to_plant = self._goes_to_plant(vehicle)
        try:
            solved = self.solver.solve(jobs, self._solver_vehicle(vehicle, self.constraints.depot, to_plant))
            route = build_route(solved, jobs, to_plant=to_plant)
        except SolverError as exc:
            logger.error(f"Could not provision vehicle {new_id} for {point.dustbin_id}: {exc}")
            raise NoFeasibleVehicleError(
                f"No vehicle can serve {point.dustbin_id}: provisioning vehicle {new_id} failed ({exc})"
            ) from exc

        logger.info(f"Provisioned vehicle {new_id} for {point.dustbin_id}")
        total = route_distance_km([stop.location for stop in route.stops])
        return Candidate(vehicle=vehicle, route=route, distance_km=total)


def build_engine(solver: RouteSolver | None = None) -> DispatchEngine:
    """Create an engine wired to the configured solver."""
    return DispatchEngine(
        solver=solver or build_solver(),
        max_parallel_candidates=settings.max_parallel_candidates,
    )
