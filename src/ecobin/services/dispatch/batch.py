"""Whole-fleet optimization for a batch of full dustbins."""

from __future__ import annotations

import logging
from typing import Sequence

from ...config import settings
from ...models.domain import CollectionPoint, FleetState, StopId, Vehicle
from ..routing import RouteSolver
from ..routing.exceptions import MalformedSolverResponse
from ..routing.models import SolverJob, SolverVehicle
from .engine import DispatchConstraints, build_route


def select_priority_dustbins(
    dustbins: Sequence[CollectionPoint], threshold: float | None = None
) -> list[CollectionPoint]:
    threshold = settings.priority_fill_threshold if threshold is None else threshold
    return [dustbin for dustbin in dustbins if dustbin.fill_percentage > threshold]


def optimize_collection(
    dustbins: Sequence[CollectionPoint],
    solver: RouteSolver,
    *,
    constraints: DispatchConstraints | None = None,
    fleet_size: int | None = None,
    threshold: float | None = None,
) -> FleetState:
    """Plan a fresh fleet that collects every dustbin above the fill threshold.

    Every vehicle starts at the depot and finishes at the treatment plant.
    """
    constraints = constraints or DispatchConstraints()
    fleet_size = fleet_size or settings.batch_fleet_size

    priority = select_priority_dustbins(dustbins, threshold)
    if not priority:
        raise ValueError("No dustbins to optimize.")

    jobs = [
        SolverJob(
            id=index,
            location=dustbin.location,
            service=constraints.service_seconds,
            stop_id=StopId.real(dustbin.dustbin_id),
            name=dustbin.name,
        )
        for index, dustbin in enumerate(priority, start=1)
    ]
    vehicles = [
        SolverVehicle(
            id=vehicle_id,
            start=constraints.depot,
            end=constraints.treatment_plant,
            capacity=constraints.max_capacity,
            profile=constraints.profile,
        )
        for vehicle_id in range(1, fleet_size + 1)
    ]

    solved_routes = solver.optimize(jobs, vehicles)
    routes = []
    for solved in solved_routes:
        used_jobs = [job for job in jobs if any(step.job_id == job.id for step in solved.steps)]
        routes.append(build_route(solved, used_jobs, to_plant=True))

    covered = {stop.stop_id.dustbin_id for route in routes for stop in route.pickups()}
    missing = [dustbin.dustbin_id for dustbin in priority if dustbin.dustbin_id not in covered]
    if missing:
        raise MalformedSolverResponse(f"Optimized routes do not cover dustbins: {missing}")

    fleet = []
    for vehicle in vehicles:
        route = next((item for item in routes if item.vehicle_id == vehicle.id), None)
        pickups = len(route.pickups()) if route else 0
        fleet.append(
            Vehicle(
                id=vehicle.id,
                capacity_used=min(pickups * constraints.load_per_stop, constraints.max_capacity),
            )
        )

    logging.info(
        f"Batch optimization planned {len(priority)} pickups over {len(routes)} route(s) "
        f"({len(dustbins) - len(priority)} dustbin(s) below threshold)"
    )
    return FleetState(routes=tuple(routes), vehicles=tuple(fleet))
