"""Offline route solver built on OR-Tools.

Sequences jobs over a haversine distance matrix so dispatch can run without
an OpenRouteService key. Geometry is the straight-line path through the
ordered stops.
"""

from __future__ import annotations

import logging
from typing import Sequence

from ortools.constraint_solver import pywrapcp, routing_enums_pb2

from ...config import settings
from ..geospatial import distance_km
from .exceptions import MalformedSolverResponse, SolverError
from .models import SolverJob, SolverRoute, SolverStep, SolverVehicle
from .polyline import encode_polyline

logger = logging.getLogger(__name__)


class LocalSequenceSolver:
    def __init__(self, time_limit_seconds: int | None = None) -> None:
        self.time_limit_seconds = time_limit_seconds or settings.solver_time_limit_seconds

    def optimize(self, jobs: Sequence[SolverJob], vehicles: Sequence[SolverVehicle]) -> list[SolverRoute]:
        if not jobs:
            raise ValueError("At least one job is required for optimization.")
        if not vehicles:
            raise ValueError("At least one vehicle is required for optimization.")

        # Node layout: jobs first, then a start and an end node per vehicle.
        locations = [job.location for job in jobs]
        starts: list[int] = []
        ends: list[int] = []
        open_ends: set[int] = set()
        for vehicle in vehicles:
            starts.append(len(locations))
            locations.append(vehicle.start)
            ends.append(len(locations))
            if vehicle.end is None:
                open_ends.add(len(locations))
                locations.append(vehicle.start)
            else:
                locations.append(vehicle.end)

        # Arcs into an open end are free, so the route may finish anywhere.
        matrix = [
            [0 if j in open_ends else int(distance_km(a, b) * 1000) for j, b in enumerate(locations)]
            for a in locations
        ]

        manager = pywrapcp.RoutingIndexManager(len(locations), len(vehicles), starts, ends)
        routing = pywrapcp.RoutingModel(manager)

        def distance_callback(from_index: int, to_index: int) -> int:
            from_node = manager.IndexToNode(from_index)
            to_node = manager.IndexToNode(to_index)
            return matrix[from_node][to_node]

        transit_callback_index = routing.RegisterTransitCallback(distance_callback)
        routing.SetArcCostEvaluatorOfAllVehicles(transit_callback_index)

        search_parameters = pywrapcp.DefaultRoutingSearchParameters()
        search_parameters.first_solution_strategy = (
            routing_enums_pb2.FirstSolutionStrategy.PATH_CHEAPEST_ARC
        )
        search_parameters.time_limit.FromSeconds(self.time_limit_seconds)

        assignment = routing.SolveWithParameters(search_parameters)
        if not assignment:
            raise SolverError(f"OR-Tools found no sequence for {len(jobs)} jobs.")

        routes: list[SolverRoute] = []
        for vehicle_index, vehicle in enumerate(vehicles):
            steps = [SolverStep(type="start", location=vehicle.start)]
            index = assignment.Value(routing.NextVar(routing.Start(vehicle_index)))
            while not routing.IsEnd(index):
                job = jobs[manager.IndexToNode(index)]
                steps.append(SolverStep(type="job", location=job.location, job_id=job.id))
                index = assignment.Value(routing.NextVar(index))
            if len(steps) == 1:
                continue
            if vehicle.end is not None:
                steps.append(SolverStep(type="end", location=vehicle.end))
            geometry = encode_polyline([(lat, lon) for lon, lat in (step.location for step in steps)])
            routes.append(SolverRoute(vehicle_id=vehicle.id, steps=steps, geometry=geometry))

        logger.debug(f"Local solver sequenced {len(jobs)} jobs over {len(routes)} vehicle(s)")
        return routes

    def solve(self, jobs: Sequence[SolverJob], vehicle: SolverVehicle) -> SolverRoute:
        for route in self.optimize(jobs, [vehicle]):
            if route.vehicle_id == vehicle.id:
                return route
        raise MalformedSolverResponse(f"No route produced for vehicle {vehicle.id}.")
