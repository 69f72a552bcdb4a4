from dataclasses import replace

import pytest

from ecobin.models.domain import CollectionPoint, FleetState, Route, Stop, StopId, Vehicle
from ecobin.services.dispatch.engine import DispatchEngine, build_route
from ecobin.services.dispatch.exceptions import NoFeasibleVehicleError
from ecobin.services.geospatial import distance_km
from ecobin.services.routing.exceptions import MalformedSolverResponse
from ecobin.services.routing.models import SolverJob, SolverRoute, SolverStep

DEPOT = (75.7871, 26.9124)
PLANT = (75.9330, 26.9660)
HAWA_MAHAL = CollectionPoint("hawa_mahal", (75.8267, 26.9239), "Hawa Mahal", 80)


def _route(vehicle_id: int, *pickups: tuple[str, tuple[float, float]], start=DEPOT) -> Route:
    stops = [Stop(location=start, stop_id=StopId.placeholder(vehicle_id), name="Vehicle position")]
    stops.extend(Stop(location=location, stop_id=StopId.real(dustbin_id), name=dustbin_id) for dustbin_id, location in pickups)
    return Route(vehicle_id=vehicle_id, stops=tuple(stops), geometry="")


def _north_of(point: CollectionPoint, degrees: float) -> tuple[float, float]:
    return (point.location[0], point.location[1] + degrees)


def test_empty_fleet_provisions_first_vehicle(fake_solver, constraints) -> None:
    engine = DispatchEngine(fake_solver, constraints)

    state = engine.dispatch(HAWA_MAHAL, FleetState())

    assert state.vehicles == (Vehicle(id=1, capacity_used=100),)
    route = state.route_for(1)
    assert [str(stop.stop_id) for stop in route.stops] == ["temp_1", "hawa_mahal"]
    assert route.stops[0].location == DEPOT
    assert [stop.stop_id for stop in route.pickups()] == [StopId.real("hawa_mahal")]
    assert route.decoded_geometry()


def test_nearly_full_vehicle_is_sent_to_plant(fake_solver, constraints) -> None:
    state = FleetState(
        routes=(_route(1, ("bapu_bazaar", (75.8220, 26.9200))),),
        vehicles=(Vehicle(id=1, capacity_used=950),),
    )
    engine = DispatchEngine(fake_solver, constraints)

    new_state = engine.dispatch(HAWA_MAHAL, state)

    _, vehicles = fake_solver.calls[-1]
    assert vehicles[0].end == PLANT
    route = new_state.route_for(1)
    assert str(route.last_stop.stop_id) == "waste_plant"
    assert route.last_stop.location == PLANT
    assert [str(stop.stop_id) for stop in route.pickups()] == ["bapu_bazaar", "hawa_mahal"]
    assert new_state.vehicle(1).capacity_used == 1000


def test_open_route_has_no_end(fake_solver, constraints) -> None:
    engine = DispatchEngine(fake_solver, constraints)
    engine.dispatch(HAWA_MAHAL, FleetState())

    _, vehicles = fake_solver.calls[-1]
    assert vehicles[0].end is None


def test_far_point_provisions_new_vehicle(fake_solver, constraints) -> None:
    # ~6.7 km north of the only route's last stop.
    far_point = CollectionPoint("far", _north_of(HAWA_MAHAL, 0.06), "Far Bin")
    state = FleetState(
        routes=(_route(1, ("hawa_mahal", HAWA_MAHAL.location)),),
        vehicles=(Vehicle(id=1, capacity_used=100),),
    )
    engine = DispatchEngine(fake_solver, constraints)

    new_state = engine.dispatch(far_point, state)

    assert [vehicle.id for vehicle in new_state.vehicles] == [1, 2]
    assert new_state.vehicle(1) == Vehicle(id=1, capacity_used=100)
    assert new_state.vehicle(2).capacity_used == 100
    assert new_state.route_for(1) == state.route_for(1)
    assert new_state.route_for(2).stops[0].location == DEPOT
    # The detour check rejected vehicle 1 before any solver call.
    assert [vehicles[0].id for _, vehicles in fake_solver.calls] == [2]


def test_shortest_candidate_wins_over_rank(fake_solver, constraints) -> None:
    state = FleetState(
        routes=(
            _route(1, ("a", _north_of(HAWA_MAHAL, 0.027))),
            _route(2, ("b", _north_of(HAWA_MAHAL, 0.009))),
        ),
        vehicles=(Vehicle(id=1, capacity_used=100), Vehicle(id=2, capacity_used=200)),
    )
    engine = DispatchEngine(fake_solver, constraints)

    new_state = engine.dispatch(HAWA_MAHAL, state)

    assert new_state.vehicle(2).capacity_used == 300
    assert new_state.vehicle(1).capacity_used == 100
    assert new_state.route_for(2).serves("hawa_mahal")
    assert not new_state.route_for(1).serves("hawa_mahal")


def test_tie_goes_to_most_remaining_capacity(fake_solver, constraints) -> None:
    nearby = _north_of(HAWA_MAHAL, 0.01)
    state = FleetState(
        routes=(_route(1, ("a", nearby)), _route(2, ("b", nearby))),
        vehicles=(Vehicle(id=1, capacity_used=300), Vehicle(id=2, capacity_used=100)),
    )
    engine = DispatchEngine(fake_solver, constraints)

    new_state = engine.dispatch(HAWA_MAHAL, state)

    assert new_state.vehicle(2).capacity_used == 200
    assert new_state.vehicle(1).capacity_used == 300


def test_rank_candidates_excludes_full_vehicles(fake_solver, constraints) -> None:
    engine = DispatchEngine(fake_solver, constraints)
    vehicles = [Vehicle(1, 500), Vehicle(2, 1000), Vehicle(3, 100), Vehicle(4, 500)]

    ranked = engine.rank_candidates(vehicles)

    assert [vehicle.id for vehicle in ranked] == [3, 1, 4]


def test_solver_failure_skips_candidate(solver_factory, constraints) -> None:
    solver = solver_factory(fail_vehicles=[2])
    state = FleetState(
        routes=(
            _route(1, ("a", _north_of(HAWA_MAHAL, 0.027))),
            _route(2, ("b", _north_of(HAWA_MAHAL, 0.009))),
        ),
        vehicles=(Vehicle(id=1, capacity_used=100), Vehicle(id=2, capacity_used=200)),
    )
    engine = DispatchEngine(solver, constraints)

    new_state = engine.dispatch(HAWA_MAHAL, state)

    assert new_state.route_for(1).serves("hawa_mahal")
    assert len(new_state.vehicles) == 2


def test_provisioning_failure_raises_and_leaves_state(solver_factory, constraints, caplog) -> None:
    state = FleetState(
        routes=(_route(1, ("a", _north_of(HAWA_MAHAL, 0.01))),),
        vehicles=(Vehicle(id=1, capacity_used=100),),
    )
    snapshot = FleetState(routes=state.routes, vehicles=state.vehicles)
    engine = DispatchEngine(solver_factory(fail_all=True), constraints)

    with pytest.raises(NoFeasibleVehicleError):
        engine.dispatch(HAWA_MAHAL, state)
    assert state == snapshot
    assert any(
        record.name == "ecobin.services.dispatch.engine" and record.levelname == "ERROR" for record in caplog.records
    )


def test_full_fleet_provisions_next_id(fake_solver, constraints) -> None:
    state = FleetState(
        routes=(_route(1, ("a", HAWA_MAHAL.location)),),
        vehicles=(Vehicle(id=1, capacity_used=1000),),
    )
    engine = DispatchEngine(fake_solver, constraints)

    new_state = engine.dispatch(HAWA_MAHAL, state)

    assert new_state.vehicle(2).capacity_used == 100


def test_new_vehicle_id_skips_taken_ids(fake_solver, constraints) -> None:
    state = FleetState(vehicles=(Vehicle(id=2, capacity_used=1000),))
    engine = DispatchEngine(fake_solver, constraints)

    new_state = engine.dispatch(HAWA_MAHAL, state)

    assert [vehicle.id for vehicle in new_state.vehicles] == [2, 3]


def test_existing_stops_are_resubmitted_except_plant(fake_solver, constraints) -> None:
    state = FleetState(
        routes=(_route(1, ("a", _north_of(HAWA_MAHAL, 0.01)), ("b", _north_of(HAWA_MAHAL, 0.02))),),
        vehicles=(Vehicle(id=1, capacity_used=200),),
    )
    engine = DispatchEngine(fake_solver, constraints)

    new_state = engine.dispatch(HAWA_MAHAL, state)

    jobs, vehicles = fake_solver.calls[-1]
    assert [job.id for job in jobs] == [1, 2, 3, 4]
    assert [str(job.stop_id) for job in jobs] == ["temp_1", "a", "b", "hawa_mahal"]
    assert jobs[0].location == DEPOT
    assert vehicles[0].start == _north_of(HAWA_MAHAL, 0.02)
    # The resubmitted placeholder keeps its identity in the committed route.
    assert StopId.placeholder(1) in [stop.stop_id for stop in new_state.route_for(1).stops[1:]]


def test_plant_stop_is_not_resubmitted(fake_solver, constraints) -> None:
    route = Route(
        vehicle_id=1,
        stops=(
            Stop(location=DEPOT, stop_id=StopId.placeholder(1), name="Vehicle position"),
            Stop(location=HAWA_MAHAL.location, stop_id=StopId.real("a"), name="a"),
            Stop(location=PLANT, stop_id=StopId.plant(), name="Waste Treatment Plant"),
        ),
        geometry="",
    )
    engine = DispatchEngine(fake_solver, constraints)

    jobs = engine.build_jobs(route, HAWA_MAHAL)

    assert [str(job.stop_id) for job in jobs] == ["temp_1", "a", "hawa_mahal"]


def test_point_exactly_at_detour_limit_is_accepted(fake_solver, constraints) -> None:
    last = _north_of(HAWA_MAHAL, 0.03)
    state = FleetState(routes=(_route(1, ("a", last)),), vehicles=(Vehicle(id=1, capacity_used=100),))
    limit = distance_km(last, HAWA_MAHAL.location)

    at_limit = DispatchEngine(fake_solver, replace(constraints, max_detour_km=limit)).dispatch(HAWA_MAHAL, state)
    beyond = DispatchEngine(fake_solver, replace(constraints, max_detour_km=limit * 0.999)).dispatch(HAWA_MAHAL, state)

    assert [vehicle.id for vehicle in at_limit.vehicles] == [1]
    assert at_limit.route_for(1).serves("hawa_mahal")
    assert [vehicle.id for vehicle in beyond.vehicles] == [1, 2]
    assert not beyond.route_for(1).serves("hawa_mahal")


def test_refresh_returns_state_unchanged(fake_solver, constraints) -> None:
    state = FleetState(
        routes=(_route(1, ("a", HAWA_MAHAL.location)),),
        vehicles=(Vehicle(id=1, capacity_used=100),),
    )
    engine = DispatchEngine(fake_solver, constraints)

    assert engine.dispatch(None, state) == state
    assert engine.dispatch(None, engine.dispatch(None, state)) == state
    assert fake_solver.calls == []


def test_parallel_evaluation_matches_sequential(solver_factory, constraints) -> None:
    state = FleetState(
        routes=(
            _route(1, ("a", _north_of(HAWA_MAHAL, 0.027))),
            _route(2, ("b", _north_of(HAWA_MAHAL, 0.009))),
            _route(3, ("c", _north_of(HAWA_MAHAL, 0.018))),
        ),
        vehicles=(Vehicle(1, 100), Vehicle(2, 200), Vehicle(3, 300)),
    )

    sequential = DispatchEngine(solver_factory(), constraints).dispatch(HAWA_MAHAL, state)
    parallel = DispatchEngine(solver_factory(), constraints, max_parallel_candidates=3).dispatch(HAWA_MAHAL, state)

    assert parallel == sequential


def test_capacity_never_exceeds_max(fake_solver, constraints) -> None:
    engine = DispatchEngine(fake_solver, constraints)
    state = FleetState()
    for index in range(15):
        point = CollectionPoint(f"bin_{index}", _north_of(HAWA_MAHAL, 0.001 * index), f"Bin {index}")
        state = engine.dispatch(point, state)

    assert all(0 <= vehicle.capacity_used <= 1000 for vehicle in state.vehicles)
    served = [str(stop.stop_id) for route in state.routes for stop in route.pickups()]
    assert sorted(served) == sorted(f"bin_{index}" for index in range(15))


def test_build_route_rejects_unknown_job() -> None:
    jobs = [SolverJob(id=1, location=HAWA_MAHAL.location, service=300, stop_id=StopId.real("a"), name="A")]
    solved = SolverRoute(
        vehicle_id=1,
        steps=[SolverStep(type="start", location=DEPOT), SolverStep(type="job", location=DEPOT, job_id=9)],
        geometry="",
    )

    with pytest.raises(MalformedSolverResponse):
        build_route(solved, jobs, to_plant=False)


def test_build_route_rejects_skipped_job() -> None:
    jobs = [SolverJob(id=1, location=HAWA_MAHAL.location, service=300, stop_id=StopId.real("a"), name="A")]
    solved = SolverRoute(vehicle_id=1, steps=[SolverStep(type="start", location=DEPOT)], geometry="")

    with pytest.raises(MalformedSolverResponse):
        build_route(solved, jobs, to_plant=False)
