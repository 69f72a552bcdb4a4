"""Serializers for fleet and route state."""

from __future__ import annotations

from typing import Any, Mapping

from ...models.domain import CollectionPoint, FleetState, Route, Stop, StopId, Vehicle


def route_to_json(route: Route) -> dict:
    return {
        "vehicle_id": route.vehicle_id,
        "steps": [
            {
                "location": [stop.location[0], stop.location[1]],
                "dustbin_id": str(stop.stop_id),
                "name": stop.name,
            }
            for stop in route.stops
        ],
        "geometry": route.geometry,
    }


def vehicle_to_json(vehicle: Vehicle) -> dict:
    return {"id": vehicle.id, "capacityUsed": vehicle.capacity_used}


def fleet_state_to_json(state: FleetState) -> dict:
    return {
        "routes": [route_to_json(route) for route in state.routes],
        "vehicles": [vehicle_to_json(vehicle) for vehicle in state.vehicles],
    }


def route_from_json(data: Mapping[str, Any]) -> Route:
    return Route(
        vehicle_id=int(data["vehicle_id"]),
        stops=tuple(
            Stop(
                location=(float(step["location"][0]), float(step["location"][1])),
                stop_id=StopId.parse(str(step["dustbin_id"])),
                name=str(step.get("name", "")),
            )
            for step in data.get("steps", [])
        ),
        geometry=str(data["geometry"]),
    )


def vehicle_from_json(data: Mapping[str, Any]) -> Vehicle:
    return Vehicle(id=int(data["id"]), capacity_used=data.get("capacityUsed", 0) or 0)


def fleet_state_from_json(data: Mapping[str, Any] | None) -> FleetState:
    if not data:
        return FleetState()
    return FleetState(
        routes=tuple(route_from_json(item) for item in data.get("routes") or []),
        vehicles=tuple(vehicle_from_json(item) for item in data.get("vehicles") or []),
    )


def collection_point_to_json(point: CollectionPoint) -> dict:
    return {
        "dustbin_id": point.dustbin_id,
        "location": [point.location[0], point.location[1]],
        "name": point.name,
        "fill_percentage": point.fill_percentage,
    }
