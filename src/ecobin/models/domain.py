"""Domain models for collection points, vehicles and their routes."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional

# (longitude, latitude) in degrees, the order used by the solver wire format.
Coordinate = tuple[float, float]

PLANT_STOP_ID = "waste_plant"
PLACEHOLDER_PREFIX = "temp_"


@dataclass(frozen=True, slots=True)
class CollectionPoint:
    """A dustbin that can request pickup."""

    dustbin_id: str
    location: Coordinate
    name: str
    fill_percentage: float = 0.0


class StopKind(str, Enum):
    REAL = "real"
    PLACEHOLDER = "placeholder"
    PLANT = "plant"


@dataclass(frozen=True, slots=True)
class StopId:
    """Identifier of a route stop.

    A stop is either a committed pickup at a real dustbin, a placeholder for a
    vehicle's not-yet-finalized position, or the treatment plant.
    """

    kind: StopKind
    dustbin_id: Optional[str] = None
    vehicle_id: Optional[int] = None

    @classmethod
    def real(cls, dustbin_id: str) -> "StopId":
        return cls(kind=StopKind.REAL, dustbin_id=dustbin_id)

    @classmethod
    def placeholder(cls, vehicle_id: int) -> "StopId":
        return cls(kind=StopKind.PLACEHOLDER, vehicle_id=vehicle_id)

    @classmethod
    def plant(cls) -> "StopId":
        return cls(kind=StopKind.PLANT)

    @classmethod
    def parse(cls, raw: str) -> "StopId":
        """Parse the wire form produced by ``str(stop_id)``."""
        if raw == PLANT_STOP_ID:
            return cls.plant()
        if raw.startswith(PLACEHOLDER_PREFIX):
            suffix = raw[len(PLACEHOLDER_PREFIX):]
            if suffix.isdigit():
                return cls.placeholder(int(suffix))
        return cls.real(raw)

    @property
    def is_real(self) -> bool:
        return self.kind is StopKind.REAL

    @property
    def is_plant(self) -> bool:
        return self.kind is StopKind.PLANT

    def __str__(self) -> str:
        if self.kind is StopKind.PLANT:
            return PLANT_STOP_ID
        if self.kind is StopKind.PLACEHOLDER:
            return f"{PLACEHOLDER_PREFIX}{self.vehicle_id}"
        return str(self.dustbin_id)


@dataclass(frozen=True, slots=True)
class Stop:
    location: Coordinate
    stop_id: StopId
    name: str


@dataclass(frozen=True, slots=True)
class Route:
    """Ordered stops of one vehicle plus the encoded path between them."""

    vehicle_id: int
    stops: tuple[Stop, ...]
    geometry: str

    @property
    def last_stop(self) -> Optional[Stop]:
        return self.stops[-1] if self.stops else None

    def pickups(self) -> list[Stop]:
        return [stop for stop in self.stops if stop.stop_id.is_real]

    def serves(self, dustbin_id: str) -> bool:
        return any(stop.stop_id.dustbin_id == dustbin_id for stop in self.pickups())

    def decoded_geometry(self) -> list[tuple[float, float]]:
        from ..services.routing.polyline import decode_polyline

        return decode_polyline(self.geometry)


@dataclass(frozen=True, slots=True)
class Vehicle:
    id: int
    capacity_used: float = 0.0

    def remaining(self, max_capacity: float) -> float:
        return max_capacity - self.capacity_used


@dataclass(frozen=True, slots=True)
class FleetState:
    """Routes and vehicles threaded through every dispatch cycle by the caller."""

    routes: tuple[Route, ...] = field(default_factory=tuple)
    vehicles: tuple[Vehicle, ...] = field(default_factory=tuple)

    def route_for(self, vehicle_id: int) -> Optional[Route]:
        return next((route for route in self.routes if route.vehicle_id == vehicle_id), None)

    def vehicle(self, vehicle_id: int) -> Optional[Vehicle]:
        return next((vehicle for vehicle in self.vehicles if vehicle.id == vehicle_id), None)

    def with_route(self, route: Route) -> "FleetState":
        """Replace the route owned by the same vehicle, or append it."""
        routes = list(self.routes)
        for index, existing in enumerate(routes):
            if existing.vehicle_id == route.vehicle_id:
                routes[index] = route
                break
        else:
            routes.append(route)
        return replace(self, routes=tuple(routes))

    def with_vehicle(self, vehicle: Vehicle) -> "FleetState":
        """Replace the vehicle with the same id, or append it."""
        vehicles = list(self.vehicles)
        for index, existing in enumerate(vehicles):
            if existing.id == vehicle.id:
                vehicles[index] = vehicle
                break
        else:
            vehicles.append(vehicle)
        return replace(self, vehicles=tuple(vehicles))

    def is_served(self, dustbin_id: str) -> bool:
        return any(route.serves(dustbin_id) for route in self.routes)
