"""Dispatch request/response schemas."""

from __future__ import annotations

from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from ..models.domain import CollectionPoint, FleetState
from ..services.outputs.fleet_formatter import fleet_state_from_json, fleet_state_to_json


class CollectionPointModel(BaseModel):
    dustbin_id: str = Field(..., min_length=1)
    location: Tuple[float, float] = Field(..., description="(longitude, latitude)")
    name: str
    fill_percentage: float = Field(default=0.0, ge=0, le=100)

    def to_domain(self) -> CollectionPoint:
        return CollectionPoint(
            dustbin_id=self.dustbin_id,
            location=self.location,
            name=self.name,
            fill_percentage=self.fill_percentage,
        )


class StopModel(BaseModel):
    location: Tuple[float, float]
    dustbin_id: str
    name: str = ""


class RouteModel(BaseModel):
    vehicle_id: int
    steps: List[StopModel]
    geometry: str = Field(..., description="Encoded polyline (precision 5).")


class VehicleModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    capacity_used: float = Field(default=0.0, ge=0, alias="capacityUsed")


class FleetStateModel(BaseModel):
    routes: List[RouteModel] = Field(default_factory=list)
    vehicles: List[VehicleModel] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, state: FleetState) -> "FleetStateModel":
        return cls.model_validate(fleet_state_to_json(state))

    def to_domain(self) -> FleetState:
        return fleet_state_from_json(self.model_dump(by_alias=True))


class DispatchRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    dustbin: Optional[CollectionPointModel] = None
    current_routes: List[RouteModel] = Field(default_factory=list, alias="currentRoutes")
    vehicles: List[VehicleModel] = Field(default_factory=list)

    def fleet_state(self) -> FleetState:
        return FleetStateModel(routes=self.current_routes, vehicles=self.vehicles).to_domain()


class DispatchResponse(FleetStateModel):
    pass


class DispatchErrorResponse(BaseModel):
    error: str
    routes: list = Field(default_factory=list)
    vehicles: list = Field(default_factory=list)


class OptimizeRequest(BaseModel):
    dustbins: List[CollectionPointModel]


class CollectionRequest(BaseModel):
    dustbin_id: str = Field(..., min_length=1)
