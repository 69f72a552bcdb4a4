"""Routing endpoints: incremental dispatch and batch optimization."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from ...schemas.dispatch import (
    DispatchErrorResponse,
    DispatchRequest,
    DispatchResponse,
    OptimizeRequest,
)
from ...services.dispatch.batch import optimize_collection
from ...services.dispatch.engine import DispatchEngine, build_engine
from ...services.dispatch.exceptions import DispatchError
from ...services.routing import RouteSolver, build_solver
from ...services.routing.exceptions import SolverError

router = APIRouter(prefix="/routes", tags=["routes"])


@lru_cache()
def get_dispatch_engine() -> DispatchEngine:
    try:
        return build_engine()
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Route solver is not configured: {exc}",
        ) from exc


def get_route_solver() -> RouteSolver:
    try:
        return build_solver()
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Route solver is not configured: {exc}",
        ) from exc


def _echo_list(payload: Any, key: str) -> list:
    """Return the caller's list exactly as sent."""
    if isinstance(payload, dict) and isinstance(payload.get(key), list):
        return payload[key]
    return []


def _error_response(status_code: int, error: str, routes: list, vehicles: list) -> JSONResponse:
    body = DispatchErrorResponse(error=error, routes=routes, vehicles=vehicles)
    return JSONResponse(status_code=status_code, content=body.model_dump())


@router.post("/request", response_model=DispatchResponse, status_code=status.HTTP_200_OK)
def request_collection(
    payload: Any = Body(default=None),
    engine: DispatchEngine = Depends(get_dispatch_engine),
):
    """Assign a dustbin to the fleet, or refresh when ``dustbin`` is null.

    The caller owns the fleet state: it sends the routes and vehicles from the
    previous response and receives the next ones. On failure the input state
    comes back unchanged alongside the error.
    """
    try:
        request = DispatchRequest.model_validate(payload)
    except ValidationError as exc:
        return _error_response(
            status.HTTP_400_BAD_REQUEST,
            f"Invalid dispatch request: {exc.error_count()} validation error(s): {exc.errors()[0]['msg']}",
            _echo_list(payload, "currentRoutes"),
            _echo_list(payload, "vehicles"),
        )

    point = request.dustbin.to_domain() if request.dustbin else None
    try:
        new_state = engine.dispatch(point, request.fleet_state())
    except DispatchError as exc:
        logging.error(f"Dispatch cycle failed: {exc}")
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            str(exc),
            _echo_list(payload, "currentRoutes"),
            _echo_list(payload, "vehicles"),
        )
    except Exception as exc:
        logging.exception(f"Unexpected error during dispatch: {exc}")
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            f"Failed to dispatch request: {exc}",
            _echo_list(payload, "currentRoutes"),
            _echo_list(payload, "vehicles"),
        )

    return DispatchResponse.from_domain(new_state)


@router.post("/optimize", response_model=DispatchResponse, status_code=status.HTTP_200_OK)
def optimize(payload: OptimizeRequest, solver: RouteSolver = Depends(get_route_solver)) -> DispatchResponse:
    """Plan fresh routes for every dustbin above the fill threshold."""
    try:
        state = optimize_collection([dustbin.to_domain() for dustbin in payload.dustbins], solver)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except SolverError as exc:
        logging.error(f"Batch optimization failed: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to optimize routes: {exc}",
        ) from exc
    return DispatchResponse.from_domain(state)
