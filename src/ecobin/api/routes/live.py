"""Live dispatch endpoints backed by the server-side polling driver."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from ...data.dustbin_repository import get_dustbin
from ...schemas.dispatch import CollectionRequest, DispatchResponse
from ...services.dispatch.exceptions import DispatchError, DuplicateRequestError
from ...services.dispatch.polling import PollingDriver

router = APIRouter(prefix="/live", tags=["live"])


def get_polling_driver(request: Request) -> PollingDriver:
    driver = getattr(request.app.state, "polling_driver", None)
    if driver is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Live dispatch is disabled. Set ECOBIN_LIVE_DISPATCH_ENABLED=true.",
        )
    return driver


@router.get("/state", response_model=DispatchResponse, status_code=status.HTTP_200_OK)
def live_state(driver: PollingDriver = Depends(get_polling_driver)) -> DispatchResponse:
    return DispatchResponse.from_domain(driver.state())


@router.get("/status", status_code=status.HTTP_200_OK)
def live_status(driver: PollingDriver = Depends(get_polling_driver)) -> dict:
    return {
        "running": driver.is_running,
        "interval_seconds": driver.interval_seconds,
        "pending": [point.dustbin_id for point in driver.pending],
    }


@router.post("/requests", response_model=DispatchResponse, status_code=status.HTTP_200_OK)
def live_request(payload: CollectionRequest, driver: PollingDriver = Depends(get_polling_driver)) -> DispatchResponse:
    """Request collection of a known dustbin; polling pauses until it is assigned."""
    dustbin = get_dustbin(payload.dustbin_id)
    if dustbin is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Dustbin {payload.dustbin_id} not found",
        )
    try:
        state = driver.request_collection(dustbin)
    except DuplicateRequestError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except DispatchError as exc:
        logging.error(f"Live dispatch failed for {payload.dustbin_id}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc
    return DispatchResponse.from_domain(state)
