"""Collection point endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from ...data.dustbin_repository import get_dustbins
from ...schemas.dispatch import CollectionPointModel
from ...services.outputs.fleet_formatter import collection_point_to_json

router = APIRouter(prefix="/dustbins", tags=["dustbins"])


@router.get("", response_model=list[CollectionPointModel], status_code=status.HTTP_200_OK)
def list_dustbins() -> list[CollectionPointModel]:
    try:
        dustbins = get_dustbins()
    except (OSError, ValueError) as exc:
        logging.exception(f"Error loading dustbins: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to load dustbins: {exc}",
        ) from exc
    return [CollectionPointModel.model_validate(collection_point_to_json(dustbin)) for dustbin in dustbins]
