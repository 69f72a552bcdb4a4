"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from ...config import settings

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


def _get_ors_health_check():
    """Lazy import to avoid startup failures."""
    from ...services.routing.ors_client import check_health as ors_health_check
    return ors_health_check


@router.get("/health/solver", status_code=status.HTTP_200_OK)
def health_solver() -> dict:
    """Check the configured route solver."""
    if settings.solver_backend == "local":
        return {"service": "local", "healthy": True}
    try:
        ors_health_check = _get_ors_health_check()
        return {"service": "ors", "healthy": ors_health_check()}
    except Exception as e:
        return {"service": "ors", "healthy": False, "error": str(e)}
