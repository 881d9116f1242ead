"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ...data.boundary_repository import BoundaryStore, get_boundary_store
from ...services.coverage import CoverageCache, get_coverage_cache
from ...services.coverage.isochrone_client import check_health as isochrone_health_check

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/isochrone", status_code=status.HTTP_200_OK)
def health_isochrone() -> dict:
    """Report whether the isochrone provider is configured."""
    return {"service": "mapbox-isochrone", "configured": isochrone_health_check()}


@router.get("/health/data", status_code=status.HTTP_200_OK)
def health_data(
    boundaries: BoundaryStore = Depends(get_boundary_store),
    cache: CoverageCache = Depends(get_coverage_cache),
) -> dict:
    zones = boundaries.zones()
    return {
        "zones_loaded": len(zones),
        "coverage_cache_entries": len(cache),
        "message": f"{len(zones)} zone boundaries loaded." if zones else "No zone boundaries loaded.",
    }
