"""API routes for drive-time coverage."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ...models.domain import Origin
from ...schemas.coverage import (
    CacheInvalidationResponse,
    CoverageRequest,
    CoverageResponse,
    RepresentativeCoverageRequest,
)
from ...services.coverage import (
    CoverageCache,
    CoverageCalculator,
    CoverageResult,
    CoverageValidationError,
    ProviderConfigurationError,
    get_coverage_cache,
    get_coverage_calculator,
)
from ...services.territories import RepresentativeStore, get_representative_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/coverage", tags=["coverage"])


def _to_response(result: CoverageResult) -> CoverageResponse:
    return CoverageResponse(
        coveredZipCodes=result.sorted_zone_ids(),
        fromCache=result.from_cache,
        fingerprint=result.fingerprint,
        isochrones=result.isochrones,
    )


@router.post("", response_model=CoverageResponse, status_code=status.HTTP_200_OK)
def get_coverage(
    payload: CoverageRequest,
    calculator: CoverageCalculator = Depends(get_coverage_calculator),
) -> CoverageResponse:
    """Zones whose centroid lies within ``minutes`` of any origin."""
    origins = [Origin(latitude=o.lat, longitude=o.lng, representative_id=o.repId) for o in payload.repLocations]
    try:
        result = calculator.compute_coverage(payload.minutes, origins)
    except CoverageValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ProviderConfigurationError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return _to_response(result)


@router.post("/representatives", response_model=CoverageResponse, status_code=status.HTTP_200_OK)
def get_representative_coverage(
    payload: RepresentativeCoverageRequest,
    calculator: CoverageCalculator = Depends(get_coverage_calculator),
    representatives: RepresentativeStore = Depends(get_representative_store),
) -> CoverageResponse:
    try:
        result = calculator.coverage_for_representatives(payload.minutes, representatives, payload.representativeIds)
    except CoverageValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ProviderConfigurationError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return _to_response(result)


@router.delete("/cache", response_model=CacheInvalidationResponse, status_code=status.HTTP_200_OK)
def clear_coverage_cache(cache: CoverageCache = Depends(get_coverage_cache)) -> CacheInvalidationResponse:
    removed = cache.clear()
    logger.info("Cleared %d coverage cache entries", removed)
    return CacheInvalidationResponse(success=True, removed=removed)


@router.delete("/cache/{fingerprint:path}", response_model=CacheInvalidationResponse, status_code=status.HTTP_200_OK)
def invalidate_coverage_entry(
    fingerprint: str,
    cache: CoverageCache = Depends(get_coverage_cache),
) -> CacheInvalidationResponse:
    if not cache.invalidate(fingerprint):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Cache entry not found")
    return CacheInvalidationResponse(success=True, removed=1)
