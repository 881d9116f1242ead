"""API routes for postal zone boundaries and single-zone assignment."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...data.boundary_repository import BoundaryStore, get_boundary_store
from ...data.metrics_repository import MetricsRepository, get_metrics_repository
from ...schemas.territories import AssignmentModel, AssignmentRequest, AssignmentResponse
from ...services.territories import TerritoryStore, UnknownTerritoryError, get_territory_store
from .territories import storage_failure

router = APIRouter(prefix="/zones", tags=["zones"])


@router.get("", status_code=status.HTTP_200_OK)
def list_zones(
    metadata: bool = Query(default=False, description="Include uploaded zone demographics."),
    boundaries: BoundaryStore = Depends(get_boundary_store),
    store: TerritoryStore = Depends(get_territory_store),
    repository: MetricsRepository = Depends(get_metrics_repository),
) -> dict:
    """Boundary features annotated with their territory id and color."""
    payload: dict = {
        "boundaries": boundaries.to_feature_collection(store.get_assignments(), store.list_territories()),
    }
    if metadata:
        payload["metadata"] = repository.load_zone_metadata()
    return payload


@router.get("/{zone_id}", status_code=status.HTTP_200_OK)
def get_zone(
    zone_id: str,
    boundaries: BoundaryStore = Depends(get_boundary_store),
    store: TerritoryStore = Depends(get_territory_store),
) -> dict:
    zone = boundaries.get(zone_id)
    if zone is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Zone '{zone_id}' not found")
    centroid = boundaries.centroid_of(zone)
    return {
        "zipCode": zone.zone_id,
        "centroid": {"lat": centroid.latitude, "lng": centroid.longitude},
        "territoryId": store.get_assignments().get(zone.zone_id),
    }


@router.post("/{zone_id}/assign", response_model=AssignmentResponse, status_code=status.HTTP_200_OK)
def assign_zone(
    zone_id: str,
    payload: AssignmentRequest,
    store: TerritoryStore = Depends(get_territory_store),
) -> AssignmentResponse:
    """Assign a zone to a territory, or unassign it with ``territoryId: null``."""
    territory_id = payload.territoryId or None
    try:
        store.assign(zone_id, territory_id)
    except UnknownTerritoryError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    except (OSError, ValueError) as exc:
        raise storage_failure("assign zone", exc) from exc
    return AssignmentResponse(success=True, assignment=AssignmentModel(zipCode=zone_id, territoryId=territory_id))
