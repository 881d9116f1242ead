"""API routes for sales representatives."""

from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from ...models.domain import Point, Representative
from ...schemas.territories import LocationModel, RepresentativeModel
from ...services.territories import RepresentativeStore, get_representative_store

router = APIRouter(prefix="/representatives", tags=["representatives"])


def _to_domain(model: RepresentativeModel) -> Representative:
    return Representative(
        id=model.id or f"rep-{uuid.uuid4().hex}",
        name=model.name,
        email=model.email,
        phone=model.phone,
        location=Point(model.location.lat, model.location.lng) if model.location else None,
        territory_id=model.territoryId or None,
        active=model.active,
    )


def _to_model(rep: Representative) -> RepresentativeModel:
    return RepresentativeModel(
        id=rep.id,
        name=rep.name,
        email=rep.email,
        phone=rep.phone,
        location=LocationModel(lat=rep.location.latitude, lng=rep.location.longitude) if rep.location else None,
        territoryId=rep.territory_id,
        active=rep.active,
    )


@router.get("", response_model=List[RepresentativeModel], status_code=status.HTTP_200_OK)
def list_representatives(store: RepresentativeStore = Depends(get_representative_store)) -> List[RepresentativeModel]:
    return [_to_model(rep) for rep in store.list_representatives()]


@router.post("", response_model=RepresentativeModel, status_code=status.HTTP_200_OK)
def upsert_representative(
    payload: RepresentativeModel,
    store: RepresentativeStore = Depends(get_representative_store),
) -> RepresentativeModel:
    """Create a representative, or replace the one with the same id."""
    try:
        rep = store.upsert(_to_domain(payload))
    except (OSError, ValueError) as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to save representative: {exc}",
        ) from exc
    return _to_model(rep)


@router.put("", response_model=List[RepresentativeModel], status_code=status.HTTP_200_OK)
def replace_representatives(
    payload: List[RepresentativeModel],
    store: RepresentativeStore = Depends(get_representative_store),
) -> List[RepresentativeModel]:
    try:
        reps = store.bulk_replace([_to_domain(item) for item in payload])
    except (OSError, ValueError) as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to save representatives: {exc}",
        ) from exc
    return [_to_model(rep) for rep in reps]
