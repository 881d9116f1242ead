"""API routes for territories and zone assignments."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Literal, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse, Response

from ...models.domain import Territory
from ...schemas.territories import (
    AssignmentsBulkResponse,
    TerritoryBulkResponse,
    TerritoryCreate,
    TerritoryModel,
    TerritoryMutationResponse,
    TerritoryUpdate,
)
from ...services.outputs.formatter import assignment_rows, assignments_to_csv, export_filename
from ...services.territories import (
    TerritoryNotFoundError,
    TerritoryStore,
    UnknownTerritoryError,
    get_territory_store,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["territories"])


def territory_model(territory: Territory) -> TerritoryModel:
    return TerritoryModel(
        id=territory.id,
        name=territory.name,
        color=territory.color,
        createdAt=territory.created_at,
    )


def storage_failure(action: str, exc: Exception) -> HTTPException:
    logger.exception("Failed to %s: %s", action, exc)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}: {exc}",
    )


@router.get("/territories", response_model=List[TerritoryModel], status_code=status.HTTP_200_OK)
def list_territories(store: TerritoryStore = Depends(get_territory_store)) -> List[TerritoryModel]:
    return [territory_model(territory) for territory in store.list_territories()]


@router.get("/territories/{territory_id}", response_model=TerritoryModel, status_code=status.HTTP_200_OK)
def get_territory(territory_id: str, store: TerritoryStore = Depends(get_territory_store)) -> TerritoryModel:
    try:
        return territory_model(store.get_territory(territory_id))
    except TerritoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.post("/territories", response_model=TerritoryMutationResponse, status_code=status.HTTP_201_CREATED)
def create_territory(
    payload: TerritoryCreate,
    store: TerritoryStore = Depends(get_territory_store),
) -> TerritoryMutationResponse:
    try:
        territory = store.create_territory(payload.name, payload.color)
    except (OSError, ValueError) as exc:
        raise storage_failure("create territory", exc) from exc
    return TerritoryMutationResponse(success=True, territory=territory_model(territory))


@router.put("/territories", response_model=TerritoryBulkResponse, status_code=status.HTTP_200_OK)
def replace_territories(
    payload: List[TerritoryModel],
    store: TerritoryStore = Depends(get_territory_store),
) -> TerritoryBulkResponse:
    """Overwrite the full territory list. Last writer wins."""
    replacement = [
        Territory(id=item.id, name=item.name, color=item.color, created_at=item.createdAt) for item in payload
    ]
    try:
        saved = store.bulk_replace_territories(replacement)
    except OSError as exc:
        raise storage_failure("save territories", exc) from exc
    return TerritoryBulkResponse(success=True, territories=[territory_model(t) for t in saved])


@router.put("/territories/{territory_id}", response_model=TerritoryMutationResponse, status_code=status.HTTP_200_OK)
def update_territory(
    territory_id: str,
    payload: TerritoryUpdate,
    store: TerritoryStore = Depends(get_territory_store),
) -> TerritoryMutationResponse:
    try:
        territory = store.update_territory(territory_id, payload.model_dump(exclude_none=True))
    except TerritoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except (OSError, ValueError) as exc:
        raise storage_failure("update territory", exc) from exc
    return TerritoryMutationResponse(success=True, territory=territory_model(territory))


@router.delete("/territories/{territory_id}", response_model=TerritoryMutationResponse, status_code=status.HTTP_200_OK)
def delete_territory(territory_id: str, store: TerritoryStore = Depends(get_territory_store)) -> TerritoryMutationResponse:
    """Delete the territory record; zones assigned to it keep the now dangling id."""
    try:
        store.delete_territory(territory_id)
    except TerritoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except (OSError, ValueError) as exc:
        raise storage_failure("delete territory", exc) from exc
    return TerritoryMutationResponse(success=True)


@router.get("/assignments", response_model=dict[str, str], status_code=status.HTTP_200_OK)
def get_assignments(store: TerritoryStore = Depends(get_territory_store)) -> dict[str, str]:
    return store.get_assignments()


@router.put("/assignments", response_model=AssignmentsBulkResponse, status_code=status.HTTP_200_OK)
def replace_assignments(
    payload: dict[str, Optional[str]] = Body(...),
    store: TerritoryStore = Depends(get_territory_store),
) -> AssignmentsBulkResponse:
    try:
        saved = store.bulk_replace_assignments(payload)
    except UnknownTerritoryError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    except (OSError, ValueError) as exc:
        raise storage_failure("save assignments", exc) from exc
    return AssignmentsBulkResponse(success=True, assignments=saved)


@router.get("/assignments/export", status_code=status.HTTP_200_OK)
def export_assignments(
    format: Literal["json", "csv"] = Query(default="json", description="Export format."),
    store: TerritoryStore = Depends(get_territory_store),
) -> Response:
    rows = assignment_rows(store.get_assignments(), store.list_territories())
    today = datetime.now(timezone.utc).date().isoformat()
    headers = {"Content-Disposition": f'attachment; filename="{export_filename(format, today)}"'}
    if format == "csv":
        return Response(content=assignments_to_csv(rows), media_type="text/csv", headers=headers)
    return JSONResponse(content=rows, headers=headers)
