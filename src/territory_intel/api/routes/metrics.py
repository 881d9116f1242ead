"""API routes for metric visualization data and dataset uploads."""

from __future__ import annotations

import logging
from datetime import date
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...data.metrics_repository import MetricsRepository, get_metrics_repository
from ...schemas.metrics import (
    DatasetSummary,
    DatasetUpload,
    DatasetUploadResponse,
    MetricSeriesResponse,
    TerritoryMetricModel,
    ZoneMetricModel,
)
from ...services.metrics import MetricsAggregator, UnknownMetricError, get_metric, value_range
from ...services.territories import TerritoryStore, get_territory_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/metrics", tags=["metrics"])


def get_metrics_aggregator() -> MetricsAggregator:
    return MetricsAggregator()


@router.get("/datasets", response_model=List[DatasetSummary], status_code=status.HTTP_200_OK)
def list_datasets(repository: MetricsRepository = Depends(get_metrics_repository)) -> List[DatasetSummary]:
    return [DatasetSummary(**entry) for entry in repository.list_datasets()]


@router.post("/datasets", response_model=DatasetUploadResponse, status_code=status.HTTP_200_OK)
def upload_dataset(
    payload: DatasetUpload,
    repository: MetricsRepository = Depends(get_metrics_repository),
) -> DatasetUploadResponse:
    try:
        if payload.type == "funnel":
            if not isinstance(payload.data, list):
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Funnel data must be a list of records")
            count = repository.save_funnel_data([record for record in payload.data if isinstance(record, dict)])
        else:
            if not isinstance(payload.data, dict):
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Zone metrics must be an object keyed by zip code")
            count = repository.save_zone_metadata(
                {zone_id: values for zone_id, values in payload.data.items() if isinstance(values, dict)}
            )
    except OSError as exc:
        logger.exception("Failed to store %s dataset: %s", payload.type, exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to upload data: {exc}",
        ) from exc
    return DatasetUploadResponse(success=True, count=count, type=payload.type)


@router.get("/{metric}", response_model=MetricSeriesResponse, status_code=status.HTTP_200_OK)
def get_metric_series(
    metric: str,
    by: Literal["zone", "territory"] = Query(default="zone", description="Group values by zone or by territory."),
    start: Optional[date] = Query(default=None, description="Earliest funnel record date (inclusive)."),
    end: Optional[date] = Query(default=None, description="Latest funnel record date (inclusive)."),
    repository: MetricsRepository = Depends(get_metrics_repository),
    store: TerritoryStore = Depends(get_territory_store),
    aggregator: MetricsAggregator = Depends(get_metrics_aggregator),
) -> MetricSeriesResponse:
    try:
        definition = get_metric(metric)
    except UnknownMetricError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    if start and end and start > end:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="start must not be after end")

    funnel = repository.load_funnel_data() if definition.source == "funnel" else []
    demographics = repository.load_zone_metadata() if definition.source == "demographic" else {}

    if by == "territory":
        points = aggregator.rollup_by_territory(
            metric,
            store.get_assignments(),
            store.list_territories(),
            funnel,
            demographics,
            start=start,
            end=end,
        )
        low, high = value_range(point.value for point in points)
        return MetricSeriesResponse(
            metric=metric,
            groupBy="territory",
            min=low,
            max=high,
            territories=[
                TerritoryMetricModel(
                    territoryId=point.territory_id,
                    territoryName=point.territory_name,
                    value=point.value,
                    metric=point.metric,
                    zoneCount=point.zone_count,
                )
                for point in points
            ],
        )

    series = aggregator.aggregate(metric, funnel, demographics, start=start, end=end)
    low, high = value_range(point.value for point in series)
    return MetricSeriesResponse(
        metric=metric,
        groupBy="zone",
        min=low,
        max=high,
        zones=[ZoneMetricModel(zipCode=point.zone_id, value=point.value, metric=point.metric) for point in series],
    )
