"""Pydantic models for metric visualization endpoints."""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


class ZoneMetricModel(BaseModel):
    zipCode: str
    value: float
    metric: str


class TerritoryMetricModel(BaseModel):
    territoryId: Optional[str] = None
    territoryName: str
    value: float
    metric: str
    zoneCount: int


class MetricSeriesResponse(BaseModel):
    metric: str
    groupBy: Literal["zone", "territory"]
    min: float
    max: float
    zones: list[ZoneMetricModel] = Field(default_factory=list)
    territories: list[TerritoryMetricModel] = Field(default_factory=list)


class DatasetUpload(BaseModel):
    type: Literal["funnel", "metrics"]
    data: Any = Field(..., description="List of funnel records, or a zone -> demographics mapping.")


class DatasetUploadResponse(BaseModel):
    success: bool
    count: int
    type: str


class DatasetSummary(BaseModel):
    id: str
    name: str
    type: str
    description: str
    recordCount: int
    uploadedAt: str
    fileSize: int
