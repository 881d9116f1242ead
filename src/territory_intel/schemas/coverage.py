"""Pydantic request/response models for drive-time coverage endpoints."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class OriginModel(BaseModel):
    lat: float = Field(..., ge=-90.0, le=90.0)
    lng: float = Field(..., ge=-180.0, le=180.0)
    repId: Optional[str] = Field(default=None, description="Representative owning this location.")


class CoverageRequest(BaseModel):
    minutes: int = Field(..., ge=0, description="Travel-time budget in minutes.")
    repLocations: list[OriginModel] = Field(default_factory=list, description="Isochrone origins, in order.")


class RepresentativeCoverageRequest(BaseModel):
    minutes: int = Field(..., ge=0)
    representativeIds: Optional[list[str]] = Field(
        default=None,
        description="Restrict to these representatives; all active representatives when omitted.",
    )


class CoverageResponse(BaseModel):
    coveredZipCodes: list[str]
    fromCache: bool
    fingerprint: str
    isochrones: list[dict] = Field(default_factory=list)


class CacheInvalidationResponse(BaseModel):
    success: bool
    removed: int
