"""Pydantic models for territory, assignment and representative endpoints."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class TerritoryModel(BaseModel):
    id: str
    name: str
    color: str
    createdAt: str = ""


class TerritoryCreate(BaseModel):
    name: Optional[str] = Field(default=None, description="Display name (defaults to 'New Territory').")
    color: Optional[str] = Field(default=None, description="Display color (defaults to '#FF6B6B').")


class TerritoryUpdate(BaseModel):
    name: Optional[str] = None
    color: Optional[str] = None


class TerritoryMutationResponse(BaseModel):
    success: bool
    territory: Optional[TerritoryModel] = None


class TerritoryBulkResponse(BaseModel):
    success: bool
    territories: list[TerritoryModel]


class AssignmentRequest(BaseModel):
    territoryId: Optional[str] = Field(default=None, description="Territory to assign; null or empty unassigns.")


class AssignmentModel(BaseModel):
    zipCode: str
    territoryId: Optional[str] = None


class AssignmentResponse(BaseModel):
    success: bool
    assignment: AssignmentModel


class AssignmentsBulkResponse(BaseModel):
    success: bool
    assignments: dict[str, str]


class LocationModel(BaseModel):
    lat: float = Field(..., ge=-90.0, le=90.0)
    lng: float = Field(..., ge=-180.0, le=180.0)


class RepresentativeModel(BaseModel):
    id: Optional[str] = None
    name: str = "New Representative"
    email: str = ""
    phone: str = ""
    location: Optional[LocationModel] = None
    territoryId: Optional[str] = None
    active: bool = True
