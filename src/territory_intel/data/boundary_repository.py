"""Postal zone boundary loader.

Boundaries are static reference geometry: loaded once, then only read.
"""

from __future__ import annotations

import functools
import json
import logging
import threading
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

from ..config import settings
from ..models.domain import Point, Territory, Zone
from ..services.geospatial import GeometryError, polygon_from_geojson, ring_centroid

logger = logging.getLogger(__name__)

DEFAULT_TERRITORY_COLOR = "#ffffff"

# Upstream boundary files label the postal code under different names.
ZONE_ID_PROPERTIES: tuple[str, ...] = (
    "zipCode",
    "ZCTA5CE20",
    "ZCTA5CE10",
    "ZIP_CODE",
    "ZIPCODE",
    "ZIP",
)
GEOID_PROPERTY = "GEOID20"
ZONE_ID_LENGTH = 5


def zone_id_of(properties: Mapping[str, Any] | None) -> Optional[str]:
    """Extract the zone code from raw feature properties, first match wins."""

    if not properties:
        return None
    for key in ZONE_ID_PROPERTIES:
        value = properties.get(key)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    geoid = properties.get(GEOID_PROPERTY)
    if geoid is not None:
        text = str(geoid).strip()[:ZONE_ID_LENGTH]
        if text:
            return text
    return None


class BoundaryStore:
    """Loads zone polygons and centroids from a GeoJSON feature collection."""

    def __init__(self, source: Path | None = None) -> None:
        self.source = source or settings.boundaries_file
        self._zones: tuple[Zone, ...] | None = None
        self._lock = threading.Lock()

    def load(self) -> tuple[Zone, ...]:
        """Parse the boundary file. A missing or malformed file yields no zones."""

        try:
            with Path(self.source).open("r", encoding="utf-8") as handle:
                collection = json.load(handle)
        except FileNotFoundError:
            logger.warning("Zone boundaries file not found: %s", self.source)
            return tuple()
        except (OSError, ValueError) as exc:
            logger.error("Failed to read zone boundaries from %s: %s", self.source, exc)
            return tuple()

        features = collection.get("features") if isinstance(collection, dict) else None
        if not isinstance(features, list):
            logger.error("Zone boundaries file %s is not a feature collection", self.source)
            return tuple()

        zones: list[Zone] = []
        seen: set[str] = set()
        for feature in features:
            if not isinstance(feature, dict):
                continue
            properties = feature.get("properties") or {}
            zone_id = zone_id_of(properties)
            if not zone_id:
                continue
            if zone_id in seen:
                logger.debug("Duplicate boundary for zone %s ignored", zone_id)
                continue
            try:
                polygon = polygon_from_geojson(feature.get("geometry"))
                centroid = ring_centroid(polygon.exterior)
            except GeometryError as exc:
                logger.warning("Skipping zone %s: %s", zone_id, exc)
                continue
            seen.add(zone_id)
            zones.append(Zone(zone_id=zone_id, polygon=polygon, centroid=centroid, properties=dict(properties)))

        logger.info("Loaded %d zone boundaries from %s", len(zones), self.source)
        return tuple(zones)

    def zones(self) -> tuple[Zone, ...]:
        if self._zones is None:
            with self._lock:
                if self._zones is None:
                    self._zones = self.load()
        return self._zones

    def reload(self) -> tuple[Zone, ...]:
        with self._lock:
            self._zones = self.load()
        return self._zones

    def get(self, zone_id: str) -> Optional[Zone]:
        for zone in self.zones():
            if zone.zone_id == zone_id:
                return zone
        return None

    @staticmethod
    def zone_id_of(properties: Mapping[str, Any] | None) -> Optional[str]:
        return zone_id_of(properties)

    @staticmethod
    def centroid_of(zone: Zone) -> Point:
        return zone.centroid

    def to_feature_collection(
        self,
        assignments: Mapping[str, str] | None = None,
        territories: Iterable[Territory] = (),
    ) -> dict:
        """Re-read the raw boundaries and annotate each feature with its territory."""

        assignments = assignments or {}
        colors = {territory.id: territory.color for territory in territories}
        try:
            with Path(self.source).open("r", encoding="utf-8") as handle:
                collection = json.load(handle)
        except (OSError, ValueError) as exc:
            logger.warning("Zone boundaries unavailable for export: %s", exc)
            return {"type": "FeatureCollection", "features": []}

        features: list[dict] = []
        for feature in collection.get("features", []) if isinstance(collection, dict) else []:
            if not isinstance(feature, dict):
                continue
            zone_id = zone_id_of(feature.get("properties")) or ""
            territory_id = assignments.get(zone_id) if zone_id else None
            features.append(
                {
                    **feature,
                    "properties": {
                        **(feature.get("properties") or {}),
                        "zipCode": zone_id,
                        "territoryId": territory_id,
                        "territoryColor": colors.get(territory_id, DEFAULT_TERRITORY_COLOR)
                        if territory_id
                        else DEFAULT_TERRITORY_COLOR,
                    },
                }
            )
        return {"type": "FeatureCollection", "features": features}


@functools.lru_cache(maxsize=1)
def get_boundary_store() -> BoundaryStore:
    return BoundaryStore()
