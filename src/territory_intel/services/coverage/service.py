"""High-level orchestration for drive-time coverage requests."""

from __future__ import annotations

import functools
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Sequence

from ...config import settings
from ...data.boundary_repository import BoundaryStore, get_boundary_store
from ...models.domain import CoverageCacheEntry, Origin, Polygon
from ..geospatial import point_in_any, polygon_to_geojson
from ..territories.representatives import RepresentativeStore
from .cache import CoverageCache, build_fingerprint
from .isochrone_client import IsochroneProvider, MapboxIsochroneClient, ProviderConfigurationError

logger = logging.getLogger(__name__)


class CoverageValidationError(ValueError):
    """Raised for malformed coverage requests before any provider call."""


@dataclass(slots=True)
class CoverageResult:
    zone_ids: frozenset[str]
    from_cache: bool
    fingerprint: str
    isochrones: list[dict] = field(default_factory=list)

    def sorted_zone_ids(self) -> list[str]:
        return sorted(self.zone_ids)


class CoverageCalculator:
    """Answers "which zones are reachable within N minutes of these origins"."""

    def __init__(
        self,
        provider: IsochroneProvider,
        boundaries: BoundaryStore,
        cache: CoverageCache,
        *,
        max_parallel_requests: int | None = None,
    ) -> None:
        self.provider = provider
        self.boundaries = boundaries
        self.cache = cache
        self.max_parallel_requests = max_parallel_requests or settings.isochrone_max_parallel_requests

    def _isochrone_for(self, origin: Origin, minutes: int) -> list[Polygon]:
        try:
            return list(self.provider.isochrone(origin, minutes))
        except ProviderConfigurationError:
            raise
        except Exception as exc:
            logger.warning(
                "No isochrone for origin (%s, %s): %s",
                origin.latitude,
                origin.longitude,
                exc,
            )
            return []

    def _collect_polygons(self, minutes: int, origins: Sequence[Origin]) -> list[Polygon]:
        # Results are unioned, so completion order does not matter.
        workers = max(1, min(self.max_parallel_requests, len(origins)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            results = list(executor.map(lambda origin: self._isochrone_for(origin, minutes), origins))
        polygons = [polygon for batch in results for polygon in batch if not polygon.exterior.is_degenerate]
        failed = sum(1 for batch in results if not batch)
        if failed:
            logger.warning("%d/%d origins contributed no isochrone", failed, len(origins))
        return polygons

    def covered_zones(self, polygons: Sequence[Polygon]) -> frozenset[str]:
        if not polygons:
            return frozenset()
        return frozenset(
            zone.zone_id for zone in self.boundaries.zones() if point_in_any(self.boundaries.centroid_of(zone), polygons)
        )

    def compute_coverage(self, minutes: int, origins: Sequence[Origin]) -> CoverageResult:
        if not origins:
            raise CoverageValidationError("At least one origin is required.")
        if minutes < 0:
            raise CoverageValidationError("minutes must be >= 0")

        fingerprint = build_fingerprint(minutes, origins)
        cached = self.cache.get(fingerprint)
        if cached is not None:
            logger.info("Coverage cache hit for %s (%d zones)", fingerprint, len(cached.zone_ids))
            return CoverageResult(zone_ids=cached.zone_ids, from_cache=True, fingerprint=fingerprint)

        start_time = time.time()
        polygons = self._collect_polygons(minutes, origins)
        zone_ids = self.covered_zones(polygons)
        logger.info(
            "Computed coverage for %s: %d polygons, %d zones in %.2fs",
            fingerprint,
            len(polygons),
            len(zone_ids),
            time.time() - start_time,
        )

        entry = CoverageCacheEntry(
            minutes=minutes,
            origins=list(origins),
            zone_ids=zone_ids,
            computed_at=self.cache.clock(),
        )
        self.cache.put(fingerprint, entry)

        overlays = [
            {"type": "Feature", "geometry": polygon_to_geojson(polygon), "properties": {"contour": minutes}}
            for polygon in polygons
        ]
        return CoverageResult(zone_ids=zone_ids, from_cache=False, fingerprint=fingerprint, isochrones=overlays)

    def coverage_for_representatives(
        self,
        minutes: int,
        representatives: RepresentativeStore,
        representative_ids: Sequence[str] | None = None,
    ) -> CoverageResult:
        origins = representatives.active_origins(representative_ids)
        if not origins:
            raise CoverageValidationError("No active representatives with a location were found.")
        return self.compute_coverage(minutes, origins)


@functools.lru_cache(maxsize=1)
def get_coverage_cache() -> CoverageCache:
    return CoverageCache()


def get_coverage_calculator() -> CoverageCalculator:
    return CoverageCalculator(
        provider=MapboxIsochroneClient(),
        boundaries=get_boundary_store(),
        cache=get_coverage_cache(),
    )


__all__ = [
    "CoverageCalculator",
    "CoverageResult",
    "CoverageValidationError",
    "get_coverage_cache",
    "get_coverage_calculator",
]
