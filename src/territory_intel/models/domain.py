"""Domain models for zones, territories and coverage requests."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass(frozen=True, slots=True)
class Point:
    """A WGS84 coordinate. Stored as (latitude, longitude)."""

    latitude: float
    longitude: float


@dataclass(frozen=True, slots=True)
class Ring:
    """Ordered vertices of a closed ring.

    GeoJSON repeats the first vertex at the end of a ring; that closing vertex is
    dropped on construction so ``points`` holds each vertex once.
    """

    points: tuple[Point, ...]

    def __post_init__(self) -> None:
        points = tuple(self.points)
        if len(points) > 1 and points[0] == points[-1]:
            points = points[:-1]
        object.__setattr__(self, "points", points)

    def __len__(self) -> int:
        return len(self.points)

    @property
    def is_degenerate(self) -> bool:
        return len(set(self.points)) < 3


@dataclass(frozen=True, slots=True)
class Polygon:
    """Outer ring with optional holes."""

    exterior: Ring
    holes: tuple[Ring, ...] = ()


@dataclass(frozen=True, slots=True)
class MultiPolygon:
    parts: tuple[Polygon, ...]


@dataclass(frozen=True, slots=True)
class Zone:
    """Postal boundary unit loaded from the reference geometry."""

    zone_id: str
    polygon: Polygon
    centroid: Point
    properties: dict = field(default_factory=dict, compare=False, hash=False)


@dataclass(frozen=True, slots=True)
class Origin:
    """Representative location used as an isochrone origin."""

    latitude: float
    longitude: float
    representative_id: Optional[str] = None

    @property
    def point(self) -> Point:
        return Point(self.latitude, self.longitude)


@dataclass(slots=True)
class CoverageCacheEntry:
    minutes: int
    origins: list[Origin]
    zone_ids: frozenset[str]
    computed_at: datetime


@dataclass(slots=True)
class Territory:
    """Named, colored grouping of zones."""

    id: str
    name: str
    color: str
    created_at: str


@dataclass(slots=True)
class Representative:
    id: str
    name: str
    email: str = ""
    phone: str = ""
    location: Optional[Point] = None
    territory_id: Optional[str] = None
    active: bool = True


@dataclass(frozen=True, slots=True)
class MetricPoint:
    zone_id: str
    value: float
    metric: str


@dataclass(frozen=True, slots=True)
class TerritoryMetricPoint:
    territory_id: Optional[str]
    territory_name: str
    value: float
    metric: str
    zone_count: int
