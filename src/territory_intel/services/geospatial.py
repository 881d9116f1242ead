"""Geospatial helper functions."""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Sequence

import numpy as np
from shapely.errors import ShapelyError
from shapely.geometry import MultiPolygon as ShapelyMultiPolygon
from shapely.geometry import Polygon as ShapelyPolygon
from shapely.geometry import mapping, shape

from ..models.domain import MultiPolygon, Point, Polygon, Ring


class GeometryError(ValueError):
    """Raised when a GeoJSON geometry cannot be used as a polygon."""


def point_in_ring(point: Point, ring: Ring) -> bool:
    """Even-odd ray casting test against a single ring.

    A horizontal ray is cast towards +longitude. An edge counts as crossed when
    its endpoints straddle the point's latitude (one strictly above, the other not)
    and the crossing lies strictly east of the point. For an axis-aligned square
    this places the west and south edges inside and the east and north edges
    outside.
    """

    if ring.is_degenerate:
        return False

    x, y = point.longitude, point.latitude
    vertices = ring.points
    inside = False
    j = len(vertices) - 1
    for i in range(len(vertices)):
        xi, yi = vertices[i].longitude, vertices[i].latitude
        xj, yj = vertices[j].longitude, vertices[j].latitude
        if (yi > y) != (yj > y):
            x_cross = (xj - xi) * (y - yi) / (yj - yi) + xi
            if x < x_cross:
                inside = not inside
        j = i
    return inside


def point_in_polygon(point: Point, polygon: Polygon) -> bool:
    """Return True if the point is inside the outer ring and outside every hole."""

    if not point_in_ring(point, polygon.exterior):
        return False
    return not any(point_in_ring(point, hole) for hole in polygon.holes)


def point_in_any(point: Point, polygons: Iterable[Polygon]) -> bool:
    return any(point_in_polygon(point, polygon) for polygon in polygons)


def ring_centroid(ring: Ring) -> Point:
    """Unweighted mean of the ring's vertices.

    This is not an area centroid: for concave or elongated shapes the result can
    sit near the edge or outside the ring.
    """

    if not ring.points:
        raise GeometryError("Cannot compute the centroid of an empty ring.")
    coords = np.array([(p.latitude, p.longitude) for p in ring.points], dtype=float)
    lat, lon = coords.mean(axis=0)
    return Point(float(lat), float(lon))


def first_polygon(geometry: Polygon | MultiPolygon) -> Polygon:
    """Reduce a multi-part geometry to its first part.

    Zones with several parts (islands, split boundaries) are represented by their
    first polygon only.
    """

    if isinstance(geometry, MultiPolygon):
        if not geometry.parts:
            raise GeometryError("MultiPolygon has no parts.")
        return geometry.parts[0]
    return geometry


def _ring_from_coords(coords: Sequence[Sequence[float]]) -> Ring:
    return Ring(tuple(Point(float(lat), float(lon)) for lon, lat, *_ in coords))


def _polygon_from_shapely(polygon: ShapelyPolygon) -> Polygon:
    exterior = _ring_from_coords(list(polygon.exterior.coords))
    holes = tuple(_ring_from_coords(list(interior.coords)) for interior in polygon.interiors)
    return Polygon(exterior=exterior, holes=holes)


def parse_geometry(geometry: Mapping[str, Any] | None) -> Polygon | MultiPolygon:
    """Convert a GeoJSON Polygon/MultiPolygon mapping into domain geometry."""

    if not geometry:
        raise GeometryError("Feature has no geometry.")
    try:
        geom = shape(geometry)
    except (ShapelyError, ValueError, TypeError, KeyError, IndexError, AttributeError) as exc:
        raise GeometryError(f"Invalid geometry: {exc}") from exc

    if geom.is_empty:
        raise GeometryError("Geometry is empty.")
    if isinstance(geom, ShapelyPolygon):
        return _polygon_from_shapely(geom)
    if isinstance(geom, ShapelyMultiPolygon):
        return MultiPolygon(tuple(_polygon_from_shapely(part) for part in geom.geoms))
    raise GeometryError(f"Unsupported geometry type '{geom.geom_type}'.")


def polygon_from_geojson(geometry: Mapping[str, Any] | None) -> Polygon:
    return first_polygon(parse_geometry(geometry))


def polygon_to_geojson(polygon: Polygon) -> dict:
    """Render a domain polygon back to a GeoJSON geometry mapping."""

    def _coords(ring: Ring) -> list[tuple[float, float]]:
        return [(p.longitude, p.latitude) for p in ring.points]

    shapely_polygon = ShapelyPolygon(_coords(polygon.exterior), [_coords(hole) for hole in polygon.holes])
    return mapping(shapely_polygon)
