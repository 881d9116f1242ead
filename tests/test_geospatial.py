import pytest

from territory_intel.models.domain import MultiPolygon, Point, Polygon, Ring
from territory_intel.services.geospatial import (
    GeometryError,
    first_polygon,
    parse_geometry,
    point_in_polygon,
    point_in_ring,
    polygon_from_geojson,
    polygon_to_geojson,
    ring_centroid,
)


def _ring(*lon_lat: tuple[float, float]) -> Ring:
    return Ring(tuple(Point(lat, lon) for lon, lat in lon_lat))


def _unit_square() -> Ring:
    return _ring((0, 0), (1, 0), (1, 1), (0, 1), (0, 0))


def test_ring_drops_closing_vertex() -> None:
    ring = _unit_square()
    assert len(ring) == 4
    assert not ring.is_degenerate


def test_point_inside_and_outside_square() -> None:
    square = _unit_square()
    assert point_in_ring(Point(0.5, 0.5), square)
    assert not point_in_ring(Point(1.5, 0.5), square)
    assert not point_in_ring(Point(0.5, -0.1), square)


@pytest.mark.parametrize(
    "point, expected",
    [
        (Point(0.5, 0.0), True),  # west edge
        (Point(0.0, 0.5), True),  # south edge
        (Point(0.5, 1.0), False),  # east edge
        (Point(1.0, 0.5), False),  # north edge
        (Point(0.0, 0.0), True),  # south-west corner
    ],
)
def test_boundary_points_follow_half_open_rule(point: Point, expected: bool) -> None:
    assert point_in_ring(point, _unit_square()) is expected


def test_degenerate_ring_contains_nothing() -> None:
    line = _ring((0, 0), (1, 1), (0, 0))
    assert line.is_degenerate
    assert not point_in_ring(Point(0.5, 0.5), line)


def test_holes_exclude_points() -> None:
    outer = _ring((0, 0), (10, 0), (10, 10), (0, 10))
    hole = _ring((4, 4), (6, 4), (6, 6), (4, 6))
    polygon = Polygon(exterior=outer, holes=(hole,))

    assert point_in_polygon(Point(1, 1), polygon)
    assert not point_in_polygon(Point(5, 5), polygon)


def test_ring_centroid_is_vertex_mean() -> None:
    ring = _ring((0, 0), (2, 0), (2, 4), (0, 4), (0, 0))
    centroid = ring_centroid(ring)
    assert centroid.latitude == pytest.approx(2.0)
    assert centroid.longitude == pytest.approx(1.0)


def test_first_polygon_of_multipolygon() -> None:
    first = Polygon(_unit_square())
    second = Polygon(_ring((5, 5), (6, 5), (6, 6), (5, 6)))
    assert first_polygon(MultiPolygon((first, second))) is first
    assert first_polygon(first) is first


def test_parse_multipolygon_keeps_first_part() -> None:
    geometry = {
        "type": "MultiPolygon",
        "coordinates": [
            [[[0, 0], [1, 0], [1, 1], [0, 1], [0, 0]]],
            [[[5, 5], [6, 5], [6, 6], [5, 6], [5, 5]]],
        ],
    }
    parsed = parse_geometry(geometry)
    assert isinstance(parsed, MultiPolygon)
    polygon = polygon_from_geojson(geometry)
    assert ring_centroid(polygon.exterior) == Point(0.5, 0.5)


@pytest.mark.parametrize(
    "geometry",
    [
        None,
        {"type": "Point", "coordinates": [0, 0]},
        {"type": "Polygon", "coordinates": [[[0, 0], [1, 1]]]},
        {"type": "Polygon", "coordinates": []},
    ],
)
def test_invalid_geometry_raises(geometry) -> None:
    with pytest.raises(GeometryError):
        polygon_from_geojson(geometry)


def test_polygon_to_geojson_uses_lon_lat_order() -> None:
    rendered = polygon_to_geojson(Polygon(_ring((-75, 40), (-74, 40), (-74, 41), (-75, 41))))
    assert rendered["type"] == "Polygon"
    assert tuple(rendered["coordinates"][0][0]) == (-75.0, 40.0)
