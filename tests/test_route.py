import io
import logging
import os
import pytest

from routeimpact.geometry import Coordinate, haversine_distance
from routeimpact.polyline import PolylineDecodeError
from routeimpact.route import InvalidRouteError, Route

FIXTURE = os.path.join(os.path.dirname(__file__), "fixtures", "meridian.gpx")


def test_route_creation_and_basic_properties():
    coords = [Coordinate(20.0, 10.0), Coordinate(20.1, 10.1), Coordinate(20.2, 10.2)]
    route = Route(coords)

    assert route.coords == coords
    assert len(route) == 3
    assert route[0] == coords[0]
    assert route[-1] == coords[-1]
    assert list(route) == coords
    assert not route.is_degenerate()
    assert route.bbox == (10.0, 20.0, 10.2, 20.2)


@pytest.mark.parametrize("coords", [[], [Coordinate(1.0, 1.0)]])
def test_degenerate_route(coords, caplog):
    with caplog.at_level(logging.WARNING):
        route = Route(coords)

    assert route.is_degenerate()
    assert route.bbox is None
    assert route.length() == 0.0
    assert "no segments" in caplog.text
    with pytest.raises(ValueError):
        route.get_bbox()


def test_antimeridian_jump_is_logged(caplog):
    with caplog.at_level(logging.WARNING):
        Route([Coordinate(179.9, 0.0), Coordinate(-179.9, 0.0)])
    assert "antimeridian" in caplog.text


def test_length_matches_haversine():
    coords = [Coordinate(-0.1278, 51.5074), Coordinate(-0.1, 51.52), Coordinate(-0.08, 51.5)]
    route = Route(coords)
    expected = sum(
        haversine_distance(a.latitude, a.longitude, b.latitude, b.longitude)
        for a, b in zip(coords, coords[1:])
    )
    assert route.length() == pytest.approx(expected, rel=0.01)


def test_get_bbox_with_buffer():
    route = Route([Coordinate(0.0, 0.0), Coordinate(1.0, 1.0)])
    south, west, north, east = route.get_bbox(1110.0)

    assert south == pytest.approx(-0.01)
    assert north == pytest.approx(1.01)
    assert west < 0.0 < 1.0 < east
    assert route.get_bbox() == (0.0, 0.0, 1.0, 1.0)


def test_from_geojson():
    route = Route.from_geojson(
        {"type": "LineString", "coordinates": [[0, 0], [0, 1, 120.0]]}
    )
    assert route.coords == [Coordinate(0.0, 0.0), Coordinate(0.0, 1.0)]


@pytest.mark.parametrize(
    "data",
    [
        None,
        [[0, 0], [0, 1]],
        {"type": "Point", "coordinates": [0, 0]},
        {"type": "LineString"},
        {"type": "LineString", "coordinates": "0,0 0,1"},
        {"type": "LineString", "coordinates": [[0, 0], ["a", 1]]},
        {"type": "LineString", "coordinates": [[0, 0], [1]]},
    ],
)
def test_from_geojson_invalid(data):
    with pytest.raises(InvalidRouteError):
        Route.from_geojson(data)


def test_invalid_route_error_is_value_error():
    assert issubclass(InvalidRouteError, ValueError)


def test_geojson_round_trip():
    data = {"type": "LineString", "coordinates": [[2.35, 48.85], [2.36, 48.86]]}
    assert Route.from_geojson(data).to_geojson() == data


def test_from_polyline():
    route = Route.from_polyline("_p~iF~ps|U_ulLnnqC_mqNvxq`@")
    assert len(route) == 3
    assert route[0].longitude == pytest.approx(-120.2)
    assert route.to_polyline() == "_p~iF~ps|U_ulLnnqC_mqNvxq`@"


def test_from_polyline_malformed():
    with pytest.raises(PolylineDecodeError):
        Route.from_polyline("_p~iF")


def test_from_file():
    route = Route.from_file(FIXTURE)
    assert route.coords == [
        Coordinate(0.0, 0.0),
        Coordinate(0.0, 0.5),
        Coordinate(0.0, 1.0),
    ]


def test_from_gpx_falls_back_to_routes():
    gpx_text = """<?xml version="1.0" encoding="UTF-8"?>
<gpx version="1.1" creator="test" xmlns="http://www.topografix.com/GPX/1/1">
  <rte>
    <rtept lat="45.0" lon="7.0"></rtept>
    <rtept lat="45.1" lon="7.1"></rtept>
  </rte>
</gpx>
"""
    route = Route.from_gpx(io.StringIO(gpx_text))
    assert route.coords == [Coordinate(7.0, 45.0), Coordinate(7.1, 45.1)]
