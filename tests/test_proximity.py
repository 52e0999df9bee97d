import math
import os
import pytest

from routeimpact.candidate import Candidate, load_candidates
from routeimpact.directions import DirectionsRoute, Leg
from routeimpact.feature import Geometry, GeometryType
from routeimpact.geometry import Coordinate, EARTH_RADIUS_M
from routeimpact.polyline import PolylineDecodeError, encode_polyline
from routeimpact.proximity import (
    find_provider_route_proximity,
    find_route_proximity,
    resolve_candidate,
    round_distance,
    search_nearby,
)
from routeimpact.route import Route

FIXTURE = os.path.join(os.path.dirname(__file__), "fixtures", "constructions.json")
ONE_DEGREE_M = math.pi / 180 * EARTH_RADIUS_M

EQUATOR_ROUTE = Route([Coordinate(0.0, 0.0), Coordinate(1.0, 0.0)])


def point_candidate(id, meters_north, longitude=0.5):
    """A Point candidate the given distance north of the equator route."""
    return Candidate(
        id,
        geometry=Geometry(
            GeometryType.POINT, Coordinate(longitude, meters_north / ONE_DEGREE_M)
        ),
    )


def centroid_candidate(id, meters_north, longitude=0.5):
    return Candidate(id, centroid=Coordinate(longitude, meters_north / ONE_DEGREE_M))


class TestRoundDistance:
    def test_halves_round_up(self):
        assert round_distance(0.5) == 1
        assert round_distance(2.5) == 3
        assert round_distance(2.4999) == 2

    def test_whole_numbers(self):
        assert round_distance(0.0) == 0
        assert round_distance(111.0) == 111


class TestFindRouteProximity:
    def test_constructions_fixture(self):
        route = Route([Coordinate(0.0, 0.0), Coordinate(0.0, 1.0)])
        candidates = load_candidates(FIXTURE)

        report = find_route_proximity(route, candidates, 200)

        assert [r.id for r in report.results] == [2, 1]
        assert [r.distance for r in report.results] == [0, 111]
        assert report.total_checked == 4
        assert report.buffer_meters == 200
        assert report.results[0].center == Coordinate(0.0, 0.8)
        assert report.results[1].properties["title"] == "Bridge deck replacement"

    def test_meridian_route_near_and_far_points(self):
        route = Route([Coordinate(0.0, 0.0), Coordinate(0.0, 1.0)])
        on_route = Candidate("on", centroid=Coordinate(0.0, 0.5))
        one_degree_east = Candidate("east", centroid=Coordinate(1.0, 0.5))

        report = find_route_proximity(route, [on_route, one_degree_east], 1)
        assert [(r.id, r.distance) for r in report.results] == [("on", 0)]

        report = find_route_proximity(route, [one_degree_east], 200_000)
        assert report.results[0].distance == pytest.approx(111_195, rel=1e-3)

        report = find_route_proximity(route, [one_degree_east], 50_000)
        assert report.results == []

    def test_nearer_candidate_first(self):
        candidates = [point_candidate("far", 500), point_candidate("near", 100)]
        report = find_route_proximity(EQUATOR_ROUTE, candidates, 1000)
        assert [r.distance for r in report.results] == [100, 500]

    def test_filters_and_sorts_by_distance(self):
        candidates = [
            point_candidate("a", 150),
            point_candidate("b", 50),
            point_candidate("c", 400),
            centroid_candidate("d", 100),
        ]
        report = find_route_proximity(EQUATOR_ROUTE, candidates, 200)

        assert [r.id for r in report.results] == ["b", "d", "a"]
        assert [r.distance for r in report.results] == [50, 100, 150]
        assert report.total_checked == 4

    def test_buffer_boundary_is_inclusive(self):
        candidate = point_candidate("edge", 150.0)
        exact, _ = resolve_candidate(candidate, EQUATOR_ROUTE.coords)

        report = find_route_proximity(EQUATOR_ROUTE, [candidate], exact)
        assert [r.id for r in report.results] == ["edge"]

        report = find_route_proximity(EQUATOR_ROUTE, [candidate], exact - 0.01)
        assert report.results == []

    def test_ties_keep_input_order(self):
        candidates = [
            point_candidate("first", 100, longitude=0.2),
            point_candidate("second", 100, longitude=0.8),
            point_candidate("third", 100, longitude=0.5),
        ]
        report = find_route_proximity(EQUATOR_ROUTE, candidates, 200)
        assert [r.id for r in report.results] == ["first", "second", "third"]

    def test_candidates_without_location_are_counted_but_skipped(self):
        candidates = [Candidate("empty"), point_candidate("near", 10)]
        report = find_route_proximity(EQUATOR_ROUTE, candidates, 200)

        assert [r.id for r in report.results] == ["near"]
        assert report.total_checked == 2

    def test_geometry_takes_precedence_over_centroid(self):
        candidate = Candidate(
            "both",
            geometry=Geometry(GeometryType.POINT, Coordinate(0.5, 1.0)),
            centroid=Coordinate(0.5, 0.0),
        )
        report = find_route_proximity(EQUATOR_ROUTE, [candidate], 200)
        assert report.results == []

    def test_empty_candidates(self):
        report = find_route_proximity(EQUATOR_ROUTE, [], 200)
        assert report.results == []
        assert report.total_checked == 0

    @pytest.mark.parametrize("coords", [[], [Coordinate(0.5, 0.0)]])
    def test_degenerate_route_matches_nothing(self, coords):
        route = Route(coords)
        candidates = [point_candidate("on", 0), centroid_candidate("near", 1)]

        report = find_route_proximity(route, candidates, math.inf)
        assert report.results == []
        assert report.total_checked == 2

    def test_negative_buffer_matches_nothing(self):
        candidates = [point_candidate("on", 0), point_candidate("far", 5000)]
        report = find_route_proximity(EQUATOR_ROUTE, candidates, -1)

        assert report.results == []
        assert report.total_checked == 2

    def test_nan_buffer_matches_nothing(self):
        candidates = [point_candidate("on", 0), point_candidate("far", 50_000)]
        report = find_route_proximity(EQUATOR_ROUTE, candidates, math.nan)

        assert report.results == []
        assert report.total_checked == 2

    def test_zero_buffer_keeps_exact_hits(self):
        report = find_route_proximity(EQUATOR_ROUTE, [point_candidate("on", 0)], 0)
        assert [r.distance for r in report.results] == [0]

    def test_worker_processes_give_same_result(self):
        candidates = [point_candidate(i, (i * 37) % 300) for i in range(12)]
        candidates.append(Candidate("empty"))

        serial = find_route_proximity(EQUATOR_ROUTE, candidates, 200)
        parallel = find_route_proximity(EQUATOR_ROUTE, candidates, 200, workers=3)

        assert parallel == serial

    def test_to_dict(self):
        candidate = Candidate(
            9,
            centroid=Coordinate(0.5, 0.0),
            properties={"title": "Depot", "progress": 50},
        )
        report = find_route_proximity(EQUATOR_ROUTE, [candidate], 200)

        assert report.to_dict() == {
            "constructions": [
                {
                    "id": 9,
                    "title": "Depot",
                    "progress": 50,
                    "distance": 0,
                    "center": [0.5, 0.0],
                }
            ],
            "bufferMeters": 200,
            "totalChecked": 1,
        }


class TestResolveCandidate:
    def test_multi_geometry_has_no_center(self):
        candidate = Candidate(
            1,
            geometry=Geometry(
                GeometryType.MULTI_POINT,
                (Coordinate(0.5, 0.0), Coordinate(0.6, 0.0)),
            ),
        )
        distance, center = resolve_candidate(candidate, EQUATOR_ROUTE.coords)
        assert distance == pytest.approx(0.0, abs=1e-6)
        assert center is None

    def test_nothing_to_measure(self):
        assert resolve_candidate(Candidate(1), EQUATOR_ROUTE.coords) is None


class TestProviderRouteProximity:
    def test_decodes_route_and_sums_legs(self):
        polyline = encode_polyline([Coordinate(0.0, 0.0), Coordinate(1.0, 0.0)])
        directions_route = DirectionsRoute(
            polyline=polyline,
            legs=[Leg(distance=60000, duration=3000), Leg(distance=51000, duration=2400)],
        )
        candidates = [point_candidate("near", 100), point_candidate("far", 5000)]

        report = find_provider_route_proximity(directions_route, candidates, 200)

        assert report.distance == 111000
        assert report.duration == 5400
        assert [r.id for r in report.proximity.results] == ["near"]
        assert report.proximity.total_checked == 2

        data = report.to_dict()
        assert data["route"]["geometry"] == {
            "type": "LineString",
            "coordinates": [[0.0, 0.0], [1.0, 0.0]],
        }
        assert data["route"]["distance"] == 111000
        assert data["route"]["duration"] == 5400
        assert [c["id"] for c in data["constructions"]] == ["near"]
        assert data["totalChecked"] == 2

    def test_malformed_polyline(self):
        directions_route = DirectionsRoute(polyline="_p~iF", legs=[])
        with pytest.raises(PolylineDecodeError):
            find_provider_route_proximity(directions_route, [], 200)


class TestSearchNearby:
    def test_radius_in_kilometers(self):
        center = Coordinate(0.0, 0.0)
        candidates = [
            Candidate("two", centroid=Coordinate(0.0, 2000 / ONE_DEGREE_M)),
            Candidate("one", centroid=Coordinate(1000 / ONE_DEGREE_M, 0.0)),
            Candidate("twenty", centroid=Coordinate(0.0, 20000 / ONE_DEGREE_M)),
            Candidate("nowhere"),
        ]

        report = search_nearby(center, candidates, 10)

        assert [r.id for r in report.results] == ["one", "two"]
        assert report.results[0].distance == pytest.approx(1.0)
        assert report.count == 2
        data = report.to_dict()
        assert data["center"] == [0.0, 0.0]
        assert data["radius"] == 10
        assert data["count"] == 2

    def test_uses_geometry_centroid_without_fallback(self):
        candidate = Candidate(
            "line",
            geometry=Geometry(
                GeometryType.LINE_STRING,
                (Coordinate(0.0, 0.0), Coordinate(0.01, 0.0), Coordinate(5.0, 0.0)),
            ),
        )
        report = search_nearby(Coordinate(0.0, 0.0), [candidate], 5)
        assert report.results[0].center == Coordinate(0.01, 0.0)

    def test_nan_radius_matches_nothing(self):
        candidate = Candidate("here", centroid=Coordinate(0.0, 0.0))
        report = search_nearby(Coordinate(0.0, 0.0), [candidate], math.nan)
        assert report.count == 0
