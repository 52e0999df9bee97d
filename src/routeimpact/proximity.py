#!/usr/bin/env python3
"""
Proximity queries: which candidates lie within a buffer of a route, or
within a radius of a point.
"""

from concurrent.futures import ProcessPoolExecutor
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple
import logging
import math

from .candidate import Candidate
from .directions import DirectionsRoute
from .feature import centroid, geometry_to_route_distance
from .geometry import Coordinate, coordinate_distance
from .geometry_utils import point_to_route_distance
from .route import Route

logger = logging.getLogger(__name__)

# Distance and representative point for one candidate, or None if skipped
Resolution = Optional[Tuple[float, Optional[Coordinate]]]


class ProximityResult(NamedTuple):
    """A candidate within the buffer of a route."""

    id: Any
    distance: int  # Meters, rounded to the nearest whole meter
    center: Optional[Coordinate]
    properties: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        data = {"id": self.id}
        data.update(self.properties)
        data["distance"] = self.distance
        data["center"] = list(self.center) if self.center else None
        return data


class ProximityReport(NamedTuple):
    """Ranked proximity results plus the number of candidates examined."""

    results: List[ProximityResult]
    buffer_meters: float
    total_checked: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "constructions": [r.to_dict() for r in self.results],
            "bufferMeters": self.buffer_meters,
            "totalChecked": self.total_checked,
        }


class RouteImpactReport(NamedTuple):
    """Proximity results for a provider-routed trip, with the route itself."""

    route: Route
    distance: float  # Sum of leg distances in meters
    duration: float  # Sum of leg durations in seconds
    proximity: ProximityReport

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "route": {
                "geometry": self.route.to_geojson(),
                "distance": self.distance,
                "duration": self.duration,
            }
        }
        data.update(self.proximity.to_dict())
        return data


class NearbyResult(NamedTuple):
    """A candidate within a radius of a point."""

    id: Any
    distance: float  # Kilometers
    center: Coordinate
    properties: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        data = {"id": self.id}
        data.update(self.properties)
        data["distance"] = self.distance
        data["center"] = list(self.center)
        return data


class NearbyReport(NamedTuple):
    """Candidates within a radius of a center point, nearest first."""

    center: Coordinate
    radius: float  # Kilometers
    results: List[NearbyResult]

    @property
    def count(self) -> int:
        return len(self.results)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "center": list(self.center),
            "radius": self.radius,
            "count": self.count,
            "constructions": [r.to_dict() for r in self.results],
        }


def round_distance(distance: float) -> int:
    """Round a distance to the nearest whole meter (halves round up)."""
    return int(math.floor(distance + 0.5))


def resolve_candidate(candidate: Candidate, route: Sequence[Coordinate]) -> Resolution:
    """
    Measure a candidate's distance to a route.

    The geometry is used when present, otherwise the fallback centroid.

    Args:
        candidate: Candidate to measure
        route: Ordered route coordinates

    Returns:
        Tuple of (distance_meters, center), or None if the candidate has
        neither a geometry nor a centroid
    """
    if candidate.geometry is not None:
        distance = geometry_to_route_distance(candidate.geometry, route)
        return distance, centroid(candidate.geometry)

    if candidate.centroid is not None:
        distance = point_to_route_distance(candidate.centroid, route)
        return distance, candidate.centroid

    logger.debug(f"Skipping {candidate!r}: no usable geometry or centroid")
    return None


def _resolve_chunk(
    candidates: List[Candidate], route: List[Coordinate]
) -> List[Resolution]:
    return [resolve_candidate(candidate, route) for candidate in candidates]


def _resolve_all(
    candidates: Sequence[Candidate], route: List[Coordinate], workers: int
) -> List[Resolution]:
    """Resolve every candidate, fanning out over worker processes if asked."""
    if workers <= 1 or len(candidates) < 2:
        return _resolve_chunk(list(candidates), route)

    chunk_size = math.ceil(len(candidates) / workers)
    chunks = [
        list(candidates[i : i + chunk_size])
        for i in range(0, len(candidates), chunk_size)
    ]
    logger.debug(
        f"Resolving {len(candidates)} candidates in {len(chunks)} chunks "
        f"across {workers} worker processes"
    )

    resolutions: List[Resolution] = []
    with ProcessPoolExecutor(max_workers=workers) as executor:
        # map() yields in submission order, so the merge keeps input order
        for chunk_result in executor.map(
            _resolve_chunk, chunks, [route] * len(chunks)
        ):
            resolutions.extend(chunk_result)
    return resolutions


def find_route_proximity(
    route: Route,
    candidates: Sequence[Candidate],
    buffer_meters: float,
    workers: int = 1,
) -> ProximityReport:
    """
    Find candidates within a buffer distance of a route, nearest first.

    Candidates with neither a geometry nor a centroid are skipped but still
    counted in total_checked. A candidate exactly at the buffer distance is
    included. Ties keep their input order. A negative or NaN buffer matches
    nothing.

    Args:
        route: Route to measure against
        candidates: Candidates to check
        buffer_meters: Maximum distance in meters
        workers: Number of worker processes (1 runs in-process)

    Returns:
        ProximityReport
    """
    route_coords = list(route.coords)
    resolutions = _resolve_all(candidates, route_coords, workers)

    results = []
    for candidate, resolution in zip(candidates, resolutions):
        if resolution is None:
            continue
        distance, center = resolution
        # Infinite distance (degenerate route) never matches, even an infinite buffer;
        # the negated comparison also rejects everything for a NaN buffer
        if math.isinf(distance) or not distance <= buffer_meters:
            continue
        results.append(
            ProximityResult(
                id=candidate.id,
                distance=round_distance(distance),
                center=center,
                properties=candidate.properties,
            )
        )

    # list.sort is stable, so equal distances keep input order
    results.sort(key=lambda r: r.distance)

    logger.info(
        f"Found {len(results)} of {len(candidates)} candidates within {buffer_meters}m of route"
    )
    return ProximityReport(
        results=results, buffer_meters=buffer_meters, total_checked=len(candidates)
    )


def find_provider_route_proximity(
    directions_route: DirectionsRoute,
    candidates: Sequence[Candidate],
    buffer_meters: float,
    workers: int = 1,
) -> RouteImpactReport:
    """
    Decode a provider route and find candidates within a buffer of it.

    Args:
        directions_route: Route returned by the routing provider
        candidates: Candidates to check
        buffer_meters: Maximum distance in meters
        workers: Number of worker processes (1 runs in-process)

    Returns:
        RouteImpactReport with the decoded route, leg totals and results

    Raises:
        PolylineDecodeError: If the provider polyline is malformed
    """
    route = Route.from_polyline(directions_route.polyline)
    proximity = find_route_proximity(route, candidates, buffer_meters, workers)
    return RouteImpactReport(
        route=route,
        distance=directions_route.total_distance(),
        duration=directions_route.total_duration(),
        proximity=proximity,
    )


def representative_point(candidate: Candidate) -> Optional[Coordinate]:
    """Return the fallback centroid if present, else the geometry's centroid."""
    if candidate.centroid is not None:
        return candidate.centroid
    if candidate.geometry is not None:
        return centroid(candidate.geometry)
    return None


def search_nearby(
    center: Coordinate, candidates: Sequence[Candidate], radius_km: float
) -> NearbyReport:
    """
    Find candidates whose representative point lies within a radius of center.

    Args:
        center: Search center
        candidates: Candidates to check
        radius_km: Search radius in kilometers

    Returns:
        NearbyReport with results nearest first
    """
    results = []
    for candidate in candidates:
        point = representative_point(candidate)
        if point is None:
            continue
        distance_km = coordinate_distance(center, point) / 1000.0
        if not distance_km <= radius_km:
            continue
        results.append(
            NearbyResult(
                id=candidate.id,
                distance=distance_km,
                center=point,
                properties=candidate.properties,
            )
        )

    results.sort(key=lambda r: r.distance)
    logger.info(
        f"Found {len(results)} of {len(candidates)} candidates within {radius_km}km of "
        f"({center.latitude:.5f}, {center.longitude:.5f})"
    )
    return NearbyReport(center=center, radius=radius_km, results=results)
