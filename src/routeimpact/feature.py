#!/usr/bin/env python3
"""
GeoJSON-style geometry variants and their distance to a route.

Geometries are parsed from plain GeoJSON mappings into a small tagged
variant. Anything that does not parse cleanly is treated as "no geometry"
rather than an error, so one bad record never blocks a query.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator, List, Optional, Sequence, Tuple, Union
import logging
import math
import numbers

from .geometry import Coordinate
from .geometry_utils import point_to_route_distance

logger = logging.getLogger(__name__)


class GeometryType(Enum):
    """Enumeration of supported geometry variants."""

    POINT = "Point"
    LINE_STRING = "LineString"
    POLYGON = "Polygon"
    MULTI_POINT = "MultiPoint"
    MULTI_LINE_STRING = "MultiLineString"
    MULTI_POLYGON = "MultiPolygon"

    def __str__(self) -> str:
        return self.value


CoordinateSequence = Tuple[Coordinate, ...]
GeometryCoordinates = Union[
    Coordinate,
    CoordinateSequence,
    Tuple[CoordinateSequence, ...],
    Tuple[Tuple[CoordinateSequence, ...], ...],
]

# Nesting depth of the coordinates array for each variant
_NESTING_DEPTH = {
    GeometryType.POINT: 0,
    GeometryType.LINE_STRING: 1,
    GeometryType.MULTI_POINT: 1,
    GeometryType.POLYGON: 2,
    GeometryType.MULTI_LINE_STRING: 2,
    GeometryType.MULTI_POLYGON: 3,
}


@dataclass(frozen=True)
class Geometry:
    """A parsed geometry: variant tag plus nested coordinates."""

    type: GeometryType
    coordinates: GeometryCoordinates

    def to_mapping(self) -> dict:
        """Return the geometry as a GeoJSON mapping."""
        return {"type": self.type.value, "coordinates": _to_lists(self.coordinates)}


def _to_lists(value: Any) -> Any:
    if isinstance(value, Coordinate):
        return [value.longitude, value.latitude]
    return [_to_lists(item) for item in value]


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, numbers.Real)
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def parse_position(value: Any) -> Optional[Coordinate]:
    """
    Parse a GeoJSON position ([lon, lat] with optional extra dimensions).

    Returns:
        Coordinate, or None if the value is not a numeric position
    """
    if not isinstance(value, (list, tuple)) or len(value) < 2:
        return None
    lon, lat = value[0], value[1]
    if not (_is_number(lon) and _is_number(lat)):
        return None
    return Coordinate(longitude=float(lon), latitude=float(lat))


def parse_coordinate(value: Any) -> Optional[Coordinate]:
    """
    Parse a fallback centroid, which must be exactly [lon, lat].

    Returns:
        Coordinate, or None if the value is not a numeric pair
    """
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        return None
    return parse_position(value)


def _parse_nested(value: Any, depth: int) -> Optional[Any]:
    """Parse coordinates nested `depth` levels deep; every level must be non-empty."""
    if depth == 0:
        return parse_position(value)
    if not isinstance(value, (list, tuple)) or not value:
        return None
    parsed = []
    for item in value:
        child = _parse_nested(item, depth - 1)
        if child is None:
            return None
        parsed.append(child)
    return tuple(parsed)


def parse_geometry(value: Any) -> Optional[Geometry]:
    """
    Parse a GeoJSON geometry mapping.

    Args:
        value: Candidate geometry, typically a dict with "type" and "coordinates"

    Returns:
        Geometry, or None if the value is missing, of an unsupported type
        (e.g. GeometryCollection) or has malformed coordinates
    """
    if not isinstance(value, dict):
        return None

    try:
        geometry_type = GeometryType(value.get("type"))
    except ValueError:
        logger.debug(f"Unsupported geometry type: {value.get('type')!r}")
        return None

    raw_coordinates = value.get("coordinates")
    if not isinstance(raw_coordinates, (list, tuple)):
        return None

    coordinates = _parse_nested(raw_coordinates, _NESTING_DEPTH[geometry_type])
    if coordinates is None:
        logger.debug(f"Malformed {geometry_type} coordinates")
        return None

    return Geometry(type=geometry_type, coordinates=coordinates)


def distance_vertices(geometry: Geometry) -> Iterator[Coordinate]:
    """
    Yield the vertices sampled when measuring a geometry's distance to a route.

    Only the outer (first) ring of each polygon is used; holes are ignored.
    """
    geometry_type = geometry.type
    coordinates: Any = geometry.coordinates

    if geometry_type == GeometryType.POINT:
        yield coordinates
    elif geometry_type in (GeometryType.LINE_STRING, GeometryType.MULTI_POINT):
        yield from coordinates
    elif geometry_type == GeometryType.POLYGON:
        yield from coordinates[0]
    elif geometry_type == GeometryType.MULTI_LINE_STRING:
        for line in coordinates:
            yield from line
    elif geometry_type == GeometryType.MULTI_POLYGON:
        for polygon in coordinates:
            yield from polygon[0]


def geometry_to_route_distance(
    geometry: Geometry, route: Sequence[Coordinate]
) -> float:
    """
    Calculate the minimum distance from a geometry to a route.

    This samples vertices rather than computing true geometry-to-geometry
    distance: a long edge whose midpoint passes close to the route is not
    detected unless one of its vertices is.

    Args:
        geometry: Parsed geometry
        route: Ordered route coordinates

    Returns:
        Distance in meters, or infinity for an unsupported variant or a
        route with fewer than two points
    """
    min_distance = math.inf
    for vertex in distance_vertices(geometry):
        distance = point_to_route_distance(vertex, route)
        if distance < min_distance:
            min_distance = distance
    return min_distance


def centroid(geometry: Geometry) -> Optional[Coordinate]:
    """
    Derive a representative point for a geometry.

    Point returns itself, LineString its middle vertex, Polygon the plain
    average of its outer ring's vertices (closing vertex included as given).
    Other variants have no representative point.

    Args:
        geometry: Parsed geometry

    Returns:
        Coordinate, or None
    """
    coordinates: Any = geometry.coordinates

    if geometry.type == GeometryType.POINT:
        return coordinates

    if geometry.type == GeometryType.LINE_STRING:
        return coordinates[len(coordinates) // 2]

    if geometry.type == GeometryType.POLYGON:
        ring: List[Coordinate] = list(coordinates[0])
        return Coordinate(
            longitude=sum(c.longitude for c in ring) / len(ring),
            latitude=sum(c.latitude for c in ring) / len(ring),
        )

    return None
