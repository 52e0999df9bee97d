#!/usr/bin/env python3
"""
Route impact - find features within a buffer distance of a travel route.

This package ranks candidate features (construction sites, closures and
the like) by their distance to a route given as coordinates, a GPX file or
an encoded polyline from a routing provider.
"""
import importlib.metadata

__version__ = importlib.metadata.version("routeimpact")

# Import main classes for public API
from .candidate import Candidate
from .feature import Geometry, GeometryType, centroid, geometry_to_route_distance
from .geometry import Coordinate, haversine_distance
from .geometry_utils import point_to_route_distance, point_to_segment_distance
from .polyline import PolylineDecodeError, decode_polyline, encode_polyline
from .proximity import (
    ProximityReport,
    ProximityResult,
    find_provider_route_proximity,
    find_route_proximity,
    search_nearby,
)
from .route import InvalidRouteError, Route

__all__ = [
    "Candidate",
    "Coordinate",
    "Geometry",
    "GeometryType",
    "InvalidRouteError",
    "PolylineDecodeError",
    "ProximityReport",
    "ProximityResult",
    "Route",
    "centroid",
    "decode_polyline",
    "encode_polyline",
    "find_provider_route_proximity",
    "find_route_proximity",
    "geometry_to_route_distance",
    "haversine_distance",
    "point_to_route_distance",
    "point_to_segment_distance",
    "search_nearby",
]
