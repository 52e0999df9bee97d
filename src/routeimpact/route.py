#!/usr/bin/env python3
"""
Route data model for proximity analysis.
"""

from typing import Any, List, Optional, TextIO, Tuple
import logging
from math import cos, radians
import gpxpy
import gpxpy.gpx
from shapely.geometry import LineString

from .feature import parse_position
from .geometry import (
    Coordinate,
    coords_to_polyline,
    create_transverse_mercator_projection,
)
from .polyline import DEFAULT_PRECISION, decode_polyline, encode_polyline

logger = logging.getLogger(__name__)


class InvalidRouteError(ValueError):
    """Raised when a route payload is not a usable LineString."""


class Route:
    """Represents a travel route as an ordered list of coordinates."""

    def __init__(self, coords: List[Coordinate]):
        """Initializes a Route object.

        A route with fewer than two coordinates is degenerate: it has no
        segments, so every distance to it is infinite.

        Args:
            coords: A list of Coordinate objects representing the route's geometry.
        """
        self.coords = list(coords)
        self.bbox: Optional[Tuple[float, float, float, float]] = None
        self._linestring: Optional[LineString] = None

        if self.is_degenerate():
            logger.warning(
                f"Route has {len(self.coords)} point(s); no segments to measure against"
            )
            return

        for i in range(1, len(self.coords)):
            lon_diff = abs(self.coords[i].longitude - self.coords[i - 1].longitude)
            if lon_diff > 180.0:
                logger.warning(
                    f"Route crosses antimeridian between points {i-1} and {i} "
                    f"(longitude jump: {lon_diff:.3f}°); distances near it are unreliable"
                )
                break

        self.bbox = self._calculate_bbox()

    def is_degenerate(self) -> bool:
        """Return True if the route has fewer than two points."""
        return len(self.coords) < 2

    @property
    def linestring(self) -> LineString:
        """
        The route as a LineString in a transverse mercator projection (meters).

        Raises:
            ValueError: If the route is degenerate
        """
        if self._linestring is None:
            if self.bbox is None:
                raise ValueError("Cannot project a route with fewer than two points")
            projection = create_transverse_mercator_projection(self.bbox)
            self._linestring = coords_to_polyline(self.coords, projection)
        return self._linestring

    def length(self) -> float:
        """
        Total route length, measured on the projected LineString.

        Returns:
            Length in meters (0.0 for a degenerate route)
        """
        if self.is_degenerate():
            return 0.0
        return self.linestring.length

    def _calculate_bbox(self) -> Tuple[float, float, float, float]:
        """
        Calculates the unbuffered bounding box for the route.

        Returns:
            A tuple (south, west, north, east) in decimal degrees.
        """
        latitudes = [coord.latitude for coord in self.coords]
        longitudes = [coord.longitude for coord in self.coords]

        south, north = min(latitudes), max(latitudes)
        west, east = min(longitudes), max(longitudes)

        logger.debug(
            f"Base route bounding box calculated: ({south:.4f}, {west:.4f}, {north:.4f}, {east:.4f})"
        )
        return (south, west, north, east)

    def get_bbox(self, buffer: float = 0.0) -> Tuple[float, float, float, float]:
        """
        Get bounding box for this route, optionally with a buffer.

        Args:
            buffer: Buffer distance in meters (default: 0.0)

        Returns:
            Tuple of (south, west, north, east) in decimal degrees

        Raises:
            ValueError: If the route is degenerate
        """
        if self.bbox is None:
            raise ValueError("Degenerate route has no bounding box")

        if buffer == 0.0:
            return self.bbox

        south, west, north, east = self.bbox

        # 1 degree latitude ≈ 111 km; longitude shrinks with latitude
        avg_lat = (south + north) / 2
        lat_buffer = buffer / 111000.0
        lon_buffer = buffer / (111000.0 * max(abs(cos(radians(avg_lat))), 1e-6))

        return (
            max(-90.0, south - lat_buffer),
            max(-180.0, west - lon_buffer),
            min(90.0, north + lat_buffer),
            min(180.0, east + lon_buffer),
        )

    def to_geojson(self) -> dict:
        """Return the route as a GeoJSON LineString mapping."""
        return {
            "type": "LineString",
            "coordinates": [[c.longitude, c.latitude] for c in self.coords],
        }

    def to_polyline(self, precision: int = DEFAULT_PRECISION) -> str:
        """Return the route as an encoded polyline."""
        return encode_polyline(self.coords, precision)

    @classmethod
    def from_geojson(cls, data: Any) -> "Route":
        """
        Build a route from a GeoJSON LineString mapping.

        Args:
            data: Mapping with type "LineString" and a list of [lon, lat] positions

        Returns:
            Route object

        Raises:
            InvalidRouteError: If data is not a LineString or has malformed positions
        """
        if (
            not isinstance(data, dict)
            or data.get("type") != "LineString"
            or not isinstance(data.get("coordinates"), list)
        ):
            raise InvalidRouteError("Invalid route geometry. Expected LineString.")

        coords = []
        for i, position in enumerate(data["coordinates"]):
            coord = parse_position(position)
            if coord is None:
                raise InvalidRouteError(f"Invalid route position {i}: {position!r}")
            coords.append(coord)

        return cls(coords)

    @classmethod
    def from_polyline(
        cls, encoded: str, precision: int = DEFAULT_PRECISION
    ) -> "Route":
        """
        Build a route from an encoded polyline.

        Raises:
            PolylineDecodeError: If the polyline is truncated or malformed
        """
        route = cls(decode_polyline(encoded, precision))
        logger.debug(f"Decoded route with {len(route)} points from polyline")
        return route

    @classmethod
    def from_gpx(cls, file_input: TextIO) -> "Route":
        """
        Parse GPX data and concatenate all tracks/segments into a single route.

        Falls back to GPX routes (rte) when the file has no tracks.

        Args:
            file_input: File-like object containing GPX data

        Returns:
            Route object representing the concatenated route

        Raises:
            gpxpy.gpx.GPXException: If GPX file is malformed.
        """
        gpx_data = gpxpy.parse(file_input)

        coords = []
        for track in gpx_data.tracks:
            for segment in track.segments:
                for point in segment.points:
                    coords.append(
                        Coordinate(longitude=point.longitude, latitude=point.latitude)
                    )

        if not coords:
            for gpx_route in gpx_data.routes:
                for point in gpx_route.points:
                    coords.append(
                        Coordinate(longitude=point.longitude, latitude=point.latitude)
                    )

        route = cls(coords)
        logger.debug(f"Parsed {len(route.coords)} points from GPX file")
        return route

    @classmethod
    def from_file(cls, filename: str) -> "Route":
        """
        Load and parse a GPX file into a route.

        Raises:
            FileNotFoundError: If file doesn't exist.
            PermissionError: If file can't be read.
            gpxpy.gpx.GPXException: If GPX file is malformed.
        """
        logger.debug(f"Reading GPX file: {filename}")
        with open(filename, "r", encoding="utf-8") as f:
            return cls.from_gpx(f)

    def __len__(self) -> int:
        """Return number of points in route."""
        return len(self.coords)

    def __getitem__(self, index):
        """Allow indexing into route points."""
        return self.coords[index]

    def __iter__(self):
        """Allow iteration over route points."""
        return iter(self.coords)
