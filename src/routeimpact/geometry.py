"""
Coordinate types, great-circle distance and projection helpers.

Coordinates are always (longitude, latitude) in decimal degrees, matching
GeoJSON. The projection helpers build metric Shapely geometries for route
length reporting and map bounds.
"""

from typing import List, Optional, Tuple, NamedTuple
import math
from shapely.geometry import LineString
import pyproj

# Mean Earth radius in meters (spherical approximation)
EARTH_RADIUS_M = 6371000.0


class Coordinate(NamedTuple):
    """Represents a geographic position as (longitude, latitude)."""

    longitude: float
    latitude: float


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate Haversine distance between two latitude/longitude points.

    Uses Haversine formula for great circle distance along the Earth's surface.
    Inputs are not range-checked.

    Args:
        lat1: Latitude of the first point in degrees
        lon1: Longitude of the first point in degrees
        lat2: Latitude of the second point in degrees
        lon2: Longitude of the second point in degrees

    Returns:
        Distance in meters
    """
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)

    a = (
        math.sin(dphi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    )
    # Rounding can push a marginally above 1 for antipodal points
    a = min(a, 1.0)

    return 2 * EARTH_RADIUS_M * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def coordinate_distance(a: Coordinate, b: Coordinate) -> float:
    """Haversine distance in meters between two Coordinates."""
    return haversine_distance(a.latitude, a.longitude, b.latitude, b.longitude)


def create_transverse_mercator_projection(
    bbox: Tuple[float, float, float, float],
) -> pyproj.Proj:
    """
    Create a custom transverse mercator projection centered on the given bounding box.

    Args:
        bbox: Tuple of (south, west, north, east) in decimal degrees

    Returns:
        pyproj.Proj object for the custom projection
    """
    south, west, north, east = bbox

    center_lat = (south + north) / 2.0
    center_lon = (west + east) / 2.0

    proj_string = f"+proj=tmerc +lat_0={center_lat} +lon_0={center_lon} +k=1 +x_0=0 +y_0=0 +datum=WGS84 +units=m +no_defs"
    return pyproj.Proj(proj_string)


def coords_to_polyline(
    coords: List[Coordinate], projection: Optional[pyproj.Proj] = None
) -> LineString:
    """
    Convert a list of Coordinates to a Shapely LineString.

    Args:
        coords: List of Coordinate objects
        projection: Optional pyproj.Proj object for coordinate transformation.
                   If None, uses lon/lat coordinates directly.

    Returns:
        LineString object in projected coordinates if projection is provided,
        otherwise in geographic coordinates

    Raises:
        ValueError: If coords has less than 2 points
    """
    if not coords or len(coords) < 2:
        raise ValueError("At least two positions are required to create a LineString.")

    if projection is not None:
        lons = [c.longitude for c in coords]
        lats = [c.latitude for c in coords]
        x_coords, y_coords = projection(lons, lats)
        return LineString(list(zip(x_coords, y_coords)))

    return LineString([(c.longitude, c.latitude) for c in coords])
